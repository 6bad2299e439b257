"""
Backend HookRelay: reorg-aware ingestion of chain-indexer deliveries.

Receives pushed apply/rollback block batches, reconciles chain reorganizations
per subscription, extracts typed DEX-swap, whale-transfer and liquidity events,
and fans them out to handler pipelines.
"""

__version__ = "0.1.0"
