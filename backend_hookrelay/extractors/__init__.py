"""
Extractors: pure projections of generic transactions into typed domain events.

SwapExtractor (receipt topic "swap"), WhaleExtractor (large credits) and
LiquidityExtractor (receipt topics "mint" / "burn").
"""

from backend_hookrelay.extractors.base import Extractor, extract_all
from backend_hookrelay.extractors.events import (
    DomainEvent,
    EventKind,
    LiquidityEvent,
    LiquidityKind,
    RetractionEvent,
    SwapEvent,
    WhaleEvent,
)
from backend_hookrelay.extractors.liquidity import LiquidityExtractor
from backend_hookrelay.extractors.swap import SwapExtractor
from backend_hookrelay.extractors.whale import WhaleExtractor

__all__ = [
    "DomainEvent",
    "EventKind",
    "Extractor",
    "LiquidityEvent",
    "LiquidityExtractor",
    "LiquidityKind",
    "RetractionEvent",
    "SwapEvent",
    "SwapExtractor",
    "WhaleEvent",
    "WhaleExtractor",
    "extract_all",
]
