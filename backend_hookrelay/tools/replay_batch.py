"""
Replay captured deliveries through the dispatch engine.

Feeds one or more JSON batch files (in the order given) through an engine
built from settings and prints each BatchOutcome as JSON. Useful for checking
reorg handling against a real capture; with STATE_STORE_URL set it advances
the real subscription state, so point it at a scratch database.

Usage:
    python -m backend_hookrelay.tools.replay_batch batch1.json batch2.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from backend_hookrelay.config.settings import load_settings
from backend_hookrelay.core.exceptions import HookRelayError
from backend_hookrelay.dispatch.factory import build_runtime
from backend_hookrelay.relay_logging import get_logger

logger = get_logger(__name__)


async def replay(paths: list[Path]) -> int:
    runtime = build_runtime(load_settings())
    failures = 0
    for path in paths:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            outcome = await runtime.engine.process(payload)
        except (OSError, ValueError, HookRelayError) as e:
            failures += 1
            logger.error("replay_batch_failed", path=str(path), error=str(e))
            continue
        print(json.dumps({"path": str(path), **outcome.to_dict()}))
    return 1 if failures else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Replay batch JSON files through the engine")
    parser.add_argument("batches", nargs="+", type=Path)
    args = parser.parse_args(argv)
    return asyncio.run(replay(args.batches))


if __name__ == "__main__":
    sys.exit(main())
