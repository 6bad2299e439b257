"""
Register (or delete / list) predicates with the chain-indexing registry.

Definitions file: JSON array of objects with uuid, if_this and optionally
name, network, callback_url, authorization_header, start_block. Missing
callback_url / network / authorization_header fall back to settings
(CALLBACK_URL, NETWORK, HOOK_AUTH_TOKEN).

Usage:
    python -m backend_hookrelay.tools.register_predicates predicates.json
    python -m backend_hookrelay.tools.register_predicates --list
    python -m backend_hookrelay.tools.register_predicates --delete swap:alex-v2
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from backend_hookrelay.config.settings import Settings, load_settings
from backend_hookrelay.core.exceptions import ConfigError, RegistryError
from backend_hookrelay.registration.registry import PredicateSpec, RegistryClient
from backend_hookrelay.relay_logging import get_logger

logger = get_logger(__name__)


def load_definitions(path: Path, settings: Settings) -> list[PredicateSpec]:
    """Read the definitions file into PredicateSpecs, applying settings defaults."""
    raw: Any = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        raise ValueError("definitions file must hold a JSON object or array")
    auth = f"Bearer {settings.hook_auth_token}" if settings.hook_auth_token else None
    return [
        PredicateSpec.from_dict(
            item,
            callback_url=settings.callback_url,
            network=settings.network,
            authorization_header=auth,
        )
        for item in raw
    ]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Manage chain-indexer predicates")
    parser.add_argument("definitions", nargs="?", type=Path, help="JSON predicate definitions")
    parser.add_argument("--list", action="store_true", help="List registered predicates")
    parser.add_argument("--delete", metavar="UUID", action="append", default=[], help="Delete a predicate")
    parser.add_argument("--dry-run", action="store_true", help="Print payloads without calling the registry")
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error("register_config_error", error=str(e))
        return 2

    specs: list[PredicateSpec] = []
    if args.definitions is not None:
        try:
            specs = load_definitions(args.definitions, settings)
        except (OSError, ValueError) as e:
            logger.error("register_definitions_invalid", path=str(args.definitions), error=str(e))
            return 2

    if args.dry_run:
        for spec in specs:
            print(json.dumps(spec.to_payload(), indent=2))
        return 0

    if not settings.registry_api_url:
        logger.error("register_config_error", error="REGISTRY_API_URL is not set")
        return 2
    if not (specs or args.delete or args.list):
        parser.print_usage()
        return 2

    failures = 0
    with RegistryClient(settings.registry_api_url, settings.registry_api_key) as client:
        for uuid in args.delete:
            try:
                client.delete(uuid)
            except RegistryError as e:
                failures += 1
                logger.error("register_delete_failed", uuid=uuid, error=str(e), status_code=e.status_code)
        for spec in specs:
            try:
                client.register(spec)
            except RegistryError as e:
                failures += 1
                logger.error("register_failed", uuid=spec.uuid, error=str(e), status_code=e.status_code)
        if args.list:
            try:
                for item in client.list_predicates():
                    print(json.dumps(item))
            except RegistryError as e:
                failures += 1
                logger.error("register_list_failed", error=str(e))
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
