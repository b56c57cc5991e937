from __future__ import annotations

import argparse
import asyncio
import json
import sys

from togetherchurch.core.logging import configure_logging
from togetherchurch.persistence.db import SessionLocal
from togetherchurch.services.entitlements import list_override_records
from togetherchurch.services.plan_admin import clear_override, set_override


def _parse_enabled(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"true", "on", "1", "yes"}:
        return True
    if lowered in {"false", "off", "0", "no"}:
        return False
    raise argparse.ArgumentTypeError(f"expected true/false, got {value!r}")


def _parse_config(value: str) -> dict:
    try:
        config = json.loads(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid JSON config: {exc}") from exc
    if not isinstance(config, dict):
        raise argparse.ArgumentTypeError("config must be a JSON object")
    return config


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage per-church feature overrides")
    subparsers = parser.add_subparsers(dest="command", required=True)

    set_parser = subparsers.add_parser("set", help="Grant or revoke a feature for one church")
    set_parser.add_argument("--church", required=True, help="Church identifier")
    set_parser.add_argument("--feature", required=True, help="Catalog feature key")
    set_parser.add_argument("--enabled", required=True, type=_parse_enabled, help="true|false")
    set_parser.add_argument("--config", default=None, type=_parse_config, help="JSON object merged over plan config")

    clear_parser = subparsers.add_parser("clear", help="Remove an override so the plan decides again")
    clear_parser.add_argument("--church", required=True, help="Church identifier")
    clear_parser.add_argument("--feature", required=True, help="Catalog feature key")

    list_parser = subparsers.add_parser("list", help="List overrides for one church")
    list_parser.add_argument("--church", required=True, help="Church identifier")
    return parser


async def _run(args: argparse.Namespace) -> int:
    async with SessionLocal() as session:
        if args.command == "set":
            row = await set_override(
                session=session,
                church_id=args.church,
                feature_key=args.feature,
                enabled=args.enabled,
                config=args.config,
            )
            print(f"override set: church={row.church_id} feature={row.feature_key} enabled={row.enabled}")
            return 0
        if args.command == "clear":
            removed = await clear_override(session=session, church_id=args.church, feature_key=args.feature)
            if not removed:
                print(f"no override for church={args.church} feature={args.feature}")
                return 1
            print(f"override cleared: church={args.church} feature={args.feature}")
            return 0

        records = await list_override_records(session, args.church)
        if not records:
            print(f"no overrides for church={args.church}")
        for record in records:
            config = json.dumps(record.config, sort_keys=True) if record.config else "-"
            print(f"{record.feature_key}\t{'on' if record.enabled else 'off'}\t{config}")
        return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    configure_logging()
    try:
        return asyncio.run(_run(args))
    except Exception as exc:  # noqa: BLE001 - surface operator failures clearly
        print(f"feature_override failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
