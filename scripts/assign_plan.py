from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timezone
import sys

from togetherchurch.core.logging import configure_logging
from togetherchurch.persistence.db import SessionLocal
from togetherchurch.services.plan_admin import ASSIGNABLE_STATUSES, assign_plan


def _parse_period_end(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid ISO timestamp: {value!r}") from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Move a church onto a plan")
    parser.add_argument("--church", required=True, help="Church identifier")
    parser.add_argument("--plan", required=True, help="Plan identifier, e.g. starter|growth|multisite")
    parser.add_argument("--status", default="active", choices=ASSIGNABLE_STATUSES, help="Subscription status")
    parser.add_argument("--period-end", default=None, type=_parse_period_end, help="ISO-8601 period end")
    return parser


async def _assign(args: argparse.Namespace) -> int:
    async with SessionLocal() as session:
        subscription = await assign_plan(
            session=session,
            church_id=args.church,
            plan_id=args.plan,
            status=args.status,
            current_period_end=args.period_end,
        )
    print("Subscription current:")
    print(f"  subscription_id: {subscription.id}")
    print(f"  church_id: {subscription.church_id}")
    print(f"  plan_id: {subscription.plan_id}")
    print(f"  status: {subscription.status}")
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    configure_logging()
    try:
        return asyncio.run(_assign(args))
    except Exception as exc:  # noqa: BLE001 - surface operator failures clearly
        print(f"assign_plan failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
