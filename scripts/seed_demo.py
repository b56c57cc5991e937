from __future__ import annotations

import asyncio
import sys

from togetherchurch.domain.models import Church, ChurchSettings, ChurchUser, User
from togetherchurch.persistence.db import SessionLocal
from togetherchurch.services.auth.sessions import create_user_session
from togetherchurch.services.entitlements import get_church_plan
from togetherchurch.services.plan_admin import assign_plan


DEMO_CHURCH_ID = "demo-church"
DEMO_CHURCH_NAME = "Grace Demo Church"
DEMO_ADMIN_ID = "demo-admin"
DEMO_ADMIN_EMAIL = "admin@demo.togetherchurch.app"
DEMO_PLAN_ID = "starter"


async def seed_demo() -> int:
    # Requires the catalog and plan seed migrations to have run.
    async with SessionLocal() as session:
        church = await session.get(Church, DEMO_CHURCH_ID)
        if church is None:
            session.add(Church(id=DEMO_CHURCH_ID, name=DEMO_CHURCH_NAME, slug="grace-demo"))
            session.add(ChurchSettings(church_id=DEMO_CHURCH_ID, campus_mode="off"))
        user = await session.get(User, DEMO_ADMIN_ID)
        if user is None:
            session.add(User(id=DEMO_ADMIN_ID, email=DEMO_ADMIN_EMAIL))
            # Flush parents before the membership row to satisfy FK constraints.
            await session.flush()
            session.add(
                ChurchUser(
                    id=f"{DEMO_CHURCH_ID}:{DEMO_ADMIN_ID}",
                    church_id=DEMO_CHURCH_ID,
                    user_id=DEMO_ADMIN_ID,
                    role="admin",
                )
            )
        await session.flush()

        if await get_church_plan(session, DEMO_CHURCH_ID) is None:
            await assign_plan(
                session=session,
                church_id=DEMO_CHURCH_ID,
                plan_id=DEMO_PLAN_ID,
                commit=False,
            )
        raw_token, _row = await create_user_session(session=session, user_id=DEMO_ADMIN_ID, ttl_hours=24)
        await session.commit()

    print("Demo church seeded:")
    print(f"  church_id: {DEMO_CHURCH_ID}")
    print(f"  plan_id: {DEMO_PLAN_ID}")
    print("  session token (24h): ")
    print(f"    {raw_token}")
    return 0


def main() -> int:
    try:
        return asyncio.run(seed_demo())
    except Exception as exc:  # noqa: BLE001 - surface any setup or DB errors
        print(f"seed_demo failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
