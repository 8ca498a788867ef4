"""
Backfill org tenancy for existing users.

Every user ends up with at least one ACTIVE membership (a personal
workspace is created when they have none) and an active-org pointer that
names one of them.

Usage:
    python -m app.scripts.backfill_orgs [--dry-run]
"""

import argparse
import asyncio

import structlog
from sqlalchemy import func
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import Database
from app.core.logging import configure_logging
from app.models.organization_member import OrganizationMember
from app.models.user import User
from app.services import organizations as org_service

from autotest_shared.schemas.organizations import MemberStatus

log = structlog.get_logger()


async def backfill(db: Database, *, dry_run: bool = False) -> dict:
    """Run the backfill inside one unit of work. Returns per-run totals."""
    totals = {"users": 0, "orgs_created": 0, "pointers_set": 0}

    async with db.session() as session:
        users = (await session.execute(select(User).order_by(User.created_at))).scalars().all()
        totals["users"] = len(users)

        for user in users:
            active_count = (
                await session.execute(
                    select(func.count())
                    .select_from(OrganizationMember)
                    .where(
                        OrganizationMember.user_id == user.id,
                        OrganizationMember.status == MemberStatus.ACTIVE.value,
                    )
                )
            ).scalar_one()

            needs_org = active_count == 0
            previous = user.active_org_id

            if dry_run:
                log.info(
                    "backfill.user",
                    user_id=str(user.id),
                    would_create_org=needs_org,
                    pointer=str(previous) if previous else None,
                )
                if needs_org:
                    totals["orgs_created"] += 1
                continue

            if needs_org:
                await org_service.ensure_personal_org(user, session)
                totals["orgs_created"] += 1

            active = await org_service.resolve_active_org(user, session)
            if active is not None and active[0] != previous:
                totals["pointers_set"] += 1
            log.info(
                "backfill.user",
                user_id=str(user.id),
                created_org=needs_org,
                active_org_id=str(active[0]) if active else None,
            )

        if dry_run:
            await session.rollback()

    log.info("backfill.done", dry_run=dry_run, **totals)
    return totals


async def main(dry_run: bool) -> None:
    settings = get_settings()
    configure_logging(settings.log_level, "text")
    db = Database(settings.database_url)
    try:
        await backfill(db, dry_run=dry_run)
    finally:
        await db.dispose()


def cli() -> None:
    parser = argparse.ArgumentParser(description="Backfill personal orgs and active-org pointers.")
    parser.add_argument("--dry-run", action="store_true", help="Report what would change without writing")

    args = parser.parse_args()

    asyncio.run(main(args.dry_run))


if __name__ == "__main__":
    cli()
