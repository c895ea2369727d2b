"""Seed script: installs the default certification criteria catalog.

Idempotent: existing (level, name) rows are left as they are, so an
operator's edits to descriptions or weights survive a re-run.

Usage:
    python -m clawforge.seed
"""

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clawforge.certification.criteria import DEFAULT_CRITERIA
from clawforge.config import get_settings
from clawforge.database import close_db, get_db_session, init_db
from clawforge.logging_config import configure_logging, get_logger
from clawforge.models import CertificationCriteria

logger = get_logger(__name__)


async def seed_criteria(db: AsyncSession) -> int:
    """Insert missing default criteria. Returns the number of rows created."""
    existing = {
        (row.level, row.name)
        for row in (await db.execute(select(CertificationCriteria))).scalars().all()
    }

    created = 0
    for level, name, description, auto_checkable, weight in DEFAULT_CRITERIA:
        if (level, name) in existing:
            continue
        db.add(CertificationCriteria(
            level=level,
            name=name,
            description=description,
            auto_checkable=auto_checkable,
            weight=weight,
        ))
        created += 1

    await db.commit()
    logger.info("criteria_seeded", created=created, skipped=len(DEFAULT_CRITERIA) - created)
    return created


async def seed() -> None:
    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_json,
        service_version=settings.service_version,
    )
    await init_db()

    async with get_db_session() as db:
        created = await seed_criteria(db)

    print(f"Certification criteria: {created} created, {len(DEFAULT_CRITERIA) - created} already present")
    await close_db()


if __name__ == "__main__":
    asyncio.run(seed())
