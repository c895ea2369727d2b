"""Aggregate marketplace quality score (0-100) for a skill.

Additive buckets: documentation 20, metadata 15, file 15, certification 20,
reviews 15, sales 15. The score is what ``quality_score`` criteria read.
"""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clawforge.certification.errors import ConcurrencyConflictError, SkillNotFoundError
from clawforge.logging_config import get_logger
from clawforge.models import Skill, ValidationQueueEntry, utcnow
from clawforge.services.certification_status import round_half_up

logger = get_logger(__name__)


def calculate_quality_score(skill: Skill, queue_entry: ValidationQueueEntry | None = None) -> int:
    score = 0

    short = skill.description_short or ""
    long = skill.description_long or ""

    # Documentation
    if len(short) > 20:
        score += 5
    if len(long) > 100:
        score += 10
    if len(long) > 500:
        score += 5

    # Metadata
    if skill.icon_url:
        score += 5
    if skill.category:
        score += 5
    if len(short) > 50:
        score += 5

    if skill.file_url:
        score += 15

    # Certification
    if queue_entry is not None:
        if (queue_entry.bronze_score or 0) >= 100:
            score += 10
        if queue_entry.silver_score is not None:
            score += min(10, round_half_up(queue_entry.silver_score / 10))

    # Reviews
    rating_count = skill.rating_count or 0
    if rating_count >= 1:
        score += 5
    if rating_count >= 5:
        score += 5
    if (skill.average_rating or 0) >= 4.0:
        score += 5

    # Sales
    sales = skill.sales_count or 0
    if sales >= 1:
        score += 5
    if sales >= 5:
        score += 5
    if sales >= 20:
        score += 5

    return max(0, min(100, score))


async def recalculate_quality_score(
    db: AsyncSession, skill_id: UUID, expected_revision: int | None = None,
) -> int:
    """Recompute and persist a skill's quality score.

    The write is conditional on the skill revision, like every other skill
    write. Raises SkillNotFoundError or ConcurrencyConflictError.
    """
    skill = (await db.execute(select(Skill).where(Skill.id == skill_id))).scalar_one_or_none()
    if skill is None:
        raise SkillNotFoundError("Skill not found", skill_id=str(skill_id))

    queue_entry = (
        await db.execute(select(ValidationQueueEntry).where(ValidationQueueEntry.skill_id == skill_id))
    ).scalar_one_or_none()

    score = calculate_quality_score(skill, queue_entry)
    previous = skill.quality_score
    if expected_revision is None:
        expected_revision = skill.revision
    result = await db.execute(
        update(Skill)
        .where(Skill.id == skill_id, Skill.revision == expected_revision)
        .values(quality_score=score, revision=expected_revision + 1, updated_at=utcnow())
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount != 1:
        await db.rollback()
        raise ConcurrencyConflictError(
            "Skill was modified concurrently, reload and retry",
            skill_id=str(skill_id), expected_revision=expected_revision,
        )
    await db.commit()

    logger.info("quality_score_recalculated", skill_id=str(skill_id), previous=previous, score=score)
    return score
