"""Certification status resolver: read path for a skill's progress to its next level.

For the next level in none → bronze → silver → gold, every catalog criterion
is reported as passed / failed / pending. A persisted check wins; otherwise
auto-checkable criteria are evaluated live from the skill's stored metrics,
and manually graded ones stay pending until a reviewer records a check.
"""

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clawforge.certification.criteria import (
    CertificationLevel,
    CheckStatus,
    RequestStatus,
    ResolvedCriterion,
    SkillMetrics,
    next_level,
    resolve_catalog,
)
from clawforge.certification.errors import SkillNotFoundError
from clawforge.logging_config import get_logger
from clawforge.models import (
    CertificationCriteria,
    CertificationRequest,
    Skill,
    SkillCertificationCheck,
    utcnow,
)

logger = get_logger(__name__)


@dataclass
class CriteriaStatus:
    criteria_id: UUID
    name: str
    description: str | None
    status: str
    value: str | None
    auto_checkable: bool
    weight: int


@dataclass
class CertificationStatus:
    skill_id: UUID
    current_level: str
    next_level: str | None
    progress_percentage: int
    criteria_status: list[CriteriaStatus] = field(default_factory=list)
    can_request_upgrade: bool = False
    missing_criteria: list[str] = field(default_factory=list)
    pending_request: CertificationRequest | None = None

    @property
    def passed_count(self) -> int:
        return sum(1 for c in self.criteria_status if c.status == CheckStatus.PASSED.value)


def round_half_up(value: float) -> int:
    return int(value + 0.5)


def progress_percentage(criteria: list[CriteriaStatus]) -> int:
    total = sum(c.weight for c in criteria)
    if total <= 0:
        return 0
    passed = sum(c.weight for c in criteria if c.status == CheckStatus.PASSED.value)
    return round_half_up(passed / total * 100)


def evaluate_criterion(
    criterion: ResolvedCriterion,
    check: SkillCertificationCheck | None,
    metrics: SkillMetrics,
) -> CriteriaStatus:
    if check is not None:
        status, value = check.status, check.value
    elif criterion.auto_check is not None:
        result = criterion.auto_check.evaluate(metrics)
        status = CheckStatus.PASSED.value if result.passed else CheckStatus.FAILED.value
        value = result.value
    else:
        status, value = CheckStatus.PENDING.value, None

    return CriteriaStatus(
        criteria_id=criterion.id,
        name=criterion.name,
        description=criterion.description,
        status=status,
        value=value,
        auto_checkable=criterion.auto_checkable,
        weight=criterion.weight,
    )


async def load_catalog(db: AsyncSession, level: str) -> list[ResolvedCriterion]:
    rows = (
        await db.execute(
            select(CertificationCriteria)
            .where(CertificationCriteria.level == level)
            .order_by(CertificationCriteria.weight.desc(), CertificationCriteria.name)
        )
    ).scalars().all()
    return resolve_catalog(rows)


async def get_pending_request(db: AsyncSession, skill_id: UUID) -> CertificationRequest | None:
    result = await db.execute(
        select(CertificationRequest)
        .where(
            CertificationRequest.skill_id == skill_id,
            CertificationRequest.status == RequestStatus.PENDING.value,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_certification_status(db: AsyncSession, skill_id: UUID) -> CertificationStatus:
    """Compute the certification status of a skill. Raises SkillNotFoundError."""
    skill = (await db.execute(select(Skill).where(Skill.id == skill_id))).scalar_one_or_none()
    if skill is None:
        raise SkillNotFoundError("Skill not found", skill_id=str(skill_id))

    current = skill.certification
    target = next_level(current)

    if target is None:
        return CertificationStatus(
            skill_id=skill_id,
            current_level=current,
            next_level=None,
            progress_percentage=100,
        )

    catalog = await load_catalog(db, target.value)
    pending_request = await get_pending_request(db, skill_id)

    if not catalog:
        return CertificationStatus(
            skill_id=skill_id,
            current_level=current,
            next_level=target.value,
            progress_percentage=0,
            pending_request=pending_request,
        )

    checks = (
        await db.execute(
            select(SkillCertificationCheck).where(
                SkillCertificationCheck.skill_id == skill_id,
                SkillCertificationCheck.criteria_id.in_([c.id for c in catalog]),
            )
        )
    ).scalars().all()
    check_map = {c.criteria_id: c for c in checks}
    metrics = SkillMetrics.from_skill(skill)

    criteria_status = [evaluate_criterion(c, check_map.get(c.id), metrics) for c in catalog]
    missing = [c.name for c in criteria_status if c.status != CheckStatus.PASSED.value]
    auto_failing = [
        c for c in criteria_status
        if c.auto_checkable and c.status != CheckStatus.PASSED.value
    ]

    return CertificationStatus(
        skill_id=skill_id,
        current_level=current,
        next_level=target.value,
        progress_percentage=progress_percentage(criteria_status),
        criteria_status=criteria_status,
        can_request_upgrade=not auto_failing and not missing and pending_request is None,
        missing_criteria=missing,
        pending_request=pending_request,
    )


async def record_check(
    db: AsyncSession,
    skill_id: UUID,
    criteria_id: UUID,
    status: str,
    value: str | None = None,
    checked_by: UUID | None = None,
) -> SkillCertificationCheck:
    """Insert or overwrite the check for (skill, criterion). Caller commits."""
    status = CheckStatus(status).value
    check = (
        await db.execute(
            select(SkillCertificationCheck).where(
                SkillCertificationCheck.skill_id == skill_id,
                SkillCertificationCheck.criteria_id == criteria_id,
            )
        )
    ).scalar_one_or_none()
    if check is None:
        check = SkillCertificationCheck(skill_id=skill_id, criteria_id=criteria_id)
        db.add(check)
    check.status = status
    check.value = value
    check.checked_by = checked_by
    check.checked_at = utcnow()
    await db.flush()
    logger.info("certification_check_recorded", skill_id=str(skill_id), criteria_id=str(criteria_id), status=status)
    return check


async def list_criteria(db: AsyncSession) -> dict[str, list[CertificationCriteria]]:
    """Whole catalog grouped by level."""
    rows = (
        await db.execute(
            select(CertificationCriteria).order_by(
                CertificationCriteria.weight.desc(), CertificationCriteria.name
            )
        )
    ).scalars().all()
    grouped: dict[str, list[CertificationCriteria]] = {
        CertificationLevel.BRONZE.value: [],
        CertificationLevel.SILVER.value: [],
        CertificationLevel.GOLD.value: [],
    }
    for row in rows:
        grouped.setdefault(row.level, []).append(row)
    return grouped
