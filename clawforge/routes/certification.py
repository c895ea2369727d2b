"""Creator-facing certification endpoints: catalog, run, status, upgrade requests."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clawforge.auth import REVIEWER_ROLES, get_current_user
from clawforge.certification.errors import OperationResult, SkillNotFoundError
from clawforge.database import get_db
from clawforge.dependencies import get_certification_service
from clawforge.logging_config import get_logger
from clawforge.models import Skill, User
from clawforge.schemas import (
    BronzeResultResponse,
    CertificationRunResponse,
    CertificationStatusResponse,
    CriteriaCatalogResponse,
    SilverResultResponse,
    UpgradeRequestCreate,
    UpgradeRequestResponse,
)
from clawforge.services.certification_service import CertificationService
from clawforge.services.certification_status import get_certification_status, list_criteria

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["certification"])


def raise_for_result(result: OperationResult) -> None:
    """Map a failed operation result onto an HTTP error."""
    if result.success:
        return
    detail = {"error": result.error, "code": result.code}
    detail.update({k: v for k, v in result.data.items() if isinstance(v, (str, int, list))})
    raise HTTPException(status_code=result.status_code, detail=detail)


async def _get_visible_skill(db: AsyncSession, skill_id: UUID, user: User) -> Skill:
    skill = (await db.execute(select(Skill).where(Skill.id == skill_id))).scalar_one_or_none()
    if skill is None:
        raise HTTPException(status_code=404, detail="Skill not found")
    if skill.creator_id != user.id and user.role not in REVIEWER_ROLES:
        raise HTTPException(status_code=403, detail="Not authorized to access this skill")
    return skill


@router.get("/certification/criteria", response_model=CriteriaCatalogResponse)
async def get_criteria_catalog(db: AsyncSession = Depends(get_db)):
    """Return the certification criteria catalog grouped by level."""
    return CriteriaCatalogResponse(**await list_criteria(db))


@router.post("/skills/{skill_id}/certification/run", response_model=CertificationRunResponse)
async def run_certification(
    skill_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: CertificationService = Depends(get_certification_service),
):
    """Run Bronze validation and Silver scoring on a submitted skill."""
    await _get_visible_skill(db, skill_id, user)

    result = await service.run_certification(skill_id)
    if not result.success:
        raise_for_result(OperationResult.failure(result.error, code=result.code, status_code=result.status_code))

    return CertificationRunResponse(
        bronze=BronzeResultResponse.model_validate(result.bronze),
        silver=SilverResultResponse(**result.silver.to_dict()) if result.silver else None,
        final_status=result.final_status,
        certification=result.certification,
    )


@router.get("/skills/{skill_id}/certification-status", response_model=CertificationStatusResponse)
async def certification_status(
    skill_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Progress of a skill towards its next certification level."""
    await _get_visible_skill(db, skill_id, user)
    try:
        status = await get_certification_status(db, skill_id)
    except SkillNotFoundError:
        raise HTTPException(status_code=404, detail="Skill not found")
    return CertificationStatusResponse.model_validate(status)


@router.post(
    "/skills/{skill_id}/certification-request",
    response_model=UpgradeRequestResponse,
    status_code=201,
)
async def request_certification(
    skill_id: UUID,
    body: UpgradeRequestCreate,
    user: User = Depends(get_current_user),
    service: CertificationService = Depends(get_certification_service),
):
    """File a Silver or Gold upgrade request. Creator only."""
    result = await service.file_upgrade_request(skill_id, body.level, user.id)
    raise_for_result(result)
    return UpgradeRequestResponse(**result.data)
