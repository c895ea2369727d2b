"""Reviewer endpoints: certify/reject, request changes, review requests, grade criteria."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clawforge.auth import require_reviewer
from clawforge.certification.errors import ConcurrencyConflictError, OperationResult, SkillNotFoundError
from clawforge.database import get_db
from clawforge.dependencies import get_certification_service
from clawforge.logging_config import get_logger
from clawforge.models import CertificationCriteria, Skill, User
from clawforge.routes.certification import raise_for_result
from clawforge.schemas import (
    CertifyDecisionRequest,
    CheckResponse,
    OperationResponse,
    QualityScoreResponse,
    RecordCheckRequest,
    RequestChangesRequest,
    ReviewRequestDecision,
)
from clawforge.services.certification_service import CertificationService
from clawforge.services.certification_status import record_check
from clawforge.services.quality_score_service import recalculate_quality_score

logger = get_logger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin-certification"])


@router.post("/skills/{skill_id}/certify", response_model=OperationResponse)
async def certify_skill(
    skill_id: UUID,
    body: CertifyDecisionRequest,
    reviewer: User = Depends(require_reviewer),
    service: CertificationService = Depends(get_certification_service),
):
    """Grant Silver/Gold (``approve``) or hard-reject a skill (``reject``)."""
    if body.action == "approve":
        if body.level is None:
            raise HTTPException(status_code=400, detail="level is required to approve")
        result = await service.certify_skill(
            skill_id, body.level, reviewer.id, notes=body.notes,
            expected_revision=body.expected_revision,
        )
    else:
        result = await service.reject_skill(
            skill_id, body.reason or "", reviewer.id,
            expected_revision=body.expected_revision,
        )
    raise_for_result(result)
    return OperationResponse(data=result.data)


@router.post("/skills/{skill_id}/request-changes", response_model=OperationResponse)
async def request_changes(
    skill_id: UUID,
    body: RequestChangesRequest,
    reviewer: User = Depends(require_reviewer),
    service: CertificationService = Depends(get_certification_service),
):
    """Send a skill back to its creator with feedback."""
    result = await service.request_changes(
        skill_id, body.feedback, reviewer.id, expected_revision=body.expected_revision,
    )
    raise_for_result(result)
    return OperationResponse(data=result.data)


@router.post("/certification/requests/{request_id}/review", response_model=OperationResponse)
async def review_request(
    request_id: UUID,
    body: ReviewRequestDecision,
    reviewer: User = Depends(require_reviewer),
    service: CertificationService = Depends(get_certification_service),
):
    """Approve or reject a pending upgrade request."""
    result = await service.review_request(request_id, body.decision, reviewer.id, feedback=body.feedback)
    raise_for_result(result)
    return OperationResponse(data=result.data)


@router.post("/skills/{skill_id}/checks", response_model=CheckResponse)
async def grade_criterion(
    skill_id: UUID,
    body: RecordCheckRequest,
    reviewer: User = Depends(require_reviewer),
    db: AsyncSession = Depends(get_db),
):
    """Record a reviewer's verdict on one criterion (typically a manual one)."""
    skill = (await db.execute(select(Skill.id).where(Skill.id == skill_id))).scalar_one_or_none()
    if skill is None:
        raise HTTPException(status_code=404, detail="Skill not found")
    criterion = (
        await db.execute(select(CertificationCriteria).where(CertificationCriteria.id == body.criteria_id))
    ).scalar_one_or_none()
    if criterion is None:
        raise HTTPException(status_code=404, detail="Criterion not found")

    check = await record_check(
        db, skill_id, body.criteria_id, body.status, value=body.value, checked_by=reviewer.id,
    )
    await db.commit()
    return CheckResponse.model_validate(check)


@router.post("/certification/calculate-score/{skill_id}", response_model=QualityScoreResponse)
async def calculate_score(
    skill_id: UUID,
    reviewer: User = Depends(require_reviewer),
    db: AsyncSession = Depends(get_db),
):
    """Recompute and store a skill's aggregate quality score."""
    try:
        score = await recalculate_quality_score(db, skill_id)
    except SkillNotFoundError:
        raise HTTPException(status_code=404, detail="Skill not found")
    except ConcurrencyConflictError as e:
        raise_for_result(OperationResult.from_error(e))
    return QualityScoreResponse(skill_id=skill_id, quality_score=score)
