"""Pydantic v2 request/response schemas for all endpoints."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Criteria catalog
# ---------------------------------------------------------------------------


class CriteriaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    level: str
    name: str
    description: str | None
    auto_checkable: bool
    weight: int


class CriteriaCatalogResponse(BaseModel):
    bronze: list[CriteriaResponse] = Field(default_factory=list)
    silver: list[CriteriaResponse] = Field(default_factory=list)
    gold: list[CriteriaResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Certification status
# ---------------------------------------------------------------------------


class CriteriaStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    criteria_id: UUID
    name: str
    description: str | None
    status: str
    value: str | None
    auto_checkable: bool
    weight: int


class PendingRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    requested_level: str
    status: str
    quality_score_at_request: int
    created_at: datetime


class CertificationStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    skill_id: UUID
    current_level: str
    next_level: str | None
    progress_percentage: int
    criteria_status: list[CriteriaStatusResponse] = Field(default_factory=list)
    can_request_upgrade: bool
    missing_criteria: list[str] = Field(default_factory=list)
    pending_request: PendingRequestResponse | None = None


# ---------------------------------------------------------------------------
# Automated run
# ---------------------------------------------------------------------------


class BronzeResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    passed: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class SilverResultResponse(BaseModel):
    score: int
    criteria: dict[str, int]
    details: dict[str, list[str]]


class CertificationRunResponse(BaseModel):
    success: bool = True
    bronze: BronzeResultResponse
    silver: SilverResultResponse | None = None
    final_status: str
    certification: str


# ---------------------------------------------------------------------------
# Creator requests
# ---------------------------------------------------------------------------


class UpgradeRequestCreate(BaseModel):
    level: Literal["silver", "gold"]


class UpgradeRequestResponse(BaseModel):
    request_id: UUID
    status: str
    requested_level: str
    estimated_review_time: str


# ---------------------------------------------------------------------------
# Admin decisions
# ---------------------------------------------------------------------------


class CertifyDecisionRequest(BaseModel):
    action: Literal["approve", "reject"]
    level: Literal["silver", "gold"] | None = None
    notes: str | None = Field(default=None, max_length=5000)
    reason: str | None = Field(default=None, max_length=5000)
    expected_revision: int | None = Field(default=None, ge=0)


class RequestChangesRequest(BaseModel):
    feedback: str = Field(..., min_length=1, max_length=5000)
    expected_revision: int | None = Field(default=None, ge=0)


class ReviewRequestDecision(BaseModel):
    decision: Literal["approved", "rejected"]
    feedback: str | None = Field(default=None, max_length=5000)


class RecordCheckRequest(BaseModel):
    criteria_id: UUID
    status: Literal["pending", "passed", "failed"]
    value: str | None = Field(default=None, max_length=500)


class CheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    skill_id: UUID
    criteria_id: UUID
    status: str
    value: str | None
    checked_by: UUID | None
    checked_at: datetime


class OperationResponse(BaseModel):
    success: bool = True
    data: dict = Field(default_factory=dict)


class QualityScoreResponse(BaseModel):
    skill_id: UUID
    quality_score: int
