"""SQLAlchemy ORM models for skills and their certification records."""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import Boolean, DateTime, Float, Integer, Uuid

# JSONB on PostgreSQL, plain JSON elsewhere (tests run on SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('creator','admin','agent','buyer')", name="ck_user_role"
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(Text)
    role: Mapped[str] = mapped_column(
        Text, nullable=False, default="creator", server_default=text("'creator'")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


class Skill(Base):
    __tablename__ = "skills"
    __table_args__ = (
        Index("idx_skills_status", "status"),
        Index("idx_skills_creator", "creator_id"),
        CheckConstraint(
            "status IN ('draft','pending','published','rejected','withdrawn',"
            "'blocked','pending_payment_setup','changes_requested')",
            name="ck_skill_status",
        ),
        CheckConstraint(
            "certification IN ('none','bronze','silver','gold')",
            name="ck_skill_certification",
        ),
        CheckConstraint(
            "quality_score >= 0 AND quality_score <= 100", name="ck_skill_quality_score"
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    creator_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")
    certification: Mapped[str] = mapped_column(Text, nullable=False, default="none")
    quality_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sales_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    file_url: Mapped[str | None] = mapped_column(Text)
    icon_url: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(Text)
    description_short: Mapped[str | None] = mapped_column(Text)
    description_long: Mapped[str | None] = mapped_column(Text)

    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    certified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    certification_requested_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    certification_reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    certification_reviewer_id: Mapped[UUID | None] = mapped_column(Uuid)
    certification_feedback: Mapped[str | None] = mapped_column(Text)

    # Optimistic concurrency token, bumped by every certification write
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Certification catalog and checks
# ---------------------------------------------------------------------------


class CertificationCriteria(Base):
    __tablename__ = "certification_criteria"
    __table_args__ = (
        UniqueConstraint("level", "name", name="uq_certification_criteria_level_name"),
        CheckConstraint("level IN ('bronze','silver','gold')", name="ck_criteria_level"),
        CheckConstraint("weight > 0", name="ck_criteria_weight"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    level: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    auto_checkable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class SkillCertificationCheck(Base):
    __tablename__ = "skill_certification_checks"
    __table_args__ = (
        UniqueConstraint("skill_id", "criteria_id", name="uq_skill_check_criteria"),
        CheckConstraint(
            "status IN ('passed','failed','pending')", name="ck_skill_check_status"
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    skill_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("skills.id"), nullable=False)
    criteria_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("certification_criteria.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    value: Mapped[str | None] = mapped_column(Text)
    checked_by: Mapped[UUID | None] = mapped_column(Uuid)
    checked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class CertificationRequest(Base):
    __tablename__ = "certification_requests"
    __table_args__ = (
        # At most one pending request per skill
        Index(
            "uq_certification_requests_pending",
            "skill_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        CheckConstraint(
            "status IN ('pending','approved','rejected')", name="ck_cert_request_status"
        ),
        CheckConstraint(
            "requested_level IN ('silver','gold')", name="ck_cert_request_level"
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    skill_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("skills.id"), nullable=False)
    requested_level: Mapped[str] = mapped_column(Text, nullable=False)
    requested_by: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    quality_score_at_request: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    reviewed_by: Mapped[UUID | None] = mapped_column(Uuid)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    feedback: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class SkillCertification(Base):
    """Append-only history of granted certification levels."""

    __tablename__ = "skill_certifications"
    __table_args__ = (Index("idx_skill_certifications_skill", "skill_id"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    skill_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("skills.id"), nullable=False)
    level: Mapped[str] = mapped_column(Text, nullable=False)
    certified_by: Mapped[UUID | None] = mapped_column(Uuid)
    score: Mapped[int | None] = mapped_column(Integer)
    criteria: Mapped[dict | None] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class ValidationQueueEntry(Base):
    __tablename__ = "skill_validation_queue"
    __table_args__ = (
        CheckConstraint(
            "status IN ('processing','bronze_auto','pending_silver_review','rejected',"
            "'changes_requested','silver_approved','gold_eligible')",
            name="ck_validation_queue_status",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    skill_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("skills.id"), unique=True, nullable=False
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default="processing")
    bronze_score: Mapped[int | None] = mapped_column(Integer)
    silver_score: Mapped[int | None] = mapped_column(Integer)
    silver_criteria: Mapped[dict | None] = mapped_column(JSONType)
    silver_details: Mapped[dict | None] = mapped_column(JSONType)
    bronze_errors: Mapped[list | None] = mapped_column(JSONType)
    bronze_warnings: Mapped[list | None] = mapped_column(JSONType)
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    processed_by: Mapped[UUID | None] = mapped_column(Uuid)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
