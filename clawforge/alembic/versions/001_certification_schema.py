"""Certification schema: users, skills, criteria catalog, checks, requests, history, queue.

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("display_name", sa.Text()),
        sa.Column("role", sa.Text(), nullable=False, server_default=sa.text("'creator'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("role IN ('creator','admin','agent','buyer')", name="ck_user_role"),
    )

    # --- Skills ---
    op.create_table(
        "skills",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("creator_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'draft'")),
        sa.Column("certification", sa.Text(), nullable=False, server_default=sa.text("'none'")),
        sa.Column("quality_score", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("sales_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("average_rating", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("rating_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("file_url", sa.Text()),
        sa.Column("icon_url", sa.Text()),
        sa.Column("category", sa.Text()),
        sa.Column("description_short", sa.Text()),
        sa.Column("description_long", sa.Text()),
        sa.Column("published_at", sa.DateTime(timezone=True)),
        sa.Column("certified_at", sa.DateTime(timezone=True)),
        sa.Column("certification_requested_at", sa.DateTime(timezone=True)),
        sa.Column("certification_reviewed_at", sa.DateTime(timezone=True)),
        sa.Column("certification_reviewer_id", UUID(as_uuid=True)),
        sa.Column("certification_feedback", sa.Text()),
        sa.Column("revision", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('draft','pending','published','rejected','withdrawn',"
            "'blocked','pending_payment_setup','changes_requested')",
            name="ck_skill_status",
        ),
        sa.CheckConstraint("certification IN ('none','bronze','silver','gold')", name="ck_skill_certification"),
        sa.CheckConstraint("quality_score >= 0 AND quality_score <= 100", name="ck_skill_quality_score"),
    )
    op.create_index("idx_skills_status", "skills", ["status"])
    op.create_index("idx_skills_creator", "skills", ["creator_id"])

    # --- Criteria catalog ---
    op.create_table(
        "certification_criteria",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("level", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("auto_checkable", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("weight", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.UniqueConstraint("level", "name", name="uq_certification_criteria_level_name"),
        sa.CheckConstraint("level IN ('bronze','silver','gold')", name="ck_criteria_level"),
        sa.CheckConstraint("weight > 0", name="ck_criteria_weight"),
    )

    # --- Per-skill criterion checks ---
    op.create_table(
        "skill_certification_checks",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("skill_id", UUID(as_uuid=True), sa.ForeignKey("skills.id"), nullable=False),
        sa.Column("criteria_id", UUID(as_uuid=True), sa.ForeignKey("certification_criteria.id"), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("value", sa.Text()),
        sa.Column("checked_by", UUID(as_uuid=True)),
        sa.Column("checked_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("skill_id", "criteria_id", name="uq_skill_check_criteria"),
        sa.CheckConstraint("status IN ('passed','failed','pending')", name="ck_skill_check_status"),
    )

    # --- Upgrade requests ---
    op.create_table(
        "certification_requests",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("skill_id", UUID(as_uuid=True), sa.ForeignKey("skills.id"), nullable=False),
        sa.Column("requested_level", sa.Text(), nullable=False),
        sa.Column("requested_by", UUID(as_uuid=True), nullable=False),
        sa.Column("quality_score_at_request", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("reviewed_by", UUID(as_uuid=True)),
        sa.Column("reviewed_at", sa.DateTime(timezone=True)),
        sa.Column("feedback", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("status IN ('pending','approved','rejected')", name="ck_cert_request_status"),
        sa.CheckConstraint("requested_level IN ('silver','gold')", name="ck_cert_request_level"),
    )
    op.create_index(
        "uq_certification_requests_pending",
        "certification_requests",
        ["skill_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    # --- Certification history ---
    op.create_table(
        "skill_certifications",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("skill_id", UUID(as_uuid=True), sa.ForeignKey("skills.id"), nullable=False),
        sa.Column("level", sa.Text(), nullable=False),
        sa.Column("certified_by", UUID(as_uuid=True)),
        sa.Column("score", sa.Integer()),
        sa.Column("criteria", JSONB()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_skill_certifications_skill", "skill_certifications", ["skill_id"])

    # --- Validation queue ---
    op.create_table(
        "skill_validation_queue",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("skill_id", UUID(as_uuid=True), sa.ForeignKey("skills.id"), nullable=False, unique=True),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'processing'")),
        sa.Column("bronze_score", sa.Integer()),
        sa.Column("silver_score", sa.Integer()),
        sa.Column("silver_criteria", JSONB()),
        sa.Column("silver_details", JSONB()),
        sa.Column("bronze_errors", JSONB()),
        sa.Column("bronze_warnings", JSONB()),
        sa.Column("rejection_reason", sa.Text()),
        sa.Column("processed_by", UUID(as_uuid=True)),
        sa.Column("processed_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('processing','bronze_auto','pending_silver_review','rejected',"
            "'changes_requested','silver_approved','gold_eligible')",
            name="ck_validation_queue_status",
        ),
    )


def downgrade() -> None:
    op.drop_table("skill_validation_queue")
    op.drop_index("idx_skill_certifications_skill", table_name="skill_certifications")
    op.drop_table("skill_certifications")
    op.drop_index("uq_certification_requests_pending", table_name="certification_requests")
    op.drop_table("certification_requests")
    op.drop_table("skill_certification_checks")
    op.drop_table("certification_criteria")
    op.drop_index("idx_skills_creator", table_name="skills")
    op.drop_index("idx_skills_status", table_name="skills")
    op.drop_table("skills")
    op.drop_table("users")
