"""Certification orchestrator: drives a skill through Bronze, Silver and Gold.

    submitted (pending / changes_requested)
        └─ run_certification ─┬─ Bronze fails ──────────────→ rejected
                              └─ Bronze passes → published + bronze
                                   ├─ Silver score >= threshold → queue pending_silver_review
                                   └─ otherwise                 → queue bronze_auto
    pending_silver_review ── certify_skill(silver) / reject_skill / request_changes
    silver ── file_upgrade_request(gold) → review_request / certify_skill(gold)

Every public operation returns a structured result instead of raising.
Writes to ``skills`` are compare-and-swap on ``Skill.revision``: an
operation that lost a race with another writer reports
``concurrency_conflict`` and leaves the winner's state untouched.
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clawforge.certification.criteria import (
    CertificationLevel,
    QueueStatus,
    RequestStatus,
    SkillStatus,
)
from clawforge.certification.errors import (
    ArchiveDownloadError,
    CertificationError,
    ConcurrencyConflictError,
    CriteriaNotMetError,
    DuplicateRequestError,
    ForbiddenError,
    InvalidTransitionError,
    OperationResult,
    RequestAlreadyReviewedError,
    RequestNotFoundError,
    SkillNotFoundError,
)
from clawforge.certification.scorer import ScoringResult, calculate_silver_score
from clawforge.certification.state_machine import (
    RUNNABLE_STATUSES,
    validate_certification,
    validate_transition,
    validate_upgrade_request,
)
from clawforge.certification.validator import STRICT_MODE, BronzeValidator
from clawforge.config import Settings
from clawforge.logging_config import get_logger
from clawforge.models import (
    CertificationRequest,
    Skill,
    SkillCertification,
    User,
    ValidationQueueEntry,
    utcnow,
)
from clawforge.services.certification_status import get_certification_status, get_pending_request
from clawforge.services.notification_service import CertificationNotifier, Recipient

logger = get_logger(__name__)

BRONZE_PASS_SCORE = 100
ESTIMATED_REVIEW_TIME = "2-3 business days"


@dataclass
class BronzeResult:
    passed: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class CertificationRunResult:
    """Outcome of one automated certification run."""
    success: bool
    bronze: BronzeResult | None = None
    silver: ScoringResult | None = None
    final_status: str | None = None
    certification: str | None = None
    error: str | None = None
    code: str | None = None
    status_code: int = 200

    @staticmethod
    def refused(result: OperationResult) -> CertificationRunResult:
        return CertificationRunResult(
            success=False, error=result.error, code=result.code, status_code=result.status_code,
        )


class CertificationService:
    """Certification state machine over one database session."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        validator: BronzeValidator,
        notifier: CertificationNotifier,
        http_client: httpx.AsyncClient,
        settings: Settings,
    ):
        self.db = db
        self.validator = validator
        self.notifier = notifier
        self.http_client = http_client
        self.settings = settings

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    async def _get_skill(self, skill_id: UUID) -> Skill:
        skill = (await self.db.execute(select(Skill).where(Skill.id == skill_id))).scalar_one_or_none()
        if skill is None:
            raise SkillNotFoundError("Skill not found", skill_id=str(skill_id))
        return skill

    async def _write_skill(self, skill: Skill, expected_revision: int, **values: Any) -> int:
        """Conditional update of a skill row; returns the new revision."""
        new_revision = expected_revision + 1
        result = await self.db.execute(
            update(Skill)
            .where(Skill.id == skill.id, Skill.revision == expected_revision)
            .values(revision=new_revision, updated_at=utcnow(), **values)
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            raise ConcurrencyConflictError(
                "Skill was modified concurrently, reload and retry",
                skill_id=str(skill.id), expected_revision=expected_revision,
            )
        return new_revision

    async def _upsert_queue(self, skill_id: UUID, **values: Any) -> ValidationQueueEntry:
        entry = (
            await self.db.execute(
                select(ValidationQueueEntry).where(ValidationQueueEntry.skill_id == skill_id)
            )
        ).scalar_one_or_none()
        if entry is None:
            entry = ValidationQueueEntry(skill_id=skill_id)
            self.db.add(entry)
        for key, value in values.items():
            setattr(entry, key, value)
        await self.db.flush()
        return entry

    async def _close_pending_request(
        self, skill_id: UUID, status: RequestStatus, reviewer_id: UUID | None, feedback: str | None,
    ) -> CertificationRequest | None:
        request = await get_pending_request(self.db, skill_id)
        if request is not None:
            request.status = status.value
            request.reviewed_by = reviewer_id
            request.reviewed_at = utcnow()
            request.feedback = feedback
            await self.db.flush()
        return request

    async def _recipient(self, skill: Skill) -> Recipient | None:
        user = (await self.db.execute(select(User).where(User.id == skill.creator_id))).scalar_one_or_none()
        if user is None or not user.email:
            return None
        return Recipient(email=user.email, name=user.display_name or "Creator")

    async def _guarded(
        self, operation: str, fn: Callable[[], Awaitable[OperationResult]], **log: Any,
    ) -> OperationResult:
        """Run an operation, turning every expected failure into a result."""
        try:
            return await fn()
        except CertificationError as e:
            await self.db.rollback()
            logger.info("certification_operation_refused", operation=operation, code=e.code, reason=e.message, **log)
            return OperationResult.from_error(e)
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("certification_operation_db_error", operation=operation, **log)
            return OperationResult.failure(
                "The operation could not be persisted", code="persistence_error", status_code=500,
            )

    # ------------------------------------------------------------------
    # Automated run: Bronze validation + Silver scoring
    # ------------------------------------------------------------------

    async def _download_archive(self, url: str) -> bytes:
        timeout = self.settings.archive_download_timeout
        try:
            response = await self.http_client.get(url, timeout=timeout, follow_redirects=True)
        except httpx.TimeoutException as e:
            raise ArchiveDownloadError(f"timed out after {timeout:g}s") from e
        except httpx.HTTPError as e:
            raise ArchiveDownloadError(str(e) or type(e).__name__) from e
        if not response.is_success:
            raise ArchiveDownloadError(f"HTTP {response.status_code}")
        return response.content

    async def _score_silver(self, skill_id: UUID, data: bytes) -> ScoringResult | None:
        try:
            return await asyncio.to_thread(calculate_silver_score, data)
        except Exception:
            logger.exception("silver_scoring_failed", skill_id=str(skill_id))
            return None

    async def run_certification(
        self, skill_id: UUID, expected_revision: int | None = None,
    ) -> CertificationRunResult:
        """Validate a submitted skill: Bronze gate, then best-effort Silver scoring."""
        run: CertificationRunResult | None = None

        async def _run() -> OperationResult:
            nonlocal run
            run = await self._run_certification(skill_id, expected_revision)
            return OperationResult.ok()

        outcome = await self._guarded("run_certification", _run, skill_id=str(skill_id))
        if not outcome.success:
            return CertificationRunResult.refused(outcome)
        return run

    async def _run_certification(self, skill_id: UUID, expected_revision: int | None) -> CertificationRunResult:
        skill = await self._get_skill(skill_id)
        if skill.status not in RUNNABLE_STATUSES:
            raise InvalidTransitionError(
                f"Skill status '{skill.status}' cannot be certified; "
                f"expected one of {list(RUNNABLE_STATUSES)}",
                status=skill.status,
            )

        # Claim the run: a duplicate trigger racing with this one fails here
        previous_queue_status = await self.db.scalar(
            select(ValidationQueueEntry.status).where(ValidationQueueEntry.skill_id == skill_id)
        )
        revision = skill.revision if expected_revision is None else expected_revision
        revision = await self._write_skill(skill, revision)
        await self._upsert_queue(
            skill_id, status=QueueStatus.PROCESSING.value, rejection_reason=None, processed_at=None,
        )
        await self.db.commit()
        logger.info("certification_run_started", skill_id=str(skill_id), status=skill.status)

        try:
            return await self._process_claimed_run(skill, revision)
        except CertificationError as e:
            await self._release_claim(skill_id, previous_queue_status, f"Certification run aborted: {e.message}")
            raise
        except SQLAlchemyError:
            await self._release_claim(skill_id, previous_queue_status, "Certification run aborted: database error")
            raise

    async def _release_claim(self, skill_id: UUID, previous_status: str | None, reason: str) -> None:
        """Hand a queue entry claimed by an aborted run back to its pre-run state."""
        await self.db.rollback()
        try:
            entry = (
                await self.db.execute(
                    select(ValidationQueueEntry).where(ValidationQueueEntry.skill_id == skill_id)
                )
            ).scalar_one_or_none()
            if entry is None or entry.status != QueueStatus.PROCESSING.value:
                return
            if previous_status is None:
                await self.db.delete(entry)
            else:
                entry.status = previous_status
                entry.rejection_reason = reason
                entry.processed_at = utcnow()
            await self.db.commit()
            logger.info("certification_claim_released", skill_id=str(skill_id), restored=previous_status)
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("certification_claim_release_failed", skill_id=str(skill_id))

    async def _process_claimed_run(self, skill: Skill, revision: int) -> CertificationRunResult:
        skill_id = skill.id
        if not skill.file_url:
            return await self._reject_run(skill, revision, BronzeResult(False, ["Archive file not found"]))

        try:
            data = await self._download_archive(skill.file_url)
        except ArchiveDownloadError as e:
            logger.warning("archive_download_failed", skill_id=str(skill_id), error=str(e))
            return await self._reject_run(
                skill, revision, BronzeResult(False, [f"Unable to download archive: {e}"]),
            )

        try:
            validation = await asyncio.to_thread(self.validator.validate, data, mode=STRICT_MODE)
        except Exception as e:
            logger.exception("bronze_validator_crashed", skill_id=str(skill_id))
            return await self._reject_run(
                skill, revision, BronzeResult(False, [f"Validation error: {e}"]), bronze_score=0,
            )
        bronze = BronzeResult(
            passed=validation.valid,
            errors=validation.error_messages,
            warnings=validation.warning_messages,
        )
        if not bronze.passed:
            return await self._reject_run(skill, revision, bronze, bronze_score=0)

        return await self._grant_bronze(skill, revision, bronze, data)

    async def _reject_run(
        self, skill: Skill, revision: int, bronze: BronzeResult, bronze_score: int | None = None,
    ) -> CertificationRunResult:
        reason = " | ".join(bronze.errors)
        validate_transition(skill.status, SkillStatus.REJECTED.value)
        await self._write_skill(skill, revision, status=SkillStatus.REJECTED.value)
        await self._upsert_queue(
            skill.id,
            status=QueueStatus.REJECTED.value,
            bronze_score=bronze_score,
            silver_score=None,
            silver_criteria=None,
            silver_details=None,
            bronze_errors=bronze.errors,
            bronze_warnings=bronze.warnings,
            rejection_reason=reason,
            processed_by=None,
            processed_at=utcnow(),
        )
        await self.db.commit()
        logger.info("bronze_rejected", skill_id=str(skill.id), reason=reason)

        await self.notifier.bronze_rejected(await self._recipient(skill), skill.title, bronze.errors)
        return CertificationRunResult(
            success=True,
            bronze=bronze,
            silver=None,
            final_status=QueueStatus.REJECTED.value,
            certification=skill.certification,
        )

    async def _grant_bronze(
        self, skill: Skill, revision: int, bronze: BronzeResult, data: bytes,
    ) -> CertificationRunResult:
        now = utcnow()
        newly_certified = skill.certification == CertificationLevel.NONE.value
        values: dict[str, Any] = {"status": SkillStatus.PUBLISHED.value, "published_at": now}
        if newly_certified:
            values["certification"] = CertificationLevel.BRONZE.value
            values["certified_at"] = now

        validate_transition(skill.status, SkillStatus.PUBLISHED.value)
        await self._write_skill(skill, revision, **values)
        if newly_certified:
            self.db.add(SkillCertification(
                skill_id=skill.id,
                level=CertificationLevel.BRONZE.value,
                score=BRONZE_PASS_SCORE,
                criteria={"checks": {"passed": True, "errors": bronze.errors, "warnings": bronze.warnings}},
            ))
        await self.db.commit()
        logger.info("bronze_passed", skill_id=str(skill.id), newly_certified=newly_certified)

        # Bronze stands whatever happens to scoring
        silver = await self._score_silver(skill.id, data)
        final_status = QueueStatus.BRONZE_AUTO
        if silver is not None and silver.score >= self.settings.silver_threshold:
            final_status = QueueStatus.PENDING_SILVER_REVIEW

        await self._upsert_queue(
            skill.id,
            status=final_status.value,
            bronze_score=BRONZE_PASS_SCORE,
            silver_score=silver.score if silver else None,
            silver_criteria=silver.criteria.to_dict() if silver else None,
            silver_details=silver.details if silver else None,
            bronze_errors=bronze.errors,
            bronze_warnings=bronze.warnings,
            rejection_reason=None,
            processed_by=None,
            processed_at=utcnow(),
        )
        await self.db.commit()
        logger.info(
            "certification_run_completed",
            skill_id=str(skill.id),
            silver_score=silver.score if silver else None,
            queue_status=final_status.value,
        )

        await self.notifier.bronze_granted(
            await self._recipient(skill), skill.title, silver.score if silver else None,
        )
        return CertificationRunResult(
            success=True,
            bronze=bronze,
            silver=silver,
            final_status=final_status.value,
            certification=skill.certification,
        )

    # ------------------------------------------------------------------
    # Reviewer decisions
    # ------------------------------------------------------------------

    async def _grant_level(
        self, skill: Skill, level: str, approver_id: UUID | None, notes: str | None, revision: int,
    ) -> OperationResult:
        validate_certification(skill.certification, level)
        now = utcnow()
        await self._write_skill(
            skill,
            revision,
            certification=level,
            certified_at=now,
            certification_reviewed_at=now,
            certification_reviewer_id=approver_id,
            certification_feedback=notes,
        )
        self.db.add(SkillCertification(
            skill_id=skill.id,
            level=level,
            certified_by=approver_id,
            criteria={"notes": notes} if notes else None,
        ))
        queue_status = (
            QueueStatus.SILVER_APPROVED if level == CertificationLevel.SILVER.value
            else QueueStatus.GOLD_ELIGIBLE
        )
        await self._upsert_queue(
            skill.id, status=queue_status.value, processed_by=approver_id, processed_at=now,
        )
        await self._close_pending_request(skill.id, RequestStatus.APPROVED, approver_id, notes)
        await self.db.commit()
        logger.info("certification_granted", skill_id=str(skill.id), level=level, approver_id=str(approver_id))

        await self.notifier.approved(await self._recipient(skill), skill.title, level)
        return OperationResult.ok(skill_id=skill.id, level=level, certified_at=now)

    async def certify_skill(
        self,
        skill_id: UUID,
        level: str,
        approver_id: UUID | None,
        notes: str | None = None,
        expected_revision: int | None = None,
    ) -> OperationResult:
        """Grant silver or gold (admin or certification agent)."""

        async def _certify() -> OperationResult:
            skill = await self._get_skill(skill_id)
            revision = skill.revision if expected_revision is None else expected_revision
            return await self._grant_level(skill, level, approver_id, notes, revision)

        return await self._guarded("certify_skill", _certify, skill_id=str(skill_id), level=level)

    async def reject_skill(
        self,
        skill_id: UUID,
        reason: str,
        rejecter_id: UUID | None,
        expected_revision: int | None = None,
    ) -> OperationResult:
        """Hard rejection. Certification is kept unless the reset policy is on."""

        async def _reject() -> OperationResult:
            if not reason or not reason.strip():
                raise CertificationError("A rejection reason is required")
            skill = await self._get_skill(skill_id)
            if skill.status != SkillStatus.REJECTED.value:
                validate_transition(skill.status, SkillStatus.REJECTED.value)

            now = utcnow()
            values: dict[str, Any] = {
                "status": SkillStatus.REJECTED.value,
                "certification_reviewed_at": now,
                "certification_reviewer_id": rejecter_id,
                "certification_feedback": reason,
            }
            if self.settings.rejection_resets_certification:
                values["certification"] = CertificationLevel.NONE.value

            revision = skill.revision if expected_revision is None else expected_revision
            await self._write_skill(skill, revision, **values)
            await self._upsert_queue(
                skill_id,
                status=QueueStatus.REJECTED.value,
                rejection_reason=reason,
                processed_by=rejecter_id,
                processed_at=now,
            )
            request = await self._close_pending_request(skill_id, RequestStatus.REJECTED, rejecter_id, reason)
            await self.db.commit()
            logger.info("skill_rejected", skill_id=str(skill_id), rejecter_id=str(rejecter_id))

            await self.notifier.rejected(
                await self._recipient(skill), skill.title,
                request.requested_level if request else None, reason,
            )
            return OperationResult.ok(skill_id=skill_id, status=SkillStatus.REJECTED.value, reason=reason)

        return await self._guarded("reject_skill", _reject, skill_id=str(skill_id))

    async def request_changes(
        self,
        skill_id: UUID,
        feedback: str,
        actor_id: UUID | None,
        expected_revision: int | None = None,
    ) -> OperationResult:
        """Soft rejection: the creator fixes the skill and resubmits it."""

        async def _request_changes() -> OperationResult:
            if not feedback or not feedback.strip():
                raise CertificationError("Feedback is required when requesting changes")
            skill = await self._get_skill(skill_id)
            validate_transition(skill.status, SkillStatus.CHANGES_REQUESTED.value)

            now = utcnow()
            revision = skill.revision if expected_revision is None else expected_revision
            await self._write_skill(
                skill,
                revision,
                status=SkillStatus.CHANGES_REQUESTED.value,
                certification_reviewed_at=now,
                certification_reviewer_id=actor_id,
                certification_feedback=feedback,
            )
            await self._upsert_queue(
                skill_id,
                status=QueueStatus.CHANGES_REQUESTED.value,
                rejection_reason=feedback,
                processed_by=actor_id,
                processed_at=now,
            )
            await self._close_pending_request(skill_id, RequestStatus.REJECTED, actor_id, feedback)
            await self.db.commit()
            logger.info("skill_changes_requested", skill_id=str(skill_id), actor_id=str(actor_id))

            await self.notifier.changes_requested(await self._recipient(skill), skill.title, feedback)
            return OperationResult.ok(
                skill_id=skill_id, status=SkillStatus.CHANGES_REQUESTED.value, feedback=feedback,
            )

        return await self._guarded("request_changes", _request_changes, skill_id=str(skill_id))

    # ------------------------------------------------------------------
    # Upgrade requests
    # ------------------------------------------------------------------

    async def file_upgrade_request(
        self, skill_id: UUID, level: str, requester_id: UUID,
    ) -> OperationResult:
        """Creator asks for the next level once every criterion is satisfied."""

        async def _file() -> OperationResult:
            skill = await self._get_skill(skill_id)
            if skill.creator_id != requester_id:
                raise ForbiddenError("Only the skill creator can request certification")

            if await get_pending_request(self.db, skill_id) is not None:
                raise DuplicateRequestError("A certification request is already pending for this skill")

            validate_upgrade_request(skill.certification, level)

            status = await get_certification_status(self.db, skill_id)
            if not status.can_request_upgrade:
                raise CriteriaNotMetError(
                    "Not all certification criteria are met",
                    missing_criteria=status.missing_criteria,
                )

            request = CertificationRequest(
                skill_id=skill_id,
                requested_level=level,
                requested_by=requester_id,
                quality_score_at_request=skill.quality_score or 0,
                status=RequestStatus.PENDING.value,
            )
            self.db.add(request)
            try:
                await self.db.flush()
            except IntegrityError as e:
                raise DuplicateRequestError(
                    "A certification request is already pending for this skill"
                ) from e

            await self._write_skill(skill, skill.revision, certification_requested_at=utcnow())
            await self.db.commit()
            logger.info("certification_request_filed", skill_id=str(skill_id), level=level, request_id=str(request.id))

            await self.notifier.request_filed(
                await self._recipient(skill), skill.title, level,
                skill.quality_score or 0, status.passed_count, len(status.criteria_status),
            )
            return OperationResult.ok(
                request_id=request.id,
                status=RequestStatus.PENDING.value,
                requested_level=level,
                estimated_review_time=ESTIMATED_REVIEW_TIME,
            )

        return await self._guarded("file_upgrade_request", _file, skill_id=str(skill_id), level=level)

    async def review_request(
        self,
        request_id: UUID,
        decision: str,
        reviewer_id: UUID | None,
        feedback: str | None = None,
    ) -> OperationResult:
        """Approve or reject a pending upgrade request."""

        async def _review() -> OperationResult:
            if decision not in (RequestStatus.APPROVED.value, RequestStatus.REJECTED.value):
                raise CertificationError("decision must be 'approved' or 'rejected'")

            request = (
                await self.db.execute(select(CertificationRequest).where(CertificationRequest.id == request_id))
            ).scalar_one_or_none()
            if request is None:
                raise RequestNotFoundError("Certification request not found", request_id=str(request_id))
            if request.status != RequestStatus.PENDING.value:
                raise RequestAlreadyReviewedError("This request has already been reviewed")

            skill = await self._get_skill(request.skill_id)
            if decision == RequestStatus.APPROVED.value:
                result = await self._grant_level(
                    skill, request.requested_level, reviewer_id, feedback, skill.revision,
                )
                result.data.update(request_id=request_id, decision=decision)
                return result

            now = utcnow()
            request.status = RequestStatus.REJECTED.value
            request.reviewed_by = reviewer_id
            request.reviewed_at = now
            request.feedback = feedback
            await self._write_skill(
                skill,
                skill.revision,
                certification_reviewed_at=now,
                certification_reviewer_id=reviewer_id,
                certification_feedback=feedback,
            )
            await self.db.commit()
            logger.info("certification_request_rejected", request_id=str(request_id), skill_id=str(skill.id))

            await self.notifier.rejected(
                await self._recipient(skill), skill.title, request.requested_level, feedback or "",
            )
            return OperationResult.ok(request_id=request_id, decision=decision, skill_id=skill.id)

        return await self._guarded("review_request", _review, request_id=str(request_id))
