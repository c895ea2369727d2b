"""Certification error taxonomy and the structured operation result."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ArchiveError(Exception):
    """Raised when archive bytes cannot be opened as a zip at all."""


class ArchiveDownloadError(Exception):
    """Raised when a skill archive cannot be fetched (network, timeout, non-2xx)."""


class CriteriaConfigurationError(Exception):
    """Raised when the criteria catalog names an auto-check nobody implements."""


class CertificationError(Exception):
    """Expected, caller-correctable certification failure."""

    code: str = "certification_error"
    status_code: int = 400

    def __init__(self, message: str, **data: Any):
        super().__init__(message)
        self.message = message
        self.data = data


class SkillNotFoundError(CertificationError):
    code = "not_found"
    status_code = 404


class RequestNotFoundError(CertificationError):
    code = "request_not_found"
    status_code = 404


class InvalidTransitionError(CertificationError):
    code = "invalid_transition"


class HierarchyError(CertificationError):
    code = "hierarchy_violation"


class DuplicateRequestError(CertificationError):
    code = "duplicate_request"
    status_code = 409


class ConcurrencyConflictError(CertificationError):
    code = "concurrency_conflict"
    status_code = 409


class CriteriaNotMetError(CertificationError):
    code = "criteria_not_met"


class RequestAlreadyReviewedError(CertificationError):
    code = "already_reviewed"


class ForbiddenError(CertificationError):
    code = "forbidden"
    status_code = 403


@dataclass
class OperationResult:
    """Returned by every orchestrator write operation."""
    success: bool
    error: str | None = None
    code: str | None = None
    status_code: int = 200
    data: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def ok(**data: Any) -> OperationResult:
        return OperationResult(success=True, data=data)

    @staticmethod
    def failure(error: str, code: str = "error", status_code: int = 400, **data: Any) -> OperationResult:
        return OperationResult(
            success=False, error=error, code=code,
            status_code=status_code, data=data,
        )

    @staticmethod
    def from_error(exc: CertificationError) -> OperationResult:
        return OperationResult.failure(
            exc.message, code=exc.code, status_code=exc.status_code, **exc.data,
        )
