"""Certification levels, statuses and the auto-checkable criteria catalog.

Auto-checkable criteria are a closed set (``AutoCheck``). Catalog rows are
bound to their evaluator when the catalog is loaded, so a row naming an
unknown auto-check fails loudly instead of silently never passing.
"""
from __future__ import annotations

import enum
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from clawforge.certification.errors import CriteriaConfigurationError


class CertificationLevel(str, enum.Enum):
    NONE = "none"
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


LEVEL_ORDER: list[CertificationLevel] = [
    CertificationLevel.NONE,
    CertificationLevel.BRONZE,
    CertificationLevel.SILVER,
    CertificationLevel.GOLD,
]


class SkillStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    BLOCKED = "blocked"
    PENDING_PAYMENT_SETUP = "pending_payment_setup"
    CHANGES_REQUESTED = "changes_requested"


class QueueStatus(str, enum.Enum):
    PROCESSING = "processing"
    BRONZE_AUTO = "bronze_auto"
    PENDING_SILVER_REVIEW = "pending_silver_review"
    REJECTED = "rejected"
    CHANGES_REQUESTED = "changes_requested"
    SILVER_APPROVED = "silver_approved"
    GOLD_ELIGIBLE = "gold_eligible"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CheckStatus(str, enum.Enum):
    PASSED = "passed"
    FAILED = "failed"
    PENDING = "pending"


def next_level(current: str) -> CertificationLevel | None:
    """Next level in LEVEL_ORDER, or None at gold (or for an unknown level)."""
    try:
        idx = LEVEL_ORDER.index(CertificationLevel(current))
    except ValueError:
        return None
    if idx >= len(LEVEL_ORDER) - 1:
        return None
    return LEVEL_ORDER[idx + 1]


# ---------------------------------------------------------------------------
# Auto-checks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SkillMetrics:
    """Stored signals the auto-checks read."""
    quality_score: int
    sales_count: int
    average_rating: float
    certification: str

    @classmethod
    def from_skill(cls, skill: Any) -> SkillMetrics:
        return cls(
            quality_score=skill.quality_score or 0,
            sales_count=skill.sales_count or 0,
            average_rating=float(skill.average_rating or 0.0),
            certification=skill.certification,
        )


@dataclass(frozen=True)
class AutoCheckResult:
    passed: bool
    value: str


def _quality_at_least(threshold: int, ok: str | None = None, ko: str | None = None):
    def check(m: SkillMetrics) -> AutoCheckResult:
        passed = m.quality_score >= threshold
        if ok is None:
            return AutoCheckResult(passed, f"{m.quality_score}%")
        return AutoCheckResult(passed, ok if passed else ko)
    return check


def _sales_at_least(threshold: int):
    def check(m: SkillMetrics) -> AutoCheckResult:
        return AutoCheckResult(m.sales_count >= threshold, str(m.sales_count))
    return check


def _high_rating(m: SkillMetrics) -> AutoCheckResult:
    return AutoCheckResult(m.average_rating >= 4.5, f"{m.average_rating:.1f}/5")


def _silver_validated(m: SkillMetrics) -> AutoCheckResult:
    passed = m.certification in (CertificationLevel.SILVER.value, CertificationLevel.GOLD.value)
    return AutoCheckResult(passed, m.certification)


def _no_critical_bugs(m: SkillMetrics) -> AutoCheckResult:
    # No bug tracker yet: a published skill counts as clean
    return AutoCheckResult(True, "OK")


class AutoCheck(enum.Enum):
    """Known auto-checkable criteria, each with its evaluator."""

    QUALITY_SCORE = ("quality_score", _quality_at_least(80))
    DOCUMENTATION_COMPLETE = ("documentation_complete", _quality_at_least(60, "OK", "Incomplete"))
    TEST_COVERAGE = ("test_coverage", _quality_at_least(70, ">= 70%", "< 70%"))
    CODE_QUALITY = ("code_quality", _quality_at_least(60, "OK", "Issues detected"))
    NO_CRITICAL_BUGS = ("no_critical_bugs", _no_critical_bugs)
    SALES_MINIMUM = ("sales_minimum", _sales_at_least(5))
    SALES_VOLUME = ("sales_volume", _sales_at_least(50))
    HIGH_RATING = ("high_rating", _high_rating)
    SILVER_VALIDATED = ("silver_validated", _silver_validated)

    def __init__(self, criterion_name: str, evaluator: Callable[[SkillMetrics], AutoCheckResult]):
        self.criterion_name = criterion_name
        self.evaluator = evaluator

    def evaluate(self, metrics: SkillMetrics) -> AutoCheckResult:
        return self.evaluator(metrics)

    @classmethod
    def for_name(cls, name: str) -> AutoCheck:
        for check in cls:
            if check.criterion_name == name:
                return check
        raise CriteriaConfigurationError(
            f"Criterion '{name}' is marked auto-checkable but has no evaluator"
        )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResolvedCriterion:
    """A catalog row bound to its auto-check (None for manually graded criteria)."""
    id: Any
    level: str
    name: str
    description: str | None
    weight: int
    auto_check: AutoCheck | None

    @property
    def auto_checkable(self) -> bool:
        return self.auto_check is not None


def resolve_catalog(rows: Iterable[Any]) -> list[ResolvedCriterion]:
    """Bind catalog rows to evaluators. Raises CriteriaConfigurationError on unknown auto-checks."""
    resolved = []
    for row in rows:
        auto_check = AutoCheck.for_name(row.name) if row.auto_checkable else None
        resolved.append(ResolvedCriterion(
            id=row.id,
            level=row.level,
            name=row.name,
            description=row.description,
            weight=row.weight,
            auto_check=auto_check,
        ))
    return resolved


# (level, name, description, auto_checkable, weight)
DEFAULT_CRITERIA: list[tuple[str, str, str, bool, int]] = [
    ("silver", "quality_score", "Quality score >= 80%", True, 1),
    ("silver", "documentation_complete", "Complete README and API docs", True, 1),
    ("silver", "test_coverage", "Test coverage >= 70%", True, 1),
    ("silver", "i18n_support", "Multi-language (i18n) support", False, 1),
    ("silver", "sales_minimum", "At least 5 successful sales", True, 1),
    ("silver", "no_critical_bugs", "No critical bug in the last 30 days", True, 1),
    ("silver", "code_quality", "Lint clean, no critical errors", True, 1),
    ("gold", "silver_validated", "Silver certification obtained", True, 3),
    ("gold", "sales_volume", "50+ successful sales", True, 2),
    ("gold", "high_rating", "Average rating >= 4.5/5", True, 2),
    ("gold", "responsive_support", "Responsive support (< 24h)", False, 1),
]
