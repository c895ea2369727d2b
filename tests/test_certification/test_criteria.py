"""Tests for certification levels and auto-checkable criteria."""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from clawforge.certification.criteria import (
    DEFAULT_CRITERIA,
    AutoCheck,
    CertificationLevel,
    SkillMetrics,
    next_level,
    resolve_catalog,
)
from clawforge.certification.errors import CriteriaConfigurationError


def _metrics(quality=0, sales=0, rating=0.0, certification="bronze") -> SkillMetrics:
    return SkillMetrics(quality_score=quality, sales_count=sales, average_rating=rating, certification=certification)


def _row(name, level="silver", auto=True, weight=1):
    return SimpleNamespace(id=uuid4(), level=level, name=name, description=None, auto_checkable=auto, weight=weight)


class TestNextLevel:
    @pytest.mark.parametrize("current,expected", [
        ("none", CertificationLevel.BRONZE),
        ("bronze", CertificationLevel.SILVER),
        ("silver", CertificationLevel.GOLD),
        ("gold", None),
        ("platinum", None),
    ])
    def test_next_level(self, current, expected):
        assert next_level(current) == expected


class TestAutoChecks:
    def test_quality_score_threshold(self):
        assert AutoCheck.QUALITY_SCORE.evaluate(_metrics(quality=80)).passed is True
        result = AutoCheck.QUALITY_SCORE.evaluate(_metrics(quality=79))
        assert result.passed is False
        assert result.value == "79%"

    def test_documentation_complete_values(self):
        assert AutoCheck.DOCUMENTATION_COMPLETE.evaluate(_metrics(quality=60)).value == "OK"
        assert AutoCheck.DOCUMENTATION_COMPLETE.evaluate(_metrics(quality=59)).value == "Incomplete"

    def test_test_coverage(self):
        assert AutoCheck.TEST_COVERAGE.evaluate(_metrics(quality=70)).passed is True
        assert AutoCheck.TEST_COVERAGE.evaluate(_metrics(quality=69)).passed is False

    def test_code_quality(self):
        assert AutoCheck.CODE_QUALITY.evaluate(_metrics(quality=60)).passed is True

    def test_no_critical_bugs_always_passes(self):
        assert AutoCheck.NO_CRITICAL_BUGS.evaluate(_metrics()).passed is True

    def test_sales(self):
        assert AutoCheck.SALES_MINIMUM.evaluate(_metrics(sales=5)).passed is True
        assert AutoCheck.SALES_MINIMUM.evaluate(_metrics(sales=4)).value == "4"
        assert AutoCheck.SALES_VOLUME.evaluate(_metrics(sales=49)).passed is False
        assert AutoCheck.SALES_VOLUME.evaluate(_metrics(sales=50)).passed is True

    def test_high_rating(self):
        assert AutoCheck.HIGH_RATING.evaluate(_metrics(rating=4.5)).passed is True
        result = AutoCheck.HIGH_RATING.evaluate(_metrics(rating=4.49))
        assert result.passed is False
        assert result.value == "4.5/5"

    @pytest.mark.parametrize("certification,passed", [
        ("none", False), ("bronze", False), ("silver", True), ("gold", True),
    ])
    def test_silver_validated(self, certification, passed):
        assert AutoCheck.SILVER_VALIDATED.evaluate(_metrics(certification=certification)).passed is passed

    def test_metrics_from_skill_defaults_nulls(self):
        skill = SimpleNamespace(quality_score=None, sales_count=None, average_rating=None, certification="none")
        assert SkillMetrics.from_skill(skill) == _metrics(certification="none")


class TestCatalog:
    def test_every_default_auto_criterion_has_an_evaluator(self):
        rows = [_row(name, level, auto, weight) for level, name, _, auto, weight in DEFAULT_CRITERIA]
        resolved = resolve_catalog(rows)

        assert len(resolved) == len(DEFAULT_CRITERIA)
        manual = {c.name for c in resolved if not c.auto_checkable}
        assert manual == {"i18n_support", "responsive_support"}

    def test_unknown_auto_check_fails_loudly(self):
        with pytest.raises(CriteriaConfigurationError):
            resolve_catalog([_row("telemetry_ok")])

    def test_unknown_manual_criterion_is_fine(self):
        (criterion,) = resolve_catalog([_row("hand_review", auto=False)])
        assert criterion.auto_check is None

    def test_default_catalog_shape(self):
        silver = [c for c in DEFAULT_CRITERIA if c[0] == "silver"]
        gold = [c for c in DEFAULT_CRITERIA if c[0] == "gold"]
        assert len(silver) == 7
        assert len(gold) == 4
        assert sum(c[4] for c in gold) == 8
