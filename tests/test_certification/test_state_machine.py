"""Unit tests for skill status transitions and the certification hierarchy."""

import pytest

from clawforge.certification.errors import HierarchyError, InvalidTransitionError
from clawforge.certification.state_machine import (
    RUNNABLE_STATUSES,
    VALID_STATUS_TRANSITIONS,
    can_transition,
    validate_certification,
    validate_transition,
    validate_upgrade_request,
)


class TestSkillCanTransition:
    def test_submission(self):
        assert can_transition("draft", "pending") is True

    def test_draft_cannot_publish_directly(self):
        assert can_transition("draft", "published") is False

    def test_pending_outcomes(self):
        for target in ["published", "rejected", "changes_requested"]:
            assert can_transition("pending", target) is True

    def test_resubmission_after_changes(self):
        assert can_transition("changes_requested", "pending") is True
        assert can_transition("changes_requested", "published") is True

    def test_rejected_can_be_resubmitted(self):
        assert can_transition("rejected", "pending") is True

    def test_rejected_cannot_publish(self):
        assert can_transition("rejected", "published") is False

    def test_published_can_be_sent_back(self):
        assert can_transition("published", "changes_requested") is True
        assert can_transition("published", "rejected") is True

    def test_unknown_status(self):
        assert can_transition("archived", "pending") is False

    def test_runnable_statuses_can_reach_both_outcomes(self):
        for status in RUNNABLE_STATUSES:
            assert can_transition(status, "published")
            assert can_transition(status, "rejected")

    def test_no_self_transitions(self):
        for status, targets in VALID_STATUS_TRANSITIONS.items():
            assert status not in targets


class TestSkillValidateTransition:
    def test_valid_passes(self):
        validate_transition("pending", "published")

    def test_invalid_raises(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition("draft", "published")
        assert exc_info.value.code == "invalid_transition"
        assert exc_info.value.data == {"current": "draft", "target": "published"}


class TestValidateCertification:
    def test_bronze_to_silver(self):
        validate_certification("bronze", "silver")

    def test_silver_to_gold(self):
        validate_certification("silver", "gold")

    @pytest.mark.parametrize("current", ["none", "silver", "gold"])
    def test_silver_requires_exactly_bronze(self, current):
        with pytest.raises(HierarchyError, match="Bronze") as exc_info:
            validate_certification(current, "silver")
        assert exc_info.value.data == {"current": current, "level": "silver"}

    @pytest.mark.parametrize("current", ["none", "bronze", "gold"])
    def test_gold_requires_silver(self, current):
        with pytest.raises(HierarchyError):
            validate_certification(current, "gold")

    @pytest.mark.parametrize("target", ["bronze", "none", "platinum"])
    def test_only_silver_and_gold_granted(self, target):
        with pytest.raises(HierarchyError):
            validate_certification("bronze", target)


class TestValidateUpgradeRequest:
    def test_silver_from_bronze(self):
        validate_upgrade_request("bronze", "silver")

    def test_gold_from_silver(self):
        validate_upgrade_request("silver", "gold")

    def test_silver_from_none(self):
        with pytest.raises(HierarchyError, match="Bronze"):
            validate_upgrade_request("none", "silver")

    def test_gold_from_bronze(self):
        with pytest.raises(HierarchyError, match="Silver"):
            validate_upgrade_request("bronze", "gold")

    def test_bronze_cannot_be_requested(self):
        with pytest.raises(HierarchyError):
            validate_upgrade_request("none", "bronze")
