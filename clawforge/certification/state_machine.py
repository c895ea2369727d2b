"""Skill lifecycle state machine and certification hierarchy rules.

Status:        draft → pending → published
               pending/changes_requested → rejected → (resubmit) pending
               published → changes_requested → pending (resubmission)
Certification: none → bronze → silver → gold, forward only.
"""

from clawforge.certification.criteria import CertificationLevel
from clawforge.certification.errors import HierarchyError, InvalidTransitionError

VALID_STATUS_TRANSITIONS: dict[str, list[str]] = {
    "draft": ["pending", "withdrawn"],
    "pending": ["published", "rejected", "changes_requested", "pending_payment_setup", "withdrawn"],
    "pending_payment_setup": ["published", "pending", "withdrawn"],
    "published": ["rejected", "changes_requested", "withdrawn", "blocked"],
    "changes_requested": ["pending", "published", "rejected", "withdrawn"],
    "rejected": ["pending", "changes_requested"],
    "withdrawn": ["pending"],
    "blocked": ["published"],
}

# Statuses from which an automated certification run may start
RUNNABLE_STATUSES = ("pending", "changes_requested")


def can_transition(current: str, target: str) -> bool:
    """Check if a skill status transition is valid."""
    return target in VALID_STATUS_TRANSITIONS.get(current, [])


def validate_transition(current: str, target: str) -> None:
    """Validate a skill status transition, raising InvalidTransitionError if invalid."""
    if not can_transition(current, target):
        allowed = VALID_STATUS_TRANSITIONS.get(current, [])
        raise InvalidTransitionError(
            f"Cannot transition skill from '{current}' to '{target}'. "
            f"Allowed from '{current}': {allowed}",
            current=current, target=target,
        )


def validate_certification(current: str, target: str) -> None:
    """Reviewer grant: silver only from exactly bronze, gold only from exactly silver."""
    if target == CertificationLevel.SILVER.value:
        if current != CertificationLevel.BRONZE.value:
            raise HierarchyError(
                "Skill must be Bronze certified before Silver", current=current, level=target,
            )
    elif target == CertificationLevel.GOLD.value:
        if current != CertificationLevel.SILVER.value:
            raise HierarchyError(
                "Skill must be Silver certified before Gold", current=current, level=target,
            )
    else:
        raise HierarchyError(f"Level '{target}' cannot be granted by a reviewer", level=target)


def validate_upgrade_request(current: str, requested: str) -> None:
    """Creator request: silver only from bronze, gold only from silver."""
    if requested == CertificationLevel.SILVER.value:
        if current != CertificationLevel.BRONZE.value:
            raise HierarchyError(
                "Skill must be Bronze certified before requesting Silver",
                current=current, level=requested,
            )
    elif requested == CertificationLevel.GOLD.value:
        if current != CertificationLevel.SILVER.value:
            raise HierarchyError(
                "Skill must be Silver certified before requesting Gold",
                current=current, level=requested,
            )
    else:
        raise HierarchyError(f"Level '{requested}' cannot be requested", level=requested)
