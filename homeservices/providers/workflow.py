"""Verification decisions and the document deletion state machine."""

from __future__ import annotations

from homeservices.api.errors import ApiError, ApiErrorCode
from homeservices.providers.models import DeletionStatus, VerificationStatus

DECISIONS = frozenset({VerificationStatus.APPROVED, VerificationStatus.REJECTED})

# ``None`` is a document nobody asked to delete. Approval removes the document,
# so nothing leaves APPROVED; a rejected request may be filed again.
DELETION_TRANSITIONS: dict[DeletionStatus | None, frozenset[DeletionStatus]] = {
    None: frozenset({DeletionStatus.PENDING}),
    DeletionStatus.PENDING: frozenset({DeletionStatus.APPROVED, DeletionStatus.REJECTED}),
    DeletionStatus.REJECTED: frozenset({DeletionStatus.PENDING}),
    DeletionStatus.APPROVED: frozenset(),
}

_DELETION_TRANSITION_MESSAGES = {
    DeletionStatus.PENDING: "يوجد طلب حذف قيد المراجعة لهذه الوثيقة",
    DeletionStatus.APPROVED: "لا يوجد طلب حذف قيد المراجعة لهذه الوثيقة",
    DeletionStatus.REJECTED: "لا يوجد طلب حذف قيد المراجعة لهذه الوثيقة",
}


def parse_decision(value: str, *, message: str) -> VerificationStatus:
    """Map an admin action string to a terminal status or raise 400."""
    normalized = (value or "").strip().lower()
    if normalized not in DECISIONS:
        raise ApiError(
            status_code=400,
            error_code=ApiErrorCode.VALIDATION_ERROR,
            message=message,
        )
    return VerificationStatus(normalized)


def ensure_deletion_transition(
    current: DeletionStatus | None, target: DeletionStatus
) -> None:
    if target not in DELETION_TRANSITIONS.get(current, frozenset()):
        raise ApiError(
            status_code=400,
            error_code=ApiErrorCode.INVALID_STATUS_TRANSITION,
            message=_DELETION_TRANSITION_MESSAGES[target],
        )


def counts_by_status(statuses: list[VerificationStatus]) -> dict[str, int]:
    """Tally document statuses for the review queue."""
    counts = {str(status): 0 for status in VerificationStatus}
    for status in statuses:
        counts[str(status)] += 1
    return counts
