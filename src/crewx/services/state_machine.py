"""Job and payout status machines with transition validation."""

from __future__ import annotations

from enum import Enum

from crewx.exceptions import ConflictError


class JobStatus(str, Enum):
    """Job status values."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"
    COMPLETED = "COMPLETED"


class PayoutStatus(str, Enum):
    """Withdrawal request status values."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class InvalidTransitionError(ConflictError):
    """Raised when an invalid state transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = str(getattr(from_status, "value", from_status))
        self.to_status = str(getattr(to_status, "value", to_status))
        self.reason = reason
        msg = f"Invalid transition from '{self.from_status}' to '{self.to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class _StateMachine:
    VALID_TRANSITIONS: dict[str, list[str]] = {}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.VALID_TRANSITIONS.get(status)


class JobStateMachine(_StateMachine):
    """State machine for job status.

    Allowed transitions:
    - OPEN → CLOSED (capacity reached, or admin toggle)
    - CLOSED → OPEN (admin toggle, or a cancel on an auto-closed job)
    - OPEN → COMPLETED
    - CLOSED → COMPLETED
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        JobStatus.OPEN: [JobStatus.CLOSED, JobStatus.COMPLETED],
        JobStatus.CLOSED: [JobStatus.OPEN, JobStatus.COMPLETED],
        JobStatus.COMPLETED: [],  # Terminal state
    }

    @classmethod
    def accepts_enrollment(cls, status: str) -> bool:
        return status == JobStatus.OPEN


class PayoutStateMachine(_StateMachine):
    """State machine for withdrawal requests.

    A request is resolved exactly once: PENDING → APPROVED or PENDING → REJECTED.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayoutStatus.PENDING: [PayoutStatus.APPROVED, PayoutStatus.REJECTED],
        PayoutStatus.APPROVED: [],
        PayoutStatus.REJECTED: [],
    }

    @classmethod
    def returns_funds(cls, to_status: str) -> bool:
        """Rejection hands the reserved amount back to the worker."""
        return to_status == PayoutStatus.REJECTED
