"""Tests for job and payout state machines."""

import pytest

from crewx.exceptions import ConflictError
from crewx.services.state_machine import (
    InvalidTransitionError,
    JobStateMachine,
    JobStatus,
    PayoutStateMachine,
    PayoutStatus,
)


class TestJobStateMachine:
    """Test job status transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        # OPEN → CLOSED (capacity or admin)
        assert JobStateMachine.can_transition(JobStatus.OPEN, JobStatus.CLOSED) is True

        # CLOSED → OPEN (reopen)
        assert JobStateMachine.can_transition(JobStatus.CLOSED, JobStatus.OPEN) is True

        # Either active status → COMPLETED
        assert JobStateMachine.can_transition(JobStatus.OPEN, JobStatus.COMPLETED) is True
        assert JobStateMachine.can_transition(JobStatus.CLOSED, JobStatus.COMPLETED) is True

    def test_completed_is_terminal(self):
        assert JobStateMachine.is_terminal(JobStatus.COMPLETED) is True
        assert JobStateMachine.can_transition(JobStatus.COMPLETED, JobStatus.OPEN) is False
        assert JobStateMachine.get_next_statuses(JobStatus.COMPLETED) == []

    def test_plain_strings_are_accepted(self):
        assert JobStateMachine.can_transition("OPEN", "CLOSED") is True

    def test_only_open_jobs_accept_enrollment(self):
        assert JobStateMachine.accepts_enrollment(JobStatus.OPEN) is True
        assert JobStateMachine.accepts_enrollment(JobStatus.CLOSED) is False
        assert JobStateMachine.accepts_enrollment(JobStatus.COMPLETED) is False


class TestPayoutStateMachine:
    """Test withdrawal request transitions."""

    def test_pending_resolves_either_way(self):
        assert PayoutStateMachine.can_transition(PayoutStatus.PENDING, PayoutStatus.APPROVED)
        assert PayoutStateMachine.can_transition(PayoutStatus.PENDING, PayoutStatus.REJECTED)

    @pytest.mark.parametrize("terminal", [PayoutStatus.APPROVED, PayoutStatus.REJECTED])
    def test_resolved_requests_are_terminal(self, terminal):
        assert PayoutStateMachine.is_terminal(terminal) is True
        for target in PayoutStatus:
            assert PayoutStateMachine.can_transition(terminal, target) is False

    def test_validate_transition_raises(self):
        """Test that validate_transition raises for invalid transitions."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            PayoutStateMachine.validate_transition(PayoutStatus.REJECTED, PayoutStatus.APPROVED)

        assert exc_info.value.from_status == "REJECTED"
        assert exc_info.value.to_status == "APPROVED"
        assert isinstance(exc_info.value, ConflictError)

    def test_only_rejection_returns_funds(self):
        assert PayoutStateMachine.returns_funds(PayoutStatus.REJECTED) is True
        assert PayoutStateMachine.returns_funds(PayoutStatus.APPROVED) is False
