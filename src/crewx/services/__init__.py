"""CrewX services."""

from crewx.services.state_machine import (
    InvalidTransitionError,
    JobStateMachine,
    JobStatus,
    PayoutStateMachine,
    PayoutStatus,
)

__all__ = [
    "InvalidTransitionError",
    "JobStateMachine",
    "JobStatus",
    "PayoutStateMachine",
    "PayoutStatus",
]
