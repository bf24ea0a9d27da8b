"""Job log state machine."""

from __future__ import annotations

from enum import Enum

from farm_ops.errors import ImmutableStateError


class JobLogStatus(str, Enum):
    """Job log status values."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class JobStatus(str, Enum):
    """Job status values. Set only by explicit user action."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    BLOCKED = "blocked"


class JobLogStateMachine:
    """State machine for job log status transitions.

    Allowed transitions:
    - draft → submitted
    - submitted → approved
    - submitted → rejected

    approved is terminal and immutable; rejected is terminal but the log
    may still be deleted and re-created.
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        JobLogStatus.DRAFT: [JobLogStatus.SUBMITTED],
        JobLogStatus.SUBMITTED: [JobLogStatus.APPROVED, JobLogStatus.REJECTED],
        JobLogStatus.APPROVED: [],  # Terminal state
        JobLogStatus.REJECTED: [],
    }

    # Statuses a new log may be created in
    INITIAL_STATUSES = {JobLogStatus.DRAFT, JobLogStatus.SUBMITTED}

    # Statuses whose logs may not be edited or deleted
    IMMUTABLE = {JobLogStatus.APPROVED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def required_from(cls, to_status: str) -> str:
        """The single status a log must be in to move to ``to_status``."""
        sources = [s for s in cls.VALID_TRANSITIONS if cls.can_transition(s, to_status)]
        if len(sources) != 1:
            raise ValueError(f"No unique source status for '{to_status}'")
        return sources[0].value

    @classmethod
    def can_create_as(cls, status: str) -> bool:
        return status in cls.INITIAL_STATUSES

    @classmethod
    def is_mutable(cls, status: str) -> bool:
        """Check if a log in this status may be edited or deleted."""
        return status not in cls.IMMUTABLE

    @classmethod
    def ensure_mutable(cls, status: str, action: str = "modify") -> None:
        if not cls.is_mutable(status):
            raise ImmutableStateError(f"Cannot {action} a job log in status '{status}'")
