"""Tests for job log state machine."""

import pytest

from farm_ops.errors import ImmutableStateError
from farm_ops.services.state_machine import JobLogStateMachine, JobLogStatus


class TestJobLogStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        assert JobLogStateMachine.can_transition("draft", "submitted") is True
        assert JobLogStateMachine.can_transition("submitted", "approved") is True
        assert JobLogStateMachine.can_transition("submitted", "rejected") is True

    def test_invalid_transitions(self):
        """Test that invalid transitions are blocked."""
        # Can't skip review
        assert JobLogStateMachine.can_transition("draft", "approved") is False

        # Decisions are final
        assert JobLogStateMachine.can_transition("approved", "rejected") is False
        assert JobLogStateMachine.can_transition("rejected", "approved") is False
        assert JobLogStateMachine.can_transition("rejected", "submitted") is False
        assert JobLogStateMachine.can_transition("approved", "submitted") is False

    def test_required_from(self):
        assert JobLogStateMachine.required_from(JobLogStatus.APPROVED) == "submitted"
        assert JobLogStateMachine.required_from(JobLogStatus.REJECTED) == "submitted"
        assert JobLogStateMachine.required_from(JobLogStatus.SUBMITTED) == "draft"

    def test_required_from_unknown_target(self):
        with pytest.raises(ValueError):
            JobLogStateMachine.required_from(JobLogStatus.DRAFT)

    def test_initial_statuses(self):
        assert JobLogStateMachine.can_create_as("draft") is True
        assert JobLogStateMachine.can_create_as("submitted") is True
        assert JobLogStateMachine.can_create_as("approved") is False
        assert JobLogStateMachine.can_create_as("rejected") is False

    def test_only_approved_is_immutable(self):
        assert JobLogStateMachine.is_mutable("draft") is True
        assert JobLogStateMachine.is_mutable("submitted") is True
        assert JobLogStateMachine.is_mutable("rejected") is True
        assert JobLogStateMachine.is_mutable("approved") is False

        with pytest.raises(ImmutableStateError, match="Cannot delete"):
            JobLogStateMachine.ensure_mutable("approved", "delete")
