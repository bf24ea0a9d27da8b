"""Error taxonomy shared by services, the API layer and the CLI."""

from __future__ import annotations

from typing import Any
from uuid import UUID


class FarmOpsError(Exception):
    """Base class for all domain errors."""

    code = "FARM_OPS_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class ValidationError(FarmOpsError):
    """Raised when input is malformed or a required value is missing."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message, {"field": field} if field else None)


class InvalidStateError(FarmOpsError):
    """Raised when a transition is attempted from the wrong status."""

    code = "INVALID_STATE"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, {"from_status": from_status, "to_status": to_status})


class ImmutableStateError(FarmOpsError):
    """Raised when mutating a record that history depends on."""

    code = "IMMUTABLE"


class PreconditionError(FarmOpsError):
    """Raised when a required selection is missing before an action."""

    code = "PRECONDITION_FAILED"


class NotFoundError(FarmOpsError):
    """Raised when a record does not exist within the caller's farm."""

    code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: UUID | str | None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} {entity_id} not found",
            {"entity_type": entity_type, "entity_id": str(entity_id)},
        )


class RemoteError(FarmOpsError):
    """Raised when the database or network fails underneath an operation."""

    code = "REMOTE_ERROR"


class ConflictError(FarmOpsError):
    """Raised when a write breaks a uniqueness or reference constraint."""

    code = "CONFLICT"
