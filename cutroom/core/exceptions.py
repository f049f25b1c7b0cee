"""
Platform-wide exception hierarchy.

Every service raises these types; blueprints register handlers against
them once and get consistent HTTP status codes everywhere.

Taxonomy:
    NotFoundError           row missing OR owned by another tenant/project  → 404
    ValidationError         well-formed input that breaks a business rule   → 422
    InvalidTransitionError  requested edge is not in the state machine      → 422
    ConflictError           second row for a unique key (already exists)    → 409
    TerminalStateError      lifecycle already at its end (final stage, FINAL) → 409

Usage:
    from cutroom.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ValidationError("stage_name is required", details={"stage_name": "missing"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the given scope.

    Security note: Used for BOTH genuinely missing records AND cross-tenant
    access attempts. The message is built only from the resource name and
    the id the caller supplied, so it is identical in both cases.

    Args:
        resource: Human-readable model/entity name (e.g. "Project", "WorkflowStage").
        resource_id: The PK that was looked up.
        tenant_id: Optional — the scope that was enforced. Kept on the
                   instance for debug logging; never part of the message.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        tenant_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.tenant_id = tenant_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InvalidTransitionError(ValidationError):
    """Raised when a state change is not a legal edge of its state machine.

    Args:
        message: Human-readable explanation.
        current: State the entity is in (None when there is no current state).
        target: State that was requested.
    """

    def __init__(self, message: str, current: str | None = None, target: str | None = None) -> None:
        self.current = current
        self.target = target
        details = {}
        if current is not None:
            details["current"] = current
        if target is not None:
            details["target"] = target
        super().__init__(message, details=details)


class ConflictError(Exception):
    """Raised when an operation would create a duplicate unique constraint violation.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class TerminalStateError(Exception):
    """Raised when a lifecycle has already reached its end.

    Examples: advancing past the final workflow stage, approving a FINAL
    version. Maps to HTTP 409.
    """

    def __init__(self, message: str, state: str | None = None) -> None:
        self.state = state
        super().__init__(message)
