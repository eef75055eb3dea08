"""
Platform-wide exception hierarchy.

Services and the domain layer raise these; blueprints register handlers
against them once and map each to a consistent HTTP status.

Usage:
    from sgld.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="PlanningForm", resource_id="3f2a...")
    raise ValidationError("Form is incomplete", details={"organization_name": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable entity name (e.g. "PlanningForm").
        resource_id: The id that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation.

    The data was well-formed but violated a rule: a required field is
    missing, a row index is out of range, a section would become empty.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names;
                 values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class AuthorizationError(Exception):
    """Raised when an actor is not allowed to perform an action on a form.

    Surfaced as a blocking message (HTTP 403); never retried.
    """

    def __init__(self, actor_id: str | None, action: str, reason: str | None = None) -> None:
        self.actor_id = actor_id
        self.action = action
        msg = f"Actor {actor_id or 'anonymous'} is not allowed to '{action}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidStateError(Exception):
    """Raised when a transition is attempted from a status that does not allow it.

    Maps to HTTP 409.
    """

    def __init__(self, action: str, current_status: str, reason: str | None = None) -> None:
        self.action = action
        self.current_status = current_status
        msg = f"Cannot '{action}' a form in status '{current_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PersistenceError(Exception):
    """Raised when the store is unreachable or rejects a write.

    The message is surfaced verbatim to the user; the operation is
    abandoned and the caller's in-memory document is left as it was.
    """


class RenderError(Exception):
    """Raised when rasterization, pagination or PDF assembly fails.

    No partial output file is produced when this is raised.
    """
