"""
Service-wide exception hierarchy.

Services raise these; the ``rms`` blueprint registers one handler per type
so every endpoint maps them to the same HTTP status and JSON shape.

Usage:
    from rms.core.exceptions import NotFoundError, InvalidTransitionError

    raise NotFoundError(resource="Document", resource_id=42)
    raise InvalidTransitionError("received", "filed", acting_role="HR")
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Document").
        resource_id: The PK that was looked up.
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
    """Raised when well-formed input violates a business rule.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a write would duplicate a unique value (HTTP 409)."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")


class ForbiddenError(Exception):
    """Raised when the acting role may not use an endpoint at all."""

    def __init__(self, role: str | None, action: str) -> None:
        self.role = role
        self.action = action
        super().__init__(f"Role '{role}' is not allowed to {action}")


class InvalidTransitionError(Exception):
    """Raised when (from_status, to_status) is not an edge of the workflow
    table, or the acting role is not the one the edge requires.

    Carries the offending pair so callers can render a useful message.
    """

    def __init__(
        self,
        from_status: str,
        to_status: str,
        acting_role: str | None = None,
        reason: str | None = None,
    ) -> None:
        self.from_status = from_status
        self.to_status = to_status
        self.acting_role = acting_role
        self.reason = reason
        msg = f"Cannot move document from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)

    def to_details(self) -> dict:
        return {
            "from_status": self.from_status,
            "to_status": self.to_status,
            "acting_role": self.acting_role,
        }


class AlreadyTerminalError(Exception):
    """Raised when a dispatched or filed document is asked to move again."""

    def __init__(self, document_id: int, status: str) -> None:
        self.document_id = document_id
        self.status = status
        super().__init__(f"Document id={document_id} is already {status}")
