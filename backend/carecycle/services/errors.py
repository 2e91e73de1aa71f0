"""Service-layer exceptions with stable reason codes."""

from typing import Optional


class CarecycleError(Exception):
    """Base exception for carecycle service errors."""

    pass


class ValidationError(CarecycleError):
    """User-correctable rejection.

    reason is a stable machine code (e.g. "date_in_past"); the message is
    the text shown to the user.
    """

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        self.message = message or reason
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.message, "reason": self.reason}


class StateTransitionError(ValidationError):
    """Illegal schedule status transition."""

    def __init__(self, message: str):
        super().__init__("invalid_state", message)


class NotFoundError(CarecycleError):
    """Schedule, invitation, or token does not resolve."""

    pass


class ConflictError(CarecycleError):
    """Record already exists (duplicate invitation, registered email)."""

    pass
