"""
Invitation token lifecycle.

Tokens are 256-bit random values, hex-encoded (64 lowercase chars).
Expiry is computed against expires_at on every check and never stored
as a status: a token is expired once expires_at <= now.

validate_token precedence (first failing check wins):
    expired > accepted > cancelled > pending
so an expired-and-cancelled invitation always reports "Token expired".
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional
import secrets

from carecycle.config import config
from carecycle.models.invitation import InvitationStatus
from carecycle.services.date_utils import utc_now


TOKEN_BYTES = 32

REASON_EXPIRED = "Token expired"
REASON_USED = "Token already used"
REASON_CANCELLED = "Invitation cancelled"


@dataclass(frozen=True)
class TokenValidationResult:
    valid: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"valid": self.valid}
        if self.reason:
            result["reason"] = self.reason
        return result


@dataclass(frozen=True)
class CancellationCheck:
    can: bool
    reason: Optional[str] = None


def _status_value(status: Any) -> str:
    return getattr(status, "value", status)


class TokenService:
    """Stateless token helpers. `now` is injectable for tests."""

    def __init__(self, now: Optional[Callable[[], datetime]] = None):
        self._now = now or utc_now

    def now(self) -> datetime:
        return self._now()

    def generate_invitation_token(self) -> str:
        """Cryptographically random 64-char lowercase hex token."""
        return secrets.token_hex(TOKEN_BYTES)

    def calculate_expiry_date(self, days: Optional[int] = None) -> datetime:
        """now + days * 24h. Defaults to INVITATION_EXPIRY_DAYS (7)."""
        if days is None:
            days = config.INVITATION_EXPIRY_DAYS
        return self.now() + timedelta(days=days)

    def is_token_expired(self, expires_at: datetime) -> bool:
        """True when expires_at <= now. Exactly-now counts as expired."""
        return expires_at <= self.now()

    def validate_token(self, invitation) -> TokenValidationResult:
        """Validity of an invitation's token. Never raises for business states."""
        if self.is_token_expired(invitation.expires_at):
            return TokenValidationResult(False, REASON_EXPIRED)

        status = _status_value(invitation.status)
        if status == InvitationStatus.ACCEPTED.value:
            return TokenValidationResult(False, REASON_USED)
        if status == InvitationStatus.CANCELLED.value:
            return TokenValidationResult(False, REASON_CANCELLED)
        if status == InvitationStatus.PENDING.value:
            return TokenValidationResult(True)

        return TokenValidationResult(False, f"Invalid status: {status}")

    def can_cancel_invitation(self, status: Any, expires_at: datetime) -> CancellationCheck:
        """Only pending, unexpired invitations can be cancelled."""
        status = _status_value(status)
        if status == InvitationStatus.ACCEPTED.value:
            return CancellationCheck(False, "Cannot cancel an accepted invitation")
        if status == InvitationStatus.CANCELLED.value:
            return CancellationCheck(False, "Invitation is already cancelled")
        if self.is_token_expired(expires_at):
            return CancellationCheck(False, "Cannot cancel an expired invitation")
        if status == InvitationStatus.PENDING.value:
            return CancellationCheck(True)
        return CancellationCheck(False, f"Invalid invitation status: {status}")

    def calculate_time_until_expiry(self, expires_at: datetime) -> str:
        """Human-readable remaining time, e.g. "2 days", "3 hours", "Expired"."""
        remaining = expires_at - self.now()
        if remaining.total_seconds() <= 0:
            return "Expired"

        seconds = int(remaining.total_seconds())

        days = seconds // 86400
        hours = (seconds % 86400) // 3600
        minutes = (seconds % 3600) // 60

        if days > 0:
            return f"{days} day{'s' if days > 1 else ''}"
        if hours > 0:
            return f"{hours} hour{'s' if hours > 1 else ''}"
        if minutes > 0:
            return f"{minutes} minute{'s' if minutes > 1 else ''}"
        return "Less than 1 minute"
