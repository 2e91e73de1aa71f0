"""
Invitation administration: create, verify, cancel, list.

Roles an admin may invite: admin, doctor, nurse. Nurses must carry a
care_type (department name); admins and doctors must not.
"""

from typing import Any, Dict, List, Optional
import logging
import re
import uuid

from carecycle.models import InvitationStatus
from carecycle.services.errors import ConflictError, NotFoundError, ValidationError
from carecycle.services.event_log import EventLogService
from carecycle.services.invitation_store import InvitationRecord, InvitationStore
from carecycle.services.invitation_token import TokenService

logger = logging.getLogger("service.InvitationService")

INVITABLE_ROLES = ("admin", "doctor", "nurse")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class InvitationService:
    """Invitation lifecycle on top of an InvitationStore."""

    def __init__(
        self,
        store: InvitationStore,
        token_service: Optional[TokenService] = None,
        audit: Optional[EventLogService] = None,
    ):
        self.store = store
        self.tokens = token_service or TokenService()
        self.audit = audit

    def create_invitation(
        self,
        tenant_id: uuid.UUID,
        email: str,
        role: str,
        invited_by: Optional[uuid.UUID],
        care_type: Optional[str] = None,
    ) -> InvitationRecord:
        """Create a pending invitation with a fresh token.

        Raises:
            ValidationError: bad email, role, or care_type binding
            ConflictError: pending invitation exists or email is registered
        """
        email = (email or "").strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("invalid_email", "Invalid email format")
        if role not in INVITABLE_ROLES:
            raise ValidationError("invalid_role", "Invalid role. Must be admin, doctor, or nurse")
        if role == "nurse" and not care_type:
            raise ValidationError("care_type_required", "Nurse role requires care_type")
        if role != "nurse" and care_type:
            raise ValidationError("care_type_not_allowed", "Admin/doctor must not have care_type")

        if self.store.find_pending_for_email(tenant_id, email):
            raise ConflictError("User already invited to this organization")
        if self.store.email_registered(email):
            raise ConflictError("Email already registered in the system")

        invitation = InvitationRecord(
            invitation_id=uuid.uuid4(),
            organization_id=tenant_id,
            email=email,
            role=role,
            token=self.tokens.generate_invitation_token(),
            status=InvitationStatus.PENDING.value,
            expires_at=self.tokens.calculate_expiry_date(),
            care_type=care_type if role == "nurse" else None,
            invited_by=invited_by,
        )
        created = self.store.insert(invitation)
        if self.audit:
            self.audit.log_invitation_event(
                tenant_id, EventLogService.INVITATION_CREATED, created.invitation_id,
                actor_user_id=invited_by, role=role,
            )
        logger.info(f"Created {role} invitation {created.invitation_id} in organization {tenant_id}")
        return created

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Public token check used by the signup page.

        Raises NotFoundError for an unknown token; an invalid one returns
        {"valid": False, "reason": ...}.
        """
        if not token:
            raise ValidationError("token_invalid", "Token is required")

        invitation = self.store.find_by_token(token)
        if invitation is None:
            raise NotFoundError("Invalid token")

        result = self.tokens.validate_token(invitation)
        if not result.valid:
            return result.to_dict()

        return {
            "valid": True,
            "email": invitation.email,
            "role": invitation.role,
            "organization_name": invitation.organization_name or "Unknown Organization",
        }

    def cancel_invitation(
        self,
        tenant_id: uuid.UUID,
        invitation_id: uuid.UUID,
        actor_user_id: Optional[uuid.UUID] = None,
    ) -> InvitationRecord:
        invitation = self.store.find_by_id(tenant_id, invitation_id)
        if invitation is None:
            raise NotFoundError(f"Invitation {invitation_id} not found")

        check = self.tokens.can_cancel_invitation(invitation.status, invitation.expires_at)
        if not check.can:
            raise ValidationError("cannot_cancel", check.reason)

        self.store.update_status(invitation_id, InvitationStatus.CANCELLED.value)
        invitation.status = InvitationStatus.CANCELLED.value
        if self.audit:
            self.audit.log_invitation_event(
                tenant_id, EventLogService.INVITATION_CANCELLED, invitation_id,
                actor_user_id=actor_user_id, role=invitation.role,
            )
        logger.info(f"Cancelled invitation {invitation_id}")
        return invitation

    def list_invitations(self, tenant_id: uuid.UUID, status: Optional[str] = None) -> List[InvitationRecord]:
        return self.store.list_for_tenant(tenant_id, status)
