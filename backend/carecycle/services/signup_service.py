"""
Signup from an invitation.

Flow:
1. Validate name/password
2. Resolve and validate the invitation token
3. Reject an already-registered email
4. Nurse invitations: resolve care_type to a department in the invitation's organization
5. Provision the user (bcrypt password via AuthService)
6. Mark the invitation accepted

Step 6 failing is logged and not rolled back; the user already exists and
the invitation simply stays pending.
"""

from typing import Any, Dict, Optional
import logging
import uuid

from sqlalchemy.orm import Session

from carecycle.models import Department, InvitationStatus
from carecycle.services.errors import ConflictError, NotFoundError, ValidationError
from carecycle.services.event_log import EventLogService
from carecycle.services.invitation_store import InvitationRecord, InvitationStore
from carecycle.services.invitation_token import TokenService

logger = logging.getLogger("service.SignupService")

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6


def validate_signup_request(name: Optional[str], password: Optional[str]) -> Optional[str]:
    """Error message for a bad signup request, or None if it is acceptable."""
    if not name or not name.strip():
        return "Name is required"
    if len(name.strip()) < MIN_NAME_LENGTH:
        return "Name must be at least 2 characters"
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return "Password must be at least 6 characters"
    return None


def build_profile_data(
    invitation: InvitationRecord,
    name: str,
    department_id: Optional[uuid.UUID] = None,
) -> Dict[str, Any]:
    """Profile fields handed to the identity provisioner."""
    return {
        "email": invitation.email,
        "role": invitation.role,
        "organization_id": invitation.organization_id,
        "approval_status": "approved",
        "name": name.strip(),
        "department_id": department_id,
    }


class SqlDepartmentLookup:
    """Resolves a care type (department name) within an organization."""

    def __init__(self, db: Session):
        self.db = db

    def find_department_id(self, organization_id: uuid.UUID, name: str) -> Optional[uuid.UUID]:
        department = self.db.query(Department).filter(
            Department.organization_id == organization_id,
            Department.name == name,
            Department.is_active.is_(True),
        ).first()
        return department.department_id if department else None


class SignupService:
    """Turns a valid invitation into a provisioned user."""

    def __init__(
        self,
        invitation_store: InvitationStore,
        provisioner,
        department_lookup,
        token_service: Optional[TokenService] = None,
        audit: Optional[EventLogService] = None,
    ):
        self.invitations = invitation_store
        self.provisioner = provisioner
        self.departments = department_lookup
        self.tokens = token_service or TokenService()
        self.audit = audit

    def signup_with_invitation(self, token: str, name: str, password: str) -> Dict[str, Any]:
        """Create an account from an invitation token.

        Raises:
            ValidationError: bad input, invalid token, or unresolved department
            NotFoundError: unknown token
            ConflictError: email already registered
        """
        error = validate_signup_request(name, password)
        if error:
            raise ValidationError("invalid_signup", error)
        if not token:
            raise ValidationError("token_invalid", "Token is required")

        invitation = self.invitations.find_by_token(token)
        if invitation is None:
            raise NotFoundError("Invalid or expired invitation token")

        result = self.tokens.validate_token(invitation)
        if not result.valid:
            raise ValidationError("token_invalid", f"Invitation is not valid: {result.reason}")

        if self.invitations.email_registered(invitation.email):
            raise ConflictError("Email is already registered. Please login instead.")

        department_id = None
        if invitation.role == "nurse":
            if not invitation.care_type:
                raise ValidationError("care_type_required", "Nurse invitation must have care_type")
            department_id = self.departments.find_department_id(
                invitation.organization_id, invitation.care_type
            )
            if department_id is None:
                raise ValidationError(
                    "department_not_found",
                    f"Department not found for care_type: {invitation.care_type}",
                )

        profile = build_profile_data(invitation, name, department_id)
        user = self.provisioner.provision_user(profile, password)

        try:
            self.invitations.update_status(invitation.invitation_id, InvitationStatus.ACCEPTED.value)
            if self.audit:
                self.audit.log_invitation_event(
                    invitation.organization_id, EventLogService.INVITATION_ACCEPTED,
                    invitation.invitation_id, actor_user_id=user.user_id, role=invitation.role,
                )
        except Exception as e:
            logger.error(f"Failed to mark invitation {invitation.invitation_id} accepted: {e}")

        logger.info(f"Signup completed for invitation {invitation.invitation_id}")
        return {
            "message": "Account created successfully",
            "user": {
                "id": str(user.user_id),
                "email": user.email,
                "name": user.name,
            },
        }
