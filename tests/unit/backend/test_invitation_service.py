"""
Unit tests for InvitationService and SignupService.

Runs against an in-memory InvitationStore and a fixed token clock.
"""

import pytest
import uuid
from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', '..', 'backend'))

from carecycle.services.errors import ConflictError, NotFoundError, ValidationError
from carecycle.services.event_log import EventLogService
from carecycle.services.invitation_service import InvitationService
from carecycle.services.invitation_store import InvitationRecord, InvitationStore
from carecycle.services.invitation_token import TokenService
from carecycle.services.signup_service import (
    SignupService,
    build_profile_data,
    validate_signup_request,
)


NOW = datetime(2026, 10, 19, 12, 0, 0)
TENANT = uuid.uuid4()
ADMIN_ID = uuid.uuid4()


class InMemoryInvitationStore(InvitationStore):

    def __init__(self, registered_emails=()):
        self.invitations = {}
        self.registered = {email.lower() for email in registered_emails}

    def find_by_token(self, token):
        for invitation in self.invitations.values():
            if invitation.token == token:
                return invitation
        return None

    def find_by_id(self, tenant_id, invitation_id):
        invitation = self.invitations.get(invitation_id)
        if invitation is None or invitation.organization_id != tenant_id:
            return None
        return invitation

    def insert(self, invitation):
        invitation.created_at = NOW
        self.invitations[invitation.invitation_id] = invitation
        return invitation

    def update_status(self, invitation_id, status):
        self.invitations[invitation_id].status = status

    def find_pending_for_email(self, tenant_id, email):
        return [
            i for i in self.invitations.values()
            if i.organization_id == tenant_id and i.email == email.lower() and i.status == "pending"
        ]

    def list_for_tenant(self, tenant_id, status=None):
        rows = [i for i in self.invitations.values() if i.organization_id == tenant_id]
        if status:
            rows = [i for i in rows if i.status == status]
        return rows

    def email_registered(self, email):
        return email.lower() in self.registered


def seed(store, role="nurse", status="pending", expires_in=timedelta(days=3), care_type="Outpatient"):
    invitation = InvitationRecord(
        invitation_id=uuid.uuid4(),
        organization_id=TENANT,
        email=f"{role}@clinic.example",
        role=role,
        token=uuid.uuid4().hex * 2,
        status=status,
        expires_at=NOW + expires_in,
        care_type=care_type if role == "nurse" else None,
        organization_name="North Clinic",
    )
    store.invitations[invitation.invitation_id] = invitation
    return invitation


@pytest.fixture
def tokens():
    return TokenService(now=lambda: NOW)


@pytest.fixture
def store():
    return InMemoryInvitationStore(registered_emails=["taken@clinic.example"])


@pytest.fixture
def audit():
    return MagicMock(spec=EventLogService)


@pytest.fixture
def service(store, tokens, audit):
    return InvitationService(store, token_service=tokens, audit=audit)


# =============================================================================
# Test create_invitation
# =============================================================================

class TestCreateInvitation:

    def test_creates_pending_invitation(self, service, store, audit):
        invitation = service.create_invitation(TENANT, " Nurse@Clinic.Example ", "nurse", ADMIN_ID, "Outpatient")

        assert invitation.email == "nurse@clinic.example"
        assert invitation.status == "pending"
        assert len(invitation.token) == 64
        assert invitation.expires_at == NOW + timedelta(days=7)
        assert invitation.invitation_id in store.invitations
        assert audit.log_invitation_event.call_args.args[1] == EventLogService.INVITATION_CREATED

    def test_doctor_without_care_type(self, service):
        invitation = service.create_invitation(TENANT, "doc@clinic.example", "doctor", ADMIN_ID)
        assert invitation.care_type is None

    @pytest.mark.parametrize("email,role,care_type,reason", [
        ("not-an-email", "doctor", None, "invalid_email"),
        ("a@clinic.example", "patient", None, "invalid_role"),
        ("a@clinic.example", "nurse", None, "care_type_required"),
        ("a@clinic.example", "admin", "Outpatient", "care_type_not_allowed"),
    ])
    def test_validation(self, service, email, role, care_type, reason):
        with pytest.raises(ValidationError) as exc_info:
            service.create_invitation(TENANT, email, role, ADMIN_ID, care_type)
        assert exc_info.value.reason == reason

    def test_duplicate_pending_invitation(self, service):
        service.create_invitation(TENANT, "doc@clinic.example", "doctor", ADMIN_ID)

        with pytest.raises(ConflictError, match="already invited"):
            service.create_invitation(TENANT, "doc@clinic.example", "doctor", ADMIN_ID)

    def test_registered_email(self, service):
        with pytest.raises(ConflictError, match="already registered"):
            service.create_invitation(TENANT, "taken@clinic.example", "doctor", ADMIN_ID)


# =============================================================================
# Test verify_token
# =============================================================================

class TestVerifyToken:

    def test_valid_token(self, service, store):
        invitation = seed(store)

        result = service.verify_token(invitation.token)

        assert result == {
            "valid": True,
            "email": "nurse@clinic.example",
            "role": "nurse",
            "organization_name": "North Clinic",
        }

    def test_unknown_organization_name(self, service, store):
        invitation = seed(store)
        invitation.organization_name = None

        assert service.verify_token(invitation.token)["organization_name"] == "Unknown Organization"

    def test_expired_token(self, service, store):
        invitation = seed(store, expires_in=timedelta(seconds=-1))
        assert service.verify_token(invitation.token) == {"valid": False, "reason": "Token expired"}

    def test_used_token(self, service, store):
        invitation = seed(store, status="accepted")
        assert service.verify_token(invitation.token)["reason"] == "Token already used"

    def test_unknown_token(self, service):
        with pytest.raises(NotFoundError):
            service.verify_token("f" * 64)

    def test_empty_token(self, service):
        with pytest.raises(ValidationError):
            service.verify_token("")


# =============================================================================
# Test cancel_invitation / list_invitations
# =============================================================================

class TestCancelInvitation:

    def test_cancel_pending(self, service, store, audit):
        invitation = seed(store)

        result = service.cancel_invitation(TENANT, invitation.invitation_id, actor_user_id=ADMIN_ID)

        assert result.status == "cancelled"
        assert store.invitations[invitation.invitation_id].status == "cancelled"
        assert audit.log_invitation_event.call_args.args[1] == EventLogService.INVITATION_CANCELLED

    def test_cancel_accepted_rejected(self, service, store):
        invitation = seed(store, status="accepted")

        with pytest.raises(ValidationError) as exc_info:
            service.cancel_invitation(TENANT, invitation.invitation_id)

        assert exc_info.value.reason == "cannot_cancel"
        assert exc_info.value.message == "Cannot cancel an accepted invitation"

    def test_cancel_expired_rejected(self, service, store):
        invitation = seed(store, expires_in=timedelta(0))

        with pytest.raises(ValidationError):
            service.cancel_invitation(TENANT, invitation.invitation_id)

    def test_cancel_other_tenant_not_found(self, service, store):
        invitation = seed(store)

        with pytest.raises(NotFoundError):
            service.cancel_invitation(uuid.uuid4(), invitation.invitation_id)

    def test_list_filters_by_status(self, service, store):
        seed(store, role="doctor", status="pending")
        seed(store, role="admin", status="cancelled")

        assert [i.role for i in service.list_invitations(TENANT, "pending")] == ["doctor"]
        assert len(service.list_invitations(TENANT)) == 2


# =============================================================================
# Test SignupService
# =============================================================================

class TestValidateSignupRequest:

    @pytest.mark.parametrize("name,password,expected", [
        ("", "secret1", "Name is required"),
        ("   ", "secret1", "Name is required"),
        ("J", "secret1", "Name must be at least 2 characters"),
        ("Jo", "12345", "Password must be at least 6 characters"),
        ("Jo", None, "Password must be at least 6 characters"),
        ("Jo", "123456", None),
    ])
    def test_rules(self, name, password, expected):
        assert validate_signup_request(name, password) == expected


class TestSignupWithInvitation:

    @pytest.fixture
    def provisioner(self):
        provisioner = MagicMock()
        provisioner.provision_user.side_effect = lambda profile, password: SimpleNamespace(
            user_id=uuid.uuid4(), email=profile["email"], name=profile["name"],
        )
        return provisioner

    @pytest.fixture
    def departments(self):
        lookup = MagicMock()
        lookup.find_department_id.return_value = uuid.uuid4()
        return lookup

    @pytest.fixture
    def signup(self, store, tokens, provisioner, departments, audit):
        return SignupService(store, provisioner, departments, token_service=tokens, audit=audit)

    def test_nurse_signup(self, signup, store, provisioner, departments, audit):
        invitation = seed(store)

        result = signup.signup_with_invitation(invitation.token, " Jane Doe ", "secret1")

        assert result["message"] == "Account created successfully"
        assert result["user"]["email"] == "nurse@clinic.example"
        assert result["user"]["name"] == "Jane Doe"
        profile = provisioner.provision_user.call_args.args[0]
        assert profile["approval_status"] == "approved"
        assert profile["department_id"] == departments.find_department_id.return_value
        assert store.invitations[invitation.invitation_id].status == "accepted"
        assert audit.log_invitation_event.call_args.args[1] == EventLogService.INVITATION_ACCEPTED

    def test_doctor_skips_department_lookup(self, signup, store, departments):
        invitation = seed(store, role="doctor")

        signup.signup_with_invitation(invitation.token, "Dr Who", "secret1")

        departments.find_department_id.assert_not_called()

    def test_bad_input_rejected_first(self, signup, provisioner):
        with pytest.raises(ValidationError) as exc_info:
            signup.signup_with_invitation("f" * 64, "J", "secret1")

        assert exc_info.value.reason == "invalid_signup"
        provisioner.provision_user.assert_not_called()

    def test_unknown_token(self, signup):
        with pytest.raises(NotFoundError):
            signup.signup_with_invitation("f" * 64, "Jane", "secret1")

    def test_used_token(self, signup, store, provisioner):
        invitation = seed(store, status="accepted")

        with pytest.raises(ValidationError) as exc_info:
            signup.signup_with_invitation(invitation.token, "Jane", "secret1")

        assert exc_info.value.reason == "token_invalid"
        provisioner.provision_user.assert_not_called()

    def test_registered_email(self, signup, store):
        invitation = seed(store)
        store.registered.add(invitation.email)

        with pytest.raises(ConflictError):
            signup.signup_with_invitation(invitation.token, "Jane", "secret1")

    def test_department_not_found(self, signup, store, departments):
        invitation = seed(store)
        departments.find_department_id.return_value = None

        with pytest.raises(ValidationError) as exc_info:
            signup.signup_with_invitation(invitation.token, "Jane", "secret1")

        assert exc_info.value.reason == "department_not_found"

    def test_status_update_failure_keeps_account(self, signup, store, provisioner):
        invitation = seed(store)
        store.update_status = MagicMock(side_effect=RuntimeError("db down"))

        result = signup.signup_with_invitation(invitation.token, "Jane", "secret1")

        assert result["message"] == "Account created successfully"
        provisioner.provision_user.assert_called_once()

    def test_build_profile_data(self, store):
        invitation = seed(store, role="doctor")

        profile = build_profile_data(invitation, "  Dr Who ")

        assert profile["name"] == "Dr Who"
        assert profile["organization_id"] == TENANT
        assert profile["department_id"] is None
