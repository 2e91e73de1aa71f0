"""
Invitations API Blueprint

Admin routes (admin / super_admin only):
- POST /api/v1/admin/invitations - Create invitation
- GET /api/v1/admin/invitations - List invitations (?status=pending)
- DELETE /api/v1/admin/invitations/<id> - Cancel invitation

Public routes:
- GET /api/v1/auth/invitations/verify/<token> - Verify invitation token
- POST /api/v1/auth/signup/with-invitation - Create account from invitation
"""

from flask import Blueprint, request, jsonify, g

from carecycle.api.decorators import require_auth, require_admin, service_errors, parse_uuid
from carecycle.db.postgres import get_db_session
from carecycle.services.auth_service import get_auth_service
from carecycle.services.event_log import EventLogService
from carecycle.services.invitation_service import InvitationService
from carecycle.services.invitation_store import SqlInvitationStore
from carecycle.services.signup_service import SignupService, SqlDepartmentLookup

invitations_bp = Blueprint('invitations_api', __name__, url_prefix='/api/v1')


# =============================================================================
# Admin
# =============================================================================

@invitations_bp.route('/admin/invitations', methods=['POST'])
@require_auth
@require_admin
@service_errors
def create_invitation():
    """
    Create a new invitation.

    Request body:
    {
        "email": "nurse@clinic.example",
        "role": "admin" | "doctor" | "nurse",
        "care_type": "Outpatient"     // nurse only
    }
    """
    data = request.get_json(silent=True) or {}

    with get_db_session() as db:
        service = InvitationService(SqlInvitationStore(db), audit=EventLogService(db))
        invitation = service.create_invitation(
            tenant_id=g.tenant_id,
            email=data.get("email") or "",
            role=data.get("role") or "",
            invited_by=g.user_id,
            care_type=data.get("care_type"),
        )

    return jsonify(invitation.to_dict()), 201


@invitations_bp.route('/admin/invitations', methods=['GET'])
@require_auth
@require_admin
@service_errors
def list_invitations():
    status = request.args.get('status')

    with get_db_session() as db:
        service = InvitationService(SqlInvitationStore(db))
        invitations = service.list_invitations(g.tenant_id, status)

    return jsonify([invitation.to_dict() for invitation in invitations])


@invitations_bp.route('/admin/invitations/<invitation_id>', methods=['DELETE'])
@require_auth
@require_admin
@service_errors
def cancel_invitation(invitation_id):
    with get_db_session() as db:
        service = InvitationService(SqlInvitationStore(db), audit=EventLogService(db))
        invitation = service.cancel_invitation(g.tenant_id, parse_uuid(invitation_id), actor_user_id=g.user_id)

    return jsonify({"ok": True, "id": str(invitation.invitation_id), "status": invitation.status})


# =============================================================================
# Public
# =============================================================================

@invitations_bp.route('/auth/invitations/verify/<token>', methods=['GET'])
@service_errors
def verify_invitation(token):
    """Verify a token; invalid tokens return 400 with the reason."""
    with get_db_session() as db:
        service = InvitationService(SqlInvitationStore(db))
        result = service.verify_token(token)

    status_code = 200 if result.get("valid") else 400
    return jsonify(result), status_code


@invitations_bp.route('/auth/signup/with-invitation', methods=['POST'])
@service_errors
def signup_with_invitation():
    """
    Create an account from an invitation token.

    Request body:
    {
        "token": "<64 hex chars>",
        "name": "Jane Doe",
        "password": "******"
    }
    """
    data = request.get_json(silent=True) or {}

    with get_db_session() as db:
        service = SignupService(
            invitation_store=SqlInvitationStore(db),
            provisioner=get_auth_service(),
            department_lookup=SqlDepartmentLookup(db),
            audit=EventLogService(db),
        )
        result = service.signup_with_invitation(
            token=data.get("token") or "",
            name=data.get("name") or "",
            password=data.get("password") or "",
        )

    return jsonify(result), 201
