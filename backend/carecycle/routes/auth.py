"""
Authentication Routes.

Endpoints:
- POST /api/v1/auth/login - Login with email/password
- GET /api/v1/auth/me - Get current user profile
"""

from flask import Blueprint, request, jsonify

from carecycle.services.auth_service import get_auth_service


bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _get_current_user():
    """Get current user from Authorization header."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None

    token = auth_header[7:]  # Remove "Bearer " prefix
    auth_service = get_auth_service()
    return auth_service.validate_access_token(token)


# =============================================================================
# Login
# =============================================================================

@bp.route("/login", methods=["POST"])
def login():
    """Login with email/password."""
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email:
        return jsonify({"ok": False, "error": "Email is required"}), 400
    if not password:
        return jsonify({"ok": False, "error": "Password is required"}), 400

    auth_service = get_auth_service()
    auth_response, error = auth_service.authenticate_email(email=email, password=password)

    if error:
        return jsonify({"ok": False, "error": error}), 401

    return jsonify({
        "ok": True,
        **auth_response,
    })


# =============================================================================
# Current user
# =============================================================================

@bp.route("/me", methods=["GET"])
def me():
    """Get current user profile."""
    user = _get_current_user()
    if not user:
        return jsonify({"ok": False, "error": "Unauthorized"}), 401

    return jsonify({
        "ok": True,
        "user": user.to_dict(),
    })
