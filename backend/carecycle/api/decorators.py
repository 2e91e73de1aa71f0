"""
Shared route decorators.

- require_auth: Bearer JWT -> g.user / g.user_id / g.tenant_id
- require_admin: admin or super_admin only (after require_auth)
- service_errors: service exceptions -> {"ok": false, "error", "reason"} JSON
"""

from functools import wraps
from uuid import UUID
import logging

from flask import request, jsonify, g

from carecycle.db.postgres import get_db_session
from carecycle.services.auth_service import get_user_from_token
from carecycle.services.errors import (
    CarecycleError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger("api")


def require_auth(f):
    """Decorator to require authentication."""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return jsonify({"ok": False, "error": "Missing or invalid Authorization header"}), 401

        token = auth_header[7:]  # Remove 'Bearer ' prefix

        try:
            with get_db_session() as db:
                user = get_user_from_token(db, token)
                if not user:
                    return jsonify({"ok": False, "error": "Invalid or expired token"}), 401

                g.user = user
                g.user_id = user.user_id
                g.tenant_id = user.organization_id
        except Exception as e:
            logger.error(f"Auth error: {e}")
            return jsonify({"ok": False, "error": "Authentication failed"}), 401

        if g.tenant_id is None:
            return jsonify({"ok": False, "error": "User does not belong to an organization"}), 403

        return f(*args, **kwargs)
    return decorated


def require_admin(f):
    """Decorator to require an admin or super_admin user."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if g.user.role not in ("admin", "super_admin"):
            return jsonify({"ok": False, "error": "Forbidden: Admin access required"}), 403
        return f(*args, **kwargs)
    return decorated


def error_response(error: CarecycleError):
    """JSON body and status code for a service exception."""
    if isinstance(error, ValidationError):
        return jsonify(error.to_dict()), 400
    if isinstance(error, NotFoundError):
        return jsonify({"ok": False, "error": str(error), "reason": "not_found"}), 404
    if isinstance(error, ConflictError):
        return jsonify({"ok": False, "error": str(error), "reason": "conflict"}), 409
    return jsonify({"ok": False, "error": str(error), "reason": "error"}), 400


def service_errors(f):
    """Decorator mapping service exceptions to JSON error responses."""
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except CarecycleError as e:
            return error_response(e)
    return decorated


def parse_uuid(value: str) -> UUID:
    """Path/body id -> UUID; malformed ids are treated as unknown."""
    try:
        return UUID(str(value))
    except ValueError:
        raise NotFoundError(f"Unknown id: {value}")
