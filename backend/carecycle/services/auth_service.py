"""
Authentication Service.

Handles:
- Email/password authentication
- JWT access token generation and validation
- User lookup
- User provisioning for invitation signup
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional, Tuple
import logging

import jwt
import bcrypt
from sqlalchemy.exc import IntegrityError

from carecycle.config import config
from carecycle.db.postgres import get_db_session
from carecycle.models.tenant import AppUser
from carecycle.services.errors import ConflictError

logger = logging.getLogger("service.AuthService")

JWT_ALGORITHM = "HS256"


class AuthService:
    """Service for handling user authentication."""

    def __init__(self):
        self.jwt_secret = config.JWT_SECRET
        self.jwt_algorithm = JWT_ALGORITHM

    # =========================================================================
    # Password Hashing
    # =========================================================================

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt."""
        salt = bcrypt.gensalt()
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against its hash."""
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))

    # =========================================================================
    # JWT Token Management
    # =========================================================================

    def create_access_token(self, user_id: uuid.UUID, organization_id: Optional[uuid.UUID], role: str) -> str:
        """Create a short-lived access token."""
        expire = datetime.utcnow() + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
        payload = {
            "sub": str(user_id),
            "organization_id": str(organization_id) if organization_id else None,
            "role": role,
            "exp": expire,
            "type": "access",
        }
        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    def decode_token(self, token: str) -> Optional[dict]:
        """Decode and validate a JWT token."""
        try:
            payload = jwt.decode(token, self.jwt_secret, algorithms=[self.jwt_algorithm])
            return payload
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

    # =========================================================================
    # User Lookup
    # =========================================================================

    def get_user_by_email(self, email: str) -> Optional[AppUser]:
        """Find an active user by email."""
        with get_db_session() as session:
            user = session.query(AppUser).filter(
                AppUser.email == email.lower(),
                AppUser.is_active.is_(True)
            ).first()
            if user:
                session.expunge(user)
            return user

    def get_user_by_id(self, user_id: uuid.UUID) -> Optional[AppUser]:
        """Find an active user by ID."""
        with get_db_session() as session:
            user = session.query(AppUser).filter(
                AppUser.user_id == user_id,
                AppUser.is_active.is_(True)
            ).first()
            if user:
                session.expunge(user)
            return user

    # =========================================================================
    # Provisioning
    # =========================================================================

    def provision_user(self, profile_data: dict, password: str) -> AppUser:
        """Create the authenticated principal for an accepted invitation.

        Raises ConflictError if the email is already taken.
        """
        with get_db_session() as session:
            user = AppUser(
                organization_id=profile_data["organization_id"],
                department_id=profile_data.get("department_id"),
                email=profile_data["email"],
                name=profile_data["name"],
                role=profile_data["role"],
                approval_status=profile_data.get("approval_status", "approved"),
                password_hash=self.hash_password(password),
                is_active=True,
            )
            session.add(user)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ConflictError("Email already registered in the system")
            session.refresh(user)
            session.expunge(user)

            logger.info(f"Provisioned {user.role} user {user.user_id}")
            return user

    # =========================================================================
    # Authentication
    # =========================================================================

    def authenticate_email(self, email: str, password: str) -> Tuple[Optional[dict], Optional[str]]:
        """Authenticate user with email/password.

        Returns:
            Tuple of (auth_response, error_message)
        """
        with get_db_session() as session:
            user = session.query(AppUser).filter(
                AppUser.email == email.lower(),
                AppUser.is_active.is_(True)
            ).first()

            if not user or not user.password_hash:
                return None, "Invalid email or password"

            if not self.verify_password(password, user.password_hash):
                return None, "Invalid email or password"

            if user.approval_status != "approved":
                return None, "Account is pending approval"

            access_token = self.create_access_token(user.user_id, user.organization_id, user.role)

            user.last_login_at = datetime.utcnow()
            session.commit()

            return {
                "access_token": access_token,
                "token_type": "bearer",
                "expires_in": config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
                "user": user.to_dict(),
            }, None

    def validate_access_token(self, access_token: str) -> Optional[AppUser]:
        """Validate an access token and return the user."""
        payload = self.decode_token(access_token)
        if not payload or payload.get("type") != "access":
            return None

        user_id = payload.get("sub")
        if not user_id:
            return None

        try:
            return self.get_user_by_id(uuid.UUID(user_id))
        except ValueError:
            return None


# Singleton instance
_auth_service = None

def get_auth_service() -> AuthService:
    """Get the singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service


def get_user_from_token(db, token: str) -> Optional[AppUser]:
    """
    Get user from access token.

    Convenience function for route handlers that already have a db session.

    Args:
        db: SQLAlchemy session (unused, but matches pattern)
        token: JWT access token

    Returns:
        AppUser if valid token, None otherwise
    """
    auth_service = get_auth_service()
    return auth_service.validate_access_token(token)
