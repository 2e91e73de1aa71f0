"""
Invitation model.

A single-use credential that lets one email join one organization with
one role. Expiry is computed from expires_at, never stored as a status.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import enum

from carecycle.db.postgres import Base


class InvitationStatus(str, enum.Enum):
    """Stored invitation status. Transitions only out of PENDING."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"


class Invitation(Base):
    """Organization invitation."""

    __tablename__ = "invitation"

    invitation_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(
        UUID(as_uuid=True),
        ForeignKey("organization.organization_id"),
        nullable=False
    )
    email = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False)  # admin, doctor, nurse
    care_type = Column(String(100), nullable=True)  # nurse only: department name
    token = Column(String(64), nullable=False, unique=True, index=True)
    status = Column(String(20), default=InvitationStatus.PENDING.value, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    invited_by = Column(
        UUID(as_uuid=True), ForeignKey("app_user.user_id"), nullable=True
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    organization = relationship("Organization")
