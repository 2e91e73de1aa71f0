"""
Organization (tenant), policy, department, and user models.

Every domain row carries an organization_id; the organization is the
isolation boundary for patients, schedules, and invitations.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Boolean, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from carecycle.db.postgres import Base


class Organization(Base):
    """Tenant table."""

    __tablename__ = "organization"

    organization_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    status = Column(String(50), default="active", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    users = relationship("AppUser", back_populates="organization")
    departments = relationship("Department", back_populates="organization")
    policy = relationship("OrganizationPolicy", back_populates="organization", uselist=False)


class OrganizationPolicy(Base):
    """Per-organization scheduling policy.

    auto_hold_overdue_days: pause active schedules whose next due date is
    older than this many days. Null or 0 disables auto-hold.
    """

    __tablename__ = "organization_policy"

    organization_id = Column(
        UUID(as_uuid=True), ForeignKey("organization.organization_id"), primary_key=True
    )
    auto_hold_overdue_days = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    organization = relationship("Organization", back_populates="policy")


class Department(Base):
    """Care department (care type) within an organization.

    Nurse invitations bind to a department by name.
    """

    __tablename__ = "department"
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_department_org_name"),
    )

    department_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(
        UUID(as_uuid=True), ForeignKey("organization.organization_id"), nullable=False
    )
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    organization = relationship("Organization", back_populates="departments")


class AppUser(Base):
    """Application user.

    role is one of admin, doctor, nurse, super_admin. Nurses carry a
    department_id; other roles leave it null.
    """

    __tablename__ = "app_user"

    user_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(
        UUID(as_uuid=True), ForeignKey("organization.organization_id"), nullable=True
    )
    department_id = Column(
        UUID(as_uuid=True), ForeignKey("department.department_id"), nullable=True
    )
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, default="nurse")
    approval_status = Column(String(50), default="pending", nullable=False)
    password_hash = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    # Relationships
    organization = relationship("Organization", back_populates="users")
    department = relationship("Department")

    @property
    def is_admin(self) -> bool:
        """Admins and super admins may manage invitations."""
        return self.role in ("admin", "super_admin")

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "user_id": str(self.user_id),
            "organization_id": str(self.organization_id) if self.organization_id else None,
            "department_id": str(self.department_id) if self.department_id else None,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "approval_status": self.approval_status,
        }
