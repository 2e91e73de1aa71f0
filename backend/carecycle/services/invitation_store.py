"""
Invitation persistence boundary.

Rows are mapped to InvitationRecord by invitation_from_row; nothing above
this module touches the ORM model directly.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session

from carecycle.models import AppUser, Invitation, InvitationStatus, Organization


@dataclass
class InvitationRecord:
    invitation_id: uuid.UUID
    organization_id: uuid.UUID
    email: str
    role: str
    token: str
    status: str
    expires_at: datetime
    care_type: Optional[str] = None
    invited_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    organization_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """API shape. The token is included only for the inviting admin."""
        return {
            "id": str(self.invitation_id),
            "organization_id": str(self.organization_id),
            "email": self.email,
            "role": self.role,
            "care_type": self.care_type,
            "token": self.token,
            "status": self.status,
            "expires_at": self.expires_at.isoformat(),
            "invited_by": str(self.invited_by) if self.invited_by else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def invitation_from_row(row: Invitation, organization_name: Optional[str] = None) -> InvitationRecord:
    return InvitationRecord(
        invitation_id=row.invitation_id,
        organization_id=row.organization_id,
        email=row.email,
        role=row.role,
        token=row.token,
        status=row.status,
        expires_at=row.expires_at,
        care_type=row.care_type,
        invited_by=row.invited_by,
        created_at=row.created_at,
        organization_name=organization_name,
    )


class InvitationStore(ABC):
    """Invitation persistence used by the invitation and signup services."""

    @abstractmethod
    def find_by_token(self, token: str) -> Optional[InvitationRecord]:
        pass

    @abstractmethod
    def find_by_id(self, tenant_id: uuid.UUID, invitation_id: uuid.UUID) -> Optional[InvitationRecord]:
        pass

    @abstractmethod
    def insert(self, invitation: InvitationRecord) -> InvitationRecord:
        pass

    @abstractmethod
    def update_status(self, invitation_id: uuid.UUID, status: str) -> None:
        pass

    @abstractmethod
    def find_pending_for_email(self, tenant_id: uuid.UUID, email: str) -> List[InvitationRecord]:
        pass

    @abstractmethod
    def list_for_tenant(self, tenant_id: uuid.UUID, status: Optional[str] = None) -> List[InvitationRecord]:
        """Newest first."""
        pass

    @abstractmethod
    def email_registered(self, email: str) -> bool:
        """True when any user already has this email."""
        pass


class SqlInvitationStore(InvitationStore):
    """SQLAlchemy-backed invitation store."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_token(self, token: str) -> Optional[InvitationRecord]:
        result = self.db.query(Invitation, Organization.name).outerjoin(
            Organization, Organization.organization_id == Invitation.organization_id
        ).filter(Invitation.token == token).first()
        if result is None:
            return None
        row, organization_name = result
        return invitation_from_row(row, organization_name)

    def find_by_id(self, tenant_id: uuid.UUID, invitation_id: uuid.UUID) -> Optional[InvitationRecord]:
        row = self.db.query(Invitation).filter(
            Invitation.invitation_id == invitation_id,
            Invitation.organization_id == tenant_id,
        ).first()
        return invitation_from_row(row) if row else None

    def insert(self, invitation: InvitationRecord) -> InvitationRecord:
        row = Invitation(
            invitation_id=invitation.invitation_id,
            organization_id=invitation.organization_id,
            email=invitation.email,
            role=invitation.role,
            care_type=invitation.care_type,
            token=invitation.token,
            status=invitation.status,
            expires_at=invitation.expires_at,
            invited_by=invitation.invited_by,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return invitation_from_row(row)

    def update_status(self, invitation_id: uuid.UUID, status: str) -> None:
        row = self.db.query(Invitation).filter(Invitation.invitation_id == invitation_id).first()
        if row is None:
            return
        row.status = getattr(status, "value", status)
        row.updated_at = datetime.utcnow()
        self.db.commit()

    def find_pending_for_email(self, tenant_id: uuid.UUID, email: str) -> List[InvitationRecord]:
        rows = self.db.query(Invitation).filter(
            Invitation.organization_id == tenant_id,
            func.lower(Invitation.email) == email.lower(),
            Invitation.status == InvitationStatus.PENDING.value,
        ).all()
        return [invitation_from_row(row) for row in rows]

    def list_for_tenant(self, tenant_id: uuid.UUID, status: Optional[str] = None) -> List[InvitationRecord]:
        query = self.db.query(Invitation).filter(Invitation.organization_id == tenant_id)
        if status:
            query = query.filter(Invitation.status == status)
        rows = query.order_by(Invitation.created_at.desc()).all()
        return [invitation_from_row(row) for row in rows]

    def email_registered(self, email: str) -> bool:
        return self.db.query(AppUser.user_id).filter(
            func.lower(AppUser.email) == email.lower()
        ).first() is not None
