"""
Event log model for audit.

Append-only ledger with PHI-safe payloads. Schedule state transitions
are recorded here and read back as transition history.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID, JSONB

from carecycle.db.postgres import Base


class EventLog(Base):
    """
    Append-only audit ledger.

    PHI-safe payloads only - ids and status values, no patient names.
    """

    __tablename__ = "event_log"

    event_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(
        UUID(as_uuid=True), ForeignKey("organization.organization_id"), nullable=False
    )
    event_type = Column(String(100), nullable=False)  # Schedule.StatusChanged, Invitation.Accepted, etc.

    # Optional references
    schedule_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    actor_user_id = Column(UUID(as_uuid=True), nullable=True)

    # Transition fields (Schedule.StatusChanged)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=True)
    reason = Column(Text, nullable=True)

    # PHI-safe payload
    payload_json = Column(JSONB, nullable=True)

    # Timestamps and correlation
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    correlation_id = Column(String(100), nullable=True)
