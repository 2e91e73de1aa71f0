"""
EventLogService: append-only audit event logging.

PHI-safe payloads only - no patient names, MRN, DOB, etc.
Schedule state transitions are stored here and read back as history.
"""

import uuid
from typing import Optional, Dict, Any, List
from sqlalchemy.orm import Session as DbSession

from carecycle.db.postgres import get_db_session
from carecycle.models import EventLog
from carecycle.services.schedule_types import StateTransition


class EventLogService:
    """
    Append-only audit event logging.

    Event types:
    - Schedule.StatusChanged: pause/resume/auto-hold and review resolution
    - Invitation.Created / Invitation.Cancelled / Invitation.Accepted
    """

    # Standard event types
    SCHEDULE_STATUS_CHANGED = "Schedule.StatusChanged"
    SCHEDULE_REVIEW_CLEARED = "Schedule.ReviewCleared"
    INVITATION_CREATED = "Invitation.Created"
    INVITATION_CANCELLED = "Invitation.Cancelled"
    INVITATION_ACCEPTED = "Invitation.Accepted"

    def __init__(self, db_session: Optional[DbSession] = None):
        self._explicit_db = db_session  # Only set if explicitly passed

    @property
    def db(self) -> DbSession:
        # Always get a fresh session unless explicitly passed
        if self._explicit_db is not None:
            return self._explicit_db
        return get_db_session()

    def append_event(
        self,
        tenant_id: uuid.UUID,
        event_type: str,
        schedule_id: Optional[uuid.UUID] = None,
        actor_user_id: Optional[uuid.UUID] = None,
        from_status: Optional[str] = None,
        to_status: Optional[str] = None,
        reason: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ) -> EventLog:
        """
        Append an event to the audit log.

        This is INSERT-only; events are never updated or deleted.
        """
        sanitized_payload = self._sanitize_payload(payload) if payload else None

        event = EventLog(
            organization_id=tenant_id,
            event_type=event_type,
            schedule_id=schedule_id,
            actor_user_id=actor_user_id,
            from_status=from_status,
            to_status=to_status,
            reason=reason,
            payload_json=sanitized_payload,
            correlation_id=correlation_id,
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def log_state_transition(
        self,
        tenant_id: uuid.UUID,
        schedule_id: uuid.UUID,
        from_status: str,
        to_status: str,
        actor_user_id: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> EventLog:
        """Log a Schedule.StatusChanged event."""
        return self.append_event(
            tenant_id=tenant_id,
            event_type=self.SCHEDULE_STATUS_CHANGED,
            schedule_id=schedule_id,
            actor_user_id=actor_user_id,
            from_status=from_status,
            to_status=to_status,
            reason=reason,
            payload=metadata or {},
        )

    def log_invitation_event(
        self,
        tenant_id: uuid.UUID,
        event_type: str,
        invitation_id: uuid.UUID,
        actor_user_id: Optional[uuid.UUID] = None,
        role: Optional[str] = None,
    ) -> EventLog:
        """Log an Invitation.* event. Email is deliberately not recorded."""
        return self.append_event(
            tenant_id=tenant_id,
            event_type=event_type,
            actor_user_id=actor_user_id,
            payload={"invitation_id": str(invitation_id), "role": role},
        )

    def get_transitions(self, tenant_id: uuid.UUID, schedule_id: uuid.UUID) -> List[StateTransition]:
        """Schedule.StatusChanged events for one schedule, newest first."""
        events = self.db.query(EventLog).filter(
            EventLog.organization_id == tenant_id,
            EventLog.schedule_id == schedule_id,
            EventLog.event_type == self.SCHEDULE_STATUS_CHANGED,
        ).order_by(EventLog.created_at.desc()).all()

        return [
            StateTransition(
                schedule_id=event.schedule_id,
                from_status=event.from_status,
                to_status=event.to_status,
                transition_date=event.created_at,
                event_id=event.event_id,
                performed_by=event.actor_user_id,
                reason=event.reason,
                metadata=event.payload_json or {},
            )
            for event in events
        ]

    def _sanitize_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Basic PHI sanitization for audit payloads."""
        # Keys that should never appear in audit logs
        phi_keys = {
            "mrn", "ssn", "social_security", "dob", "date_of_birth", "address",
            "patient_name", "email", "phone",
        }

        sanitized = {}
        for key, value in payload.items():
            key_lower = key.lower()
            if key_lower in phi_keys:
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_payload(value)
            else:
                sanitized[key] = value
        return sanitized
