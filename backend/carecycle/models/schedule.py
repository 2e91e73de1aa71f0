"""
Recurring care schedule models.

These tables support:
1. Schedules: one recurring test/injection directive per patient/item pair
2. Executions: concrete planned/completed occurrences of a schedule
3. Notifications: reminders raised ahead of a planned execution
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Integer, Date, Boolean, Text, UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import enum

from carecycle.db.postgres import Base


class ScheduleStatus(str, enum.Enum):
    """Schedule lifecycle status."""
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ExecutionStatus(str, enum.Enum):
    """Status of one schedule occurrence."""
    PLANNED = "planned"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    OVERDUE = "overdue"


class NotificationState(str, enum.Enum):
    """Reminder delivery state."""
    PENDING = "pending"
    READY = "ready"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Schedule(Base):
    """
    Recurring care directive for one patient/item pair.

    While paused, next_due_date keeps the value it had at pause time and
    paused_at records the pause moment.
    """

    __tablename__ = "schedule"

    schedule_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(
        UUID(as_uuid=True),
        ForeignKey("organization.organization_id"),
        nullable=False
    )

    # Patient and test/injection item (owned by the patient registry)
    patient_id = Column(UUID(as_uuid=True), nullable=False)
    item_id = Column(UUID(as_uuid=True), nullable=False)

    # Recurrence
    interval_weeks = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    last_executed_date = Column(Date, nullable=True)
    next_due_date = Column(Date, nullable=False)

    # Lifecycle
    status = Column(String(20), default=ScheduleStatus.ACTIVE.value, nullable=False)
    paused_at = Column(DateTime, nullable=True)
    review_required = Column(Boolean, default=False, nullable=False)

    # Assignment and reminders
    assigned_nurse_id = Column(
        UUID(as_uuid=True), ForeignKey("app_user.user_id"), nullable=True
    )
    priority = Column(Integer, default=0, nullable=False)
    requires_notification = Column(Boolean, default=False, nullable=False)
    notification_days_before = Column(Integer, default=7, nullable=False)

    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    created_by = Column(UUID(as_uuid=True), nullable=True)

    # Relationships
    organization = relationship("Organization")
    executions = relationship("ScheduleExecution", back_populates="schedule")

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses and checklists."""
        return {
            "schedule_id": str(self.schedule_id),
            "patient_id": str(self.patient_id),
            "item_id": str(self.item_id),
            "interval_weeks": self.interval_weeks,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "last_executed_date": self.last_executed_date.isoformat() if self.last_executed_date else None,
            "next_due_date": self.next_due_date.isoformat() if self.next_due_date else None,
            "status": self.status,
            "paused_at": self.paused_at.isoformat() if self.paused_at else None,
            "review_required": self.review_required,
            "assigned_nurse_id": str(self.assigned_nurse_id) if self.assigned_nurse_id else None,
            "priority": self.priority,
            "requires_notification": self.requires_notification,
            "notification_days_before": self.notification_days_before,
        }


class ScheduleExecution(Base):
    """
    One concrete occurrence of a schedule.

    (schedule_id, planned_date) is unique so re-planning the same day
    updates the existing row instead of duplicating it.
    """

    __tablename__ = "schedule_execution"
    __table_args__ = (
        UniqueConstraint("schedule_id", "planned_date", name="uq_execution_schedule_date"),
    )

    execution_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    schedule_id = Column(
        UUID(as_uuid=True),
        ForeignKey("schedule.schedule_id"),
        nullable=False
    )
    organization_id = Column(
        UUID(as_uuid=True),
        ForeignKey("organization.organization_id"),
        nullable=False
    )

    planned_date = Column(Date, nullable=False)
    executed_date = Column(Date, nullable=True)
    status = Column(String(20), default=ExecutionStatus.PLANNED.value, nullable=False)
    skipped_reason = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    executed_by = Column(UUID(as_uuid=True), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    schedule = relationship("Schedule", back_populates="executions")

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "execution_id": str(self.execution_id),
            "schedule_id": str(self.schedule_id),
            "planned_date": self.planned_date.isoformat() if self.planned_date else None,
            "executed_date": self.executed_date.isoformat() if self.executed_date else None,
            "status": self.status,
            "skipped_reason": self.skipped_reason,
            "notes": self.notes,
        }


class Notification(Base):
    """
    Reminder for an upcoming execution.

    (schedule_id, notify_date) is unique; one reminder per schedule per day.
    """

    __tablename__ = "notification"
    __table_args__ = (
        UniqueConstraint("schedule_id", "notify_date", name="uq_notification_schedule_date"),
    )

    notification_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(
        UUID(as_uuid=True),
        ForeignKey("organization.organization_id"),
        nullable=False
    )
    schedule_id = Column(
        UUID(as_uuid=True),
        ForeignKey("schedule.schedule_id"),
        nullable=True  # Null = system notification not tied to a schedule
    )
    recipient_id = Column(UUID(as_uuid=True), nullable=True)

    channel = Column(String(20), default="dashboard", nullable=False)
    notify_date = Column(Date, nullable=False)
    state = Column(String(20), default=NotificationState.PENDING.value, nullable=False)
    title = Column(String(255), nullable=True)
    message = Column(Text, nullable=True)
    error_message = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
