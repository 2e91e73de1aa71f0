"""
SQLAlchemy models for carecycle.

These are the authoritative PostgreSQL tables.
"""

from .tenant import Organization, OrganizationPolicy, Department, AppUser
from .schedule import (
    Schedule,
    ScheduleExecution,
    Notification,
    ScheduleStatus,
    ExecutionStatus,
    NotificationState,
)
from .invitation import Invitation, InvitationStatus
from .event_log import EventLog

__all__ = [
    # Tenant/user
    "Organization",
    "OrganizationPolicy",
    "Department",
    "AppUser",
    # Scheduling
    "Schedule",
    "ScheduleExecution",
    "Notification",
    "ScheduleStatus",
    "ExecutionStatus",
    "NotificationState",
    # Invitations
    "Invitation",
    "InvitationStatus",
    # Audit
    "EventLog",
]
