"""
Domain types for the schedule lifecycle services.

ScheduleRecord is the plain, storage-independent view of a schedule that
the validator, calculator, and state manager operate on. Conversion to
and from the ORM row happens only in schedule_store.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from carecycle.models.schedule import ScheduleStatus
from carecycle.services.date_utils import safe_parse_date
from carecycle.services.errors import ValidationError


class ResumeStrategy(str, Enum):
    """Where the next due date lands when a paused schedule resumes."""
    IMMEDIATE = "immediate"      # today
    NEXT_CYCLE = "next_cycle"    # today + interval_weeks
    CUSTOM = "custom"            # caller-supplied date


class MissedHandling(str, Enum):
    """What to do with cycles missed during the pause window."""
    SKIP = "skip"
    CATCH_UP = "catch_up"
    MARK_OVERDUE = "mark_overdue"


@dataclass
class ScheduleRecord:
    """Schedule as seen by the lifecycle services."""

    schedule_id: uuid.UUID
    organization_id: uuid.UUID
    interval_weeks: int
    start_date: date
    next_due_date: date
    status: ScheduleStatus
    end_date: Optional[date] = None
    last_executed_date: Optional[date] = None
    paused_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    review_required: bool = False
    assigned_nurse_id: Optional[uuid.UUID] = None
    created_by: Optional[uuid.UUID] = None
    priority: int = 0
    requires_notification: bool = False
    notification_days_before: int = 7

    @property
    def pause_marker(self) -> Optional[datetime]:
        """Moment the schedule was paused; falls back to updated_at for rows paused before paused_at existed."""
        return self.paused_at or self.updated_at


@dataclass
class PauseOptions:
    """Optional audit data for a pause. No effect on the transition itself."""
    reason: Optional[str] = None
    notify_assigned_nurse: bool = False
    actor_user_id: Optional[uuid.UUID] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ResumeOptions:
    """Resume request as supplied by the caller."""
    strategy: ResumeStrategy
    custom_date: Optional[date] = None
    handle_missed: MissedHandling = MissedHandling.SKIP
    actor_user_id: Optional[uuid.UUID] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResumeOptions":
        """Build from a JSON payload; unknown enum values raise ValidationError."""
        strategy = data.get("strategy")
        handle_missed = data.get("handle_missed") or MissedHandling.SKIP.value
        try:
            strategy = ResumeStrategy(strategy)
        except ValueError:
            raise ValidationError("invalid_strategy", f"Unknown resume strategy: {strategy}")
        try:
            handle_missed = MissedHandling(handle_missed)
        except ValueError:
            raise ValidationError("invalid_handle_missed", f"Unknown missed-execution handling: {handle_missed}")

        raw_date = data.get("custom_date")
        custom_date = safe_parse_date(raw_date) if raw_date else None
        if raw_date and custom_date is None:
            raise ValidationError("invalid_date", f"Invalid custom date: {raw_date}")
        return cls(
            strategy=strategy,
            custom_date=custom_date,
            handle_missed=handle_missed,
        )


@dataclass
class ResumeResult:
    """Outcome of a committed resume."""
    schedule_id: uuid.UUID
    next_due_date: date
    pause_weeks: int = 0
    missed_executions: int = 0
    catch_up_dates: List[date] = field(default_factory=list)
    review_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schedule_id": str(self.schedule_id),
            "next_due_date": self.next_due_date.isoformat(),
            "pause_weeks": self.pause_weeks,
            "missed_executions": self.missed_executions,
            "catch_up_dates": [d.isoformat() for d in self.catch_up_dates],
            "review_required": self.review_required,
        }


@dataclass
class StateTransition:
    """One recorded status change."""
    schedule_id: uuid.UUID
    from_status: str
    to_status: str
    transition_date: datetime
    event_id: Optional[uuid.UUID] = None
    performed_by: Optional[uuid.UUID] = None
    reason: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": str(self.event_id) if self.event_id else None,
            "schedule_id": str(self.schedule_id),
            "from_status": self.from_status,
            "to_status": self.to_status,
            "transition_date": self.transition_date.isoformat(),
            "performed_by": str(self.performed_by) if self.performed_by else None,
            "reason": self.reason,
            "metadata": self.metadata,
        }
