"""
Schedule persistence boundary.

ScheduleStore is the contract the state manager depends on. Every call
takes the tenant (organization) id explicitly; the SQL implementation
filters on it, so cross-tenant ids resolve as not found.

Row <-> ScheduleRecord mapping lives only here (schedule_from_row,
schedule_update_values).
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List
import uuid

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from carecycle.models import Schedule, ScheduleExecution, ScheduleStatus, ExecutionStatus
from carecycle.services.errors import NotFoundError
from carecycle.services.schedule_types import ScheduleRecord


# Columns a lifecycle update may touch
WRITABLE_FIELDS = (
    "status",
    "next_due_date",
    "paused_at",
    "review_required",
    "last_executed_date",
    "updated_at",
)


def schedule_from_row(row: Schedule) -> ScheduleRecord:
    """Map an ORM row to the lifecycle view."""
    return ScheduleRecord(
        schedule_id=row.schedule_id,
        organization_id=row.organization_id,
        interval_weeks=row.interval_weeks,
        start_date=row.start_date,
        next_due_date=row.next_due_date,
        status=ScheduleStatus(row.status),
        end_date=row.end_date,
        last_executed_date=row.last_executed_date,
        paused_at=row.paused_at,
        updated_at=row.updated_at,
        review_required=bool(row.review_required),
        assigned_nurse_id=row.assigned_nurse_id,
        created_by=row.created_by,
        priority=row.priority or 0,
        requires_notification=bool(row.requires_notification),
        notification_days_before=row.notification_days_before or 0,
    )


def schedule_update_values(update: Dict[str, Any]) -> Dict[str, Any]:
    """Column values for a partial update. Unknown keys raise ValueError."""
    unknown = set(update) - set(WRITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported schedule fields: {sorted(unknown)}")

    values = dict(update)
    status = values.get("status")
    if isinstance(status, ScheduleStatus):
        values["status"] = status.value
    return values


class ScheduleStore(ABC):
    """Tenant-scoped schedule persistence."""

    @abstractmethod
    def read(self, tenant_id: uuid.UUID, schedule_id: uuid.UUID) -> ScheduleRecord:
        """Return the schedule or raise NotFoundError."""
        pass

    @abstractmethod
    def write(self, tenant_id: uuid.UUID, schedule_id: uuid.UUID, update: Dict[str, Any]) -> None:
        """Apply a partial update and commit."""
        pass

    @abstractmethod
    def list_overdue_active(
        self,
        tenant_id: uuid.UUID,
        due_before: date,
        limit: int,
    ) -> List[ScheduleRecord]:
        """Active schedules with next_due_date < due_before, oldest first."""
        pass

    @abstractmethod
    def list_checklist(self, tenant_id: uuid.UUID, until: date) -> List[Dict[str, Any]]:
        """Checklist entries: open schedules due on or before until plus completed executions."""
        pass


class SqlScheduleStore(ScheduleStore):
    """SQLAlchemy-backed schedule store."""

    def __init__(self, db: Session):
        self.db = db

    def _get_row(self, tenant_id: uuid.UUID, schedule_id: uuid.UUID) -> Schedule:
        row = self.db.query(Schedule).filter(
            Schedule.schedule_id == schedule_id,
            Schedule.organization_id == tenant_id,
        ).first()
        if row is None:
            raise NotFoundError(f"Schedule {schedule_id} not found")
        return row

    def read(self, tenant_id: uuid.UUID, schedule_id: uuid.UUID) -> ScheduleRecord:
        return schedule_from_row(self._get_row(tenant_id, schedule_id))

    def write(self, tenant_id: uuid.UUID, schedule_id: uuid.UUID, update: Dict[str, Any]) -> None:
        row = self._get_row(tenant_id, schedule_id)
        for key, value in schedule_update_values(update).items():
            setattr(row, key, value)
        self.db.commit()

    def list_overdue_active(
        self,
        tenant_id: uuid.UUID,
        due_before: date,
        limit: int,
    ) -> List[ScheduleRecord]:
        rows = self.db.query(Schedule).filter(
            Schedule.organization_id == tenant_id,
            Schedule.status == ScheduleStatus.ACTIVE.value,
            Schedule.next_due_date < due_before,
        ).order_by(Schedule.next_due_date.asc()).limit(limit).all()
        return [schedule_from_row(row) for row in rows]

    def list_checklist(self, tenant_id: uuid.UUID, until: date) -> List[Dict[str, Any]]:
        schedules = self.db.query(Schedule).filter(
            Schedule.organization_id == tenant_id,
            Schedule.status == ScheduleStatus.ACTIVE.value,
            or_(Schedule.next_due_date <= until, Schedule.review_required.is_(True)),
        ).all()

        entries = []
        for schedule in schedules:
            entry = schedule.to_dict()
            entry["id"] = entry["schedule_id"]
            entry["display_type"] = "scheduled"
            entries.append(entry)

        executions = self.db.query(ScheduleExecution).filter(
            and_(
                ScheduleExecution.organization_id == tenant_id,
                ScheduleExecution.status == ExecutionStatus.COMPLETED.value,
                ScheduleExecution.executed_date <= until,
            )
        ).order_by(ScheduleExecution.executed_date.desc()).limit(100).all()

        for execution in executions:
            entry = execution.to_dict()
            entry["id"] = entry["execution_id"]
            entry["next_due_date"] = entry["planned_date"]
            entry["display_type"] = "completed"
            entries.append(entry)

        return entries

