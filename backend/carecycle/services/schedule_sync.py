"""
Execution and notification side effects of pause/resume.

The state manager treats this as a command sink:
- pause: planned executions -> skipped, pending/ready notifications -> cancelled
- resume: next planned execution upserted, reminder upserted when enabled
- catch_up: compensating planned executions materialized
"""

from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import List, Optional
import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carecycle.models import (
    ScheduleExecution,
    Notification,
    ExecutionStatus,
    NotificationState,
)
from carecycle.services.schedule_types import ScheduleRecord

logger = logging.getLogger("service.ScheduleSync")

PAUSE_SKIP_REASON = "Schedule paused"


class ScheduleSync(ABC):
    """Execution/notification collaborator for the state manager."""

    @abstractmethod
    def suppress_on_pause(self, tenant_id: uuid.UUID, schedule: ScheduleRecord) -> None:
        pass

    @abstractmethod
    def on_resume(
        self,
        tenant_id: uuid.UUID,
        schedule: ScheduleRecord,
        next_due_date: date,
        today: date,
    ) -> None:
        pass

    @abstractmethod
    def materialize_catch_up(
        self,
        tenant_id: uuid.UUID,
        schedule: ScheduleRecord,
        dates: List[date],
    ) -> int:
        """Create a planned execution on each date; returns the number of rows added or reopened."""
        pass

    @abstractmethod
    def notify_nurse(
        self,
        tenant_id: uuid.UUID,
        schedule: ScheduleRecord,
        title: str,
        message: str,
        today: date,
    ) -> None:
        pass


class SqlScheduleSync(ScheduleSync):
    """Writes schedule_execution and notification rows."""

    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------------------------------
    # Pause
    # -------------------------------------------------------------------------

    def suppress_on_pause(self, tenant_id: uuid.UUID, schedule: ScheduleRecord) -> None:
        try:
            skipped, cancelled = self._suppress(tenant_id, schedule)
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.info(
            f"Suppressed schedule {schedule.schedule_id}: "
            f"{skipped} execution(s) skipped, {cancelled} notification(s) cancelled"
        )

    def _suppress(self, tenant_id: uuid.UUID, schedule: ScheduleRecord):
        skipped = self.db.query(ScheduleExecution).filter(
            ScheduleExecution.organization_id == tenant_id,
            ScheduleExecution.schedule_id == schedule.schedule_id,
            ScheduleExecution.status == ExecutionStatus.PLANNED.value,
        ).update(
            {
                ScheduleExecution.status: ExecutionStatus.SKIPPED.value,
                ScheduleExecution.skipped_reason: PAUSE_SKIP_REASON,
            },
            synchronize_session=False,
        )

        cancelled = self.db.query(Notification).filter(
            Notification.organization_id == tenant_id,
            Notification.schedule_id == schedule.schedule_id,
            Notification.state.in_([NotificationState.PENDING.value, NotificationState.READY.value]),
        ).update(
            {Notification.state: NotificationState.CANCELLED.value},
            synchronize_session=False,
        )

        self.db.commit()
        return skipped, cancelled

    # -------------------------------------------------------------------------
    # Resume
    # -------------------------------------------------------------------------

    def _upsert_planned_execution(
        self,
        tenant_id: uuid.UUID,
        schedule_id: uuid.UUID,
        planned_date: date,
    ) -> bool:
        """Ensure a planned execution on planned_date. True when a row was added or reopened."""
        execution = self.db.query(ScheduleExecution).filter(
            ScheduleExecution.schedule_id == schedule_id,
            ScheduleExecution.planned_date == planned_date,
        ).first()

        if execution is None:
            execution = ScheduleExecution(
                schedule_id=schedule_id,
                organization_id=tenant_id,
                planned_date=planned_date,
                status=ExecutionStatus.PLANNED.value,
            )
            self.db.add(execution)
            return True
        if execution.status in (ExecutionStatus.PLANNED.value, ExecutionStatus.COMPLETED.value):
            return False
        execution.status = ExecutionStatus.PLANNED.value
        execution.skipped_reason = None
        return True

    def _upsert_notification(
        self,
        tenant_id: uuid.UUID,
        schedule: ScheduleRecord,
        notify_date: date,
        title: Optional[str] = None,
        message: Optional[str] = None,
    ) -> Notification:
        notification = self.db.query(Notification).filter(
            Notification.schedule_id == schedule.schedule_id,
            Notification.notify_date == notify_date,
        ).first()

        if notification is None:
            notification = Notification(
                organization_id=tenant_id,
                schedule_id=schedule.schedule_id,
                recipient_id=schedule.assigned_nurse_id,
                notify_date=notify_date,
            )
            self.db.add(notification)

        notification.state = NotificationState.PENDING.value
        notification.error_message = None
        if title is not None:
            notification.title = title
        if message is not None:
            notification.message = message
        return notification

    def on_resume(
        self,
        tenant_id: uuid.UUID,
        schedule: ScheduleRecord,
        next_due_date: date,
        today: date,
    ) -> None:
        try:
            self._upsert_planned_execution(tenant_id, schedule.schedule_id, next_due_date)

            if schedule.requires_notification:
                notify_date = next_due_date - timedelta(days=schedule.notification_days_before)
                if notify_date >= today:
                    self._upsert_notification(tenant_id, schedule, notify_date)
                else:
                    logger.debug(
                        f"Reminder date {notify_date} already passed for schedule {schedule.schedule_id}"
                    )

            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def materialize_catch_up(
        self,
        tenant_id: uuid.UUID,
        schedule: ScheduleRecord,
        dates: List[date],
    ) -> int:
        written = 0
        try:
            for planned_date in dates:
                if self._upsert_planned_execution(tenant_id, schedule.schedule_id, planned_date):
                    written += 1
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        if written < len(dates):
            logger.warning(
                f"Catch-up for schedule {schedule.schedule_id}: {len(dates) - written} of "
                f"{len(dates)} date(s) already had an execution"
            )
        return written

    def notify_nurse(
        self,
        tenant_id: uuid.UUID,
        schedule: ScheduleRecord,
        title: str,
        message: str,
        today: date,
    ) -> None:
        if schedule.assigned_nurse_id is None:
            return
        try:
            self._upsert_notification(tenant_id, schedule, today, title=title, message=message)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
