"""
Schedule State Manager

Orchestrates pause/resume transitions:
1. Read the schedule through the tenant-scoped store
2. Check the transition with ScheduleStateValidator
3. Compute the resume target and missed cycles (ScheduleDateCalculator)
4. Write the new state, then drive execution/notification side effects
5. Record the transition in the audit log

Collaborators are injected; build one per request with
get_schedule_state_manager(db).
"""

from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Optional
import logging
import uuid

from sqlalchemy.orm import Session

from carecycle.models import ScheduleStatus
from carecycle.services.date_utils import SystemClock, whole_weeks_between
from carecycle.services.errors import StateTransitionError, ValidationError
from carecycle.services.event_log import EventLogService
from carecycle.services.schedule_date_calculator import (
    ScheduleDateCalculator,
    DATE_IN_PAST,
    DATE_AFTER_END_DATE,
)
from carecycle.services.schedule_state_validator import ScheduleStateValidator
from carecycle.services.schedule_store import ScheduleStore, SqlScheduleStore
from carecycle.services.schedule_sync import ScheduleSync, SqlScheduleSync
from carecycle.services.schedule_types import (
    MissedHandling,
    PauseOptions,
    ResumeOptions,
    ResumeResult,
    ResumeStrategy,
    ScheduleRecord,
    StateTransition,
)

logger = logging.getLogger("service.ScheduleStateManager")


DATE_REASON_MESSAGES = {
    DATE_IN_PAST: "Next due date cannot be in the past",
    DATE_AFTER_END_DATE: "Next due date cannot be after the schedule end date",
}


class ScheduleStateManager:
    """Pause/resume orchestration for one tenant-scoped schedule at a time."""

    def __init__(
        self,
        store: ScheduleStore,
        sync: ScheduleSync,
        audit: EventLogService,
        validator: Optional[ScheduleStateValidator] = None,
        calculator: Optional[ScheduleDateCalculator] = None,
        clock: Optional[SystemClock] = None,
    ):
        self.store = store
        self.sync = sync
        self.audit = audit
        self.validator = validator or ScheduleStateValidator()
        self.calculator = calculator or ScheduleDateCalculator()
        self.clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # Pause
    # -------------------------------------------------------------------------

    def pause_schedule(
        self,
        tenant_id: uuid.UUID,
        schedule_id: uuid.UUID,
        options: Optional[PauseOptions] = None,
    ) -> ScheduleRecord:
        """Pause an active schedule.

        Suppressing planned executions and pending notifications is
        best-effort: a failure there is logged and the pause still commits.
        """
        options = options or PauseOptions()
        schedule = self.store.read(tenant_id, schedule_id)

        if not self.validator.can_pause(schedule):
            raise StateTransitionError(self._rejection_message(schedule, ScheduleStatus.PAUSED, "pause"))

        now = self.clock.now()
        self.store.write(tenant_id, schedule_id, {
            "status": ScheduleStatus.PAUSED,
            "paused_at": now,
            "updated_at": now,
        })
        paused = replace(schedule, status=ScheduleStatus.PAUSED, paused_at=now, updated_at=now)

        try:
            self.sync.suppress_on_pause(tenant_id, paused)
        except Exception as e:
            logger.warning(f"Failed to suppress executions/notifications for schedule {schedule_id}: {e}")

        metadata = dict(options.metadata)
        metadata["action"] = "pause"
        self.audit.log_state_transition(
            tenant_id=tenant_id,
            schedule_id=schedule_id,
            from_status=schedule.status.value,
            to_status=ScheduleStatus.PAUSED.value,
            actor_user_id=options.actor_user_id,
            reason=options.reason,
            metadata=metadata,
        )

        if options.notify_assigned_nurse:
            try:
                self.sync.notify_nurse(
                    tenant_id,
                    paused,
                    title="Schedule paused",
                    message=options.reason or "A schedule assigned to you was paused.",
                    today=self.clock.today(),
                )
            except Exception as e:
                logger.warning(f"Failed to notify assigned nurse for schedule {schedule_id}: {e}")

        logger.info(f"Paused schedule {schedule_id}")
        return paused

    # -------------------------------------------------------------------------
    # Pause duration / suggestion
    # -------------------------------------------------------------------------

    def get_pause_duration(self, schedule: ScheduleRecord) -> int:
        """Whole weeks since the schedule was paused (floored). 0 if not paused."""
        marker = schedule.pause_marker
        if schedule.status != ScheduleStatus.PAUSED or marker is None:
            return 0
        return whole_weeks_between(marker, self.clock.now())

    def suggest_resume_strategy(self, schedule: ScheduleRecord) -> ResumeStrategy:
        return self.calculator.suggest_resume_strategy(
            schedule.interval_weeks, self.get_pause_duration(schedule)
        )

    def get_resume_options(self, tenant_id: uuid.UUID, schedule_id: uuid.UUID) -> Dict[str, Any]:
        """Suggested strategy and per-strategy targets for a paused schedule."""
        schedule = self.store.read(tenant_id, schedule_id)
        options = self.calculator.resume_strategy_options(
            schedule, self.get_pause_duration(schedule), self.clock.today()
        )
        options["can_resume"] = self.validator.can_resume(schedule)
        options["schedule_id"] = str(schedule_id)
        return options

    # -------------------------------------------------------------------------
    # Resume
    # -------------------------------------------------------------------------

    def resume_schedule(
        self,
        tenant_id: uuid.UUID,
        schedule_id: uuid.UUID,
        options: ResumeOptions,
    ) -> ResumeResult:
        """Resume a paused schedule.

        Planning the next execution and materializing catch-up executions are
        best-effort: failures are logged and the resume still commits.

        Raises:
            ValidationError: bad strategy/handle_missed, missing or invalid custom date,
                or a target outside [today, end_date]
            StateTransitionError: the schedule is not paused
            NotFoundError: no such schedule in this tenant
        """
        strategy = self._coerce_strategy(options.strategy)
        handle_missed = self._coerce_handle_missed(options.handle_missed)

        schedule = self.store.read(tenant_id, schedule_id)
        if not self.validator.can_resume(schedule):
            raise StateTransitionError(self._rejection_message(schedule, ScheduleStatus.ACTIVE, "resume"))

        if strategy == ResumeStrategy.CUSTOM and options.custom_date is None:
            raise ValidationError(
                "custom_date_required",
                "A custom date is required for the custom resume strategy",
            )

        today = self.clock.today()
        target = self.calculator.calculate_next_due_date(schedule, strategy, options.custom_date, today)
        if target is None:
            raise ValidationError("invalid_date", f"Invalid custom date: {options.custom_date}")
        ok, reason = self.calculator.validate_next_due_date(schedule, target, today)
        if not ok:
            raise ValidationError(reason, DATE_REASON_MESSAGES[reason])

        pause_weeks = self.get_pause_duration(schedule)
        missed = self.calculator.count_missed_executions(pause_weeks, schedule.interval_weeks)

        catch_up_dates: List[date] = []
        if handle_missed == MissedHandling.CATCH_UP:
            catch_up_dates = self.calculator.calculate_catch_up_dates(schedule, missed, target)
        review_required = handle_missed == MissedHandling.MARK_OVERDUE and missed > 0

        logger.debug(
            f"Resume schedule {schedule_id}: strategy={strategy.value} target={target} "
            f"pause_weeks={pause_weeks} missed={missed} handle_missed={handle_missed.value}"
        )

        now = self.clock.now()
        self.store.write(tenant_id, schedule_id, {
            "status": ScheduleStatus.ACTIVE,
            "next_due_date": target,
            "paused_at": None,
            "review_required": review_required,
            "updated_at": now,
        })
        resumed = replace(
            schedule,
            status=ScheduleStatus.ACTIVE,
            next_due_date=target,
            paused_at=None,
            review_required=review_required,
            updated_at=now,
        )

        try:
            self.sync.on_resume(tenant_id, resumed, target, today)
        except Exception as e:
            logger.warning(f"Failed to plan next execution for schedule {schedule_id}: {e}")

        materialized = 0
        if catch_up_dates:
            try:
                materialized = self.sync.materialize_catch_up(tenant_id, resumed, catch_up_dates)
            except Exception as e:
                logger.warning(f"Failed to materialize catch-up executions for schedule {schedule_id}: {e}")

        self.audit.log_state_transition(
            tenant_id=tenant_id,
            schedule_id=schedule_id,
            from_status=schedule.status.value,
            to_status=ScheduleStatus.ACTIVE.value,
            actor_user_id=options.actor_user_id,
            metadata={
                "action": "resume",
                "strategy": strategy.value,
                "handle_missed": handle_missed.value,
                "next_due_date": target.isoformat(),
                "pause_weeks": pause_weeks,
                "missed_executions": missed,
                "catch_up_count": len(catch_up_dates),
                "catch_up_materialized": materialized,
            },
        )

        logger.info(f"Resumed schedule {schedule_id} with next due date {target}")
        return ResumeResult(
            schedule_id=schedule_id,
            next_due_date=target,
            pause_weeks=pause_weeks,
            missed_executions=missed,
            catch_up_dates=catch_up_dates,
            review_required=review_required,
        )

    # -------------------------------------------------------------------------
    # History / review
    # -------------------------------------------------------------------------

    def get_state_transition_history(
        self,
        tenant_id: uuid.UUID,
        schedule_id: uuid.UUID,
    ) -> List[StateTransition]:
        """Recorded transitions, newest first."""
        self.store.read(tenant_id, schedule_id)
        return self.audit.get_transitions(tenant_id, schedule_id)

    def clear_review_flag(
        self,
        tenant_id: uuid.UUID,
        schedule_id: uuid.UUID,
        actor_user_id: Optional[uuid.UUID] = None,
    ) -> bool:
        """Resolve a gap flagged by mark_overdue. Returns False if nothing was flagged."""
        schedule = self.store.read(tenant_id, schedule_id)
        if not schedule.review_required:
            return False

        self.store.write(tenant_id, schedule_id, {
            "review_required": False,
            "updated_at": self.clock.now(),
        })
        self.audit.append_event(
            tenant_id=tenant_id,
            event_type=EventLogService.SCHEDULE_REVIEW_CLEARED,
            schedule_id=schedule_id,
            actor_user_id=actor_user_id,
        )
        logger.info(f"Cleared review flag on schedule {schedule_id}")
        return True

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _rejection_message(self, schedule: ScheduleRecord, target: ScheduleStatus, action: str) -> str:
        reasons = self.validator.get_blocking_reasons(schedule, target)
        if reasons:
            return reasons[0]
        return f"Cannot {action} a schedule with status '{schedule.status.value}'"

    def _coerce_strategy(self, value: Any) -> ResumeStrategy:
        try:
            return ResumeStrategy(value)
        except ValueError:
            raise ValidationError("invalid_strategy", f"Unknown resume strategy: {value}")

    def _coerce_handle_missed(self, value: Any) -> MissedHandling:
        try:
            return MissedHandling(value)
        except ValueError:
            raise ValidationError("invalid_handle_missed", f"Unknown missed-execution handling: {value}")


def get_schedule_state_manager(db: Session) -> ScheduleStateManager:
    """Wire a manager against one SQLAlchemy session."""
    return ScheduleStateManager(
        store=SqlScheduleStore(db),
        sync=SqlScheduleSync(db),
        audit=EventLogService(db),
    )
