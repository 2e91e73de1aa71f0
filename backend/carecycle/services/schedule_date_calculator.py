"""
Schedule Date Calculator

Pure date arithmetic for the schedule lifecycle:
- resume target per strategy
- bounds checks on a proposed next due date
- missed-cycle counting and catch-up placement
- resume strategy suggestion

Catch-up placement policy: compensating executions follow the resume
target, spaced max(1, interval_weeks // 2) weeks apart, so none shares a
day with the regular next execution. Dates past end_date are dropped.
"""

from datetime import date, timedelta
from typing import List, Optional, Tuple
import logging

from carecycle.services.date_utils import add_weeks, safe_parse_date, weeks_to_days
from carecycle.services.schedule_types import ResumeStrategy, ScheduleRecord

logger = logging.getLogger("service.ScheduleDateCalculator")


# Reason codes returned by validate_next_due_date
DATE_IN_PAST = "date_in_past"
DATE_AFTER_END_DATE = "date_after_end_date"


class ScheduleDateCalculator:
    """Stateless date helpers; today is always passed in."""

    def calculate_next_due_date(
        self,
        schedule: ScheduleRecord,
        strategy: ResumeStrategy,
        custom_date: Optional[date],
        today: date,
    ) -> Optional[date]:
        """Resume target for a strategy. None when custom has no date."""
        if strategy == ResumeStrategy.IMMEDIATE:
            return today
        if strategy == ResumeStrategy.NEXT_CYCLE:
            return add_weeks(today, schedule.interval_weeks)
        if strategy == ResumeStrategy.CUSTOM:
            return safe_parse_date(custom_date)
        raise ValueError(f"Unknown resume strategy: {strategy}")

    def validate_next_due_date(
        self,
        schedule: ScheduleRecord,
        proposed: date,
        today: date,
    ) -> Tuple[bool, Optional[str]]:
        """Check a proposed due date against today and the end date.

        Returns (ok, reason_code).
        """
        if proposed < today:
            return False, DATE_IN_PAST
        if schedule.end_date is not None and proposed > schedule.end_date:
            return False, DATE_AFTER_END_DATE
        return True, None

    def count_missed_executions(self, pause_weeks: int, interval_weeks: int) -> int:
        """Whole cycles elapsed during a pause."""
        if pause_weeks <= 0 or interval_weeks <= 0:
            return 0
        return pause_weeks // interval_weeks

    def catch_up_spacing_weeks(self, interval_weeks: int) -> int:
        return max(1, interval_weeks // 2)

    def calculate_catch_up_dates(
        self,
        schedule: ScheduleRecord,
        missed_count: int,
        start: date,
    ) -> List[date]:
        """Place missed_count compensating executions after start."""
        if missed_count <= 0:
            return []

        spacing = timedelta(days=weeks_to_days(self.catch_up_spacing_weeks(schedule.interval_weeks)))
        dates = []
        dropped = 0
        for index in range(missed_count):
            candidate = start + spacing * (index + 1)
            if schedule.end_date is not None and candidate > schedule.end_date:
                dropped += 1
                continue
            dates.append(candidate)

        if dropped:
            logger.warning(
                f"Dropped {dropped} catch-up date(s) past end_date for schedule {schedule.schedule_id}"
            )
        return dates

    def get_remaining_executions(self, schedule: ScheduleRecord, from_date: date) -> Optional[int]:
        """Executions left from from_date up to end_date. None when unbounded."""
        if schedule.end_date is None:
            return None
        if from_date > schedule.end_date:
            return 0
        days_left = (schedule.end_date - from_date).days
        return days_left // weeks_to_days(schedule.interval_weeks) + 1

    def suggest_resume_strategy(
        self,
        interval_weeks: int,
        pause_weeks: Optional[int],
    ) -> ResumeStrategy:
        """Default strategy shown to the user.

        Short pauses and long pauses both start at next_cycle; long pauses
        get immediate/custom surfaced through resume_strategy_options.
        """
        return ResumeStrategy.NEXT_CYCLE

    def resume_strategy_options(
        self,
        schedule: ScheduleRecord,
        pause_weeks: int,
        today: date,
    ) -> dict:
        """Suggested strategy plus the computed target for each alternative."""
        suggested = self.suggest_resume_strategy(schedule.interval_weeks, pause_weeks)
        missed = self.count_missed_executions(pause_weeks, schedule.interval_weeks)

        options = []
        for strategy in (ResumeStrategy.NEXT_CYCLE, ResumeStrategy.IMMEDIATE):
            target = self.calculate_next_due_date(schedule, strategy, None, today)
            ok, reason = self.validate_next_due_date(schedule, target, today)
            options.append({
                "strategy": strategy.value,
                "next_due_date": target.isoformat(),
                "available": ok,
                "reason": reason,
            })
        options.append({
            "strategy": ResumeStrategy.CUSTOM.value,
            "next_due_date": None,
            "available": True,
            "reason": None,
        })

        return {
            "suggested": suggested.value,
            "pause_weeks": pause_weeks,
            "missed_executions": missed,
            "highlight_alternatives": missed > 0,
            "max_date": schedule.end_date.isoformat() if schedule.end_date else None,
            "options": options,
        }
