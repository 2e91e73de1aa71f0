"""
Unit tests for ScheduleDateCalculator.

Tests:
- Resume target per strategy
- Bounds checks on proposed dates
- Missed-cycle counting and catch-up placement
- Strategy suggestion
"""

import pytest
import uuid
from datetime import date, datetime

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', '..', 'backend'))

from carecycle.models.schedule import ScheduleStatus
from carecycle.services.schedule_date_calculator import (
    ScheduleDateCalculator,
    DATE_IN_PAST,
    DATE_AFTER_END_DATE,
)
from carecycle.services.schedule_types import ResumeStrategy, ScheduleRecord


TODAY = date(2026, 10, 19)


def make_schedule(interval_weeks=4, end_date=None):
    return ScheduleRecord(
        schedule_id=uuid.uuid4(),
        organization_id=uuid.uuid4(),
        interval_weeks=interval_weeks,
        start_date=date(2026, 1, 5),
        next_due_date=date(2026, 10, 5),
        status=ScheduleStatus.PAUSED,
        end_date=end_date,
    )


@pytest.fixture
def calculator():
    return ScheduleDateCalculator()


# =============================================================================
# Test calculate_next_due_date
# =============================================================================

class TestCalculateNextDueDate:

    def test_immediate_is_today(self, calculator):
        assert calculator.calculate_next_due_date(
            make_schedule(), ResumeStrategy.IMMEDIATE, None, TODAY
        ) == TODAY

    def test_next_cycle_is_today_plus_interval(self, calculator):
        assert calculator.calculate_next_due_date(
            make_schedule(interval_weeks=4), ResumeStrategy.NEXT_CYCLE, None, TODAY
        ) == date(2026, 11, 16)

    def test_custom_returns_given_date(self, calculator):
        custom = date(2026, 10, 30)
        assert calculator.calculate_next_due_date(
            make_schedule(), ResumeStrategy.CUSTOM, custom, TODAY
        ) == custom

    def test_custom_without_date_is_none(self, calculator):
        assert calculator.calculate_next_due_date(
            make_schedule(), ResumeStrategy.CUSTOM, None, TODAY
        ) is None

    def test_custom_datetime_normalized_to_date(self, calculator):
        target = calculator.calculate_next_due_date(
            make_schedule(), ResumeStrategy.CUSTOM, datetime(2026, 10, 30, 14, 0), TODAY
        )

        assert target == date(2026, 10, 30)
        assert type(target) is date
        assert calculator.validate_next_due_date(make_schedule(), target, TODAY) == (True, None)


# =============================================================================
# Test validate_next_due_date
# =============================================================================

class TestValidateNextDueDate:

    def test_today_is_valid(self, calculator):
        assert calculator.validate_next_due_date(make_schedule(), TODAY, TODAY) == (True, None)

    def test_past_date_rejected(self, calculator):
        assert calculator.validate_next_due_date(
            make_schedule(), date(2026, 10, 18), TODAY
        ) == (False, DATE_IN_PAST)

    def test_after_end_date_rejected(self, calculator):
        schedule = make_schedule(end_date=date(2026, 11, 1))
        assert calculator.validate_next_due_date(
            schedule, date(2026, 11, 2), TODAY
        ) == (False, DATE_AFTER_END_DATE)

    def test_on_end_date_is_valid(self, calculator):
        schedule = make_schedule(end_date=date(2026, 11, 1))
        assert calculator.validate_next_due_date(schedule, date(2026, 11, 1), TODAY) == (True, None)


# =============================================================================
# Test missed executions and catch-up
# =============================================================================

class TestMissedExecutions:

    @pytest.mark.parametrize("pause_weeks,interval,expected", [
        (0, 4, 0),
        (1, 4, 0),
        (4, 4, 1),
        (9, 4, 2),
        (9, 2, 4),
        (-3, 4, 0),
    ])
    def test_count_missed_executions(self, calculator, pause_weeks, interval, expected):
        assert calculator.count_missed_executions(pause_weeks, interval) == expected

    def test_catch_up_none_missed(self, calculator):
        assert calculator.calculate_catch_up_dates(make_schedule(), 0, TODAY) == []

    def test_catch_up_spacing_is_half_interval(self, calculator):
        dates = calculator.calculate_catch_up_dates(make_schedule(interval_weeks=4), 3, TODAY)
        assert dates == [date(2026, 11, 2), date(2026, 11, 16), date(2026, 11, 30)]

    def test_catch_up_spacing_at_least_one_week(self, calculator):
        dates = calculator.calculate_catch_up_dates(make_schedule(interval_weeks=1), 2, TODAY)
        assert dates == [date(2026, 10, 26), date(2026, 11, 2)]

    def test_catch_up_dates_after_start(self, calculator):
        """The start date belongs to the regular execution."""
        dates = calculator.calculate_catch_up_dates(make_schedule(interval_weeks=6), 5, TODAY)
        assert len(dates) == 5
        assert all(d > TODAY for d in dates)
        assert len(set(dates)) == 5

    def test_catch_up_drops_dates_past_end(self, calculator):
        schedule = make_schedule(interval_weeks=4, end_date=date(2026, 11, 5))
        dates = calculator.calculate_catch_up_dates(schedule, 3, TODAY)
        assert dates == [date(2026, 11, 2)]


class TestRemainingExecutions:

    def test_unbounded_is_none(self, calculator):
        assert calculator.get_remaining_executions(make_schedule(), TODAY) is None

    def test_counts_through_end_date(self, calculator):
        schedule = make_schedule(interval_weeks=2, end_date=date(2026, 11, 16))
        # 10-19, 11-02, 11-16
        assert calculator.get_remaining_executions(schedule, TODAY) == 3

    def test_past_end_date_is_zero(self, calculator):
        schedule = make_schedule(end_date=date(2026, 10, 1))
        assert calculator.get_remaining_executions(schedule, TODAY) == 0


# =============================================================================
# Test strategy suggestion
# =============================================================================

class TestSuggestResumeStrategy:

    @pytest.mark.parametrize("pause_weeks", [None, 0, 1, 4, 12])
    def test_always_next_cycle(self, calculator, pause_weeks):
        assert calculator.suggest_resume_strategy(4, pause_weeks) == ResumeStrategy.NEXT_CYCLE

    def test_is_deterministic(self, calculator):
        assert calculator.suggest_resume_strategy(4, 9) == calculator.suggest_resume_strategy(4, 9)

    def test_options_list_alternatives(self, calculator):
        options = calculator.resume_strategy_options(make_schedule(interval_weeks=4), 9, TODAY)

        assert options["suggested"] == "next_cycle"
        assert options["missed_executions"] == 2
        assert options["highlight_alternatives"] is True
        strategies = [o["strategy"] for o in options["options"]]
        assert strategies == ["next_cycle", "immediate", "custom"]
        assert options["options"][0]["next_due_date"] == "2026-11-16"

    def test_options_mark_unavailable_past_end(self, calculator):
        schedule = make_schedule(interval_weeks=4, end_date=date(2026, 11, 1))
        options = calculator.resume_strategy_options(schedule, 1, TODAY)

        next_cycle = options["options"][0]
        assert next_cycle["available"] is False
        assert next_cycle["reason"] == DATE_AFTER_END_DATE
        assert options["max_date"] == "2026-11-01"
