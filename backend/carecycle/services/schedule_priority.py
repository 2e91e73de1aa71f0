"""
Checklist ordering for schedules and executions.

Order:
1. Incomplete entries before completed ones
2. Incomplete: overdue (and review-flagged) < due today < due within 7 days < later,
   then ascending due date
3. Completed: most recent first (executed_date, else due date)

A final tie-break on the entry id makes the order total, so sorting an
already sorted list returns it unchanged.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from carecycle.services.date_utils import safe_parse_date, today as clinic_today


UPCOMING_WINDOW_DAYS = 7
UNPARSEABLE_PRIORITY = 999


@dataclass(frozen=True)
class ScheduleStatusInfo:
    label: str
    variant: str      # overdue | today | upcoming | future
    priority: int     # lower = more urgent


def get_schedule_status_label(due_date: Any, today: date) -> ScheduleStatusInfo:
    """Urgency classification of a due date relative to today (day granularity)."""
    due = safe_parse_date(due_date)
    if due is None:
        return ScheduleStatusInfo("No date", "future", UNPARSEABLE_PRIORITY)

    days_until = (due - today).days
    if days_until < 0:
        overdue = -days_until
        return ScheduleStatusInfo(
            f"Overdue by {overdue} day{'s' if overdue != 1 else ''}", "overdue", 0
        )
    if days_until == 0:
        return ScheduleStatusInfo("Due today", "today", 1)
    if days_until <= UPCOMING_WINDOW_DAYS:
        return ScheduleStatusInfo(
            f"Due in {days_until} day{'s' if days_until != 1 else ''}", "upcoming", 2
        )
    return ScheduleStatusInfo("Scheduled", "future", 3)


def is_completed(entry: Dict[str, Any]) -> bool:
    """Completed iff the display type or status says so; anything else is open."""
    return entry.get("display_type") == "completed" or entry.get("status") == "completed"


def _entry_id(entry: Dict[str, Any]) -> str:
    return str(entry.get("id") or entry.get("schedule_id") or entry.get("execution_id") or "")


def _sort_key(entry: Dict[str, Any], today: date) -> Tuple:
    entry_id = _entry_id(entry)

    if is_completed(entry):
        done = safe_parse_date(entry.get("executed_date")) or safe_parse_date(entry.get("next_due_date"))
        if done is None:
            return (1, 1, 0, entry_id)
        return (1, 0, -done.toordinal(), entry_id)

    due = safe_parse_date(entry.get("next_due_date"))
    info = get_schedule_status_label(due, today)
    priority = info.priority
    if entry.get("review_required"):
        priority = 0
    return (0, priority, due.toordinal() if due is not None else 0, entry_id)


def sort_schedules_by_priority(
    entries: List[Dict[str, Any]],
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Return a new list in checklist order; the input is not modified."""
    if not entries:
        return []
    today = today or clinic_today()
    return sorted(entries, key=lambda entry: _sort_key(entry, today))
