"""
Schedule State Validator

Pure predicates over a schedule's current status. Called before every
mutating lifecycle operation so an illegal transition is rejected with a
readable reason instead of a storage error.

Nothing here raises or touches storage.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from carecycle.models.schedule import ScheduleStatus
from carecycle.services.schedule_types import ScheduleRecord


@dataclass(frozen=True)
class TransitionRule:
    from_status: ScheduleStatus
    to_status: ScheduleStatus
    allowed: bool
    requires_date_recalculation: bool = False
    requires_data_sync: bool = False


@dataclass
class TransitionValidation:
    """Result of checking one from -> to transition."""
    is_valid: bool = False
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    required_actions: List[str] = field(default_factory=list)


TRANSITION_RULES = (
    # Active
    TransitionRule(ScheduleStatus.ACTIVE, ScheduleStatus.PAUSED, True, requires_data_sync=True),
    TransitionRule(ScheduleStatus.ACTIVE, ScheduleStatus.COMPLETED, True),
    TransitionRule(ScheduleStatus.ACTIVE, ScheduleStatus.CANCELLED, True, requires_data_sync=True),
    # Paused
    TransitionRule(
        ScheduleStatus.PAUSED, ScheduleStatus.ACTIVE, True,
        requires_date_recalculation=True, requires_data_sync=True,
    ),
    TransitionRule(ScheduleStatus.PAUSED, ScheduleStatus.CANCELLED, True),
    TransitionRule(ScheduleStatus.PAUSED, ScheduleStatus.COMPLETED, False),
    # Completed (terminal)
    TransitionRule(ScheduleStatus.COMPLETED, ScheduleStatus.ACTIVE, False),
    TransitionRule(ScheduleStatus.COMPLETED, ScheduleStatus.PAUSED, False),
    TransitionRule(ScheduleStatus.COMPLETED, ScheduleStatus.CANCELLED, False),
    # Cancelled (terminal)
    TransitionRule(ScheduleStatus.CANCELLED, ScheduleStatus.ACTIVE, False),
    TransitionRule(ScheduleStatus.CANCELLED, ScheduleStatus.PAUSED, False),
    TransitionRule(ScheduleStatus.CANCELLED, ScheduleStatus.COMPLETED, False),
)


def _coerce_status(status: Union[ScheduleStatus, str, None]) -> Optional[ScheduleStatus]:
    if isinstance(status, ScheduleStatus):
        return status
    try:
        return ScheduleStatus(status)
    except ValueError:
        return None


class ScheduleStateValidator:
    """Decides whether a schedule may move between lifecycle states."""

    def can_pause(self, schedule: ScheduleRecord) -> bool:
        """Only active schedules can be paused."""
        return _coerce_status(schedule.status) == ScheduleStatus.ACTIVE

    def can_resume(self, schedule: ScheduleRecord) -> bool:
        """Only paused schedules can be resumed."""
        return _coerce_status(schedule.status) == ScheduleStatus.PAUSED

    def find_rule(
        self,
        from_status: Union[ScheduleStatus, str],
        to_status: Union[ScheduleStatus, str],
    ) -> Optional[TransitionRule]:
        source = _coerce_status(from_status)
        target = _coerce_status(to_status)
        for rule in TRANSITION_RULES:
            if rule.from_status == source and rule.to_status == target:
                return rule
        return None

    def validate_transition(
        self,
        from_status: Union[ScheduleStatus, str],
        to_status: Union[ScheduleStatus, str],
    ) -> TransitionValidation:
        """Check a transition against the rule table.

        Same-state is a valid no-op carrying a warning.
        """
        result = TransitionValidation()
        source = getattr(from_status, "value", from_status)
        target = getattr(to_status, "value", to_status)

        if source == target:
            result.is_valid = True
            result.warnings.append("Status is unchanged")
            return result

        rule = self.find_rule(from_status, to_status)
        if rule is None:
            result.errors.append(f"Transition from '{source}' to '{target}' is not defined")
            return result

        if not rule.allowed:
            result.errors.append(f"Transition from '{source}' to '{target}' is not allowed")
            return result

        result.is_valid = True

        if rule.requires_date_recalculation:
            result.required_actions.append("recalculate next_due_date")
        if rule.requires_data_sync:
            result.required_actions.append("sync executions and notifications")

        if rule.to_status == ScheduleStatus.PAUSED:
            result.warnings.append("Planned executions and pending notifications will be cancelled")
        if rule.from_status == ScheduleStatus.PAUSED and rule.to_status == ScheduleStatus.ACTIVE:
            result.warnings.append("Executions due during the pause may have been missed")

        return result

    def get_blocking_reasons(
        self,
        schedule: ScheduleRecord,
        target_status: Union[ScheduleStatus, str],
    ) -> List[str]:
        """Human-readable reasons a transition to target_status is blocked."""
        validation = self.validate_transition(schedule.status, target_status)
        return list(validation.errors)

    def get_required_actions(
        self,
        from_status: Union[ScheduleStatus, str],
        to_status: Union[ScheduleStatus, str],
    ) -> List[str]:
        return self.validate_transition(from_status, to_status).required_actions
