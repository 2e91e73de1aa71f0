"""
Backend services for carecycle.

- ScheduleStateManager: pause/resume orchestration
- ScheduleStateValidator: transition predicates
- ScheduleDateCalculator: resume targets, missed cycles, catch-up dates
- sort_schedules_by_priority: checklist ordering
- TokenService / InvitationService / SignupService: invitation lifecycle
- EventLogService: append-only audit events
- AuthService: authentication and user provisioning
- AutoHoldService: daily pause of overdue schedules
"""

from .errors import (
    CarecycleError,
    ValidationError,
    StateTransitionError,
    NotFoundError,
    ConflictError,
)
from .event_log import EventLogService
from .schedule_state_validator import ScheduleStateValidator, TransitionValidation
from .schedule_date_calculator import ScheduleDateCalculator
from .schedule_state_manager import ScheduleStateManager, get_schedule_state_manager
from .schedule_priority import sort_schedules_by_priority, get_schedule_status_label
from .invitation_token import TokenService, TokenValidationResult
from .invitation_service import InvitationService
from .signup_service import SignupService
from .auth_service import AuthService, get_auth_service, get_user_from_token
from .auto_hold import AutoHoldService

__all__ = [
    # Errors
    "CarecycleError",
    "ValidationError",
    "StateTransitionError",
    "NotFoundError",
    "ConflictError",
    # Scheduling
    "EventLogService",
    "ScheduleStateValidator",
    "TransitionValidation",
    "ScheduleDateCalculator",
    "ScheduleStateManager",
    "get_schedule_state_manager",
    "sort_schedules_by_priority",
    "get_schedule_status_label",
    # Invitations
    "TokenService",
    "TokenValidationResult",
    "InvitationService",
    "SignupService",
    # Auth
    "AuthService",
    "get_auth_service",
    "get_user_from_token",
    "AutoHoldService",
]
