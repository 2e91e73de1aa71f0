"""
Schedules API Blueprint

Flask routes for schedule lifecycle:
- POST /api/v1/schedules/<id>/pause - Pause an active schedule
- POST /api/v1/schedules/<id>/resume - Resume a paused schedule
- GET /api/v1/schedules/<id>/resume-options - Suggested strategy and targets
- GET /api/v1/schedules/<id>/history - State transition history
- POST /api/v1/schedules/<id>/review/clear - Resolve a mark_overdue gap
- GET /api/v1/schedules/checklist - Prioritized checklist
"""

from flask import Blueprint, request, jsonify, g

from carecycle.api.decorators import require_auth, service_errors, parse_uuid
from carecycle.db.postgres import get_db_session
from carecycle.services.date_utils import safe_parse_date, today as clinic_today
from carecycle.services.errors import ValidationError
from carecycle.services.schedule_priority import sort_schedules_by_priority, get_schedule_status_label
from carecycle.services.schedule_state_manager import get_schedule_state_manager
from carecycle.services.schedule_store import SqlScheduleStore
from carecycle.services.schedule_types import PauseOptions, ResumeOptions

schedules_bp = Blueprint('schedules_api', __name__, url_prefix='/api/v1/schedules')


# =============================================================================
# POST /api/v1/schedules/<id>/pause
# =============================================================================

@schedules_bp.route('/<schedule_id>/pause', methods=['POST'])
@require_auth
@service_errors
def pause_schedule(schedule_id):
    """
    Pause an active schedule.

    Request body (all optional):
    {
        "reason": "Patient hospitalized",
        "notify_assigned_nurse": true,
        "metadata": {...}
    }
    """
    data = request.get_json(silent=True) or {}
    options = PauseOptions(
        reason=data.get("reason"),
        notify_assigned_nurse=bool(data.get("notify_assigned_nurse", False)),
        actor_user_id=g.user_id,
        metadata=data.get("metadata") or {},
    )

    with get_db_session() as db:
        manager = get_schedule_state_manager(db)
        schedule = manager.pause_schedule(g.tenant_id, parse_uuid(schedule_id), options)

    return jsonify({
        "ok": True,
        "schedule_id": str(schedule.schedule_id),
        "status": schedule.status.value,
        "paused_at": schedule.paused_at.isoformat() if schedule.paused_at else None,
    })


# =============================================================================
# POST /api/v1/schedules/<id>/resume
# =============================================================================

@schedules_bp.route('/<schedule_id>/resume', methods=['POST'])
@require_auth
@service_errors
def resume_schedule(schedule_id):
    """
    Resume a paused schedule.

    Request body:
    {
        "strategy": "immediate" | "next_cycle" | "custom",
        "custom_date": "2026-11-02",        // required for custom
        "handle_missed": "skip" | "catch_up" | "mark_overdue"
    }
    """
    data = request.get_json(silent=True) or {}
    options = ResumeOptions.from_dict(data)
    options.actor_user_id = g.user_id

    with get_db_session() as db:
        manager = get_schedule_state_manager(db)
        result = manager.resume_schedule(g.tenant_id, parse_uuid(schedule_id), options)

    return jsonify({"ok": True, **result.to_dict()})


# =============================================================================
# GET /api/v1/schedules/<id>/resume-options
# =============================================================================

@schedules_bp.route('/<schedule_id>/resume-options', methods=['GET'])
@require_auth
@service_errors
def resume_options(schedule_id):
    """Suggested resume strategy plus the target date for each alternative."""
    with get_db_session() as db:
        manager = get_schedule_state_manager(db)
        options = manager.get_resume_options(g.tenant_id, parse_uuid(schedule_id))

    return jsonify({"ok": True, **options})


# =============================================================================
# GET /api/v1/schedules/<id>/history
# =============================================================================

@schedules_bp.route('/<schedule_id>/history', methods=['GET'])
@require_auth
@service_errors
def transition_history(schedule_id):
    with get_db_session() as db:
        manager = get_schedule_state_manager(db)
        transitions = manager.get_state_transition_history(g.tenant_id, parse_uuid(schedule_id))

    return jsonify({
        "ok": True,
        "transitions": [t.to_dict() for t in transitions],
    })


# =============================================================================
# POST /api/v1/schedules/<id>/review/clear
# =============================================================================

@schedules_bp.route('/<schedule_id>/review/clear', methods=['POST'])
@require_auth
@service_errors
def clear_review(schedule_id):
    with get_db_session() as db:
        manager = get_schedule_state_manager(db)
        cleared = manager.clear_review_flag(g.tenant_id, parse_uuid(schedule_id), actor_user_id=g.user_id)

    return jsonify({"ok": True, "cleared": cleared})


# =============================================================================
# GET /api/v1/schedules/checklist
# =============================================================================

@schedules_bp.route('/checklist', methods=['GET'])
@require_auth
@service_errors
def checklist():
    """
    Prioritized checklist for the caller's organization.

    Query params:
    - until: YYYY-MM-DD, latest due date included (default: today)
    """
    today = clinic_today()
    until_param = request.args.get('until')
    until = safe_parse_date(until_param) if until_param else today
    if until is None:
        raise ValidationError("invalid_date", f"Invalid date: {until_param}")

    with get_db_session() as db:
        entries = SqlScheduleStore(db).list_checklist(g.tenant_id, until)

    ordered = sort_schedules_by_priority(entries, today)
    for entry in ordered:
        if entry.get("display_type") != "completed":
            info = get_schedule_status_label(entry.get("next_due_date"), today)
            entry["status_label"] = info.label
            entry["status_variant"] = "overdue" if entry.get("review_required") else info.variant

    return jsonify({
        "ok": True,
        "today": today.isoformat(),
        "items": ordered,
    })
