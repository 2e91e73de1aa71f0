"""
Unit tests for the schedules API blueprint.

The state manager and database session are patched; these tests cover
request parsing, auth, and error-to-HTTP mapping.
"""

import pytest
import uuid
from datetime import date, datetime
from unittest.mock import MagicMock, patch

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', '..', 'backend'))

from carecycle.models.schedule import ScheduleStatus
from carecycle.services.errors import NotFoundError, StateTransitionError, ValidationError
from carecycle.services.schedule_types import (
    MissedHandling,
    ResumeResult,
    ResumeStrategy,
    ScheduleRecord,
    StateTransition,
)


TENANT = uuid.uuid4()
USER_ID = uuid.uuid4()
SCHEDULE_ID = uuid.uuid4()
AUTH = {"Authorization": "Bearer test-token"}


@pytest.fixture
def app():
    """Create test Flask app."""
    from server import create_app
    app = create_app(init_database=False)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def user():
    user = MagicMock()
    user.user_id = USER_ID
    user.organization_id = TENANT
    user.role = "nurse"
    return user


@pytest.fixture
def authed(user):
    """Patch token lookup so require_auth resolves to `user`."""
    with patch('carecycle.api.decorators.get_db_session') as mock_auth_db, \
            patch('carecycle.api.decorators.get_user_from_token') as mock_get_user:
        mock_auth_db.return_value.__enter__.return_value = MagicMock()
        mock_get_user.return_value = user
        yield mock_get_user


@pytest.fixture
def manager():
    """Patch the manager factory and route-level session."""
    with patch('carecycle.api.schedules.get_db_session') as mock_db_session, \
            patch('carecycle.api.schedules.get_schedule_state_manager') as mock_factory:
        mock_db_session.return_value.__enter__.return_value = MagicMock()
        manager = MagicMock()
        mock_factory.return_value = manager
        yield manager


def paused_record():
    return ScheduleRecord(
        schedule_id=SCHEDULE_ID,
        organization_id=TENANT,
        interval_weeks=4,
        start_date=date(2026, 1, 5),
        next_due_date=date(2026, 10, 5),
        status=ScheduleStatus.PAUSED,
        paused_at=datetime(2026, 10, 19, 9, 0),
    )


# =============================================================================
# Test authentication
# =============================================================================

class TestAuth:

    def test_missing_header(self, client):
        response = client.post(f'/api/v1/schedules/{SCHEDULE_ID}/pause')
        assert response.status_code == 401

    def test_invalid_token(self, client, authed):
        authed.return_value = None

        response = client.post(f'/api/v1/schedules/{SCHEDULE_ID}/pause', headers=AUTH)

        assert response.status_code == 401

    def test_user_without_organization(self, client, authed, user):
        user.organization_id = None

        response = client.post(f'/api/v1/schedules/{SCHEDULE_ID}/pause', headers=AUTH)

        assert response.status_code == 403


# =============================================================================
# Test pause
# =============================================================================

class TestPauseEndpoint:

    def test_pause(self, client, authed, manager):
        manager.pause_schedule.return_value = paused_record()

        response = client.post(
            f'/api/v1/schedules/{SCHEDULE_ID}/pause',
            json={"reason": "Hospitalised", "notify_assigned_nurse": True},
            headers=AUTH,
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "paused"
        assert data["paused_at"] == "2026-10-19T09:00:00"

        tenant_id, schedule_id, options = manager.pause_schedule.call_args.args
        assert tenant_id == TENANT
        assert schedule_id == SCHEDULE_ID
        assert options.reason == "Hospitalised"
        assert options.notify_assigned_nurse is True
        assert options.actor_user_id == USER_ID

    def test_pause_not_allowed(self, client, authed, manager):
        manager.pause_schedule.side_effect = StateTransitionError(
            "Transition from 'cancelled' to 'paused' is not allowed"
        )

        response = client.post(f'/api/v1/schedules/{SCHEDULE_ID}/pause', headers=AUTH)

        assert response.status_code == 400
        assert response.get_json() == {
            "ok": False,
            "error": "Transition from 'cancelled' to 'paused' is not allowed",
            "reason": "invalid_state",
        }

    def test_pause_unknown(self, client, authed, manager):
        manager.pause_schedule.side_effect = NotFoundError("Schedule not found")

        response = client.post(f'/api/v1/schedules/{SCHEDULE_ID}/pause', headers=AUTH)

        assert response.status_code == 404
        assert response.get_json()["reason"] == "not_found"

    def test_malformed_id_is_not_found(self, client, authed, manager):
        response = client.post('/api/v1/schedules/not-a-uuid/pause', headers=AUTH)

        assert response.status_code == 404
        manager.pause_schedule.assert_not_called()


# =============================================================================
# Test resume
# =============================================================================

class TestResumeEndpoint:

    def test_resume(self, client, authed, manager):
        manager.resume_schedule.return_value = ResumeResult(
            schedule_id=SCHEDULE_ID,
            next_due_date=date(2026, 11, 16),
            pause_weeks=1,
        )

        response = client.post(
            f'/api/v1/schedules/{SCHEDULE_ID}/resume',
            json={"strategy": "next_cycle", "handle_missed": "catch_up"},
            headers=AUTH,
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["ok"] is True
        assert data["next_due_date"] == "2026-11-16"
        assert data["catch_up_dates"] == []

        options = manager.resume_schedule.call_args.args[2]
        assert options.strategy == ResumeStrategy.NEXT_CYCLE
        assert options.handle_missed == MissedHandling.CATCH_UP
        assert options.actor_user_id == USER_ID

    def test_resume_custom_date_parsed(self, client, authed, manager):
        manager.resume_schedule.return_value = ResumeResult(SCHEDULE_ID, date(2026, 11, 2))

        client.post(
            f'/api/v1/schedules/{SCHEDULE_ID}/resume',
            json={"strategy": "custom", "custom_date": "2026-11-02"},
            headers=AUTH,
        )

        assert manager.resume_schedule.call_args.args[2].custom_date == date(2026, 11, 2)

    def test_unknown_strategy(self, client, authed, manager):
        response = client.post(
            f'/api/v1/schedules/{SCHEDULE_ID}/resume',
            json={"strategy": "tomorrow"},
            headers=AUTH,
        )

        assert response.status_code == 400
        assert response.get_json()["reason"] == "invalid_strategy"
        manager.resume_schedule.assert_not_called()

    def test_unparseable_custom_date(self, client, authed, manager):
        response = client.post(
            f'/api/v1/schedules/{SCHEDULE_ID}/resume',
            json={"strategy": "custom", "custom_date": "2026-13-45"},
            headers=AUTH,
        )

        assert response.status_code == 400
        assert response.get_json()["reason"] == "invalid_date"
        manager.resume_schedule.assert_not_called()

    def test_date_in_past(self, client, authed, manager):
        manager.resume_schedule.side_effect = ValidationError(
            "date_in_past", "Next due date cannot be in the past"
        )

        response = client.post(
            f'/api/v1/schedules/{SCHEDULE_ID}/resume',
            json={"strategy": "custom", "custom_date": "2020-01-01"},
            headers=AUTH,
        )

        assert response.status_code == 400
        assert response.get_json()["reason"] == "date_in_past"


# =============================================================================
# Test resume-options / history / review
# =============================================================================

class TestReadEndpoints:

    def test_resume_options(self, client, authed, manager):
        manager.get_resume_options.return_value = {
            "suggested": "next_cycle",
            "pause_weeks": 9,
            "can_resume": True,
        }

        response = client.get(f'/api/v1/schedules/{SCHEDULE_ID}/resume-options', headers=AUTH)

        assert response.status_code == 200
        assert response.get_json()["suggested"] == "next_cycle"

    def test_history(self, client, authed, manager):
        manager.get_state_transition_history.return_value = [
            StateTransition(SCHEDULE_ID, "paused", "active", datetime(2026, 10, 19, 9, 0)),
        ]

        response = client.get(f'/api/v1/schedules/{SCHEDULE_ID}/history', headers=AUTH)

        transitions = response.get_json()["transitions"]
        assert len(transitions) == 1
        assert transitions[0]["from_status"] == "paused"
        assert transitions[0]["transition_date"] == "2026-10-19T09:00:00"

    def test_clear_review(self, client, authed, manager):
        manager.clear_review_flag.return_value = True

        response = client.post(f'/api/v1/schedules/{SCHEDULE_ID}/review/clear', headers=AUTH)

        assert response.get_json() == {"ok": True, "cleared": True}
        assert manager.clear_review_flag.call_args.kwargs["actor_user_id"] == USER_ID


# =============================================================================
# Test checklist
# =============================================================================

class TestChecklistEndpoint:

    @patch('carecycle.api.schedules.clinic_today')
    @patch('carecycle.api.schedules.SqlScheduleStore')
    @patch('carecycle.api.schedules.get_db_session')
    def test_checklist_sorted_and_labelled(self, mock_db_session, mock_store, mock_today, client, authed):
        mock_db_session.return_value.__enter__.return_value = MagicMock()
        mock_today.return_value = date(2025, 1, 21)
        mock_store.return_value.list_checklist.return_value = [
            {"id": "c1", "display_type": "completed", "status": "completed",
             "executed_date": "2025-01-20", "next_due_date": "2025-01-20"},
            {"id": "s1", "display_type": "scheduled", "status": "active", "next_due_date": "2025-01-20"},
            {"id": "s2", "display_type": "scheduled", "status": "active", "next_due_date": "2025-01-21"},
        ]

        response = client.get('/api/v1/schedules/checklist', headers=AUTH)

        assert response.status_code == 200
        items = response.get_json()["items"]
        assert [i["id"] for i in items] == ["s1", "s2", "c1"]
        assert items[0]["status_label"] == "Overdue by 1 day"
        assert items[1]["status_variant"] == "today"
        assert "status_label" not in items[2]

    def test_checklist_invalid_until(self, client, authed):
        response = client.get('/api/v1/schedules/checklist?until=garbage', headers=AUTH)

        assert response.status_code == 400
        assert response.get_json()["reason"] == "invalid_date"
