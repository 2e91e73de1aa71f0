"""
Auto-hold of overdue schedules.

Each organization with auto_hold_overdue_days > 0 has its active schedules
whose next_due_date is older than today - N days paused with reason
"auto-hold". Meant to run once a day (flask auto-hold or
scripts/run_auto_hold.py).
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple
import logging
import uuid

from sqlalchemy.orm import Session

from carecycle.config import config
from carecycle.models import OrganizationPolicy
from carecycle.services.errors import CarecycleError
from carecycle.services.schedule_state_manager import ScheduleStateManager
from carecycle.services.schedule_types import PauseOptions

logger = logging.getLogger("service.AutoHold")

AUTO_HOLD_REASON = "auto-hold"


@dataclass
class AutoHoldResult:
    organizations_processed: int = 0
    schedules_paused: int = 0
    failed_schedule_ids: List[uuid.UUID] = field(default_factory=list)
    per_organization: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "organizations_processed": self.organizations_processed,
            "total_schedules_updated": self.schedules_paused,
            "failed": [str(schedule_id) for schedule_id in self.failed_schedule_ids],
            "per_organization": self.per_organization,
        }


class SqlPolicySource:
    """Reads auto-hold thresholds from organization_policy."""

    def __init__(self, db: Session):
        self.db = db

    def list_auto_hold_policies(self) -> List[Tuple[uuid.UUID, int]]:
        rows = self.db.query(
            OrganizationPolicy.organization_id,
            OrganizationPolicy.auto_hold_overdue_days,
        ).filter(
            OrganizationPolicy.auto_hold_overdue_days.isnot(None),
            OrganizationPolicy.auto_hold_overdue_days > 0,
        ).all()
        return [(row[0], row[1]) for row in rows]


class AutoHoldService:
    """Pauses overdue schedules through the state manager."""

    def __init__(
        self,
        manager: ScheduleStateManager,
        policy_source,
        batch_size: Optional[int] = None,
    ):
        self.manager = manager
        self.policies = policy_source
        self.batch_size = batch_size or config.AUTO_HOLD_BATCH_SIZE

    def run(self, today: Optional[date] = None) -> AutoHoldResult:
        today = today or self.manager.clock.today()
        result = AutoHoldResult()

        for organization_id, overdue_days in self.policies.list_auto_hold_policies():
            cutoff = today - timedelta(days=overdue_days)
            logger.info(f"Auto-hold: organization {organization_id}, cutoff {cutoff} ({overdue_days} days)")
            paused = self._hold_organization(organization_id, cutoff, result)
            result.per_organization[str(organization_id)] = paused
            result.schedules_paused += paused
            result.organizations_processed += 1

        logger.info(
            f"Auto-hold completed: {result.organizations_processed} organization(s), "
            f"{result.schedules_paused} schedule(s) paused, {len(result.failed_schedule_ids)} failure(s)"
        )
        return result

    def _hold_organization(self, organization_id: uuid.UUID, cutoff: date, result: AutoHoldResult) -> int:
        paused = 0
        failed = set()

        while True:
            # Failed rows stay active, so fetch past them
            batch = self.manager.store.list_overdue_active(
                organization_id, cutoff, self.batch_size + len(failed)
            )
            batch = [schedule for schedule in batch if schedule.schedule_id not in failed]
            if not batch:
                break

            for schedule in batch[:self.batch_size]:
                try:
                    self.manager.pause_schedule(
                        organization_id,
                        schedule.schedule_id,
                        PauseOptions(reason=AUTO_HOLD_REASON, metadata={"source": "system"}),
                    )
                    paused += 1
                except CarecycleError as e:
                    logger.warning(f"Auto-hold skipped schedule {schedule.schedule_id}: {e}")
                    failed.add(schedule.schedule_id)
                    result.failed_schedule_ids.append(schedule.schedule_id)

            if len(batch) < self.batch_size:
                break

        return paused
