#!/usr/bin/env python3
"""
Pause schedules overdue beyond each organization's auto-hold policy.

Meant to run once a day from cron.

Usage:
    cd backend
    source venv/bin/activate
    python scripts/run_auto_hold.py [--date YYYY-MM-DD] [--batch-size 100]
"""

import argparse
import logging
import sys
from pathlib import Path

# Add backend to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from carecycle.config import config
from carecycle.db.postgres import get_db_session
from carecycle.services.auto_hold import AutoHoldService, SqlPolicySource
from carecycle.services.date_utils import safe_parse_date
from carecycle.services.schedule_state_manager import get_schedule_state_manager


def main():
    parser = argparse.ArgumentParser(description="Auto-hold overdue schedules")
    parser.add_argument("--date", help="Run as of this date (default: today in clinic time zone)")
    parser.add_argument("--batch-size", type=int, default=config.AUTO_HOLD_BATCH_SIZE)
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    as_of = None
    if args.date:
        as_of = safe_parse_date(args.date)
        if as_of is None:
            parser.error(f"Invalid --date: {args.date}")

    with get_db_session() as db:
        service = AutoHoldService(
            get_schedule_state_manager(db),
            SqlPolicySource(db),
            batch_size=args.batch_size,
        )
        result = service.run(today=as_of)

    print(f"Organizations processed: {result.organizations_processed}")
    print(f"Schedules paused: {result.schedules_paused}")
    if result.failed_schedule_ids:
        print(f"Failed: {len(result.failed_schedule_ids)}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
