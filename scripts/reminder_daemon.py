"""
Daemon that pushes novena reminders at the configured morning/evening times.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from novena_api.config import get_settings
from novena_api.dependencies import build_reminder_scheduler, build_reminder_sweep
from novena_api.reminders import ReminderPeriod

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Novena reminder daemon")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep and exit",
    )
    parser.add_argument(
        "-p",
        "--period",
        choices=[period.value for period in ReminderPeriod],
        default=ReminderPeriod.MORNING.value,
        help="Reminder period used with --once",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()

    if args.once:
        sweep = build_reminder_sweep(settings)
        result = sweep.run(ReminderPeriod(args.period))
        logger.info(
            "Sweep finished: %d sent, %d skipped, %d failed",
            result.sent,
            result.skipped,
            result.failed,
        )
        return 0 if result.failed == 0 else 1

    scheduler = build_reminder_scheduler(settings)
    scheduler.start()
    try:
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        logger.info("Stopping reminder scheduler")
    finally:
        scheduler.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
