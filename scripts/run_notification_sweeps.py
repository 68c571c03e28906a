"""Run the scheduled-delivery and retention sweeps once.

Meant to be invoked by an external scheduler such as cron.
"""

from __future__ import annotations

import argparse
import logging

import anyio

from projectflow.application.use_cases.notifications import RetentionPolicy
from projectflow.config import get_settings
from projectflow.domain.errors import NotificationError
from projectflow.main import configure_logging, notification_runtime

logger = logging.getLogger("projectflow.sweeps")


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the sweep run."""

    parser = argparse.ArgumentParser(
        description="Deliver due scheduled notifications and purge expired ones.",
    )
    parser.add_argument(
        "--skip-scheduled",
        action="store_true",
        help="Do not deliver pending scheduled notifications",
    )
    parser.add_argument(
        "--skip-cleanup",
        action="store_true",
        help="Do not purge notifications past the retention window",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Maximum pending notifications delivered in this run (default: SCHEDULED_BATCH_SIZE)",
    )
    parser.add_argument(
        "--days-to-keep",
        type=int,
        default=None,
        help="Retention window in days (default: NOTIFICATION_RETENTION_DAYS)",
    )
    parser.add_argument(
        "--policy",
        choices=[policy.value for policy in RetentionPolicy],
        default=None,
        help="Retention policy (default: NOTIFICATION_RETENTION_POLICY)",
    )
    return parser.parse_args()


async def run(args: argparse.Namespace) -> None:
    settings = get_settings()
    async with notification_runtime(settings) as runtime:
        if not args.skip_scheduled:
            processed = await runtime.service.process_scheduled_notifications(
                batch_size=args.batch_size
            )
            print(f"Scheduled notifications delivered: {processed}")
        if not args.skip_cleanup:
            days_to_keep = args.days_to_keep
            if days_to_keep is None:
                days_to_keep = settings.notification_retention_days
            deleted = await runtime.service.cleanup(days_to_keep, args.policy)
            print(f"Expired notifications deleted: {deleted}")


def main() -> None:
    """Run the sweeps selected on the command line."""

    args = parse_args()
    configure_logging(get_settings())
    try:
        anyio.run(run, args)
    except NotificationError as exc:
        raise SystemExit(f"Notification sweep failed: {exc}") from exc


if __name__ == "__main__":
    main()
