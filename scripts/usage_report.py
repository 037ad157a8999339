"""CLI script to print the WAN usage report of a UniFi site.

Usage:
    python scripts/usage_report.py [--site default] [--days 30]
        [--from 2024-01-01 --to 2024-01-31]
        [--controller home] [--url https://unifi:8443 --user admin --password secret]

Logs in to the configured controller (or the one given on the command line),
fetches the daily site statistics and prints one line per day together with
the grand total in GB.
"""

import argparse
import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path

# Ensure project root is in the Python path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from unifi_stats.config import settings
from unifi_stats.exceptions import (
    ControllerAuthError,
    ControllerConfigurationError,
    ControllerError,
)
from unifi_stats.schemas import UsageFilter
from unifi_stats.services.controller_client import UniFiClient
from unifi_stats.services.registry import default_profile, load_registry
from unifi_stats.services.usage_service import build_usage_report

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _usage_filter(parsed_args) -> UsageFilter:
    if parsed_args.date_from and parsed_args.date_to:
        start = date.fromisoformat(parsed_args.date_from)
        end = date.fromisoformat(parsed_args.date_to)
        return UsageFilter(
            from_d=str(start.day),
            from_m=str(start.month),
            from_y=str(start.year),
            to_d=str(end.day),
            to_m=str(end.month),
            to_y=str(end.year),
        )
    return UsageFilter(days=str(parsed_args.days) if parsed_args.days else None)


def main(args=None):
    """Main entry point for the usage report CLI script.

    Args:
        args: Command-line arguments (defaults to sys.argv if None).

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    parser = argparse.ArgumentParser(
        description="Print the daily WAN usage of a UniFi site"
    )
    parser.add_argument("--site", type=str, default="default", help="Site machine name")
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help=f"Trailing window in days (default: {settings.DEFAULT_USAGE_DAYS})",
    )
    parser.add_argument("--from", dest="date_from", help="Range start (YYYY-MM-DD)")
    parser.add_argument("--to", dest="date_to", help="Range end (YYYY-MM-DD)")
    parser.add_argument(
        "--controller",
        type=str,
        default=None,
        help="Controller id from CONTROLLERS_FILE (default: single-controller settings)",
    )
    parser.add_argument("--url", type=str, default=None, help="Controller URL")
    parser.add_argument("--user", type=str, default=None, help="Controller username")
    parser.add_argument("--password", type=str, default=None, help="Controller password")

    parsed_args = parser.parse_args(args)

    try:
        usage_filter = _usage_filter(parsed_args)
    except ValueError as e:
        logger.error("Invalid date: %s", e)
        return 1

    try:
        profile = default_profile(settings)
        if parsed_args.controller:
            registry = load_registry(settings.CONTROLLERS_FILE)
            if registry is None or parsed_args.controller not in registry:
                raise ControllerConfigurationError(
                    f"Unknown controller id '{parsed_args.controller}'."
                )
            profile = registry[parsed_args.controller]
    except ControllerConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 1

    overrides = {
        key: value
        for key, value in (
            ("url", parsed_args.url),
            ("user", parsed_args.user),
            ("password", parsed_args.password),
        )
        if value
    }
    profile = profile.model_copy(update=overrides)
    if not profile.credentials_complete():
        logger.error("Controller URL, username and password are all required")
        return 1

    client = UniFiClient(
        profile,
        site_id=parsed_args.site,
        verify_ssl=settings.CONTROLLER_VERIFY_SSL,
        timeout=settings.CONTROLLER_TIMEOUT,
    )
    try:
        client.login()
        samples = client.stat_daily_site()
    except ControllerAuthError as e:
        logger.error("Login failed: %s", e)
        return 1
    except ControllerError as e:
        logger.error("Controller error: %s", e)
        return 1
    finally:
        client.close()

    report = build_usage_report(
        samples,
        usage_filter,
        datetime.now(timezone.utc),
        tz_name=settings.USAGE_TIMEZONE,
        default_days=settings.DEFAULT_USAGE_DAYS,
    )

    print(report.caption)
    for line in report.lines:
        print(
            f"{line.date:>10} ({line.days_ago} days ago)  "
            f"up {line.upload_gb:.2f}GB  down {line.download_gb:.2f}GB  "
            f"total {line.total_gb:.2f}GB"
        )
    print(f"Total: {report.total_gb:.2f}GB")
    return 0


if __name__ == "__main__":
    sys.exit(main())
