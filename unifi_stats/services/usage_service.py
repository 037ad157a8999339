"""Usage aggregation over the controller's daily site statistics.

Turns the ``stat_daily_site`` collection into a per-day report of uploaded,
downloaded and total traffic in GB, filtered either by an explicit calendar
range or by a trailing window of N days, with a grand total over the
included days.
"""

import logging
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Tuple
from zoneinfo import ZoneInfo

import pandas as pd

from unifi_stats.schemas import UsageFilter, UsageLine, UsageReport

logger = logging.getLogger(__name__)

BYTES_PER_GB = 2**30
TIME_FIELD = "time"
UPLOAD_FIELD = "wan-tx_bytes"
DOWNLOAD_FIELD = "wan-rx_bytes"


def round_gb(value: float) -> float:
    """Round to two decimals, halves away from zero."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _present(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def parse_date_range(usage_filter: UsageFilter) -> Optional[Tuple[date, date]]:
    """Return the inclusive (start, end) range, or None to use the trailing window.

    A range is only used when all six day/month/year fields are present and
    form valid calendar dates; anything less falls back to the window.
    """
    fields = (
        usage_filter.from_d,
        usage_filter.from_m,
        usage_filter.from_y,
        usage_filter.to_d,
        usage_filter.to_m,
        usage_filter.to_y,
    )
    if not all(_present(f) for f in fields):
        return None
    try:
        from_d, from_m, from_y, to_d, to_m, to_y = (int(f) for f in fields)
        return date(from_y, from_m, from_d), date(to_y, to_m, to_d)
    except (ValueError, OverflowError):
        logger.warning("Ignoring invalid usage date range: %s", "/".join(fields))
        return None


def parse_window_days(raw: Optional[str], default: int = 30) -> int:
    """Parse the trailing window size; empty, zero, negative or non-numeric values give ``default``."""
    try:
        days = int(str(raw).strip())
    except ValueError:
        return default
    return days if days > 0 else default


def _caption(usage_filter: UsageFilter, date_range, days: int) -> str:
    if date_range is not None:
        f = usage_filter
        return (
            f"Usage from {f.from_d}/{f.from_m}/{f.from_y} "
            f"to {f.to_d}/{f.to_m}/{f.to_y}"
        )
    return f"Usage over the last {days} days"


def _samples_frame(samples: list, tz: ZoneInfo) -> pd.DataFrame:
    """Normalize raw samples into a frame with date, upload and download columns."""
    df = pd.DataFrame([s for s in samples if isinstance(s, dict)])
    if df.empty:
        return pd.DataFrame(columns=["date", "upload_gb", "download_gb"])
    for column in (TIME_FIELD, UPLOAD_FIELD, DOWNLOAD_FIELD):
        if column not in df.columns:
            df[column] = None

    df[TIME_FIELD] = pd.to_numeric(df[TIME_FIELD], errors="coerce")
    dropped = int(df[TIME_FIELD].isna().sum())
    if dropped:
        logger.warning("Skipping %d usage samples without a timestamp", dropped)
    df = df[df[TIME_FIELD].notna()].copy()
    if df.empty:
        return pd.DataFrame(columns=["date", "upload_gb", "download_gb"])

    df["date"] = (
        pd.to_datetime(df[TIME_FIELD], unit="ms", utc=True).dt.tz_convert(tz).dt.date
    )
    df["upload_gb"] = pd.to_numeric(df[UPLOAD_FIELD], errors="coerce").fillna(0) / BYTES_PER_GB
    df["download_gb"] = (
        pd.to_numeric(df[DOWNLOAD_FIELD], errors="coerce").fillna(0) / BYTES_PER_GB
    )
    return df[["date", "upload_gb", "download_gb"]]


def build_usage_report(
    samples: Any,
    usage_filter: UsageFilter,
    now: datetime,
    tz_name: str = "UTC",
    default_days: int = 30,
) -> UsageReport:
    """Build the usage report for a daily site statistics collection.

    Args:
        samples: The collection returned by ``stat_daily_site``; anything that
            is not a non-empty list yields an empty report.
        usage_filter: Date range / trailing window fields from the request.
        now: Current time; naive values are taken as UTC.
        tz_name: Time zone in which sample timestamps are truncated to dates.
        default_days: Window size used when none (or zero) is requested.

    Returns:
        UsageReport with one line per included sample, in input order.
    """
    tz = ZoneInfo(tz_name)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    today = now.astimezone(tz).date()

    date_range = parse_date_range(usage_filter)
    days = parse_window_days(usage_filter.days, default_days)
    caption = _caption(usage_filter, date_range, days)

    if not isinstance(samples, list) or not samples:
        return UsageReport(caption=caption, total_gb=0.0, lines=[])

    lines = []
    grand_total = 0.0
    for row in _samples_frame(samples, tz).itertuples(index=False):
        days_ago = abs((today - row.date).days)
        if date_range is not None:
            start, end = date_range
            included = start <= row.date <= end
        else:
            included = days_ago <= days
        if not included:
            continue

        upload = round_gb(row.upload_gb)
        download = round_gb(row.download_gb)
        lines.append(
            UsageLine(
                date=f"{row.date.day}/{row.date.month}/{row.date.year}",
                days_ago=days_ago,
                upload_gb=upload,
                download_gb=download,
                total_gb=round_gb(upload + download),
            )
        )
        grand_total += row.upload_gb + row.download_gb

    return UsageReport(caption=caption, total_gb=round_gb(grand_total), lines=lines)
