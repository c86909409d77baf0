"""
Datetime utilities.

Timezone-aware helpers used for order timestamps and rate snapshots.
"""

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """Current UTC datetime with timezone info."""
    return datetime.now(UTC)


def days_ago(days: int, now: datetime | None = None) -> datetime:
    """
    Get the UTC moment ``days`` days before ``now``.

    Args:
        days: Number of days to go back
        now: Reference moment (defaults to current UTC time)

    Returns:
        Timezone-aware datetime
    """
    return (now or utc_now()) - timedelta(days=days)
