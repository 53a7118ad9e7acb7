"""
Time semantics utilities for feed epochs vs wall-clock time.

The quote feed stamps every tick with a Unix epoch in seconds. Those
epochs are authoritative for snapshots and signals; wall-clock time is only
used when a tick carries no epoch and for trade bookkeeping.
"""

from datetime import datetime, timezone
from typing import Optional


def epoch_to_datetime(epoch: int) -> datetime:
    """
    Convert a feed epoch (seconds) to a UTC datetime.

    Args:
        epoch: Unix timestamp in seconds

    Returns:
        Timezone-aware UTC datetime
    """
    return datetime.fromtimestamp(int(epoch), tz=timezone.utc)


def get_market_time(epoch: Optional[int] = None) -> datetime:
    """
    Get the current market time, preferring the feed epoch over wall-clock time.

    Args:
        epoch: Optional epoch from the feed

    Returns:
        Market time as UTC datetime, falling back to wall-clock time if unavailable
    """
    if epoch is not None:
        return epoch_to_datetime(epoch)

    return datetime.now(timezone.utc)


def utc_now() -> datetime:
    """Current wall-clock time in UTC."""
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(utc_now().timestamp() * 1000)


def is_same_utc_day(first: datetime, second: datetime) -> bool:
    """True when both timestamps fall on the same UTC calendar day."""
    return first.astimezone(timezone.utc).date() == second.astimezone(timezone.utc).date()
