"""
Timestamp utilities.

Sync timestamps are integer epoch milliseconds; 0 means "never".
"""

import time
from datetime import datetime, timezone
from typing import Optional


def now_millis() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def from_millis(value: int) -> Optional[datetime]:
    """Convert epoch milliseconds to an aware UTC datetime, or None for 0."""
    if not value:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def format_millis(value: int) -> str:
    """Human readable form used in CLI output."""
    moment = from_millis(value)
    if moment is None:
        return "never"
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")
