"""
Time source used by services that make time-based decisions.

Services accept a ``Clock`` so tests can substitute a controllable one.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
