"""
PURPOSE: Time helpers shared by the dedup windows, queued signals and status counters.

Everything is UTC. Deduplicators and the router take a clock callable returning
epoch seconds so tests can advance time without sleeping.
"""

import time
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], float]


def epoch_seconds() -> float:
    """Default clock: wall-clock seconds since the epoch."""
    return time.time()


def to_epoch_millis(seconds: float) -> int:
    return int(seconds * 1000)


def to_utc_datetime(seconds: float) -> datetime:
    """
    PURPOSE: Convert epoch seconds from a Clock into an aware UTC datetime.

    Args:
        seconds: Seconds since the epoch.

    Returns:
        datetime: Timezone-aware UTC datetime.
    """
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
