"""
PURPOSE: Bounded FIFO of signals for one channel.

Appending past max_depth silently drops the oldest entry; under sustained
overflow the queue favours fresh alerts over old ones. The only read is
take_oldest_or_none(): no peek, no index, no iteration, so a consumer sees
each slot exactly once and in arrival order. Nothing blocks.

CALLED BY:
    - signals/router.py (one queue per channel binding)
"""

from collections import deque
from typing import Deque, Optional

from alert_relay.signals.models import Signal

DEFAULT_MAX_DEPTH = 200


class BoundedSignalQueue:
    """
    PURPOSE: Fixed-capacity FIFO backed by a deque with maxlen.

    Attributes:
        max_depth: Capacity; the head is evicted when an append exceeds it.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.max_depth = max_depth
        self._items: Deque[Signal] = deque(maxlen=max_depth)

    def __len__(self) -> int:
        return len(self._items)

    def enqueue(self, signal: Signal) -> int:
        """
        PURPOSE: Append a signal at the tail.

        Returns:
            int: Queue depth after the append (never above max_depth).
        """
        self._items.append(signal)
        return len(self._items)

    def take_oldest_or_none(self) -> Optional[Signal]:
        """Remove and return the head, or None when empty (no state change)."""
        if not self._items:
            return None
        return self._items.popleft()
