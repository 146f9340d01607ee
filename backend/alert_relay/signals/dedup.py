"""
PURPOSE: Drop repeated deliveries of the same alert.

Two independent disciplines, picked per channel:

    IdentifierDeduplicator  keyed by the signal id, minutes-scale retention.
                            For sources that guarantee a unique id per event.
    ContentDeduplicator     keyed by author + command + symbol + every price
                            field, seconds-scale window. For chat sources where
                            the phone forwarder may post one notification twice.

Expired entries are swept inline on each check; there is no timer thread.
Recording only happens on the admit path.

CALLED BY:
    - signals/router.py (one deduplicator per channel binding)
"""

from enum import Enum
from typing import Dict, Optional, Protocol

from alert_relay.signals.models import Signal
from alert_relay.utils.logger import get_logger
from alert_relay.utils.time_utils import Clock, epoch_seconds

logger = get_logger(__name__)

DEFAULT_ID_TTL_SECONDS = 5 * 60
DEFAULT_CONTENT_WINDOW_SECONDS = 2.0
DEFAULT_CONTENT_PURGE_MULTIPLE = 5


class DedupVerdict(str, Enum):
    ADMIT = "admit"
    DUPLICATE = "duplicate"


class Deduplicator(Protocol):
    def check(self, signal: Signal) -> DedupVerdict:
        ...

    def __len__(self) -> int:
        ...


class IdentifierDeduplicator:
    """
    PURPOSE: Long-window dedup on the caller-supplied identifier.

    Attributes:
        ttl_seconds: How long an id stays known after it was first admitted.
        _seen:       id → first-seen epoch seconds.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_ID_TTL_SECONDS,
        clock: Clock = epoch_seconds,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._seen: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._seen)

    def _sweep(self, now: float) -> None:
        expired = [key for key, ts in self._seen.items() if now - ts > self.ttl_seconds]
        for key in expired:
            del self._seen[key]

    def check(self, signal: Signal) -> DedupVerdict:
        """
        PURPOSE: Sweep expired ids, then admit-and-record or report a duplicate.

        Args:
            signal: Candidate signal; its identifier is the key.

        Returns:
            DedupVerdict: DUPLICATE if the id was admitted within the TTL, else ADMIT.
        """
        now = self._clock()
        self._sweep(now)
        if signal.identifier in self._seen:
            return DedupVerdict.DUPLICATE
        self._seen[signal.identifier] = now
        return DedupVerdict.ADMIT


def content_fingerprint(signal: Signal) -> str:
    """
    PURPOSE: Build the content key for a signal.

    Every price field takes part so that two genuinely different trades from
    the same author in the same instant stay distinct.
    """

    def fmt(value: Optional[float]) -> str:
        return "" if value is None else repr(value)

    return "|".join(
        (
            signal.author,
            signal.command.value,
            signal.symbol,
            fmt(signal.entry_price),
            fmt(signal.stop_loss),
            fmt(signal.take_profit),
        )
    )


class ContentDeduplicator:
    """
    PURPOSE: Short-window dedup on the signal's content fingerprint.

    Attributes:
        window_seconds: A repeat within this many seconds is a duplicate.
        purge_seconds:  Entries older than this are dropped from the map.
        _seen:          fingerprint → first-seen epoch seconds.
    """

    def __init__(
        self,
        window_seconds: float = DEFAULT_CONTENT_WINDOW_SECONDS,
        purge_multiple: int = DEFAULT_CONTENT_PURGE_MULTIPLE,
        clock: Clock = epoch_seconds,
    ) -> None:
        if purge_multiple < 1:
            raise ValueError("purge_multiple must be at least 1")
        self.window_seconds = window_seconds
        self.purge_seconds = window_seconds * purge_multiple
        self._clock = clock
        self._seen: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._seen)

    def _sweep(self, now: float) -> None:
        expired = [key for key, ts in self._seen.items() if now - ts > self.purge_seconds]
        for key in expired:
            del self._seen[key]

    def check(self, signal: Signal) -> DedupVerdict:
        """
        PURPOSE: Sweep stale fingerprints, then admit-and-record or report a duplicate.

        Args:
            signal: Candidate signal.

        Returns:
            DedupVerdict: DUPLICATE if the same fingerprint was admitted within
                the window, else ADMIT (the timestamp is then refreshed).
        """
        now = self._clock()
        self._sweep(now)
        key = content_fingerprint(signal)
        seen_at = self._seen.get(key)
        if seen_at is not None and now - seen_at <= self.window_seconds:
            logger.debug("content_duplicate", author=signal.author, age_seconds=now - seen_at)
            return DedupVerdict.DUPLICATE
        self._seen[key] = now
        return DedupVerdict.ADMIT
