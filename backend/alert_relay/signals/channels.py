"""
PURPOSE: Default channel table for the relay.

    a, b  structured JSON, identifier dedup (5 min)
    c     free text, loose keywords, author grammars, split into 3 positions,
          content-fingerprint dedup (2 s)
    d     free text, strict phrases, no price fields, content-fingerprint dedup

Channels are plain data; adding one is a new entry in build_bindings().

CALLED BY:
    - main.py (create_app builds the router once at startup)
"""

from typing import List

from alert_relay.config.constants import ChannelKind
from alert_relay.config.settings import Settings
from alert_relay.signals.dedup import ContentDeduplicator, IdentifierDeduplicator
from alert_relay.signals.direction import KeywordDirectionDetector, PhraseDirectionDetector
from alert_relay.signals.extractor import DEFAULT_GRAMMARS
from alert_relay.signals.queue import BoundedSignalQueue
from alert_relay.signals.router import ChannelBinding, SignalRouter
from alert_relay.utils.time_utils import Clock, epoch_seconds

STRUCTURED_CHANNELS = ("a", "b")


def build_bindings(settings: Settings, clock: Clock = epoch_seconds) -> List[ChannelBinding]:
    """
    PURPOSE: Create one fresh binding (empty queue, empty dedup map) per channel.

    Args:
        settings: Sizing, windows and allow-lists.
        clock:    Epoch-seconds clock shared by the deduplicators.

    Returns:
        list: ChannelBindings for channels a, b, c and d.
    """

    def content_dedup() -> ContentDeduplicator:
        return ContentDeduplicator(
            window_seconds=settings.CONTENT_DEDUP_WINDOW_SECONDS,
            purge_multiple=settings.CONTENT_DEDUP_PURGE_MULTIPLE,
            clock=clock,
        )

    bindings = [
        ChannelBinding(
            name=name,
            kind=ChannelKind.STRUCTURED,
            deduplicator=IdentifierDeduplicator(settings.SEEN_TTL_SECONDS, clock=clock),
            queue=BoundedSignalQueue(settings.MAX_QUEUE),
        )
        for name in STRUCTURED_CHANNELS
    ]
    bindings.append(
        ChannelBinding(
            name="c",
            kind=ChannelKind.FREE_TEXT,
            deduplicator=content_dedup(),
            queue=BoundedSignalQueue(settings.MAX_QUEUE),
            detector=KeywordDirectionDetector(),
            grammars=DEFAULT_GRAMMARS,
            allowed_rooms=settings.allowed_rooms_c(),
            position_count=settings.POSITION_COUNT,
            default_symbol=settings.DEFAULT_SYMBOL,
            debug_log=settings.DEBUG_C,
        )
    )
    bindings.append(
        ChannelBinding(
            name="d",
            kind=ChannelKind.FREE_TEXT,
            deduplicator=content_dedup(),
            queue=BoundedSignalQueue(settings.MAX_QUEUE),
            detector=PhraseDirectionDetector(),
            allowed_authors=settings.allowed_authors_d(),
            default_symbol=settings.DEFAULT_SYMBOL,
        )
    )
    return bindings


def build_router(settings: Settings, clock: Clock = epoch_seconds) -> SignalRouter:
    return SignalRouter(build_bindings(settings, clock), clock=clock)
