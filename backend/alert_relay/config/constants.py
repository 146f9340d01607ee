"""
PURPOSE: Shared enumerations and fixed vocabularies for Alert Relay.

Holds the canonical trade commands, the submit outcomes exposed to callers,
and the symbol alias table used by the normalizer.
"""

from enum import Enum
from typing import Dict, FrozenSet


class Command(str, Enum):
    """Canonical trade direction carried by every queued signal."""

    BUY = "BUY"
    SELL = "SELL"


class Outcome(str, Enum):
    """The only four results a submit can produce."""

    QUEUED = "queued"
    DEDUPED = "deduped"
    IGNORED = "ignored"
    REJECTED = "rejected"


class ChannelKind(str, Enum):
    """How a channel's payloads arrive."""

    STRUCTURED = "structured"
    FREE_TEXT = "free_text"


# Canonical symbol -> every alias folded onto it (compared uppercased)
SYMBOL_ALIASES: Dict[str, FrozenSet[str]] = {
    "GOLD": frozenset({"XAUUSD", "XAUUSD#", "XAU/USD", "GOLD"}),
}
