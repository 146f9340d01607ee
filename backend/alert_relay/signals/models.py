"""
PURPOSE: Pydantic models for signals, inbound payloads and submit results.

Signal is the unit of work held in a channel queue. StructuredPayload and
FreeTextPayload are the validated input structs for the two channel kinds;
SubmitResult is the typed verdict every submit returns.
"""

import math
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from alert_relay.config.constants import Command, Outcome


def _scalar_to_str(value: Any) -> Any:
    """Query strings and JSON bodies both send ids as numbers now and then."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


class Signal(BaseModel):
    """
    PURPOSE: A normalised trade instruction accepted into a channel queue.

    Attributes:
        command:        Canonical BUY or SELL.
        symbol:         Canonical instrument (aliases already folded).
        identifier:     Source-supplied or synthesized id, the long-window dedup key.
        entry_price:    Entry level, only for grammar-driven channels.
        stop_loss:      Stop-loss level, only for grammar-driven channels.
        take_profit:    Take-profit level when the author's grammar defines one.
        position_count: Fixed split-position count for channels that mandate it.
        author:         Who posted the alert (provenance only).
        room:           Chat room the alert came from (provenance only).
        received_at:    UTC time of acceptance into the queue.
    """

    model_config = ConfigDict(frozen=True)

    command: Command
    symbol: str = Field(..., min_length=1)
    identifier: str = Field(..., min_length=1)
    entry_price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    position_count: Optional[int] = None
    author: str = ""
    room: str = ""
    received_at: datetime

    @field_validator("entry_price", "stop_loss", "take_profit")
    @classmethod
    def validate_finite(cls, v: Optional[float]) -> Optional[float]:
        """Reject NaN and infinities; a price is either a real number or absent."""
        if v is not None and not math.isfinite(v):
            raise ValueError("price fields must be finite numbers")
        return v

    def to_wire(self) -> Dict[str, Any]:
        """
        PURPOSE: Serialise to the compact shape the polling trading agent reads.

        Optional fields that the channel does not define are omitted rather
        than sent as null.

        Returns:
            dict: {cmd, symbol, id, [entry, sl, tp, n, who, room], ts}
        """
        wire: Dict[str, Any] = {
            "cmd": self.command.value,
            "symbol": self.symbol,
            "id": self.identifier,
        }
        optional = {
            "entry": self.entry_price,
            "sl": self.stop_loss,
            "tp": self.take_profit,
            "n": self.position_count,
        }
        wire.update({k: v for k, v in optional.items() if v is not None})
        if self.author:
            wire["who"] = self.author
        if self.author or self.room:
            wire["room"] = self.room
        wire["ts"] = int(self.received_at.timestamp() * 1000)
        return wire


class StructuredPayload(BaseModel):
    """
    PURPOSE: Input struct for structured (JSON) channels.

    Every field is optional at this layer so that a missing one becomes a
    `rejected:missing_fields` verdict from the router instead of a 422.
    Both the short wire names (cmd, id) and the long ones (command,
    identifier) are accepted.
    """

    model_config = ConfigDict(populate_by_name=True)

    cmd: Optional[str] = Field(None, validation_alias=AliasChoices("cmd", "command"))
    symbol: Optional[str] = None
    id: Optional[str] = Field(None, validation_alias=AliasChoices("id", "identifier"))
    who: Optional[str] = None
    room: Optional[str] = None

    @field_validator("cmd", "symbol", "id", "who", "room", mode="before")
    @classmethod
    def coerce_scalars(cls, v: Any) -> Any:
        return _scalar_to_str(v)


class FreeTextPayload(BaseModel):
    """
    PURPOSE: Input struct for free-text channels.

    The message body arrives either inside a JSON object or as a raw
    text/plain body with the metadata carried as query parameters; both
    routes build this same model. `admin` is accepted as a fallback for `who`.
    """

    text: Optional[str] = None
    who: Optional[str] = None
    room: Optional[str] = None
    symbol: Optional[str] = None
    id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def fallback_admin_to_who(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("who") and data.get("admin"):
            data = {**data, "who": data["admin"]}
        return data

    @field_validator("who", "room", "symbol", "id", mode="before")
    @classmethod
    def coerce_scalars(cls, v: Any) -> Any:
        return _scalar_to_str(v)


class SubmitResult(BaseModel):
    """
    PURPOSE: Verdict of one submit call.

    Attributes:
        outcome:     queued, deduped, ignored or rejected.
        reason:      Machine-readable reason for ignored / rejected outcomes.
        queue_depth: Channel depth after a successful enqueue.
        signal:      The queued signal, when one was queued.
        details:     Extra context for the caller (e.g. missing field names).
    """

    outcome: Outcome
    reason: Optional[str] = None
    queue_depth: Optional[int] = None
    signal: Optional[Signal] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @property
    def status(self) -> str:
        """`queued`, `deduped`, `ignored:<reason>` or `rejected:<reason>`."""
        if self.reason:
            return f"{self.outcome.value}:{self.reason}"
        return self.outcome.value

    @classmethod
    def queued(cls, signal: Signal, depth: int) -> "SubmitResult":
        return cls(outcome=Outcome.QUEUED, signal=signal, queue_depth=depth)

    @classmethod
    def deduped(cls) -> "SubmitResult":
        return cls(outcome=Outcome.DEDUPED)

    @classmethod
    def ignored(cls, reason: str, **details: Any) -> "SubmitResult":
        return cls(outcome=Outcome.IGNORED, reason=reason, details=details)

    @classmethod
    def rejected(cls, reason: str, **details: Any) -> "SubmitResult":
        return cls(outcome=Outcome.REJECTED, reason=reason, details=details)
