"""
PURPOSE: Composition root binding each channel to its parser, deduplicator and queue.

A SignalRouter is constructed once at startup from a set of ChannelBindings
and owned by the FastAPI app (app.state.router); nothing here is a module
singleton. submit() runs a payload through its channel's pipeline and always
returns a SubmitResult; it never raises for bad payload content.

    structured: required fields → command → symbol → allow-list → dedup → enqueue
    free text:  text → direction → grammar extraction → allow-list → dedup → enqueue

Each binding owns a lock held for the whole of submit() / take_next(), so a
threaded host serialises same-channel work while channels never contend.

CALLED BY:
    - api/routes_signal.py
    - api/routes_system.py (status)
"""

import random
import threading
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Union

from alert_relay.config.constants import ChannelKind, Command, Outcome
from alert_relay.signals.dedup import Deduplicator, DedupVerdict
from alert_relay.signals.direction import DirectionDetector
from alert_relay.signals.extractor import (
    ExtractedFields,
    ExtractionFailure,
    FailureKind,
    GrammarTable,
    extract_fields,
)
from alert_relay.signals.models import FreeTextPayload, Signal, StructuredPayload, SubmitResult
from alert_relay.signals.normalizer import normalize_command, normalize_symbol
from alert_relay.signals.queue import BoundedSignalQueue
from alert_relay.utils.logger import get_logger
from alert_relay.utils.time_utils import Clock, epoch_seconds, to_epoch_millis, to_utc_datetime

logger = get_logger(__name__)

Payload = Union[StructuredPayload, FreeTextPayload]

STRUCTURED_REQUIRED = ["cmd", "symbol", "id"]


class UnknownChannelError(KeyError):
    """Raised when a caller names a channel that was never bound."""

    def __init__(self, channel: str) -> None:
        super().__init__(channel)
        self.channel = channel


class ChannelBinding:
    """
    PURPOSE: Everything one channel owns: strategy, dedup state, queue and counters.

    Attributes:
        name:            Channel name used in the URL (e.g. "a", "c").
        kind:            STRUCTURED or FREE_TEXT.
        deduplicator:    Identifier or content deduplicator, owned exclusively.
        queue:           BoundedSignalQueue, owned exclusively.
        detector:        Direction detector (free-text channels only).
        grammars:        Author grammar table; None means no numeric fields.
        allowed_authors: Accepted authors; empty accepts everyone.
        allowed_rooms:   Accepted rooms; empty accepts everyone.
        position_count:  Fixed position split stamped on every signal, if any.
        default_symbol:  Symbol used when a free-text message names none.
        id_prefix:       Prefix for synthesized identifiers.
        debug_log:       Log each queued item in full at debug level.
    """

    def __init__(
        self,
        name: str,
        kind: ChannelKind,
        deduplicator: Deduplicator,
        queue: BoundedSignalQueue,
        detector: Optional[DirectionDetector] = None,
        grammars: Optional[GrammarTable] = None,
        allowed_authors: Iterable[str] = (),
        allowed_rooms: Iterable[str] = (),
        position_count: Optional[int] = None,
        default_symbol: str = "GOLD",
        id_prefix: Optional[str] = None,
        debug_log: bool = False,
    ) -> None:
        if kind is ChannelKind.FREE_TEXT and detector is None:
            raise ValueError(f"free-text channel '{name}' needs a direction detector")
        self.name = name
        self.kind = kind
        self.deduplicator = deduplicator
        self.queue = queue
        self.detector = detector
        self.grammars = grammars
        self.allowed_authors: FrozenSet[str] = frozenset(allowed_authors)
        self.allowed_rooms: FrozenSet[str] = frozenset(allowed_rooms)
        self.position_count = position_count
        self.default_symbol = default_symbol
        self.id_prefix = id_prefix or name.upper()
        self.debug_log = debug_log
        self.lock = threading.Lock()
        self.counters: Dict[str, int] = {
            "received": 0,
            Outcome.QUEUED.value: 0,
            Outcome.DEDUPED.value: 0,
            Outcome.IGNORED.value: 0,
            Outcome.REJECTED.value: 0,
            "taken": 0,
        }
        self.last_signal_time: Optional[str] = None


class SignalRouter:
    """
    PURPOSE: Route payloads to channel pipelines and hand queued signals to the consumer.

    Attributes:
        _bindings: channel name → ChannelBinding.
        _clock:    Epoch-seconds clock used for received_at and synthesized ids.
    """

    def __init__(self, bindings: Iterable[ChannelBinding], clock: Clock = epoch_seconds) -> None:
        self._bindings: Dict[str, ChannelBinding] = {}
        for binding in bindings:
            if binding.name in self._bindings:
                raise ValueError(f"channel '{binding.name}' bound twice")
            self._bindings[binding.name] = binding
        self._clock = clock

    # ════════════════════════════════════════════════════════════════
    # Public API
    # ════════════════════════════════════════════════════════════════

    def channels(self) -> List[str]:
        return list(self._bindings)

    def binding(self, channel: str) -> ChannelBinding:
        try:
            return self._bindings[channel]
        except KeyError:
            raise UnknownChannelError(channel) from None

    def depth(self, channel: str) -> int:
        return len(self.binding(channel).queue)

    def submit(self, channel: str, payload: Payload) -> SubmitResult:
        """
        PURPOSE: Run one payload through its channel's pipeline.

        CALLED BY: POST /signal/{channel} route handlers

        Args:
            channel: Bound channel name.
            payload: StructuredPayload or FreeTextPayload matching the channel kind.

        Returns:
            SubmitResult: queued, deduped, ignored:<reason> or rejected:<reason>.

        Raises:
            UnknownChannelError: If the channel is not bound.
        """
        binding = self.binding(channel)
        with binding.lock:
            binding.counters["received"] += 1
            result = self._run_pipeline(binding, payload)
            binding.counters[result.outcome.value] += 1
            self._log_result(binding, result)
            return result

    def take_next(self, channel: str) -> Optional[Signal]:
        """
        PURPOSE: Pop the oldest pending signal of a channel.

        CALLED BY: GET /last/{channel}

        Returns:
            Optional[Signal]: The oldest signal, or None if the queue is empty.

        Raises:
            UnknownChannelError: If the channel is not bound.
        """
        binding = self.binding(channel)
        with binding.lock:
            signal = binding.queue.take_oldest_or_none()
            if signal is not None:
                binding.counters["taken"] += 1
                logger.info(
                    "signal_taken",
                    channel=binding.name,
                    id=signal.identifier,
                    remaining=len(binding.queue),
                )
            return signal

    def status(self) -> Dict[str, Dict[str, Any]]:
        """
        PURPOSE: Per-channel depth, capacity and counters for the status endpoint.

        CALLED BY: GET /status

        Returns:
            dict: channel → {kind, depth, max_depth, dedup_entries, counters, last_signal_time}
        """
        report: Dict[str, Dict[str, Any]] = {}
        for name, binding in self._bindings.items():
            with binding.lock:
                report[name] = {
                    "kind": binding.kind.value,
                    "depth": len(binding.queue),
                    "max_depth": binding.queue.max_depth,
                    "dedup_entries": len(binding.deduplicator),
                    "counters": dict(binding.counters),
                    "last_signal_time": binding.last_signal_time,
                }
        return report

    # ════════════════════════════════════════════════════════════════
    # Pipelines
    # ════════════════════════════════════════════════════════════════

    def _run_pipeline(self, binding: ChannelBinding, payload: Payload) -> SubmitResult:
        if binding.kind is ChannelKind.STRUCTURED and isinstance(payload, StructuredPayload):
            return self._submit_structured(binding, payload)
        if binding.kind is ChannelKind.FREE_TEXT and isinstance(payload, FreeTextPayload):
            return self._submit_free_text(binding, payload)
        return SubmitResult.rejected("wrong_payload", expected=binding.kind.value)

    def _submit_structured(self, binding: ChannelBinding, payload: StructuredPayload) -> SubmitResult:
        if not payload.cmd or not payload.symbol or not payload.id:
            return SubmitResult.rejected(
                "missing_fields",
                required=STRUCTURED_REQUIRED,
                received=payload.model_dump(exclude_none=True),
            )

        command = normalize_command(payload.cmd)
        if command is None:
            return SubmitResult.rejected("invalid_cmd")

        symbol = normalize_symbol(payload.symbol)
        if not symbol:
            return SubmitResult.rejected("invalid_symbol")

        author = payload.who or ""
        room = payload.room or ""
        filtered = self._check_allow_lists(binding, author, room)
        if filtered is not None:
            return filtered

        signal = self._build_signal(
            binding,
            command=command,
            symbol=symbol,
            identifier=payload.id,
            author=author,
            room=room,
        )
        return self._admit(binding, signal)

    def _submit_free_text(self, binding: ChannelBinding, payload: FreeTextPayload) -> SubmitResult:
        text = payload.text or ""
        if not text:
            return SubmitResult.rejected("missing_text")

        symbol = normalize_symbol(payload.symbol or binding.default_symbol)
        if not symbol:
            return SubmitResult.rejected("invalid_symbol")

        command = binding.detector.detect(text)
        if command is None:
            return SubmitResult.ignored("no_direction")

        author = payload.who or ""
        room = payload.room or ""

        fields = ExtractedFields()
        if binding.grammars is not None:
            extracted = extract_fields(author, text, binding.grammars)
            if isinstance(extracted, ExtractionFailure):
                if extracted.kind is FailureKind.UNSUPPORTED:
                    return SubmitResult.ignored(extracted.kind.value, who=author)
                return SubmitResult.rejected(extracted.kind.value, need=extracted.missing, who=author)
            fields = extracted

        filtered = self._check_allow_lists(binding, author, room)
        if filtered is not None:
            return filtered

        signal = self._build_signal(
            binding,
            command=command,
            symbol=symbol,
            identifier=payload.id or self._synthesize_id(binding),
            author=author,
            room=room,
            entry_price=fields.entry_price,
            stop_loss=fields.stop_loss,
            take_profit=fields.take_profit,
        )
        return self._admit(binding, signal)

    # ════════════════════════════════════════════════════════════════
    # Internal Helpers
    # ════════════════════════════════════════════════════════════════

    @staticmethod
    def _check_allow_lists(binding: ChannelBinding, author: str, room: str) -> Optional[SubmitResult]:
        if binding.allowed_authors and author not in binding.allowed_authors:
            return SubmitResult.ignored("who_not_allowed", who=author)
        if binding.allowed_rooms and room not in binding.allowed_rooms:
            return SubmitResult.ignored("room_not_allowed", room=room)
        return None

    def _synthesize_id(self, binding: ChannelBinding) -> str:
        millis = to_epoch_millis(self._clock())
        return f"{binding.id_prefix}-{millis}-{random.randrange(10**9)}"

    def _build_signal(self, binding: ChannelBinding, command: Command, **fields: Any) -> Signal:
        return Signal(
            command=command,
            position_count=binding.position_count,
            received_at=to_utc_datetime(self._clock()),
            **fields,
        )

    def _admit(self, binding: ChannelBinding, signal: Signal) -> SubmitResult:
        if binding.deduplicator.check(signal) is DedupVerdict.DUPLICATE:
            return SubmitResult.deduped()
        depth = binding.queue.enqueue(signal)
        binding.last_signal_time = signal.received_at.isoformat()
        if binding.debug_log:
            logger.debug("signal_queued_item", channel=binding.name, item=signal.to_wire())
        return SubmitResult.queued(signal, depth)

    @staticmethod
    def _log_result(binding: ChannelBinding, result: SubmitResult) -> None:
        if result.outcome is Outcome.QUEUED:
            logger.info(
                "signal_queued",
                channel=binding.name,
                id=result.signal.identifier,
                cmd=result.signal.command.value,
                symbol=result.signal.symbol,
                size=result.queue_depth,
            )
        elif result.outcome is Outcome.DEDUPED:
            logger.info("signal_deduped", channel=binding.name)
        elif result.outcome is Outcome.IGNORED:
            logger.info("signal_ignored", channel=binding.name, reason=result.reason, **result.details)
        else:
            logger.warning("signal_rejected", channel=binding.name, reason=result.reason, **result.details)
