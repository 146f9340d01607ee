"""
PURPOSE: Tests for the SignalRouter pipelines over the default channel table.

Tests end-to-end core behaviour without HTTP:
- Structured channel validation, dedup and queueing
- Free-text channels in loose-keyword and strict-phrase modes
- Allow-lists, unknown channels and per-channel isolation
"""

from datetime import datetime, timezone

import pytest

from alert_relay.config.constants import ChannelKind, Command, Outcome
from alert_relay.signals.channels import build_router
from alert_relay.signals.models import FreeTextPayload, StructuredPayload
from alert_relay.signals.router import UnknownChannelError


def structured(**fields):
    return StructuredPayload(**fields)


def free_text(text, **fields):
    return FreeTextPayload(text=text, **fields)


class TestStructuredChannel:
    """Test channels a and b."""

    def test_queue_then_dedup(self, signal_router):
        """Test a first submission is queued and an immediate repeat is deduped."""
        payload = structured(cmd="buy", symbol="xauusd", id="abc")
        first = signal_router.submit("a", payload)
        assert first.status == "queued"
        assert first.queue_depth == 1

        second = signal_router.submit("a", payload)
        assert second.status == "deduped"
        assert signal_router.depth("a") == 1

    def test_queued_signal_is_canonical(self, signal_router):
        """Test command and symbol are canonical inside the queued signal."""
        result = signal_router.submit("a", structured(cmd=" Sell ", symbol="XAU/USD", id="s1"))
        assert result.signal.command is Command.SELL
        assert result.signal.symbol == "GOLD"
        assert result.signal.entry_price is None
        assert result.signal.position_count is None

    def test_resubmit_after_window(self, signal_router, fake_clock):
        """Test an id is accepted again after the retention window elapses."""
        payload = structured(cmd="buy", symbol="gold", id="abc")
        signal_router.submit("a", payload)
        fake_clock.advance(301)
        assert signal_router.submit("a", payload).status == "queued"
        assert signal_router.depth("a") == 2

    def test_missing_fields(self, signal_router):
        """Test that a missing id is a structural rejection naming the required fields."""
        result = signal_router.submit("a", structured(cmd="buy", symbol="gold"))
        assert result.status == "rejected:missing_fields"
        assert result.details["required"] == ["cmd", "symbol", "id"]
        assert signal_router.depth("a") == 0

    def test_invalid_cmd(self, signal_router):
        """Test that a non-canonical command is rejected."""
        result = signal_router.submit("a", structured(cmd="buying", symbol="gold", id="1"))
        assert result.status == "rejected:invalid_cmd"

    def test_blank_symbol(self, signal_router):
        """Test that a whitespace-only symbol is rejected after trimming."""
        result = signal_router.submit("a", structured(cmd="buy", symbol="   ", id="1"))
        assert result.status == "rejected:invalid_symbol"

    def test_channels_are_independent(self, signal_router):
        """Test that the same id on channel b is not a duplicate of channel a."""
        payload = structured(cmd="buy", symbol="gold", id="shared")
        assert signal_router.submit("a", payload).status == "queued"
        assert signal_router.submit("b", payload).status == "queued"
        assert signal_router.depth("a") == 1
        assert signal_router.depth("b") == 1

    def test_wrong_payload_kind(self, signal_router):
        """Test that a free-text payload on a structured channel is rejected."""
        result = signal_router.submit("a", free_text("GOLD LONG"))
        assert result.status == "rejected:wrong_payload"

    def test_overflow_keeps_latest(self, signal_router, test_settings):
        """Test the queue bound applies through the router."""
        for n in range(test_settings.MAX_QUEUE + 2):
            signal_router.submit("b", structured(cmd="buy", symbol="gold", id=f"id-{n}"))
        assert signal_router.depth("b") == test_settings.MAX_QUEUE
        assert signal_router.take_next("b").identifier == "id-2"


class TestFreeTextKeywordChannel:
    """Test channel c (loose keywords + author grammars)."""

    def test_queued_with_prices(self, signal_router):
        """Test a configured author's message with entry and stop-loss is queued."""
        text = "GOLD LONG\nEntry ⇒ 2400.5\nSL ⇒ 2390.0"
        result = signal_router.submit("c", free_text(text, who="しおり", room="VIP"))
        assert result.status == "queued"
        signal = result.signal
        assert signal.command is Command.BUY
        assert signal.symbol == "GOLD"
        assert signal.entry_price == 2400.5
        assert signal.stop_loss == 2390.0
        assert signal.position_count == 3
        assert signal.author == "しおり"
        assert signal.room == "VIP"

    def test_parse_failed(self, signal_router):
        """Test a direction without an entry/stop-loss pair is rejected."""
        result = signal_router.submit("c", free_text("GOLD LONG いきます", who="しおり"))
        assert result.status == "rejected:parse_failed"
        assert result.details["need"] == ["entry_price", "stop_loss"]
        assert signal_router.depth("c") == 0

    def test_no_direction(self, signal_router):
        """Test text without any direction keyword is ignored."""
        result = signal_router.submit("c", free_text("Entry ⇒ 2400.5 SL ⇒ 2390", who="しおり"))
        assert result.status == "ignored:no_direction"

    def test_unsupported_author(self, signal_router):
        """Test an author without a grammar is acknowledged and ignored."""
        result = signal_router.submit("c", free_text("GOLD LONG EN: 1 SL: 2", who="誰か"))
        assert result.outcome is Outcome.IGNORED
        assert result.reason == "unsupported_author"

    def test_missing_text(self, signal_router):
        """Test an empty body is a structural rejection."""
        assert signal_router.submit("c", free_text("")).status == "rejected:missing_text"

    def test_synthesized_identifier(self, signal_router, fake_clock):
        """Test ids are synthesized as <PREFIX>-<millis>-<random> when absent."""
        result = signal_router.submit("c", free_text("ショート エントリー：2400 損切：2410", who="ゆな"))
        prefix, millis, rand = result.signal.identifier.split("-")
        assert prefix == "C"
        assert int(millis) == int(fake_clock.now * 1000)
        assert 0 <= int(rand) < 10**9

    def test_supplied_identifier_and_symbol(self, signal_router):
        """Test caller-supplied id and symbol metadata are used."""
        payload = free_text("SELL EN: 1.08 SL: 1.09", who="しおり", symbol="eurusd", id="m-1")
        result = signal_router.submit("c", payload)
        assert result.signal.identifier == "m-1"
        assert result.signal.symbol == "EURUSD"
        assert result.signal.command is Command.SELL

    def test_double_delivery_is_deduped(self, signal_router, fake_clock):
        """Test the forwarder posting the same notification twice within seconds."""
        text = "GOLD LONG\nEntry ⇒ 2400.5\nSL ⇒ 2390.0"
        assert signal_router.submit("c", free_text(text, who="しおり")).status == "queued"
        fake_clock.advance(1)
        assert signal_router.submit("c", free_text(text, who="しおり")).status == "deduped"
        fake_clock.advance(5)
        assert signal_router.submit("c", free_text(text, who="しおり")).status == "queued"

    def test_different_stop_loss_is_not_deduped(self, signal_router):
        """Test that two trades differing only in stop-loss are both queued."""
        first = free_text("GOLD LONG Entry ⇒ 2400.5 SL ⇒ 2390.0", who="しおり")
        second = free_text("GOLD LONG Entry ⇒ 2400.5 SL ⇒ 2385.0", who="しおり")
        assert signal_router.submit("c", first).status == "queued"
        assert signal_router.submit("c", second).status == "queued"

    def test_room_allow_list(self, test_settings, fake_clock):
        """Test a room outside the allow-list is ignored."""
        test_settings.C_ALLOWED_ROOMS = "VIP, Premium"
        router = build_router(test_settings, clock=fake_clock)
        text = "GOLD LONG Entry ⇒ 2400.5 SL ⇒ 2390.0"
        assert router.submit("c", free_text(text, who="しおり", room="Free")).status == "ignored:room_not_allowed"
        assert router.submit("c", free_text(text, who="しおり", room="Premium")).status == "queued"


class TestFreeTextPhraseChannel:
    """Test channel d (strict phrases, no price fields)."""

    def test_without_phrase_is_ignored(self, signal_router):
        """Test loose cues alone are not enough in strict mode."""
        result = signal_router.submit("d", free_text("ゴールドはロング目線", who="admin"))
        assert result.status == "ignored:no_direction"

    def test_phrase_is_queued_without_prices(self, signal_router):
        """Test a fixed phrase queues a signal carrying no price fields."""
        result = signal_router.submit("d", free_text("XAUUSD ショートエントリー", who="admin"))
        assert result.status == "queued"
        assert result.signal.command is Command.SELL
        assert result.signal.entry_price is None
        assert result.signal.position_count is None
        assert result.signal.identifier.startswith("D-")

    def test_author_allow_list(self, test_settings, fake_clock):
        """Test an author outside the allow-list is ignored."""
        test_settings.D_ALLOWED_AUTHORS = "admin"
        router = build_router(test_settings, clock=fake_clock)
        result = router.submit("d", free_text("LONG ENTRY", who="guest"))
        assert result.status == "ignored:who_not_allowed"


class TestTakeNext:
    """Test consumer reads through the router."""

    def test_take_returns_then_empties(self, signal_router):
        """Test one queued signal is returned once and then None."""
        signal_router.submit("a", structured(cmd="buy", symbol="gold", id="only"))
        taken = signal_router.take_next("a")
        assert taken.identifier == "only"
        assert signal_router.depth("a") == 0
        assert signal_router.take_next("a") is None

    def test_unknown_channel(self, signal_router):
        """Test an unbound channel raises UnknownChannelError."""
        with pytest.raises(UnknownChannelError):
            signal_router.take_next("z")
        with pytest.raises(UnknownChannelError):
            signal_router.submit("z", structured(cmd="buy", symbol="gold", id="1"))


class TestStatus:
    """Test status reporting."""

    def test_counters(self, signal_router):
        """Test outcome counters and depth per channel."""
        payload = structured(cmd="buy", symbol="gold", id="1")
        signal_router.submit("a", payload)
        signal_router.submit("a", payload)
        signal_router.submit("a", structured(cmd="hold", symbol="gold", id="2"))
        signal_router.take_next("a")

        report = signal_router.status()
        assert set(report) == {"a", "b", "c", "d"}
        assert report["a"]["kind"] == ChannelKind.STRUCTURED.value
        assert report["a"]["depth"] == 0
        assert report["a"]["dedup_entries"] == 1
        assert report["a"]["counters"] == {
            "received": 3,
            "queued": 1,
            "deduped": 1,
            "ignored": 0,
            "rejected": 1,
            "taken": 1,
        }
        assert report["a"]["last_signal_time"] == datetime.fromtimestamp(
            1_700_000_000.0, tz=timezone.utc
        ).isoformat()
