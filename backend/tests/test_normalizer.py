"""
PURPOSE: Tests for command and symbol normalisation.

Tests canonicalisation rules:
- Exact, case-insensitive BUY / SELL matching
- Gold alias folding and idempotence
- Pass-through of unknown symbols
"""

import pytest

from alert_relay.config.constants import Command, SYMBOL_ALIASES
from alert_relay.signals.normalizer import normalize_command, normalize_symbol


class TestNormalizeCommand:
    """Test command token normalisation."""

    @pytest.mark.parametrize("raw", ["buy", "BUY", " Buy ", "bUy\n"])
    def test_buy_variants(self, raw):
        """Test that case and surrounding whitespace are ignored."""
        assert normalize_command(raw) is Command.BUY

    def test_sell(self):
        """Test SELL normalisation."""
        assert normalize_command("sell") is Command.SELL

    @pytest.mark.parametrize("raw", ["buying", "long", "", "  ", None, "B UY"])
    def test_invalid_tokens(self, raw):
        """Test that partial matches and synonyms are rejected."""
        assert normalize_command(raw) is None


class TestNormalizeSymbol:
    """Test symbol alias folding."""

    def test_every_gold_alias_maps_to_gold(self):
        """Test that all configured aliases share one canonical token."""
        for alias in SYMBOL_ALIASES["GOLD"]:
            assert normalize_symbol(alias) == "GOLD"
            assert normalize_symbol(alias.lower()) == "GOLD"

    def test_alias_with_whitespace(self):
        """Test trimming before lookup."""
        assert normalize_symbol("  xau/usd ") == "GOLD"

    def test_unknown_symbol_passes_through_uppercased(self):
        """Test that unmapped symbols are uppercased, not rejected."""
        assert normalize_symbol(" eurusd ") == "EURUSD"

    def test_empty_symbol(self):
        """Test empty and None inputs."""
        assert normalize_symbol("") == ""
        assert normalize_symbol(None) == ""

    @pytest.mark.parametrize("raw", ["xauusd", "XAUUSD#", "gold", "btcusd", "Xau/Usd"])
    def test_idempotent(self, raw):
        """Test normalize(normalize(x)) == normalize(x)."""
        once = normalize_symbol(raw)
        assert normalize_symbol(once) == once

    def test_custom_alias_table(self):
        """Test that a caller-supplied alias table replaces the default."""
        aliases = {"BTC": frozenset({"BTCUSD", "BTCUSDT", "XBT"})}
        assert normalize_symbol("xbt", aliases) == "BTC"
        assert normalize_symbol("xauusd", aliases) == "XAUUSD"
