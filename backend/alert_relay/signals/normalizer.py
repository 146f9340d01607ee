"""
PURPOSE: Canonicalise trade-direction tokens and instrument aliases.

Both functions are pure. An unknown symbol is passed through uppercased
rather than rejected; the caller decides whether it is acceptable.

CALLED BY:
    - signals/router.py (structured channels and free-text symbol metadata)
"""

from typing import Any, Dict, FrozenSet, Mapping, Optional

from alert_relay.config.constants import Command, SYMBOL_ALIASES


def _invert(aliases: Mapping[str, FrozenSet[str]]) -> Dict[str, str]:
    lookup: Dict[str, str] = {}
    for canonical, names in aliases.items():
        for name in names:
            lookup[name.strip().upper()] = canonical
        # The canonical token maps to itself so normalisation is idempotent
        lookup[canonical.strip().upper()] = canonical
    return lookup


_DEFAULT_LOOKUP = _invert(SYMBOL_ALIASES)


def normalize_command(raw: Any) -> Optional[Command]:
    """
    PURPOSE: Map a raw command token onto BUY / SELL.

    Matching is case-insensitive after trimming and must be exact:
    "buy" → BUY, " Sell " → SELL, "buying" → None.

    Args:
        raw: Token as received (any type; None is treated as empty).

    Returns:
        Optional[Command]: The canonical command, or None if invalid.
    """
    token = str(raw if raw is not None else "").strip().upper()
    try:
        return Command(token)
    except ValueError:
        return None


def normalize_symbol(
    raw: Any,
    aliases: Optional[Mapping[str, FrozenSet[str]]] = None,
) -> str:
    """
    PURPOSE: Fold a raw symbol onto its canonical token.

    Args:
        raw:     Symbol as received (e.g. "xauusd", "XAU/USD ").
        aliases: Canonical → aliases table; defaults to SYMBOL_ALIASES.

    Returns:
        str: Canonical token, the uppercased input if unmapped, or "" for empty input.

    Examples:
        "xauusd"  → "GOLD"
        "XAUUSD#" → "GOLD"
        "eurusd"  → "EURUSD"
    """
    token = str(raw if raw is not None else "").strip().upper()
    lookup = _DEFAULT_LOOKUP if aliases is None else _invert(aliases)
    return lookup.get(token, token)
