"""
PURPOSE: Pull entry / stop-loss / take-profit levels out of chat text using per-author grammars.

Each author formats the same fields differently ("エントリー：2400",
"EN ⇒ 2400", "Entry => 2400"). Rather than one universal regex, every author
gets a small ordered grammar: for each field, the accepted label spellings
in priority order. A label is followed by one of the accepted separators and
a decimal number. Adding a source is a change to DEFAULT_GRAMMARS, not code.

CALLED BY:
    - signals/router.py (free-text channels with a grammar table)
"""

import math
import re
from enum import Enum
from typing import Dict, List, Mapping, NamedTuple, Optional, Pattern, Sequence, Tuple, Union

from pydantic import BaseModel, Field

# Longest first so "=>" is not read as "=" followed by ">"
SEPARATORS: Tuple[str, ...] = ("=>", "->", "⇒", "→", ":", "：", "=", ">")

# Locale-invariant decimal, no thousands separators ("2,400.5" does not match)
_NUMBER = r"([+-]?\d+(?:\.\d+)?)(?!\d|\.\d|,\d)"

ENTRY = "entry_price"
STOP_LOSS = "stop_loss"
TAKE_PROFIT = "take_profit"


class FieldRule(NamedTuple):
    """
    One field of a grammar.

    Attributes:
        field:    Signal attribute the number lands in (entry_price, stop_loss, take_profit).
        labels:   Accepted spellings of the label, tried in order.
        required: Whether a missing value fails the whole extraction.
    """

    field: str
    labels: Tuple[str, ...]
    required: bool = True


Grammar = Tuple[FieldRule, ...]
GrammarTable = Mapping[str, Grammar]


DEFAULT_GRAMMARS: Dict[str, Grammar] = {
    "ゆな": (
        FieldRule(ENTRY, ("エントリー",)),
        FieldRule(STOP_LOSS, ("損切り", "損切")),
        FieldRule(TAKE_PROFIT, ("利確",), required=False),
    ),
    "しおり": (
        FieldRule(ENTRY, ("ENTRY", "EN")),
        FieldRule(STOP_LOSS, ("SL",)),
        FieldRule(TAKE_PROFIT, ("TP",), required=False),
    ),
}


class FailureKind(str, Enum):
    UNSUPPORTED = "unsupported_author"
    PARSE_FAILED = "parse_failed"


class ExtractedFields(BaseModel):
    """Numbers found for one message; only fields the grammar defines are set."""

    entry_price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None


class ExtractionFailure(BaseModel):
    """Typed failure returned instead of a partially filled result."""

    kind: FailureKind
    author: str
    missing: List[str] = Field(default_factory=list)


ExtractionResult = Union[ExtractedFields, ExtractionFailure]


def _separator_pattern(separators: Sequence[str] = SEPARATORS) -> str:
    return "(?:" + "|".join(re.escape(sep) for sep in separators) + ")"


_SEPARATOR = _separator_pattern()


def _label_pattern(label: str) -> Pattern[str]:
    """
    PURPOSE: Compile `<label> <sep> <number>` for one label spelling.

    Latin labels must not follow an ASCII letter or digit, so "EN" does not
    fire inside "OPEN" but still matches straight after Japanese text
    ("買いEN：2400"). Japanese labels get no boundary at all.
    """
    boundary = (
        r"(?<![A-Za-z0-9_])"
        if label[:1].isascii() and label[:1].isalnum()
        else ""
    )
    return re.compile(
        rf"{boundary}{re.escape(label)}\s*{_SEPARATOR}\s*{_NUMBER}",
        re.IGNORECASE,
    )


_PATTERN_CACHE: Dict[str, Pattern[str]] = {}


def _compiled(label: str) -> Pattern[str]:
    pattern = _PATTERN_CACHE.get(label)
    if pattern is None:
        pattern = _PATTERN_CACHE[label] = _label_pattern(label)
    return pattern


def extract_number(text: str, labels: Sequence[str]) -> Optional[float]:
    """
    PURPOSE: Return the number after the first label that matches, in label order.

    Args:
        text:   Raw message text.
        labels: Label spellings in priority order.

    Returns:
        Optional[float]: The captured number, or None if no label matched or
            the capture is not a finite number.
    """
    for label in labels:
        match = _compiled(label).search(text)
        if match is None:
            continue
        try:
            value = float(match.group(1))
        except ValueError:
            return None
        return value if math.isfinite(value) else None
    return None


def extract_fields(
    author: str,
    text: str,
    grammars: Optional[GrammarTable] = None,
) -> ExtractionResult:
    """
    PURPOSE: Apply the author's grammar to a message.

    Args:
        author:   Who posted the message; selects the grammar.
        text:     Raw message text.
        grammars: author → Grammar table; defaults to DEFAULT_GRAMMARS.

    Returns:
        ExtractedFields on success.
        ExtractionFailure(UNSUPPORTED) if the author has no grammar.
        ExtractionFailure(PARSE_FAILED, missing=[...]) if a required field is absent.
    """
    table = DEFAULT_GRAMMARS if grammars is None else grammars
    grammar = table.get(author)
    if grammar is None:
        return ExtractionFailure(kind=FailureKind.UNSUPPORTED, author=author)

    text = str(text or "")
    values: Dict[str, Optional[float]] = {}
    missing: List[str] = []
    for rule in grammar:
        value = extract_number(text, rule.labels)
        values[rule.field] = value
        if value is None and rule.required:
            missing.append(rule.field)

    if missing:
        return ExtractionFailure(kind=FailureKind.PARSE_FAILED, author=author, missing=missing)
    return ExtractedFields(**values)
