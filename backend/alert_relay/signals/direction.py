"""
PURPOSE: Infer BUY / SELL intent from free chat text.

Two strategies, chosen per channel:

    KeywordDirectionDetector  loose mode; any long or short keyword from the
                              Japanese or Latin vocabulary decides.
    PhraseDirectionDetector   strict mode; only fixed phrases (optionally
                              paired with a directional keyword) decide.

In both modes a text that points both ways, or nowhere, yields None. Ambiguity
is never settled by precedence.

Known limitation of the loose mode: keywords match as plain substrings, so
"BUY" inside an unrelated word such as "BUYER" counts as a long cue. The
vocabulary was tuned against real chat traffic and is kept as is.

CALLED BY:
    - signals/router.py (free-text channels)
"""

from typing import Iterable, NamedTuple, Optional, Protocol, Sequence, Tuple

from alert_relay.config.constants import Command

LONG_KEYWORDS: Tuple[str, ...] = ("ロング", "GOLD LONG", "LONG", "BUY", "買い")
SHORT_KEYWORDS: Tuple[str, ...] = ("ショート", "GOLD SHORT", "SHORT", "SELL", "売り")


def _contains_any(haystack: str, needles: Iterable[str]) -> bool:
    return any(needle.upper() in haystack for needle in needles)


def _decide(is_long: bool, is_short: bool) -> Optional[Command]:
    if is_long == is_short:
        return None
    return Command.BUY if is_long else Command.SELL


class DirectionDetector(Protocol):
    def detect(self, text: str) -> Optional[Command]:
        ...


class KeywordDirectionDetector:
    """
    PURPOSE: Loose keyword detection for low-volume rooms.

    Attributes:
        long_keywords:  Cues for BUY (case-insensitive substrings).
        short_keywords: Cues for SELL (case-insensitive substrings).
    """

    def __init__(
        self,
        long_keywords: Sequence[str] = LONG_KEYWORDS,
        short_keywords: Sequence[str] = SHORT_KEYWORDS,
    ) -> None:
        self.long_keywords = tuple(long_keywords)
        self.short_keywords = tuple(short_keywords)

    def detect(self, text: str) -> Optional[Command]:
        upper = str(text or "").upper()
        return _decide(
            _contains_any(upper, self.long_keywords),
            _contains_any(upper, self.short_keywords),
        )


class PhraseRule(NamedTuple):
    """
    A fixed phrase that asserts a command.

    When `requires` is non-empty the phrase only counts if at least one of
    those keywords is present as well (e.g. "成行" + "買い" for a market buy).
    """

    phrase: str
    command: Command
    requires: Tuple[str, ...] = ()

    def matches(self, upper_text: str) -> bool:
        if self.phrase.upper() not in upper_text:
            return False
        return not self.requires or _contains_any(upper_text, self.requires)


# Channel d: high-volume room where only announced entries count
DEFAULT_PHRASE_RULES: Tuple[PhraseRule, ...] = (
    PhraseRule("ロングエントリー", Command.BUY),
    PhraseRule("LONG ENTRY", Command.BUY),
    PhraseRule("ショートエントリー", Command.SELL),
    PhraseRule("SHORT ENTRY", Command.SELL),
    PhraseRule("成行", Command.BUY, requires=("買い", "BUY")),
    PhraseRule("成行", Command.SELL, requires=("売り", "SELL")),
)


class PhraseDirectionDetector:
    """
    PURPOSE: Strict phrase detection for noisy rooms.

    Attributes:
        rules: Ordered PhraseRule list; all are evaluated, conflicts yield None.
    """

    def __init__(self, rules: Sequence[PhraseRule] = DEFAULT_PHRASE_RULES) -> None:
        self.rules = tuple(rules)

    def detect(self, text: str) -> Optional[Command]:
        upper = str(text or "").upper()
        fired = {rule.command for rule in self.rules if rule.matches(upper)}
        return _decide(Command.BUY in fired, Command.SELL in fired)
