"""Layered fuzzy intent matcher for the employee chat.

Resolves one line of free text to a workflow action. Layers run in a
fixed order and the first one that decides wins:

1. Note extraction - "ticket <description>" keeps the description
2. Canonical phrases - exact phrase first, then fuzzy match per action
3. Keyword pairs - conjunctive word rules for reordered or terse input

The matcher is pure: no I/O, no clock, no state between calls. A single
instance can serve any number of concurrent conversations.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path

from .phrases import ENGLISH, PhraseTable, load_phrase_table, phrase_table_for
from .taxonomy import (
    ACTION_ORDER,
    DEFAULT_THRESHOLDS,
    NO_MATCH,
    Action,
    MatchResult,
    MatchThresholds,
)
from .text import fuzzy_matches_phrase, normalize

logger = logging.getLogger(__name__)

# Punctuation allowed between a note keyword and the note itself
_NOTE_SEPARATORS = ":;,.-–—"


def _keyword_alternation(words: list[str]) -> str:
    """Build a regex alternation, longest first, tolerant of inner spacing."""
    ordered = sorted({w.strip() for w in words if w.strip()}, key=lambda w: (-len(w), w))
    return "|".join(r"\s+".join(re.escape(part) for part in w.split()) for w in ordered)


class IntentMatcher:
    """Classify chat input into the fixed action vocabulary.

    Attributes:
        phrases: Phrase table in use
        thresholds: Fuzzy matching constants
    """

    def __init__(
        self,
        phrases: PhraseTable = ENGLISH,
        thresholds: MatchThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        """Compile the phrase table into matcher state.

        Args:
            phrases: Canonical phrases, note keywords and keyword rules
            thresholds: Fuzzy matching constants
        """
        self.phrases = phrases
        self.thresholds = thresholds

        self._canonical: dict[Action, tuple[str, ...]] = {
            action: tuple(normalize(p) for p in phrases.phrases_for(action))
            for action in ACTION_ORDER
        }

        self._note_rx: re.Pattern[str] | None = None
        if phrases.note_keywords:
            self._note_rx = re.compile(
                rf"^\s*(?:{_keyword_alternation(phrases.note_keywords)})\b(?P<note>.+)$",
                re.IGNORECASE | re.DOTALL,
            )

        self._rules: list[tuple[re.Pattern[str], Action]] = []
        for rule in phrases.keyword_rules:
            first = _keyword_alternation([normalize(w) for w in rule.first])
            second = _keyword_alternation([normalize(w) for w in rule.second])
            if not first or not second:
                continue
            self._rules.append(
                (re.compile(rf"(?=.*\b(?:{first})\b)(?=.*\b(?:{second})\b)"), rule.action)
            )

    def classify(self, raw: str | None) -> MatchResult:
        """Resolve raw chat input to an action.

        Never raises: empty, unparseable or unexpected input yields NO_MATCH.

        Args:
            raw: One line of user input

        Returns:
            MatchResult with the resolved action, or NO_MATCH
        """
        if not isinstance(raw, str):
            return NO_MATCH

        try:
            return self._classify(raw)
        except Exception as e:
            logger.warning(f"Intent matching failed for {raw[:80]!r}: {e}")
            return NO_MATCH

    def _classify(self, raw: str) -> MatchResult:
        result = self._match_note(raw)
        if result is not None:
            logger.debug(f"Note match: {result.action.value}")
            return result

        text = normalize(raw)
        if not text:
            return NO_MATCH

        result = self._match_phrases(text)
        if result is not None:
            logger.debug(f"Phrase match: {text!r} -> {result.action.value}")
            return result

        result = self._match_keywords(text)
        if result is not None:
            logger.debug(f"Keyword match: {text!r} -> {result.action.value}")
            return result

        return NO_MATCH

    def _match_note(self, raw: str) -> MatchResult | None:
        """Layer 1: ticket keyword followed by an inline description."""
        if self._note_rx is None:
            return None

        match = self._note_rx.match(raw)
        if not match:
            return None

        note = match.group("note").strip().lstrip(_NOTE_SEPARATORS).strip()
        # "ticket:" carries no description
        if not note:
            return None

        return MatchResult.match(Action.CREATE_TICKET, note=note, source="note")

    def _match_phrases(self, text: str) -> MatchResult | None:
        """Layer 2: canonical phrases in action order.

        This refines the plain "first action with any matching phrase" rule:
        an exact phrase wins over fuzzy matches of earlier actions, so a bare
        "ticket" is not captured by "view tickets" through containment.
        """
        for action in ACTION_ORDER:
            if text in self._canonical[action]:
                return MatchResult.match(action, source="phrase")

        # Opt-in guard; with the default of 0 every input is compared
        if len(text) < self.thresholds.min_length:
            return None

        for action in ACTION_ORDER:
            for phrase in self._canonical[action]:
                if fuzzy_matches_phrase(text, phrase, self.thresholds):
                    return MatchResult.match(action, source="phrase")

        return None

    def _match_keywords(self, text: str) -> MatchResult | None:
        """Layer 3: first keyword-pair rule that fires."""
        for pattern, action in self._rules:
            if pattern.search(text):
                return MatchResult.match(action, source="keyword")
        return None


def create_matcher(
    locales: list[str] | tuple[str, ...] = ("en",),
    phrases_file: Path | None = None,
    thresholds: MatchThresholds = DEFAULT_THRESHOLDS,
) -> IntentMatcher:
    """Factory function to create an IntentMatcher.

    Args:
        locales: Built-in locale tables to merge, in priority order
        phrases_file: Optional YAML table merged after the built-ins
        thresholds: Fuzzy matching constants

    Returns:
        Configured IntentMatcher
    """
    table = phrase_table_for(locales)
    if phrases_file is not None:
        table = table.merge(load_phrase_table(phrases_file))
    return IntentMatcher(phrases=table, thresholds=thresholds)


@lru_cache(maxsize=1)
def _default_matcher() -> IntentMatcher:
    return IntentMatcher()


def classify(raw: str | None) -> MatchResult:
    """Classify with the default English matcher."""
    return _default_matcher().classify(raw)
