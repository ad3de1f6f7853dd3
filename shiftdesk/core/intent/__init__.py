"""Intent matching for the shiftdesk employee chat.

This module maps one line of free text to a workflow action (start shift,
end shift, create ticket, list tickets) or to no match.

The matching pipeline has three layers:
1. Note extraction - "ticket <description>" keeps the inline description
2. Canonical phrases - exact, then fuzzy (substring / edit distance)
3. Keyword pairs - conjunctive word rules for reordered input

Example usage:
    ```python
    from shiftdesk.core.intent import Action, create_matcher

    matcher = create_matcher(["en", "it"])

    result = matcher.classify("ticket the printer is jammed")
    assert result.action == Action.CREATE_TICKET
    assert result.note == "the printer is jammed"

    assert not matcher.classify("xyz123").matched
    ```
"""

from .matcher import (
    IntentMatcher,
    classify,
    create_matcher,
)
from .phrases import (
    BUILTIN_TABLES,
    ENGLISH,
    ITALIAN,
    KeywordRule,
    PhraseTable,
    load_phrase_table,
    phrase_table_for,
    save_phrase_table,
)
from .taxonomy import (
    ACTION_ORDER,
    DEFAULT_THRESHOLDS,
    NO_MATCH,
    Action,
    MatchResult,
    MatchThresholds,
)
from .text import (
    fuzzy_matches_phrase,
    levenshtein_distance,
    normalize,
    similarity,
)

__all__ = [
    # Matcher
    "IntentMatcher",
    "create_matcher",
    "classify",
    # Taxonomy
    "Action",
    "ACTION_ORDER",
    "MatchResult",
    "MatchThresholds",
    "DEFAULT_THRESHOLDS",
    "NO_MATCH",
    # Phrase tables
    "PhraseTable",
    "KeywordRule",
    "ENGLISH",
    "ITALIAN",
    "BUILTIN_TABLES",
    "phrase_table_for",
    "load_phrase_table",
    "save_phrase_table",
    # Text helpers
    "normalize",
    "similarity",
    "levenshtein_distance",
    "fuzzy_matches_phrase",
]
