"""Text normalization and edit-distance helpers for intent matching.

All comparisons run over normalized text: NFKC form, lower-cased, with
everything but letters, digits and whitespace removed.
"""

from __future__ import annotations

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

from .taxonomy import DEFAULT_THRESHOLDS, MatchThresholds

_WS_RX = re.compile(r"\s+")

# Unicode major categories kept by normalize(): letters and numbers
_KEEP_CATEGORIES = frozenset({"L", "N"})


def _keep(ch: str) -> bool:
    if ch.isspace():
        return True
    # Unassigned code points report "Cn" and surrogates "Cs", so they drop out
    return unicodedata.category(ch)[0] in _KEEP_CATEGORIES


def normalize(text: str | None) -> str:
    """Canonicalize text for comparison.

    Args:
        text: Raw user input (None is treated as empty)

    Returns:
        Lower-cased NFKC text with punctuation and symbols removed and
        whitespace collapsed. Never raises.
    """
    if not text:
        return ""
    t = unicodedata.normalize("NFKC", str(text)).lower()
    t = "".join(ch for ch in t if _keep(ch))
    return _WS_RX.sub(" ", t).strip()


def levenshtein_distance(a: str, b: str) -> int:
    """Unit-cost edit distance (insert, delete, substitute)."""
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """Normalized similarity in [0, 1]; two empty strings score 1.0."""
    longest = max(len(a), len(b), 1)
    return 1.0 - levenshtein_distance(a, b) / longest


def fuzzy_matches_phrase(
    text: str,
    phrase: str,
    thresholds: MatchThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """Check whether user text is a tolerable rendering of a canonical phrase.

    A match is any of:
    - either normalized string contains the other (partial typed commands)
    - similarity at or above the threshold
    - both strings short and within a small edit distance ("tiket")

    Args:
        text: User input
        phrase: Canonical phrase
        thresholds: Tunable constants

    Returns:
        True if the text fuzzily matches the phrase
    """
    a = normalize(text)
    b = normalize(phrase)
    if not a or not b:
        return a == b

    if a in b or b in a:
        return True

    if similarity(a, b) >= thresholds.similarity:
        return True

    return (
        len(a) <= thresholds.short_length
        and len(b) <= thresholds.short_length
        and levenshtein_distance(a, b) <= thresholds.short_distance
    )
