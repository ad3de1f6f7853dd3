"""Action vocabulary and match results for shiftdesk intent matching.

This module defines the fixed set of workflow actions a chat line can be
resolved to, the tagged result returned by the matcher, and the tunable
thresholds used by fuzzy comparison.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal


class Action(str, Enum):
    """Workflow actions reachable from the employee chat."""

    START = "start"  # Clock in
    END = "end"  # Clock out
    CREATE_TICKET = "createTicket"  # File a ticket against a service
    LIST_TICKETS = "listTickets"  # Show my tickets


# Fixed iteration order for the canonical fuzzy pass. Ambiguous input is
# resolved in favour of the earliest action.
ACTION_ORDER: tuple[Action, ...] = (
    Action.START,
    Action.END,
    Action.LIST_TICKETS,
    Action.CREATE_TICKET,
)


@dataclass(frozen=True)
class MatchThresholds:
    """Empirical fuzzy-matching constants.

    The values were tuned by hand against real chat input and carry no
    deeper derivation. Change them together with the boundary tests.

    Attributes:
        similarity: Minimum normalized similarity for a fuzzy match
        short_length: Both strings at most this long enable the short rescue
        short_distance: Maximum edit distance accepted by the short rescue
        min_length: Shortest normalized input the fuzzy layer considers
            (0 disables the guard, so "hi" matches "start shift")
    """

    similarity: float = 0.78
    short_length: int = 8
    short_distance: int = 2
    min_length: int = 0


DEFAULT_THRESHOLDS = MatchThresholds()


@dataclass(frozen=True)
class MatchResult:
    """Result of classifying one line of chat input.

    Attributes:
        kind: "match" or "noMatch"
        action: Resolved action (None when kind is "noMatch")
        note: Free-text payload embedded in the same line, if any
        source: Matcher layer that decided (note, phrase, keyword)
    """

    kind: Literal["match", "noMatch"]
    action: Action | None = None
    note: str | None = None
    source: str = field(default="none", compare=False)

    @classmethod
    def match(
        cls, action: Action, note: str | None = None, source: str = "phrase"
    ) -> "MatchResult":
        """Create a successful match."""
        return cls(kind="match", action=action, note=note, source=source)

    @property
    def matched(self) -> bool:
        return self.kind == "match"

    def to_dict(self) -> dict[str, Any]:
        """Render the tagged wire form.

        Returns:
            {"kind": "match", "action": ..., "note"?: ...} or {"kind": "noMatch"}
        """
        if not self.matched:
            return {"kind": "noMatch"}
        data: dict[str, Any] = {"kind": "match", "action": self.action.value}
        if self.note is not None:
            data["note"] = self.note
        return data


NO_MATCH = MatchResult(kind="noMatch")
