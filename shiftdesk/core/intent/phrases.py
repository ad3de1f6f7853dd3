"""Canonical phrase tables for shiftdesk intent matching.

Phrases, inline-note keywords, and keyword-pair rules are data, not code:
each locale ships a table, several locales can be merged, and a table can
be loaded from YAML to add languages or synonyms without touching the
matcher.

YAML layout:

    phrases:
      start: ["start work", "clock in"]
      end: ["end work", "clock out"]
    note_keywords: ["send ticket", "ticket"]
    keyword_rules:
      - action: start
        first: ["start", "begin"]
        second: ["work", "shift"]
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from .taxonomy import Action
from .text import normalize

logger = logging.getLogger(__name__)


class KeywordRule(BaseModel):
    """Conjunctive fallback rule: one word from each list must appear.

    Attributes:
        action: Action resolved when the rule fires
        first: Verb-like words (e.g. start, begin)
        second: Object-like words (e.g. work, shift)
    """

    action: Action
    first: list[str]
    second: list[str]


class PhraseTable(BaseModel):
    """Static phrase configuration consumed by the intent matcher.

    Attributes:
        phrases: Canonical phrases per action, in priority order
        note_keywords: Keywords that introduce an inline ticket description
        keyword_rules: Ordered fallback rules
    """

    phrases: dict[Action, list[str]] = Field(default_factory=dict)
    note_keywords: list[str] = Field(default_factory=list)
    keyword_rules: list[KeywordRule] = Field(default_factory=list)

    @field_validator("phrases")
    @classmethod
    def _drop_blank_phrases(cls, value: dict[Action, list[str]]) -> dict[Action, list[str]]:
        # A blank phrase would be contained in every input
        return {action: [p for p in items if normalize(p)] for action, items in value.items()}

    @field_validator("note_keywords")
    @classmethod
    def _drop_blank_keywords(cls, value: list[str]) -> list[str]:
        return [k for k in value if k.strip()]

    def phrases_for(self, action: Action) -> list[str]:
        """Return the phrases registered for an action (empty if none)."""
        return self.phrases.get(action, [])

    def merge(self, other: "PhraseTable") -> "PhraseTable":
        """Combine two tables, keeping order and dropping duplicates.

        Args:
            other: Table whose entries are appended after this one's

        Returns:
            New merged PhraseTable
        """
        phrases: dict[Action, list[str]] = {}
        for table in (self, other):
            for action, items in table.phrases.items():
                bucket = phrases.setdefault(action, [])
                bucket.extend(p for p in items if p not in bucket)

        keywords = list(self.note_keywords)
        keywords.extend(k for k in other.note_keywords if k not in keywords)

        return PhraseTable(
            phrases=phrases,
            note_keywords=keywords,
            keyword_rules=[*self.keyword_rules, *other.keyword_rules],
        )


ENGLISH = PhraseTable(
    phrases={
        Action.START: [
            "start work",
            "start shift",
            "start working",
            "begin work",
            "begin shift",
            "clock in",
            "check in",
        ],
        Action.END: [
            "end work",
            "end shift",
            "stop work",
            "stop working",
            "finish work",
            "clock out",
            "check out",
        ],
        Action.LIST_TICKETS: [
            "my tickets",
            "view tickets",
            "list tickets",
            "show tickets",
            "see tickets",
            "open tickets",
        ],
        Action.CREATE_TICKET: [
            "ticket",
            "new ticket",
            "create ticket",
            "open ticket",
            "send ticket",
            "report issue",
            "report a problem",
        ],
    },
    note_keywords=[
        "send ticket",
        "new ticket",
        "create ticket",
        "open ticket",
        "ticket",
    ],
    keyword_rules=[
        KeywordRule(
            action=Action.START,
            first=["start", "starting", "begin", "beginning"],
            second=["work", "working", "shift", "job", "day"],
        ),
        KeywordRule(
            action=Action.END,
            first=["end", "ending", "stop", "stopping", "finish", "finishing", "done"],
            second=["work", "working", "shift", "job", "day"],
        ),
        KeywordRule(
            action=Action.LIST_TICKETS,
            first=["show", "view", "list", "see", "display", "check"],
            second=["tickets", "issues", "reports"],
        ),
        KeywordRule(
            action=Action.CREATE_TICKET,
            first=["new", "open", "create", "file", "raise", "submit", "send", "report"],
            second=["ticket", "issue", "problem", "fault"],
        ),
    ],
)

ITALIAN = PhraseTable(
    phrases={
        Action.START: [
            "inizia lavoro",
            "inizio lavoro",
            "inizia turno",
            "inizio turno",
            "timbra entrata",
            "entrata",
        ],
        Action.END: [
            "fine lavoro",
            "termina lavoro",
            "fine turno",
            "termina turno",
            "timbra uscita",
            "uscita",
        ],
        Action.LIST_TICKETS: [
            "le mie segnalazioni",
            "mostra segnalazioni",
            "vedi segnalazioni",
            "lista segnalazioni",
            "i miei ticket",
        ],
        Action.CREATE_TICKET: [
            "segnalazione",
            "nuova segnalazione",
            "invia segnalazione",
            "apri segnalazione",
            "nuovo ticket",
            "crea ticket",
        ],
    },
    note_keywords=[
        "invia segnalazione",
        "nuova segnalazione",
        "segnalazione",
        "invia ticket",
        "ticket",
    ],
    keyword_rules=[
        KeywordRule(
            action=Action.START,
            first=["inizia", "inizio", "iniziare", "comincia", "comincio", "attacco"],
            second=["lavoro", "turno", "servizio"],
        ),
        KeywordRule(
            action=Action.END,
            first=["fine", "finisco", "finito", "termina", "termino", "stacco", "chiudi"],
            second=["lavoro", "turno", "servizio"],
        ),
        KeywordRule(
            action=Action.LIST_TICKETS,
            first=["mostra", "vedi", "visualizza", "elenca", "lista"],
            second=["segnalazioni", "ticket"],
        ),
        KeywordRule(
            action=Action.CREATE_TICKET,
            first=["nuova", "nuovo", "apri", "crea", "invia"],
            second=["segnalazione", "ticket", "problema", "guasto"],
        ),
    ],
)

BUILTIN_TABLES: dict[str, PhraseTable] = {
    "en": ENGLISH,
    "it": ITALIAN,
}


def phrase_table_for(locales: list[str] | tuple[str, ...]) -> PhraseTable:
    """Merge the built-in tables for the given locales, in order.

    Args:
        locales: Locale codes (e.g. ["en", "it"])

    Returns:
        Merged PhraseTable

    Raises:
        ValueError: If a locale has no built-in table or none are given
    """
    if not locales:
        raise ValueError("At least one locale is required")

    table = PhraseTable()
    for code in locales:
        builtin = BUILTIN_TABLES.get(code.lower())
        if builtin is None:
            raise ValueError(
                f"Unknown locale '{code}'. Available: {', '.join(sorted(BUILTIN_TABLES))}"
            )
        table = table.merge(builtin)
    return table


def load_phrase_table(path: Path) -> PhraseTable:
    """Load a phrase table from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated PhraseTable

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the content is malformed
    """
    from ruamel.yaml import YAML

    yaml = YAML(typ="safe")
    with path.open(encoding="utf-8") as f:
        data = yaml.load(f) or {}

    table = PhraseTable.model_validate(data)
    logger.info(
        f"Loaded phrase table from {path}: "
        f"{sum(len(v) for v in table.phrases.values())} phrases, "
        f"{len(table.keyword_rules)} keyword rules"
    )
    return table


def save_phrase_table(table: PhraseTable, path: Path) -> None:
    """Write a phrase table to YAML (useful as a starting point for edits)."""
    from ruamel.yaml import YAML

    yaml = YAML()
    yaml.default_flow_style = False

    data = {
        "phrases": {action.value: list(items) for action, items in table.phrases.items()},
        "note_keywords": list(table.note_keywords),
        "keyword_rules": [
            {"action": rule.action.value, "first": rule.first, "second": rule.second}
            for rule in table.keyword_rules
        ],
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.dump(data, f)
