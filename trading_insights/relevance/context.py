"""Turn a free-text question into the signals the relevance scorer consumes."""
from __future__ import annotations

import re
import string
from dataclasses import dataclass, field
from typing import Literal, Mapping, Optional

from ..schema import KEYWORD_TABLE_WEIGHTS

TimeHint = Literal["current", "past"]

ENTITY_PATTERN = re.compile(r"\b[A-Z][A-Za-z0-9]+\b")

# Substring -> canonical SQL aggregate. "top" is a ranking, not an aggregate.
AGGREGATION_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("sum", "sum"),
    ("count", "count"),
    ("average", "avg"),
    ("avg", "avg"),
    ("max", "max"),
    ("min", "min"),
    ("total", "sum"),
)

CURRENT_TIME_MARKERS = ("today", "current")
PAST_TIME_MARKERS = ("yesterday", "previous")

_PUNCTUATION = string.punctuation + "“”‘’"


@dataclass(frozen=True)
class QueryContext:
    keywords: tuple[str, ...] = ()
    entities: tuple[str, ...] = ()
    aggregations: frozenset[str] = field(default_factory=frozenset)
    time_hint: Optional[TimeHint] = None

    @property
    def is_empty(self) -> bool:
        return not (self.keywords or self.entities or self.aggregations or self.time_hint)

    def to_dict(self) -> dict[str, object]:
        return {
            "keywords": list(self.keywords),
            "entities": list(self.entities),
            "aggregations": sorted(self.aggregations),
            "time_hint": self.time_hint,
        }


def _tokenize(lowered: str) -> list[str]:
    tokens = []
    for raw in lowered.split():
        token = raw.strip(_PUNCTUATION)
        if token:
            tokens.append(token)
    return tokens


def extract_query_context(
    query: str,
    *,
    keyword_weights: Mapping[str, Mapping[str, float]] = KEYWORD_TABLE_WEIGHTS,
) -> QueryContext:
    """Extract keywords, entities, aggregation and time hints from ``query``.

    Keywords are exact token matches against ``keyword_weights`` after
    surrounding punctuation is stripped; aggregation and time hints are plain
    substring checks over the lower-cased text. Blank input yields an empty
    context.
    """

    if not query or not query.strip():
        return QueryContext()

    lowered = query.lower()

    keywords: list[str] = []
    for token in _tokenize(lowered):
        if token in keyword_weights and token not in keywords:
            keywords.append(token)

    entities = tuple(ENTITY_PATTERN.findall(query))

    aggregations = frozenset(
        canonical for needle, canonical in AGGREGATION_KEYWORDS if needle in lowered
    )

    time_hint: Optional[TimeHint] = None
    if any(marker in lowered for marker in CURRENT_TIME_MARKERS):
        time_hint = "current"
    elif any(marker in lowered for marker in PAST_TIME_MARKERS):
        time_hint = "past"

    return QueryContext(
        keywords=tuple(keywords),
        entities=entities,
        aggregations=aggregations,
        time_hint=time_hint,
    )
