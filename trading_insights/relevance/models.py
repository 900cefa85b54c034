"""Result types produced by the relevance scorer."""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RelatedTable:
    table: str
    relationship: str
    weight: float

    def to_dict(self) -> dict[str, object]:
        return {"table": self.table, "relationship": self.relationship, "weight": self.weight}


@dataclass
class TableRelevance:
    table: str
    relevance_score: float = 0.0
    reasons: list[str] = field(default_factory=list)
    related_tables: list[RelatedTable] = field(default_factory=list)
    suggested_columns: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "table": self.table,
            "relevance_score": self.relevance_score,
            "reasons": list(self.reasons),
            "related_tables": [related.to_dict() for related in self.related_tables],
            "suggested_columns": list(self.suggested_columns),
        }
