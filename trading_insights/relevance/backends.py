"""Relevance backends: the capability interface and its in-memory implementation."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping

from ..schema import KEYWORD_TABLE_WEIGHTS, TABLE_TAGS, TRADING_SCHEMA, StarSchema
from .context import QueryContext
from .join_path import resolve_join_path
from .models import TableRelevance
from .scoring import IN_MEMORY_KEYWORD_FACTOR, schema_adjacency, score_table_relevance


class RelevanceBackend(ABC):
    """Scores tables and orders joins for one storage of the schema metadata."""

    name: str

    def __init__(
        self,
        schema: StarSchema = TRADING_SCHEMA,
        keyword_weights: Mapping[str, Mapping[str, float]] = KEYWORD_TABLE_WEIGHTS,
    ) -> None:
        self.schema = schema
        self.keyword_weights = keyword_weights

    @abstractmethod
    def score(self, context: QueryContext) -> List[TableRelevance]:
        """Return tables ranked by relevance, zero scores omitted."""

    @abstractmethod
    def join_path(self, tables: Iterable[str]) -> List[str]:
        """Return the join order for ``tables`` with the fact table first."""

    @abstractmethod
    def relationships(self, table: str) -> List[Dict[str, Any]]:
        """Return the join edges touching ``table``."""

    @abstractmethod
    def schema_graph(self) -> Dict[str, List[Dict[str, Any]]]:
        """Return ``{"nodes": [...], "edges": [...]}`` describing the schema."""

    def close(self) -> None:
        return None


def relationship_entry(
    table: str, related: str, foreign_key: str, primary_key: str, outgoing: bool
) -> Dict[str, Any]:
    return {
        "table": table,
        "related_table": related,
        "foreign_key": foreign_key,
        "primary_key": primary_key,
        "direction": "outgoing" if outgoing else "incoming",
    }


class InMemoryBackend(RelevanceBackend):
    """Pure in-process rules over the static schema and keyword table.

    The relationship pass walks the hardcoded star adjacency (every dimension
    joined only to the fact table). Keywords count for 50% here against 40% on
    the graph store, which changes magnitudes but never the ranking.
    """

    name = "memory"

    def __init__(
        self,
        schema: StarSchema = TRADING_SCHEMA,
        keyword_weights: Mapping[str, Mapping[str, float]] = KEYWORD_TABLE_WEIGHTS,
    ) -> None:
        super().__init__(schema, keyword_weights)
        self.adjacency = schema_adjacency(schema)

    def score(self, context: QueryContext) -> List[TableRelevance]:
        return score_table_relevance(
            context,
            schema=self.schema,
            keyword_weights=self.keyword_weights,
            keyword_factor=IN_MEMORY_KEYWORD_FACTOR,
            relationship_boost=True,
            adjacency=self.adjacency,
        )

    def join_path(self, tables: Iterable[str]) -> List[str]:
        return resolve_join_path(tables, fact_table=self.schema.fact_table)

    def relationships(self, table: str) -> List[Dict[str, Any]]:
        return [
            relationship_entry(
                table, other, edge.foreign_key, edge.primary_key, edge.source == table
            )
            for other, edge in self.schema.neighbors(table)
        ]

    def schema_graph(self) -> Dict[str, List[Dict[str, Any]]]:
        nodes = []
        for table in self.schema.tables:
            nodes.append(
                {
                    "id": table.name,
                    "name": table.name,
                    "kind": table.kind,
                    "column_count": len(table.columns),
                    "tags": list(TABLE_TAGS.get(table.name, ())),
                    "columns": [
                        {
                            "name": column.name,
                            "data_type": column.data_type,
                            "is_primary_key": column.is_primary_key,
                            "is_foreign_key": column.is_foreign_key,
                        }
                        for column in table.columns
                    ],
                }
            )
        edges = [
            {
                "id": f"edge-{index}",
                "source": edge.source,
                "target": edge.target,
                "label": edge.foreign_key,
                "foreign_key": edge.foreign_key,
                "primary_key": edge.primary_key,
                "cardinality": edge.cardinality,
            }
            for index, edge in enumerate(self.schema.edges)
        ]
        return {"nodes": nodes, "edges": edges}
