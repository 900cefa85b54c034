"""Keyword-weighted table relevance scoring over the star schema."""
from __future__ import annotations

from typing import Mapping, Optional, Sequence

from ..core.errors import UnknownTableError
from ..schema import KEYWORD_TABLE_WEIGHTS, TRADING_SCHEMA, ColumnMetadata, StarSchema
from .context import QueryContext
from .models import RelatedTable, TableRelevance

# Keyword contribution on the graph store vs. the in-memory star adjacency.
GRAPH_KEYWORD_FACTOR = 0.4
IN_MEMORY_KEYWORD_FACTOR = 0.5

# Flat boosts at the graph keyword factor. Other factors scale them by
# keyword_factor / GRAPH_KEYWORD_FACTOR so both backends rank identically.
RELATIONSHIP_BOOST = 0.2
AGGREGATION_BOOST = 0.3
TIME_BOOST = 0.2
# Sort keys are rounded so float noise cannot split equal scores.
RANK_PRECISION = 9
MAX_SUGGESTED_COLUMNS = 5
MAX_SCORE = 1.0

Adjacency = Mapping[str, Sequence[tuple[str, str]]]
ColumnIndex = Mapping[str, Sequence[ColumnMetadata]]


def schema_adjacency(schema: StarSchema) -> dict[str, list[tuple[str, str]]]:
    """One-hop neighbours per table, labelled with the joining foreign key."""

    return {
        name: [(other, edge.foreign_key) for other, edge in schema.neighbors(name)]
        for name in schema.table_names
    }


def _suggest_columns(columns: Sequence[ColumnMetadata], keywords: Sequence[str]) -> list[str]:
    chosen = []
    for column in columns:
        if column.is_primary_key or column.is_foreign_key or column.name in keywords:
            chosen.append(column.name)
            if len(chosen) == MAX_SUGGESTED_COLUMNS:
                break
    return chosen


def score_table_relevance(
    context: QueryContext,
    *,
    schema: StarSchema = TRADING_SCHEMA,
    keyword_weights: Mapping[str, Mapping[str, float]] = KEYWORD_TABLE_WEIGHTS,
    keyword_factor: float = IN_MEMORY_KEYWORD_FACTOR,
    relationship_boost: bool = True,
    adjacency: Optional[Adjacency] = None,
    columns: Optional[ColumnIndex] = None,
) -> list[TableRelevance]:
    """Rank schema tables by relevance to ``context``.

    Every table starts at zero. Keyword weights are scaled by
    ``keyword_factor``; when ``relationship_boost`` is set, each one-hop
    neighbour of a table that scored on keywords gains a flat boost.
    Aggregation hints boost the fact table and a time hint boosts the time
    dimension. The boosts grow with ``keyword_factor`` in proportion, so every
    factor yields the same ranking. Tables are sorted by their uncapped score
    (ties keep schema order), zero scores are dropped and the reported score
    is capped at 1.0.

    ``adjacency`` and ``columns`` default to what ``schema`` declares; the
    graph backend passes the values it read from the store instead.
    """

    accumulator = {name: TableRelevance(table=name) for name in schema.table_names}
    scale = keyword_factor / GRAPH_KEYWORD_FACTOR
    related_boost = RELATIONSHIP_BOOST * scale

    for keyword in context.keywords:
        for table, weight in (keyword_weights.get(keyword) or {}).items():
            if table not in accumulator:
                raise UnknownTableError(table)
            entry = accumulator[table]
            entry.relevance_score += weight * keyword_factor
            entry.reasons.append(f'Keyword match: "{keyword}" (weight: {weight:g})')

    if relationship_boost:
        neighbours = adjacency if adjacency is not None else schema_adjacency(schema)
        scored = [name for name, entry in accumulator.items() if entry.relevance_score > 0]
        for source in scored:
            for other, label in neighbours.get(source, ()):
                if other not in accumulator:
                    raise UnknownTableError(other)
                entry = accumulator[other]
                entry.relevance_score += related_boost
                entry.reasons.append(f"Related to {source} via {label}")
                entry.related_tables.append(RelatedTable(source, label, related_boost))

    if context.aggregations:
        fact = accumulator[schema.fact_table]
        fact.relevance_score += AGGREGATION_BOOST * scale
        fact.reasons.append("Contains aggregatable metrics")

    if context.time_hint:
        time_entry = accumulator[schema.time_table]
        time_entry.relevance_score += TIME_BOOST * scale
        time_entry.reasons.append(f"Time context detected in query ({context.time_hint})")

    ranked = []
    for name, entry in accumulator.items():
        uncapped = entry.relevance_score
        if uncapped <= 0:
            continue
        table_columns = (
            columns.get(name, ()) if columns is not None else schema.table(name).columns
        )
        entry.suggested_columns = _suggest_columns(table_columns, context.keywords)
        entry.relevance_score = min(uncapped, MAX_SCORE)
        ranked.append((round(uncapped, RANK_PRECISION), entry))

    ranked.sort(key=lambda item: item[0], reverse=True)
    return [entry for _, entry in ranked]
