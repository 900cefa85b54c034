"""Table relevance scoring and join-path resolution for the trading star schema."""

from .backends import InMemoryBackend, RelevanceBackend
from .context import QueryContext, extract_query_context
from .graph_backend import Neo4jBackend
from .join_path import resolve_join_path
from .models import RelatedTable, TableRelevance
from .scoring import (
    GRAPH_KEYWORD_FACTOR,
    IN_MEMORY_KEYWORD_FACTOR,
    score_table_relevance,
)
from .service import TableRelevanceService, get_relevance_service

__all__ = [
    "GRAPH_KEYWORD_FACTOR",
    "IN_MEMORY_KEYWORD_FACTOR",
    "InMemoryBackend",
    "Neo4jBackend",
    "QueryContext",
    "RelatedTable",
    "RelevanceBackend",
    "TableRelevance",
    "TableRelevanceService",
    "extract_query_context",
    "get_relevance_service",
    "resolve_join_path",
    "score_table_relevance",
]
