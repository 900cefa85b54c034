"""Pydantic payloads exposed by the HTTP API."""

from .orders import DailySummaryRow, OrderFlowRow, SeedSummary
from .query import AssembleRequest, AssembleResponse, TextQueryRequest, TextQueryResponse
from .relevance import (
    HealthResponse,
    JoinPathRequest,
    JoinPathResponse,
    QueryContextPayload,
    RelevanceRequest,
    RelevanceResponse,
    SuggestionsResponse,
    TableRelationshipsResponse,
    TableRelevancePayload,
)

__all__ = [
    "AssembleRequest",
    "AssembleResponse",
    "DailySummaryRow",
    "HealthResponse",
    "JoinPathRequest",
    "JoinPathResponse",
    "OrderFlowRow",
    "QueryContextPayload",
    "RelevanceRequest",
    "RelevanceResponse",
    "SeedSummary",
    "SuggestionsResponse",
    "TableRelationshipsResponse",
    "TableRelevancePayload",
    "TextQueryRequest",
    "TextQueryResponse",
]
