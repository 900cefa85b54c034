"""Payloads for the relevance, join-path and schema exploration endpoints."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class RelevanceRequest(BaseModel):
    query: str = Field(..., description="Natural-language question about the trading data")


class QueryContextPayload(BaseModel):
    keywords: List[str] = Field(default_factory=list)
    entities: List[str] = Field(default_factory=list)
    aggregations: List[str] = Field(default_factory=list)
    time_hint: Optional[str] = None


class RelatedTablePayload(BaseModel):
    table: str
    relationship: str
    weight: float


class TableRelevancePayload(BaseModel):
    """One scored table; scores are clamped to ``[0, 1]``."""

    table: str
    relevance_score: float = Field(ge=0.0, le=1.0)
    reasons: List[str] = Field(default_factory=list)
    related_tables: List[RelatedTablePayload] = Field(default_factory=list)
    suggested_columns: List[str] = Field(default_factory=list)


class RelevanceResponse(BaseModel):
    query: str
    backend: str
    context: QueryContextPayload
    tables: List[TableRelevancePayload]
    join_path: List[str]


class SuggestionsResponse(BaseModel):
    suggestions: List[str]


class JoinPathRequest(BaseModel):
    tables: List[str] = Field(default_factory=list)


class JoinPathResponse(BaseModel):
    join_path: List[str]


class TableRelationshipPayload(BaseModel):
    table: str
    related_table: str
    foreign_key: str
    primary_key: str
    direction: str


class TableRelationshipsResponse(BaseModel):
    table: str
    backend: str
    relationships: List[TableRelationshipPayload]


class HealthResponse(BaseModel):
    status: str
    backend: str
    connected: bool
    llm_configured: bool
