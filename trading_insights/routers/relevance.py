"""Table relevance, suggestions and join-path endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ..core.errors import UnknownTableError
from ..core.logger import get_logger
from ..relevance import TableRelevanceService
from ..schemas.relevance import (
    JoinPathRequest,
    JoinPathResponse,
    RelevanceRequest,
    RelevanceResponse,
    SuggestionsResponse,
)
from .dependencies import get_relevance

router = APIRouter(prefix="/api", tags=["relevance"])
LOGGER = get_logger(__name__)


@router.post("/relevance", response_model=RelevanceResponse)
def table_relevance(
    payload: RelevanceRequest,
    relevance: TableRelevanceService = Depends(get_relevance),
) -> RelevanceResponse:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Query is required")

    context = relevance.extract_query_context(query)
    ranked = relevance.score_table_relevance(context)
    join_path = relevance.resolve_join_path([item.table for item in ranked])
    LOGGER.info("Scored %s tables for %r using %s", len(ranked), query, relevance.backend_name)
    return RelevanceResponse(
        query=query,
        backend=relevance.backend_name,
        context=context.to_dict(),
        tables=[item.to_dict() for item in ranked],
        join_path=join_path,
    )


@router.post("/relevance/suggestions", response_model=SuggestionsResponse)
def query_suggestions(
    payload: RelevanceRequest,
    relevance: TableRelevanceService = Depends(get_relevance),
) -> SuggestionsResponse:
    return SuggestionsResponse(suggestions=relevance.get_query_suggestions(payload.query))


@router.post("/join-path", response_model=JoinPathResponse)
def join_path(
    payload: JoinPathRequest,
    relevance: TableRelevanceService = Depends(get_relevance),
) -> JoinPathResponse:
    try:
        path = relevance.resolve_join_path(payload.tables)
    except UnknownTableError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return JoinPathResponse(join_path=path)
