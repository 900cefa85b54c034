"""Schema exploration endpoints."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.errors import UnknownTableError
from ..relevance import TableRelevanceService
from ..schemas.relevance import TableRelationshipsResponse
from ..sql import TextToSQLService
from .dependencies import get_db_session, get_relevance, get_text_to_sql

router = APIRouter(prefix="/api/schema", tags=["schema"])


@router.get("")
def live_schema(
    text_to_sql: TextToSQLService = Depends(get_text_to_sql),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    return text_to_sql.get_schema_info(session)


@router.get("/graph")
def schema_graph(relevance: TableRelevanceService = Depends(get_relevance)) -> Dict[str, Any]:
    graph = relevance.get_schema_graph()
    return {"backend": relevance.backend_name, **graph}


@router.get("/tables/{name}/relationships", response_model=TableRelationshipsResponse)
def table_relationships(
    name: str,
    relevance: TableRelevanceService = Depends(get_relevance),
) -> TableRelationshipsResponse:
    try:
        relationships = relevance.get_table_relationships(name)
    except UnknownTableError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return TableRelationshipsResponse(
        table=name, backend=relevance.backend_name, relationships=relationships
    )
