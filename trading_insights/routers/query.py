"""SQL assembly and LLM text-to-SQL endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.errors import SQLValidationError, TextToSQLError
from ..core.logger import get_logger
from ..sql import SQLAssembler, TextToSQLService, generate_follow_up_questions
from ..schemas.query import AssembleRequest, AssembleResponse, TextQueryRequest, TextQueryResponse
from .dependencies import get_assembler, get_db_session, get_text_to_sql

router = APIRouter(prefix="/api", tags=["query"])
LOGGER = get_logger(__name__)


@router.post("/sql/assemble", response_model=AssembleResponse)
def assemble_sql(
    payload: AssembleRequest,
    assembler: SQLAssembler = Depends(get_assembler),
    text_to_sql: TextToSQLService = Depends(get_text_to_sql),
    session: Session = Depends(get_db_session),
) -> AssembleResponse:
    """Fill the SQL template for a question; optionally run it."""

    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Query is required")

    assembled = assembler.generate_sql(query)
    results = None
    if payload.execute:
        try:
            text_to_sql.validate_sql(assembled.sql)
            results = text_to_sql.execute_sql(assembled.sql, session)
        except TextToSQLError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    return AssembleResponse(
        **assembled.to_dict(),
        follow_up_questions=generate_follow_up_questions(query, results or []),
        results=results,
    )


@router.post("/query", response_model=TextQueryResponse)
async def text_query(
    payload: TextQueryRequest,
    text_to_sql: TextToSQLService = Depends(get_text_to_sql),
    session: Session = Depends(get_db_session),
) -> TextQueryResponse:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Query is required")

    try:
        result = await text_to_sql.process_query(
            query, session, context=payload.context, follow_up=payload.follow_up
        )
    except SQLValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except TextToSQLError as exc:
        LOGGER.error("Text-to-SQL failed for %r: %s", query, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return TextQueryResponse(**result)
