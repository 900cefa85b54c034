"""Shared FastAPI dependencies for the API routers."""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from ..db.session import get_db_session
from ..relevance import TableRelevanceService, get_relevance_service
from ..services import TradingService
from ..sql import SQLAssembler, TextToSQLService


def get_relevance() -> TableRelevanceService:
    return get_relevance_service()


def get_assembler(relevance: TableRelevanceService = Depends(get_relevance)) -> SQLAssembler:
    """Assembler whose join paths go through the active relevance backend."""

    return SQLAssembler(join_resolver=relevance.resolve_join_path)


@lru_cache(maxsize=1)
def get_text_to_sql() -> TextToSQLService:
    return TextToSQLService()


@lru_cache(maxsize=1)
def get_trading_service() -> TradingService:
    return TradingService()


__all__ = [
    "get_assembler",
    "get_db_session",
    "get_relevance",
    "get_text_to_sql",
    "get_trading_service",
]
