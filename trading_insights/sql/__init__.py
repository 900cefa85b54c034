"""SQL generation: the template assembler and the LLM-backed text-to-SQL service."""

from .assembler import (
    AssembledQuery,
    QueryIntent,
    SQLAssembler,
    generate_follow_up_questions,
    parse_query_intent,
)
from .llm_providers import LLMProvider, LLMProviderFactory, OpenRouterProvider
from .text_to_sql import SQLQueryResponse, TextToSQLService

__all__ = [
    "AssembledQuery",
    "LLMProvider",
    "LLMProviderFactory",
    "OpenRouterProvider",
    "QueryIntent",
    "SQLAssembler",
    "SQLQueryResponse",
    "TextToSQLService",
    "generate_follow_up_questions",
    "parse_query_intent",
]
