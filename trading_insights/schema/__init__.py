"""Static star-schema metadata shared by the relevance and SQL components."""

from .keywords import KEYWORD_TABLE_WEIGHTS, KeywordWeights, build_keyword_weights
from .metadata import (
    FACT_TABLE,
    SUGGESTION_TEMPLATES,
    TABLE_TAGS,
    TIME_TABLE,
    TRADING_SCHEMA,
    ColumnMetadata,
    JoinEdge,
    StarSchema,
    TableMetadata,
)

__all__ = [
    "ColumnMetadata",
    "FACT_TABLE",
    "JoinEdge",
    "KEYWORD_TABLE_WEIGHTS",
    "KeywordWeights",
    "StarSchema",
    "SUGGESTION_TEMPLATES",
    "TABLE_TAGS",
    "TIME_TABLE",
    "TRADING_SCHEMA",
    "TableMetadata",
    "build_keyword_weights",
]
