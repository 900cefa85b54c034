"""Exception hierarchy shared across the service."""
from __future__ import annotations


class TradingInsightsError(Exception):
    """Base class for errors raised by this package."""


class GraphBackendError(TradingInsightsError):
    """The graph store could not answer (unreachable, timed out, or failed)."""


class MalformedGraphResponse(GraphBackendError):
    """The graph store answered with records of an unexpected shape."""


class UnknownTableError(TradingInsightsError, KeyError):
    """A table name is not part of the star schema."""

    def __init__(self, table: str) -> None:
        super().__init__(table)
        self.table = table

    def __str__(self) -> str:
        return f"Unknown table: {self.table}"


class TextToSQLError(TradingInsightsError):
    """The text-to-SQL pipeline failed (LLM call, response parsing or execution)."""


class SQLValidationError(TextToSQLError, ValueError):
    """Generated SQL was rejected before execution."""


__all__ = [
    "GraphBackendError",
    "MalformedGraphResponse",
    "SQLValidationError",
    "TextToSQLError",
    "TradingInsightsError",
    "UnknownTableError",
]
