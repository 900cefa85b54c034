"""Backend-aware facade over the relevance heuristics."""
from __future__ import annotations

from functools import lru_cache
from threading import RLock
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar

from ..core.config import Settings, get_settings
from ..core.errors import GraphBackendError
from ..core.logger import get_logger
from ..schema import (
    KEYWORD_TABLE_WEIGHTS,
    SUGGESTION_TEMPLATES,
    TRADING_SCHEMA,
    StarSchema,
)
from .backends import InMemoryBackend, RelevanceBackend
from .context import QueryContext, extract_query_context
from .graph_backend import DriverFactory, Neo4jBackend
from .models import TableRelevance

LOGGER = get_logger(__name__)

MAX_SUGGESTIONS = 5

T = TypeVar("T")


class TableRelevanceService:
    """Score tables and resolve join paths, preferring the graph store when reachable.

    ``connect()`` performs the only capability check. A graph failure at any
    later point logs a warning, swaps in the in-memory backend for the rest of
    the process and recomputes the call, so callers never see the error.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        schema: StarSchema = TRADING_SCHEMA,
        keyword_weights: Mapping[str, Mapping[str, float]] = KEYWORD_TABLE_WEIGHTS,
        *,
        driver_factory: Optional[DriverFactory] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.schema = schema
        self.keyword_weights = keyword_weights
        self._driver_factory = driver_factory
        self._fallback = InMemoryBackend(schema, keyword_weights)
        self._backend: RelevanceBackend = self._fallback
        self._connected = False
        self._lock = RLock()

    @property
    def backend_name(self) -> str:
        return self._backend.name

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> str:
        """Pick the backend once; returns its name."""

        with self._lock:
            if self._connected:
                return self._backend.name
            self._connected = True

            graph = self.settings.graph
            if not graph.enabled:
                LOGGER.info("Graph store disabled, using in-memory relevance")
                return self._backend.name

            try:
                self._backend = Neo4jBackend.connect(
                    graph,
                    self.schema,
                    self.keyword_weights,
                    driver_factory=self._driver_factory,
                )
            except GraphBackendError as exc:
                LOGGER.warning("Neo4j connection failed, using in-memory relevance: %s", exc)
                self._backend = self._fallback
            else:
                LOGGER.info("Relevance backed by Neo4j at %s", graph.uri)
            return self._backend.name

    def _degrade(self, failed: RelevanceBackend, exc: GraphBackendError) -> None:
        with self._lock:
            if self._backend is not failed:
                return
            LOGGER.warning(
                "Graph backend failed (%s), switching to in-memory relevance permanently", exc
            )
            self._backend = self._fallback
        failed.close()

    def _call(self, operation: Callable[[RelevanceBackend], T]) -> T:
        backend = self._backend
        if backend is self._fallback:
            return operation(backend)
        try:
            return operation(backend)
        except GraphBackendError as exc:
            self._degrade(backend, exc)
            return operation(self._fallback)

    # -- heuristics --------------------------------------------------------

    def extract_query_context(self, query: str) -> QueryContext:
        return extract_query_context(query, keyword_weights=self.keyword_weights)

    def score_table_relevance(self, context: QueryContext) -> List[TableRelevance]:
        return self._call(lambda backend: backend.score(context))

    def calculate_table_relevance(self, query: str) -> List[TableRelevance]:
        return self.score_table_relevance(self.extract_query_context(query))

    def resolve_join_path(self, tables: Iterable[str]) -> List[str]:
        requested = list(tables)
        for table in requested:
            self.schema.table(table)
        return self._call(lambda backend: backend.join_path(requested))

    def get_query_suggestions(self, partial_query: str) -> List[str]:
        """Complete ``partial_query`` with templates for its most relevant table."""

        partial = partial_query.strip()
        if not partial:
            return []
        ranked = self.calculate_table_relevance(partial)
        if not ranked:
            return []
        templates = SUGGESTION_TEMPLATES.get(ranked[0].table, ())
        return [template.format(query=partial) for template in templates][:MAX_SUGGESTIONS]

    # -- schema exploration -------------------------------------------------

    def get_table_relationships(self, table: str) -> List[Dict[str, Any]]:
        self.schema.table(table)
        return self._call(lambda backend: backend.relationships(table))

    def get_schema_graph(self) -> Dict[str, List[Dict[str, Any]]]:
        return self._call(lambda backend: backend.schema_graph())

    def close(self) -> None:
        with self._lock:
            backend = self._backend
            self._backend = self._fallback
            self._connected = False
        if backend is not self._fallback:
            backend.close()


@lru_cache(maxsize=1)
def get_relevance_service() -> TableRelevanceService:
    """Return the process-wide relevance service (not yet connected)."""

    return TableRelevanceService(get_settings())
