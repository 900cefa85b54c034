from __future__ import annotations

from collections import Counter
from typing import Any, Callable, Dict, List

import pytest
from neo4j.exceptions import ServiceUnavailable
from sqlalchemy.orm import Session, sessionmaker

from trading_insights.core.config import (
    DatabaseSettings,
    GraphSettings,
    LLMSettings,
    LoggingSettings,
    Settings,
)
from trading_insights.db.engine import create_sync_engine
from trading_insights.relevance import graph_backend as gb
from trading_insights.schema import FACT_TABLE, KEYWORD_TABLE_WEIGHTS, TABLE_TAGS, TRADING_SCHEMA
from trading_insights.services import MockDataGenerator, TradingService


class FakeRecord:
    def __init__(self, data: Dict[str, Any]) -> None:
        self._data = data

    def data(self) -> Dict[str, Any]:
        return dict(self._data)


class FakeResult(list):
    def consume(self) -> None:
        return None


class FakeGraph:
    """In-process stand-in for the Neo4j database behind the driver.

    Answers the backend's Cypher constants from the static schema. ``rows``
    overrides the answer for a query; ``down`` makes every call fail the way
    an unreachable server does.
    """

    def __init__(self, schema=TRADING_SCHEMA, keyword_weights=KEYWORD_TABLE_WEIGHTS) -> None:
        self.schema = schema
        self.keyword_weights = keyword_weights
        self.down = False
        self.rows: Dict[str, List[Dict[str, Any]]] = {}
        self.writes: List[str] = []
        self.usage: Counter = Counter()
        self.timeouts: List[Any] = []
        self.closed = False

    def check(self) -> None:
        if self.down:
            raise ServiceUnavailable("Neo4j is down")

    def answer(self, query: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        self.check()
        if query in self.rows:
            return self.rows[query]
        schema = self.schema
        if query == gb.KEYWORD_WEIGHTS_QUERY:
            return [
                {"keyword": keyword, "table": table, "weight": weight}
                for keyword in params["keywords"]
                for table, weight in (self.keyword_weights.get(keyword) or {}).items()
            ]
        if query == gb.NEIGHBOURS_QUERY:
            return [
                {"source": table, "table": other, "fk": edge.foreign_key}
                for table in params["tables"]
                for other, edge in schema.neighbors(table)
            ]
        if query == gb.COLUMNS_QUERY:
            return [
                {
                    "table": table.name,
                    "name": column.name,
                    "data_type": column.data_type,
                    "is_primary": column.is_primary_key,
                    "is_foreign": column.is_foreign_key,
                }
                for table in schema.tables
                for column in table.columns
            ]
        if query == gb.SHORTEST_PATHS_QUERY:
            names = params["tables"]
            paths = []
            for start in names:
                for end in names:
                    if start >= end:
                        continue
                    if schema.edge_between(start, end):
                        paths.append({"tables": [start, end]})
                    else:
                        paths.append({"tables": [start, FACT_TABLE, end]})
            return paths
        if query == gb.RELATIONSHIPS_QUERY:
            table = params["table"]
            return [
                {
                    "related_table": other,
                    "foreign_key": edge.foreign_key,
                    "primary_key": edge.primary_key,
                    "outgoing": edge.source == table,
                }
                for other, edge in schema.neighbors(table)
            ]
        if query == gb.GRAPH_NODES_QUERY:
            return [
                {
                    "name": table.name,
                    "kind": table.kind,
                    "tags": list(TABLE_TAGS.get(table.name, ())),
                    "columns": [
                        {
                            "name": column.name,
                            "data_type": column.data_type,
                            "is_primary_key": column.is_primary_key,
                            "is_foreign_key": column.is_foreign_key,
                        }
                        for column in table.columns
                    ],
                }
                for table in sorted(schema.tables, key=lambda item: item.name)
            ]
        if query == gb.GRAPH_EDGES_QUERY:
            return [
                {
                    "source": edge.source,
                    "target": edge.target,
                    "foreign_key": edge.foreign_key,
                    "primary_key": edge.primary_key,
                    "cardinality": edge.cardinality,
                }
                for edge in schema.edges
            ]
        if query == gb.RECORD_USAGE:
            self.usage.update(params["tables"])
            return []
        self.writes.append(query)
        return []


class FakeTransaction:
    def __init__(self, graph: FakeGraph) -> None:
        self.graph = graph

    def run(self, query: str, params: Dict[str, Any] | None = None) -> List[FakeRecord]:
        return [FakeRecord(row) for row in self.graph.answer(query, params or {})]


class FakeSession:
    def __init__(self, graph: FakeGraph) -> None:
        self.graph = graph

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None

    def execute_read(self, work: Callable, *args: Any) -> Any:
        self.graph.timeouts.append(getattr(work, "timeout", None))
        return work(FakeTransaction(self.graph), *args)

    execute_write = execute_read

    def run(self, statement: Any) -> FakeResult:
        self.graph.check()
        self.graph.timeouts.append(getattr(statement, "timeout", None))
        self.graph.writes.append(getattr(statement, "text", statement))
        return FakeResult()


class FakeDriver:
    def __init__(self, graph: FakeGraph) -> None:
        self.graph = graph

    def session(self) -> FakeSession:
        return FakeSession(self.graph)

    def verify_connectivity(self) -> None:
        self.graph.check()

    def close(self) -> None:
        self.graph.closed = True


@pytest.fixture
def fake_graph() -> FakeGraph:
    return FakeGraph()


@pytest.fixture
def driver_factory(fake_graph: FakeGraph):
    calls: List[Dict[str, Any]] = []

    def factory(uri: str, **kwargs: Any) -> FakeDriver:
        calls.append({"uri": uri, **kwargs})
        return FakeDriver(fake_graph)

    factory.calls = calls  # type: ignore[attr-defined]
    return factory


def make_settings(*, graph_enabled: bool = False, api_key: str = "") -> Settings:
    return Settings(
        database=DatabaseSettings(url="sqlite:///:memory:", seed_on_startup=False),
        graph=GraphSettings(enabled=graph_enabled, connection_timeout=1.0),
        llm=LLMSettings(api_key=api_key),
        logging=LoggingSettings(level="WARNING"),
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def graph_settings() -> Settings:
    return make_settings(graph_enabled=True)


@pytest.fixture
def session_factory() -> sessionmaker:
    engine = create_sync_engine("sqlite:///:memory:")
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory: sessionmaker) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_session(db_session: Session) -> Session:
    TradingService(MockDataGenerator(seed=7)).initialize(db_session, order_count=120)
    db_session.commit()
    return db_session
