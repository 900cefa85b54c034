from itertools import combinations

import pytest
from neo4j.exceptions import ServiceUnavailable, TransientError

from trading_insights.core.config import GraphSettings
from trading_insights.core.errors import GraphBackendError, MalformedGraphResponse
from trading_insights.relevance import InMemoryBackend, Neo4jBackend, QueryContext, extract_query_context
from trading_insights.relevance import graph_backend as gb
from trading_insights.schema import FACT_TABLE


@pytest.fixture
def backend(driver_factory):
    return Neo4jBackend.connect(GraphSettings(enabled=True), driver_factory=driver_factory)


def test_invalid_configuration_is_a_backend_error() -> None:
    def factory(uri, **kwargs):
        raise ValueError("Unsupported URI scheme")

    with pytest.raises(GraphBackendError, match="Invalid Neo4j configuration"):
        Neo4jBackend.connect(GraphSettings(enabled=True, uri="http://nope"), driver_factory=factory)


def test_driver_creation_failure_is_a_backend_error() -> None:
    def factory(uri, **kwargs):
        raise ServiceUnavailable("no route")

    with pytest.raises(GraphBackendError):
        Neo4jBackend.connect(GraphSettings(enabled=True), driver_factory=factory)


def test_seed_creates_constraints_and_metadata(backend, fake_graph) -> None:
    for statement in gb.CONSTRAINT_STATEMENTS:
        assert statement in fake_graph.writes
    assert fake_graph.writes.index(gb.CLEAR_SCHEMA) < fake_graph.writes.index(gb.CREATE_TABLES)
    assert fake_graph.writes[-1] == gb.CREATE_KEYWORDS


def test_score_reads_weights_from_graph(backend) -> None:
    results = backend.score(extract_query_context("What securities are trading today?"))

    assert results[0].table == FACT_TABLE
    assert results[0].relevance_score == 1.0
    assert all(0.0 < entry.relevance_score <= 1.0 for entry in results)


def test_keyword_for_unknown_table_is_malformed(backend, fake_graph) -> None:
    fake_graph.rows[gb.KEYWORD_WEIGHTS_QUERY] = [
        {"keyword": "pnl", "table": "dim_weather", "weight": 1.0}
    ]

    with pytest.raises(MalformedGraphResponse):
        backend.score(extract_query_context("pnl"))


def test_non_numeric_weight_is_malformed(backend, fake_graph) -> None:
    fake_graph.rows[gb.KEYWORD_WEIGHTS_QUERY] = [
        {"keyword": "pnl", "table": FACT_TABLE, "weight": "heavy"}
    ]

    with pytest.raises(MalformedGraphResponse):
        backend.score(extract_query_context("pnl"))


def test_join_path_rejects_unknown_nodes(backend, fake_graph) -> None:
    fake_graph.rows[gb.SHORTEST_PATHS_QUERY] = [{"tables": ["dim_security", "dim_moon"]}]

    with pytest.raises(MalformedGraphResponse):
        backend.join_path(["dim_security", "dim_trader"])


def test_join_path_normalises_graph_paths(backend) -> None:
    assert backend.join_path(["dim_trader", "dim_security", "dim_trader"]) == [
        FACT_TABLE,
        "dim_trader",
        "dim_security",
    ]


def test_read_failure_is_wrapped(backend, fake_graph) -> None:
    fake_graph.down = True

    with pytest.raises(GraphBackendError, match="Neo4j read failed"):
        backend.relationships("dim_time")


# One or two keywords per table, mixing single and multi-table weights.
RANKING_KEYWORDS = (
    "pnl", "trade", "symbol", "security", "trader", "region",
    "today", "hourly", "rating", "client", "limit", "algo",
)


def _ranking_contexts():
    for size in (1, 2, 3):
        for keywords in combinations(RANKING_KEYWORDS, size):
            yield QueryContext(keywords=keywords)
            yield QueryContext(
                keywords=keywords, aggregations=frozenset({"sum"}), time_hint="past"
            )


def test_rankings_match_in_memory_backend(backend) -> None:
    in_memory = InMemoryBackend()

    for context in _ranking_contexts():
        expected = [entry.table for entry in in_memory.score(context)]
        actual = [entry.table for entry in backend.score(context)]
        assert [table for table in actual if table in expected] == expected, context.keywords
        assert set(actual) == set(expected), context.keywords


def test_multi_dimension_query_ranks_alike(backend) -> None:
    context = extract_query_context("symbol trader rating")

    expected = [entry.table for entry in InMemoryBackend().score(context)]
    actual = [entry.table for entry in backend.score(context)]

    assert actual == expected
    assert expected[0] == FACT_TABLE


def test_every_statement_carries_the_query_timeout(driver_factory, fake_graph) -> None:
    settings = GraphSettings(enabled=True, connection_timeout=1.0, query_timeout=0.5)
    backend = Neo4jBackend.connect(settings, driver_factory=driver_factory)
    backend.score(extract_query_context("pnl by trader"))
    backend.join_path(["dim_security", "dim_trader"])

    assert backend.query_timeout == 0.5
    assert fake_graph.timeouts
    assert set(fake_graph.timeouts) == {0.5}
    assert driver_factory.calls[0]["connection_acquisition_timeout"] == 1.0


def test_timed_out_transaction_is_a_backend_error(backend, fake_graph, monkeypatch) -> None:
    def answer(query, params):
        raise TransientError("Neo.ClientError.Transaction.TransactionTimedOut")

    monkeypatch.setattr(fake_graph, "answer", answer)

    with pytest.raises(GraphBackendError):
        backend.score(extract_query_context("pnl"))
