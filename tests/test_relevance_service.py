import pytest

from trading_insights.core.errors import UnknownTableError
from trading_insights.relevance import TableRelevanceService
from trading_insights.relevance import graph_backend as gb
from trading_insights.schema import FACT_TABLE


def _scores(results):
    return {entry.table: entry.relevance_score for entry in results}


def test_disabled_graph_uses_memory(settings, driver_factory) -> None:
    service = TableRelevanceService(settings, driver_factory=driver_factory)

    assert service.connect() == "memory"
    assert service.backend_name == "memory"
    assert service.connected
    assert driver_factory.calls == []


def test_connect_seeds_graph_and_selects_neo4j(graph_settings, driver_factory, fake_graph) -> None:
    service = TableRelevanceService(graph_settings, driver_factory=driver_factory)

    assert service.connect() == "neo4j"
    assert driver_factory.calls[0]["uri"] == graph_settings.graph.uri
    assert driver_factory.calls[0]["connection_timeout"] == 1.0
    assert gb.CREATE_TABLES in fake_graph.writes
    assert gb.CREATE_KEYWORDS in fake_graph.writes


def test_connect_is_checked_once(graph_settings, driver_factory) -> None:
    service = TableRelevanceService(graph_settings, driver_factory=driver_factory)
    service.connect()
    service.connect()

    assert len(driver_factory.calls) == 1


def test_unreachable_graph_falls_back_at_connect(graph_settings, driver_factory, fake_graph) -> None:
    fake_graph.down = True
    service = TableRelevanceService(graph_settings, driver_factory=driver_factory)

    assert service.connect() == "memory"
    assert fake_graph.closed


def test_graph_scoring_uses_relationship_pass(graph_settings, driver_factory, fake_graph) -> None:
    service = TableRelevanceService(graph_settings, driver_factory=driver_factory)
    service.connect()

    scores = _scores(service.calculate_table_relevance("Show me top traders by PnL"))

    assert scores[FACT_TABLE] == pytest.approx(0.8)
    assert scores["dim_trader"] == pytest.approx(0.6)
    assert scores["dim_security"] == pytest.approx(0.2)
    assert fake_graph.usage[FACT_TABLE] == 1


def test_graph_failure_mid_call_falls_back_permanently(
    graph_settings, driver_factory, fake_graph
) -> None:
    service = TableRelevanceService(graph_settings, driver_factory=driver_factory)
    service.connect()
    fake_graph.down = True

    scores = _scores(service.calculate_table_relevance("Show me top traders by PnL"))

    assert scores[FACT_TABLE] == pytest.approx(1.0)
    assert scores["dim_trader"] == pytest.approx(0.75)
    assert scores["dim_security"] == pytest.approx(0.25)
    assert service.backend_name == "memory"
    assert fake_graph.closed

    fake_graph.down = False
    service.calculate_table_relevance("orders today")
    assert service.backend_name == "memory"


def test_malformed_graph_records_fall_back(graph_settings, driver_factory, fake_graph) -> None:
    service = TableRelevanceService(graph_settings, driver_factory=driver_factory)
    service.connect()
    fake_graph.rows[gb.KEYWORD_WEIGHTS_QUERY] = [{"keyword": "pnl"}]

    results = service.calculate_table_relevance("pnl")

    assert results[0].table == FACT_TABLE
    assert results[0].relevance_score == pytest.approx(0.5)
    assert service.backend_name == "memory"


def test_usage_telemetry_failure_is_ignored(graph_settings, driver_factory, fake_graph, monkeypatch) -> None:
    service = TableRelevanceService(graph_settings, driver_factory=driver_factory)
    service.connect()
    original = fake_graph.answer

    def answer(query, params):
        if query == gb.RECORD_USAGE:
            fake_graph.down = True
            try:
                fake_graph.check()
            finally:
                fake_graph.down = False
        return original(query, params)

    monkeypatch.setattr(fake_graph, "answer", answer)

    results = service.calculate_table_relevance("pnl")

    assert results[0].table == FACT_TABLE
    assert service.backend_name == "neo4j"


@pytest.mark.parametrize("graph_enabled", [False, True])
def test_join_path_matches_across_backends(
    graph_enabled, settings, graph_settings, driver_factory
) -> None:
    service = TableRelevanceService(
        graph_settings if graph_enabled else settings, driver_factory=driver_factory
    )
    service.connect()

    assert service.resolve_join_path([]) == []
    assert service.resolve_join_path([FACT_TABLE]) == [FACT_TABLE]
    assert service.resolve_join_path(["dim_security", "dim_trader"]) == [
        FACT_TABLE,
        "dim_security",
        "dim_trader",
    ]
    assert service.resolve_join_path(["dim_time", "dim_time", "dim_counterparty"]) == [
        FACT_TABLE,
        "dim_time",
        "dim_counterparty",
    ]


def test_join_path_rejects_unknown_tables(settings) -> None:
    service = TableRelevanceService(settings)

    with pytest.raises(UnknownTableError) as excinfo:
        service.resolve_join_path(["dim_security", "dim_weather"])

    assert excinfo.value.table == "dim_weather"


def test_query_suggestions(settings) -> None:
    service = TableRelevanceService(settings)

    suggestions = service.get_query_suggestions("top traders")

    assert suggestions == [
        "top traders from equity desk",
        "top traders with experience level = 'Senior'",
    ]
    assert service.get_query_suggestions("   ") == []
    assert service.get_query_suggestions("hello there") == []


@pytest.mark.parametrize("graph_enabled", [False, True])
def test_relationships_and_schema_graph(
    graph_enabled, settings, graph_settings, driver_factory
) -> None:
    service = TableRelevanceService(
        graph_settings if graph_enabled else settings, driver_factory=driver_factory
    )
    service.connect()

    relationships = service.get_table_relationships("dim_trader")
    assert relationships == [
        {
            "table": "dim_trader",
            "related_table": FACT_TABLE,
            "foreign_key": "trader_id",
            "primary_key": "trader_id",
            "direction": "incoming",
        }
    ]
    assert len(service.get_table_relationships(FACT_TABLE)) == 5

    graph = service.get_schema_graph()
    assert len(graph["nodes"]) == 6
    assert len(graph["edges"]) == 5
    assert {edge["source"] for edge in graph["edges"]} == {FACT_TABLE}


def test_relationships_for_unknown_table(settings) -> None:
    service = TableRelevanceService(settings)

    with pytest.raises(UnknownTableError):
        service.get_table_relationships("nope")


def test_close_releases_driver(graph_settings, driver_factory, fake_graph) -> None:
    service = TableRelevanceService(graph_settings, driver_factory=driver_factory)
    service.connect()
    service.close()

    assert fake_graph.closed
    assert service.backend_name == "memory"
    assert not service.connected
