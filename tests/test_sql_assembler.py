import pytest

from trading_insights.schema import FACT_TABLE
from trading_insights.sql import SQLAssembler, TextToSQLService, generate_follow_up_questions, parse_query_intent
from trading_insights.sql.assembler import DEFAULT_LIMIT


@pytest.fixture()
def assembler():
    return SQLAssembler()


def test_intent_defaults_to_fact_table() -> None:
    intent = parse_query_intent("show me everything")

    assert intent.tables == [FACT_TABLE]
    assert intent.aggregations == []
    assert intent.limit == DEFAULT_LIMIT


def test_intent_reads_limit_and_tables() -> None:
    intent = parse_query_intent("Show top 5 traders by PnL")

    assert intent.tables == [FACT_TABLE, "dim_trader"]
    assert intent.limit == 5
    assert intent.aggregations == []


def test_intent_phrases_need_word_boundaries() -> None:
    intent = parse_query_intent("how many traders")

    assert "dim_trader" in intent.tables
    assert FACT_TABLE not in intent.tables
    assert intent.aggregations == ["COUNT"]


def test_detail_query(assembler) -> None:
    assembled = assembler.generate_sql("Show top 5 traders by PnL")

    assert assembled.join_path == [FACT_TABLE, "dim_trader"]
    assert assembled.sql == (
        "SELECT dtr.trader_name, fo.order_quantity, fo.order_price, fo.order_status, fo.pnl\n"
        "FROM fact_trading_orders fo\n"
        "JOIN dim_trader dtr ON fo.trader_id = dtr.trader_id\n"
        "ORDER BY fo.pnl DESC\n"
        "LIMIT 5"
    )
    assert assembled.explanation.startswith("This query retrieves data from")


def test_grouped_aggregate_with_time_range(assembler) -> None:
    assembled = assembler.generate_sql("total volume by trader today")

    assert assembled.sql == (
        "SELECT dtr.trader_name, dtr.desk, SUM(fo.order_quantity) AS total_volume\n"
        "FROM fact_trading_orders fo\n"
        "JOIN dim_trader dtr ON fo.trader_id = dtr.trader_id\n"
        "JOIN dim_time dti ON fo.time_id = dti.time_id\n"
        "WHERE dti.date = DATE('now')\n"
        "GROUP BY dtr.trader_name, dtr.desk\n"
        "ORDER BY total_volume DESC\n"
        f"LIMIT {DEFAULT_LIMIT}"
    )
    assert "Grouped by dtr.trader_name, dtr.desk." in assembled.explanation


def test_count_of_failed_orders(assembler) -> None:
    assembled = assembler.generate_sql("how many failed orders")

    assert assembled.sql.startswith("SELECT COUNT(*) AS count\nFROM fact_trading_orders fo\n")
    assert "WHERE fo.order_status IN ('CANCELLED', 'REJECTED')" in assembled.sql
    assert "ORDER BY count DESC" in assembled.sql


def test_side_condition_joins_order_type(assembler) -> None:
    assembled = assembler.generate_sql("buy orders with pnl > 100")

    assert "dim_order_type" in assembled.join_path
    assert "JOIN dim_order_type dot ON fo.order_type_id = dot.order_type_id" in assembled.sql
    assert "WHERE fo.pnl > 100 AND dot.order_side = 'BUY'" in assembled.sql


def test_join_resolver_is_injected() -> None:
    seen = []

    def resolver(tables):
        seen.append(list(tables))
        return [FACT_TABLE] + [table for table in tables if table != FACT_TABLE]

    assembled = SQLAssembler(join_resolver=resolver).generate_sql("orders by counterparty")

    assert seen == [[FACT_TABLE, "dim_counterparty"]]
    assert assembled.join_path == [FACT_TABLE, "dim_counterparty"]


@pytest.mark.parametrize(
    "query",
    [
        "Show top 5 traders by PnL",
        "total volume by trader today",
        "how many failed orders",
        "average price by security this month",
        "buy orders with pnl > 100",
        "highest pnl by counterparty",
        "lowest price for limit orders yesterday",
    ],
)
def test_assembled_sql_runs_on_sqlite(assembler, seeded_session, query) -> None:
    assembled = assembler.generate_sql(query)
    service = TextToSQLService(provider=None)

    service.validate_sql(assembled.sql)
    rows = service.execute_sql(assembled.sql, seeded_session)

    assert isinstance(rows, list)


def test_follow_up_questions_are_capped() -> None:
    questions = generate_follow_up_questions("top traders", [{"pnl": 12.5}])

    assert questions == [
        "What is the PnL breakdown for each trader?",
        "Show me the top performing traders by volume",
        "What are the factors contributing to negative PnL?",
    ]


def test_follow_up_questions_without_rows() -> None:
    questions = generate_follow_up_questions("orders over time")

    assert questions == []
