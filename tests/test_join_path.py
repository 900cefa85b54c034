from trading_insights.relevance import resolve_join_path
from trading_insights.schema import FACT_TABLE


def test_empty_input_gives_empty_path() -> None:
    assert resolve_join_path([]) == []


def test_fact_table_alone() -> None:
    assert resolve_join_path([FACT_TABLE]) == [FACT_TABLE]


def test_fact_table_is_prepended_to_dimensions() -> None:
    assert resolve_join_path(["dim_security", "dim_trader"]) == [
        FACT_TABLE,
        "dim_security",
        "dim_trader",
    ]


def test_fact_table_moves_to_the_front() -> None:
    assert resolve_join_path(["dim_time", FACT_TABLE, "dim_security"]) == [
        FACT_TABLE,
        "dim_time",
        "dim_security",
    ]


def test_duplicates_keep_first_occurrence() -> None:
    path = resolve_join_path(["dim_trader", "dim_time", "dim_trader", FACT_TABLE, "dim_time"])

    assert path == [FACT_TABLE, "dim_trader", "dim_time"]
    assert len(path) == len(set(path))


def test_accepts_any_iterable() -> None:
    assert resolve_join_path(iter(("dim_counterparty",))) == [FACT_TABLE, "dim_counterparty"]


def test_names_outside_the_schema_pass_through() -> None:
    assert resolve_join_path(["dim_weather"]) == [FACT_TABLE, "dim_weather"]
