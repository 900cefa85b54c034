import asyncio
import json
from decimal import Decimal

import pytest

from trading_insights.core.config import LLMSettings
from trading_insights.core.errors import SQLValidationError, TextToSQLError
from trading_insights.sql import LLMProvider, TextToSQLService
from trading_insights.sql.text_to_sql import NO_DATA_INSIGHT, strip_markdown_fences


class ScriptedProvider(LLMProvider):
    """Returns queued responses and records every prompt it received."""

    def __init__(self, *responses: str) -> None:
        self.responses = list(responses)
        self.calls = []

    async def query(self, system_prompt, user_prompt, conversation_history=None, json_mode=True, model=None):
        self.calls.append({"system": system_prompt, "user": user_prompt, "model": model})
        return {"content": self.responses.pop(0), "model": model or "scripted", "provider": "scripted", "usage": {}}


def _run(coro):
    return asyncio.run(coro)


def test_missing_api_key_returns_error_payload(db_session) -> None:
    service = TextToSQLService(LLMSettings(api_key=""))

    result = _run(service.process_query("top traders", db_session))

    assert "not configured" in result["error"]
    assert result["sql"] == ""
    assert result["results"] == []


def test_process_query_runs_sql_and_collects_insights(seeded_session) -> None:
    answer = {
        "sql": "SELECT trader_name FROM dim_trader ORDER BY trader_id LIMIT 3",
        "explanation": "Lists traders",
        "ambiguities": [{"term": "top", "possibleMeanings": ["by pnl", "by volume"], "selectedMeaning": "by pnl"}],
        "followUpQuestions": ["Which desk trades most?"],
    }
    provider = ScriptedProvider(
        "```json\n" + json.dumps(answer) + "\n```",
        json.dumps({"insights": ["Three traders listed"]}),
    )
    service = TextToSQLService(LLMSettings(api_key="k", insights_model="insights"), provider=provider)

    result = _run(service.process_query("top traders", seeded_session))

    assert result["results"] == [
        {"trader_name": "John Smith"},
        {"trader_name": "Sarah Johnson"},
        {"trader_name": "Mike Chen"},
    ]
    assert result["insights"] == ["Three traders listed"]
    assert result["follow_up_questions"] == ["Which desk trades most?"]
    assert result["ambiguities"][0]["selected_meaning"] == "by pnl"
    assert provider.calls[1]["model"] == "insights"
    assert "fact_trading_orders" in provider.calls[0]["system"]
    assert service.history[-1]["sql"] == answer["sql"]


def test_follow_up_includes_recent_history(seeded_session) -> None:
    provider = ScriptedProvider(
        json.dumps({"sql": "SELECT COUNT(*) AS n FROM dim_trader"}),
        json.dumps({"insights": []}),
        json.dumps({"sql": "SELECT COUNT(*) AS n FROM dim_security"}),
        json.dumps({"insights": []}),
    )
    service = TextToSQLService(LLMSettings(api_key="k"), provider=provider)

    _run(service.process_query("how many traders", seeded_session))
    _run(service.process_query("and securities?", seeded_session, follow_up=True))

    assert "how many traders: SELECT COUNT(*) AS n FROM dim_trader" in provider.calls[2]["system"]


def test_empty_result_skips_insight_call(seeded_session) -> None:
    provider = ScriptedProvider(json.dumps({"sql": "SELECT * FROM dim_trader WHERE trader_id = -1"}))
    service = TextToSQLService(LLMSettings(api_key="k"), provider=provider)

    result = _run(service.process_query("ghost trader", seeded_session))

    assert result["insights"] == [NO_DATA_INSIGHT]
    assert len(provider.calls) == 1


def test_blank_sql_asks_for_clarification(db_session) -> None:
    provider = ScriptedProvider(
        json.dumps({"sql": "", "explanation": "Which metric?"}),
        json.dumps({"suggestions": ["By PnL or volume?"], "examples": ["Top 5 traders by PnL"]}),
    )
    service = TextToSQLService(LLMSettings(api_key="k"), provider=provider)

    result = _run(service.process_query("best traders", db_session))

    assert result["clarification_needed"] is True
    assert result["suggestions"] == ["By PnL or volume?"]
    assert result["examples"] == ["Top 5 traders by PnL"]


def test_invalid_json_raises(db_session) -> None:
    service = TextToSQLService(LLMSettings(api_key="k"), provider=ScriptedProvider("not json at all"))

    with pytest.raises(TextToSQLError):
        _run(service.process_query("top traders", db_session))


def test_unsafe_sql_is_rejected_before_execution(db_session) -> None:
    provider = ScriptedProvider(json.dumps({"sql": "DELETE FROM fact_trading_orders"}))
    service = TextToSQLService(LLMSettings(api_key="k"), provider=provider)

    with pytest.raises(SQLValidationError):
        _run(service.process_query("clean up", db_session))


@pytest.mark.parametrize(
    "sql",
    [
        "DROP TABLE dim_trader",
        "SELECT 1; DROP TABLE dim_trader",
        "WITH x AS (SELECT 1) DELETE FROM dim_trader",
        "PRAGMA table_info(dim_trader)",
        "",
    ],
)
def test_validate_sql_rejects(sql) -> None:
    with pytest.raises(SQLValidationError):
        TextToSQLService(LLMSettings()).validate_sql(sql)


def test_validate_sql_accepts_reads_with_keyword_like_columns() -> None:
    service = TextToSQLService(LLMSettings())

    service.validate_sql("SELECT created_at, updated_by FROM fact_trading_orders;")
    service.validate_sql("WITH t AS (SELECT 1 AS n) SELECT n FROM t")


def test_execute_sql_converts_decimals(seeded_session) -> None:
    service = TextToSQLService(LLMSettings())

    rows = service.execute_sql(
        "SELECT order_quantity FROM fact_trading_orders ORDER BY order_id LIMIT 1", seeded_session
    )

    value = rows[0]["order_quantity"]
    assert isinstance(value, (int, float))
    assert not isinstance(value, Decimal)


def test_execute_sql_wraps_database_errors(db_session) -> None:
    with pytest.raises(TextToSQLError, match="Database query failed"):
        TextToSQLService(LLMSettings()).execute_sql("SELECT * FROM missing_table", db_session)


def test_schema_info_is_cached(seeded_session) -> None:
    service = TextToSQLService(LLMSettings())

    schema = service.get_schema_info(seeded_session)

    assert set(schema) == {
        "dim_counterparty",
        "dim_order_type",
        "dim_security",
        "dim_time",
        "dim_trader",
        "fact_trading_orders",
    }
    order_id = next(column for column in schema["fact_trading_orders"]["columns"] if column["name"] == "order_id")
    assert order_id["pk"] is True
    assert service.get_schema_info(seeded_session) is schema
    service.clear_schema_cache()
    assert service.get_schema_info(seeded_session) is not schema


def test_strip_markdown_fences() -> None:
    assert strip_markdown_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_markdown_fences('{"a": 1}') == '{"a": 1}'
