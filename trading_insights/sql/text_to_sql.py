"""
LLM-backed text-to-SQL over the live trading database.
Builds a schema-aware prompt, validates the returned SQL, executes it and asks
the model for short insights about the rows.
"""
from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import LLMSettings, get_settings
from ..core.errors import SQLValidationError, TextToSQLError
from ..core.logger import get_logger, log_context
from .llm_providers import LLMProvider, LLMProviderFactory

LOGGER = get_logger(__name__)

BLOCKED_SQL_KEYWORDS = (
    "DROP",
    "DELETE",
    "UPDATE",
    "INSERT",
    "ALTER",
    "CREATE",
    "TRUNCATE",
    "EXEC",
    "EXECUTE",
    "ATTACH",
    "DETACH",
    "PRAGMA",
    "REPLACE",
    "VACUUM",
)

HISTORY_CONTEXT_SIZE = 3
MAX_HISTORY = 50
INSIGHT_SAMPLE_ROWS = 10
NO_DATA_INSIGHT = "No data found for the specified query."
MISSING_KEY_MESSAGE = (
    "LLM API key not configured. Please set OPENROUTER_API_KEY or OPENAI_API_KEY."
)

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*|```")


class Ambiguity(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    term: str
    possible_meanings: List[str] = Field(default_factory=list, alias="possibleMeanings")
    selected_meaning: Optional[str] = Field(default=None, alias="selectedMeaning")


class SQLQueryResponse(BaseModel):
    """Shape the model must answer with."""

    model_config = ConfigDict(populate_by_name=True)

    sql: str
    explanation: str = ""
    ambiguities: List[Ambiguity] = Field(default_factory=list)
    follow_up_questions: List[str] = Field(default_factory=list, alias="followUpQuestions")


def strip_markdown_fences(content: str) -> str:
    return _FENCE_PATTERN.sub("", content).strip()


def _load_json(content: str) -> Dict[str, Any]:
    cleaned = strip_markdown_fences(content)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", cleaned, re.DOTALL)
        if not match:
            raise TextToSQLError("LLM did not return valid JSON") from None
        try:
            data = json.loads(match.group())
        except json.JSONDecodeError as exc:
            raise TextToSQLError("LLM did not return valid JSON") from exc
    if not isinstance(data, dict):
        raise TextToSQLError("LLM response must be a JSON object")
    return data


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


class TextToSQLService:
    """Answer natural-language questions with SQL generated by an LLM."""

    def __init__(
        self,
        settings: Optional[LLMSettings] = None,
        provider: Optional[LLMProvider] = None,
    ) -> None:
        self.settings = settings or get_settings().llm
        self._provider = provider
        self._schema_cache: Optional[Dict[str, Any]] = None
        self.history: List[Dict[str, Any]] = []

    @property
    def configured(self) -> bool:
        return self._provider is not None or self.settings.configured

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = LLMProviderFactory.create(self.settings)
        return self._provider

    # -- schema ----------------------------------------------------------

    def get_schema_info(self, session: Session) -> Dict[str, Any]:
        """Return ``{table: {"columns": [...]}}`` for the live database, cached."""

        if self._schema_cache is not None:
            return self._schema_cache

        inspector = inspect(session.get_bind())
        schema: Dict[str, Any] = {}
        for table in sorted(inspector.get_table_names()):
            primary_keys = set(inspector.get_pk_constraint(table).get("constrained_columns") or [])
            foreign_keys = [
                {
                    "columns": fk.get("constrained_columns", []),
                    "references": f"{fk.get('referred_table')}({', '.join(fk.get('referred_columns', []))})",
                }
                for fk in inspector.get_foreign_keys(table)
            ]
            schema[table] = {
                "columns": [
                    {
                        "name": column["name"],
                        "type": str(column["type"]),
                        "pk": column["name"] in primary_keys,
                        "notnull": not column.get("nullable", True),
                    }
                    for column in inspector.get_columns(table)
                ],
                "foreign_keys": foreign_keys,
            }
        self._schema_cache = schema
        return schema

    def clear_schema_cache(self) -> None:
        self._schema_cache = None

    # -- validation & execution ------------------------------------------

    def validate_sql(self, sql: str) -> None:
        """Reject anything that is not a single read-only SELECT statement."""

        statement = (sql or "").strip().rstrip(";").strip()
        upper = statement.upper()
        if not (upper.startswith("SELECT") or upper.startswith("WITH")):
            raise SQLValidationError("Only SELECT queries are allowed")
        if ";" in statement:
            raise SQLValidationError("Multiple SQL statements are not allowed")
        for keyword in BLOCKED_SQL_KEYWORDS:
            if re.search(rf"\b{keyword}\b", upper):
                raise SQLValidationError(f"Dangerous SQL keyword detected: {keyword}")

    def execute_sql(
        self, sql: str, session: Session, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Run ``sql`` and return rows as dictionaries with Decimals as floats."""

        try:
            result = session.execute(text(sql), params or {})
            rows = result.mappings().all()
        except SQLAlchemyError as exc:
            LOGGER.error("SQL execution failed: %s", exc)
            raise TextToSQLError(f"Database query failed: {exc}") from exc
        return [{key: _jsonable(value) for key, value in row.items()} for row in rows]

    # -- prompts -----------------------------------------------------------

    def build_system_prompt(
        self,
        schema: Dict[str, Any],
        query: str,
        context: Optional[Dict[str, Any]] = None,
        follow_up: bool = False,
    ) -> str:
        recent = self.history[-HISTORY_CONTEXT_SIZE:] if follow_up else []
        recent_block = ""
        if recent:
            recent_block = "Recent queries:\n" + "\n".join(
                f"- {entry['query']}: {entry['sql']}" for entry in recent
            )

        return f"""You are a SQL expert for a financial trading database with a star schema (SQLite).

Database Schema:
{json.dumps(schema, indent=2)}

{recent_block}

User Query: {query}
Additional Context: {json.dumps(context or {})}

Generate a SQL query to answer the user's question. Consider:
1. Identify any ambiguous terms and clarify them
2. Use appropriate JOINs between fact_trading_orders and the dimension tables
3. Apply relevant filters and aggregations
4. Consider time ranges if mentioned (dim_time.date is an ISO date string)
5. Handle derivatives (options, OTC) differently from equities
6. Generate ONLY a single SELECT statement

Return a JSON object with:
- sql: The SQL query
- explanation: Brief explanation of what the query does
- ambiguities: Array of {{term, possibleMeanings, selectedMeaning}}
- followUpQuestions: Suggested follow-up questions

Common abbreviations:
- PnL: Profit and Loss
- VWAP: Volume Weighted Average Price
- OTC: Over The Counter
- Notional: Notional value (quantity x price)

Response must be valid JSON only."""

    # -- pipeline ----------------------------------------------------------

    async def process_query(
        self,
        query: str,
        session: Session,
        context: Optional[Dict[str, Any]] = None,
        follow_up: bool = False,
    ) -> Dict[str, Any]:
        """Generate, validate and run SQL for ``query``.

        Without an API key this returns a payload carrying ``error`` instead of
        raising. LLM and database failures raise :class:`TextToSQLError`.
        """

        if not self.configured:
            LOGGER.warning("Text-to-SQL requested but no LLM API key is configured")
            return {
                "error": MISSING_KEY_MESSAGE,
                "sql": "",
                "results": [],
                "insights": ["Text-to-SQL features require an LLM API key."],
            }

        with log_context.scope(query_id=len(self.history) + 1):
            schema = self.get_schema_info(session)
            system_prompt = self.build_system_prompt(schema, query, context, follow_up)
            response = await self.provider.query(system_prompt, query, json_mode=True)

            try:
                parsed = SQLQueryResponse.model_validate(_load_json(response["content"]))
            except ValidationError as exc:
                raise TextToSQLError(f"LLM response did not match the expected shape: {exc}") from exc

            if not parsed.sql.strip():
                return await self.handle_ambiguity(query, parsed.explanation or "No SQL generated")

            self.validate_sql(parsed.sql)
            results = self.execute_sql(parsed.sql, session)
            LOGGER.info("Text-to-SQL returned %s rows", len(results))
            insights = await self.generate_insights(query, results, parsed.sql)

            self.history.append(
                {
                    "query": query,
                    "sql": parsed.sql,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            )
            del self.history[:-MAX_HISTORY]

        return {
            "sql": parsed.sql,
            "results": results,
            "insights": insights,
            "explanation": parsed.explanation,
            "ambiguities": [item.model_dump() for item in parsed.ambiguities],
            "follow_up_questions": parsed.follow_up_questions,
        }

    async def handle_ambiguity(self, query: str, reason: str) -> Dict[str, Any]:
        """Ask the model for clarifying questions when it could not produce SQL."""

        prompt = f"""The following query is ambiguous: "{query}"
Reason: {reason}

Suggest clarifications for the user. Return JSON with:
- suggestions: Array of clarification questions
- examples: Array of example queries that are more specific"""
        response = await self.provider.query(
            prompt, query, json_mode=True, model=self.settings.insights_model
        )
        data = _load_json(response["content"])
        return {
            "sql": "",
            "results": [],
            "insights": [],
            "clarification_needed": True,
            "suggestions": [str(item) for item in data.get("suggestions") or []],
            "examples": [str(item) for item in data.get("examples") or []],
        }

    async def generate_insights(
        self, query: str, results: List[Dict[str, Any]], sql: str
    ) -> List[str]:
        if not results:
            return [NO_DATA_INSIGHT]

        prompt = f"""Analyze these query results and provide business insights:

User Query: {query}
SQL Used: {sql}
Results (first {INSIGHT_SAMPLE_ROWS} rows): {json.dumps(results[:INSIGHT_SAMPLE_ROWS], indent=2, default=str)}

Generate 3-5 actionable insights based on the data. Consider:
1. Trends or patterns in the data
2. Outliers or unusual values
3. Performance metrics (PnL, volume, success rates)
4. Risk indicators
5. Recommendations for traders or risk managers

Return JSON with a single key "insights" containing an array of insight strings."""
        response = await self.provider.query(
            prompt, query, json_mode=True, model=self.settings.insights_model
        )
        try:
            data = _load_json(response["content"])
        except TextToSQLError:
            LOGGER.warning("Could not parse insights response, returning none")
            return []
        return [str(item) for item in data.get("insights") or []]
