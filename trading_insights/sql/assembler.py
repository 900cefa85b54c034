"""Template-filling SQL assembler for the six-table star schema.

This is phrase matching, not parsing: it recognises table, aggregation,
filter, grouping and limit phrases and fills a fixed SELECT template. The
output is plausible SQLite for demo questions and nothing more.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from ..core.logger import get_logger
from ..relevance.join_path import resolve_join_path
from ..schema import FACT_TABLE, TIME_TABLE

LOGGER = get_logger(__name__)

JoinResolver = Callable[[list[str]], list[str]]

DEFAULT_LIMIT = 20
MAX_LIMIT = 1000
MAX_FOLLOW_UPS = 3

TABLE_ALIASES: Mapping[str, str] = {
    FACT_TABLE: "fo",
    "dim_security": "ds",
    "dim_trader": "dtr",
    TIME_TABLE: "dti",
    "dim_counterparty": "dc",
    "dim_order_type": "dot",
}

JOIN_KEYS: Mapping[str, str] = {
    "dim_security": "security_id",
    "dim_trader": "trader_id",
    TIME_TABLE: "time_id",
    "dim_counterparty": "counterparty_id",
    "dim_order_type": "order_type_id",
}

TABLE_PHRASES: Mapping[str, tuple[str, ...]] = {
    FACT_TABLE: (
        "order", "orders", "trade", "trades", "trading", "transaction",
        "transactions", "pnl", "profit", "loss", "commission",
    ),
    "dim_security": (
        "security", "securities", "stock", "stocks", "bond", "bonds", "symbol",
        "ticker", "instrument", "equity", "derivative",
    ),
    "dim_trader": ("trader", "traders", "desk", "department", "employee", "person", "user"),
    TIME_TABLE: (
        "time", "date", "day", "month", "year", "quarter", "hour", "minute",
        "when", "today", "yesterday", "week",
    ),
    "dim_counterparty": (
        "counterparty", "counterparties", "client", "clients", "customer",
        "customers", "institution",
    ),
    "dim_order_type": (
        "order type", "limit", "market", "stop", "side", "buy", "sell",
        "algorithm", "algorithmic",
    ),
}

AGGREGATION_PHRASES: Mapping[str, tuple[str, ...]] = {
    "COUNT": ("count", "number", "how many", "total number"),
    "SUM": ("sum", "total", "aggregate", "combined"),
    "AVG": ("average", "avg", "mean"),
    "MAX": ("maximum", "max", "highest", "largest", "biggest"),
    "MIN": ("minimum", "min", "lowest", "smallest", "least"),
}

TIME_RANGES: tuple[tuple[str, str], ...] = (
    ("today", "dti.date = DATE('now')"),
    ("yesterday", "dti.date = DATE('now', '-1 day')"),
    ("this week", "dti.date >= DATE('now', '-7 day')"),
    ("this month", "dti.date >= DATE('now', '-30 day')"),
)


@dataclass(frozen=True)
class _ConditionRule:
    pattern: re.Pattern[str]
    template: str
    table: str = FACT_TABLE

    def render(self, match: re.Match[str]) -> str:
        return self.template.format(*match.groups())


CONDITION_RULES: tuple[_ConditionRule, ...] = (
    _ConditionRule(re.compile(r"pnl\s*>\s*(-?\d+(?:\.\d+)?)"), "fo.pnl > {0}"),
    _ConditionRule(re.compile(r"volume\s*>\s*(\d+(?:\.\d+)?)"), "fo.order_quantity > {0}"),
    _ConditionRule(
        re.compile(r"\b(?:failed|cancelled|rejected)\b"),
        "fo.order_status IN ('CANCELLED', 'REJECTED')",
    ),
    _ConditionRule(
        re.compile(r"\b(?:successful|filled|completed)\b"), "fo.order_status = 'FILLED'"
    ),
    _ConditionRule(re.compile(r"\bbuy\s+orders?\b"), "dot.order_side = 'BUY'", "dim_order_type"),
    _ConditionRule(re.compile(r"\bsell\s+orders?\b"), "dot.order_side = 'SELL'", "dim_order_type"),
)

# phrase -> (table, grouping columns)
GROUPINGS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("by security", "dim_security", ("ds.symbol", "ds.security_type")),
    ("by trader", "dim_trader", ("dtr.trader_name", "dtr.desk")),
    ("by type", "dim_security", ("ds.security_type",)),
    ("by desk", "dim_trader", ("dtr.desk",)),
    ("by counterparty", "dim_counterparty", ("dc.counterparty_name",)),
)

_LIMIT_PATTERN = re.compile(r"\btop\s+(\d+)", re.IGNORECASE)


def _contains_phrase(text: str, phrase: str) -> bool:
    return re.search(rf"\b{re.escape(phrase)}\b", text) is not None


@dataclass
class QueryIntent:
    tables: list[str] = field(default_factory=list)
    aggregations: list[str] = field(default_factory=list)
    conditions: list[str] = field(default_factory=list)
    time_range: Optional[str] = None
    group_by: tuple[str, ...] = ()
    limit: int = DEFAULT_LIMIT

    def to_dict(self) -> dict[str, Any]:
        return {
            "tables": list(self.tables),
            "aggregations": list(self.aggregations),
            "conditions": list(self.conditions),
            "time_range": self.time_range,
            "group_by": list(self.group_by),
            "limit": self.limit,
        }


def _add_table(tables: list[str], table: str) -> None:
    if table not in tables:
        tables.append(table)


def parse_query_intent(query: str) -> QueryIntent:
    """Recognise tables, aggregates, filters, grouping and limit in ``query``."""

    lowered = query.lower()
    intent = QueryIntent()

    for table, phrases in TABLE_PHRASES.items():
        if any(_contains_phrase(lowered, phrase) for phrase in phrases):
            _add_table(intent.tables, table)

    for function, phrases in AGGREGATION_PHRASES.items():
        if any(_contains_phrase(lowered, phrase) for phrase in phrases):
            intent.aggregations.append(function)

    for phrase, clause in TIME_RANGES:
        if phrase in lowered:
            intent.time_range = clause
            _add_table(intent.tables, TIME_TABLE)
            break

    for rule in CONDITION_RULES:
        match = rule.pattern.search(lowered)
        if match:
            intent.conditions.append(rule.render(match))
            _add_table(intent.tables, rule.table)

    for phrase, table, columns in GROUPINGS:
        if phrase in lowered:
            intent.group_by = columns
            _add_table(intent.tables, table)
            break

    limit_match = _LIMIT_PATTERN.search(query)
    if limit_match:
        intent.limit = max(1, min(int(limit_match.group(1)), MAX_LIMIT))

    if not intent.tables:
        intent.tables.append(FACT_TABLE)
    return intent


@dataclass
class AssembledQuery:
    sql: str
    explanation: str
    join_path: list[str]
    intent: QueryIntent

    def to_dict(self) -> dict[str, Any]:
        return {
            "sql": self.sql,
            "explanation": self.explanation,
            "join_path": list(self.join_path),
            "intent": self.intent.to_dict(),
        }


class SQLAssembler:
    """Fill a SELECT template from a question and a resolved join path."""

    def __init__(self, join_resolver: Optional[JoinResolver] = None) -> None:
        self._resolve = join_resolver or resolve_join_path

    def _aggregate_columns(self, intent: QueryIntent, lowered: str) -> list[str]:
        columns: list[str] = []
        if "COUNT" in intent.aggregations:
            columns.append("COUNT(*) AS count")
        if "SUM" in intent.aggregations:
            if "volume" in lowered:
                columns.append("SUM(fo.order_quantity) AS total_volume")
            if "value" in lowered or "notional" in lowered:
                columns.append("SUM(fo.notional_value) AS total_value")
            if "pnl" in lowered:
                columns.append("SUM(fo.pnl) AS total_pnl")
            if not any(column.startswith("SUM(") for column in columns):
                columns.append("SUM(fo.notional_value) AS total_value")
        if "AVG" in intent.aggregations:
            columns.append("AVG(fo.order_price) AS avg_price")
        if "MAX" in intent.aggregations:
            columns.append("MAX(fo.pnl) AS max_pnl" if "pnl" in lowered else "MAX(fo.order_price) AS max_price")
        if "MIN" in intent.aggregations:
            columns.append("MIN(fo.pnl) AS min_pnl" if "pnl" in lowered else "MIN(fo.order_price) AS min_price")
        return columns

    @staticmethod
    def _detail_columns(join_path: Sequence[str]) -> list[str]:
        columns: list[str] = []
        if TIME_TABLE in join_path:
            columns.append("dti.date")
        if "dim_security" in join_path:
            columns.extend(["ds.symbol", "ds.security_name"])
        if "dim_trader" in join_path:
            columns.append("dtr.trader_name")
        if "dim_counterparty" in join_path:
            columns.append("dc.counterparty_name")
        if "dim_order_type" in join_path:
            columns.extend(["dot.order_type", "dot.order_side"])
        columns.extend(["fo.order_quantity", "fo.order_price", "fo.order_status", "fo.pnl"])
        return columns

    @staticmethod
    def _order_by(intent: QueryIntent, lowered: str) -> Optional[str]:
        if not intent.aggregations:
            return "fo.pnl DESC" if "pnl" in lowered else "fo.order_timestamp DESC"
        if "COUNT" in intent.aggregations:
            return "count DESC"
        if "SUM" in intent.aggregations:
            if "volume" in lowered:
                return "total_volume DESC"
            if "pnl" in lowered:
                return "total_pnl DESC"
            return "total_value DESC"
        return None

    def generate_sql(self, query: str) -> AssembledQuery:
        intent = parse_query_intent(query)
        lowered = query.lower()
        join_path = self._resolve(list(intent.tables))

        if intent.aggregations:
            select_columns = list(intent.group_by) + self._aggregate_columns(intent, lowered)
        else:
            select_columns = self._detail_columns(join_path)

        lines = [f"SELECT {', '.join(select_columns)}", f"FROM {FACT_TABLE} fo"]
        for table in join_path[1:]:
            alias = TABLE_ALIASES[table]
            key = JOIN_KEYS[table]
            lines.append(f"JOIN {table} {alias} ON fo.{key} = {alias}.{key}")

        conditions = list(intent.conditions)
        if intent.time_range and TIME_TABLE in join_path:
            conditions.append(intent.time_range)
        if conditions:
            lines.append("WHERE " + " AND ".join(conditions))
        if intent.aggregations and intent.group_by:
            lines.append("GROUP BY " + ", ".join(intent.group_by))
        order_by = self._order_by(intent, lowered)
        if order_by:
            lines.append(f"ORDER BY {order_by}")
        lines.append(f"LIMIT {intent.limit}")

        sql = "\n".join(lines)
        explanation = self._explain(intent, join_path)
        LOGGER.debug("Assembled SQL for %r over %s", query, join_path)
        return AssembledQuery(sql=sql, explanation=explanation, join_path=join_path, intent=intent)

    @staticmethod
    def _explain(intent: QueryIntent, join_path: Sequence[str]) -> str:
        verb = "aggregates" if intent.aggregations else "retrieves"
        parts = [f"This query {verb} data from {' -> '.join(join_path)}."]
        if intent.conditions:
            parts.append("It filters by: " + ", ".join(intent.conditions) + ".")
        if intent.time_range:
            parts.append(f"It restricts dates with {intent.time_range}.")
        if intent.aggregations:
            parts.append("It calculates: " + ", ".join(intent.aggregations) + ".")
        if intent.group_by:
            parts.append("Grouped by " + ", ".join(intent.group_by) + ".")
        return " ".join(parts)


def generate_follow_up_questions(
    query: str, rows: Iterable[Mapping[str, Any]] = ()
) -> list[str]:
    """Suggest up to three follow-up questions for ``query`` and its result rows."""

    lowered = query.lower()
    rows = list(rows)
    questions: list[str] = []

    if "trader" in lowered:
        questions.append("What is the PnL breakdown for each trader?")
        questions.append("Show me the top performing traders by volume")
    if "security" in lowered or "securities" in lowered:
        questions.append("Which securities have the highest trading volume?")
        questions.append("Compare equity vs derivative trading patterns")
    if rows and "pnl" in rows[0]:
        questions.append("What are the factors contributing to negative PnL?")
        questions.append("Show me the PnL trend over the last week")
    if "time" not in lowered:
        questions.append("How does this data look over the past month?")
        questions.append("Show me the hourly distribution of this activity")

    return questions[:MAX_FOLLOW_UPS]
