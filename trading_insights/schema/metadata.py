"""Static metadata describing the trading star schema."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Literal, Mapping, Optional

from ..core.errors import UnknownTableError

FACT_TABLE = "fact_trading_orders"
TIME_TABLE = "dim_time"

TableKind = Literal["fact", "dimension"]


@dataclass(frozen=True, slots=True)
class ColumnMetadata:
    name: str
    data_type: str
    is_primary_key: bool = False
    is_foreign_key: bool = False

    @property
    def is_key(self) -> bool:
        return self.is_primary_key or self.is_foreign_key


@dataclass(frozen=True, slots=True)
class TableMetadata:
    name: str
    kind: TableKind
    columns: tuple[ColumnMetadata, ...]

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def key_columns(self) -> tuple[ColumnMetadata, ...]:
        return tuple(column for column in self.columns if column.is_key)

    def column(self, name: str) -> Optional[ColumnMetadata]:
        for column in self.columns:
            if column.name == name:
                return column
        return None


@dataclass(frozen=True, slots=True)
class JoinEdge:
    """A fact-to-dimension foreign key."""

    source: str
    target: str
    foreign_key: str
    primary_key: str
    cardinality: str = "MANY_TO_ONE"


@dataclass(frozen=True)
class StarSchema:
    """Immutable star schema: one fact table referencing several dimensions.

    Construction validates that every dimension is referenced by exactly one
    foreign-key column of the fact table.
    """

    tables: tuple[TableMetadata, ...]
    edges: tuple[JoinEdge, ...]
    fact_table: str = FACT_TABLE
    time_table: str = TIME_TABLE
    _by_name: Mapping[str, TableMetadata] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_name = {table.name: table for table in self.tables}
        if len(by_name) != len(self.tables):
            raise ValueError("Duplicate table names in schema")
        if self.fact_table not in by_name or by_name[self.fact_table].kind != "fact":
            raise ValueError(f"Fact table {self.fact_table!r} missing from schema")

        fact = by_name[self.fact_table]
        for table in self.tables:
            if table.kind != "dimension":
                continue
            incoming = [edge for edge in self.edges if edge.target == table.name]
            if len(incoming) != 1 or incoming[0].source != self.fact_table:
                raise ValueError(
                    f"Dimension {table.name!r} must be referenced by exactly one fact foreign key"
                )
            fk_column = fact.column(incoming[0].foreign_key)
            if fk_column is None or not fk_column.is_foreign_key:
                raise ValueError(
                    f"Fact column {incoming[0].foreign_key!r} is not a foreign key"
                )
        object.__setattr__(self, "_by_name", MappingProxyType(by_name))

    @property
    def table_names(self) -> tuple[str, ...]:
        return tuple(table.name for table in self.tables)

    @property
    def dimension_tables(self) -> tuple[str, ...]:
        return tuple(table.name for table in self.tables if table.kind == "dimension")

    def has_table(self, name: str) -> bool:
        return name in self._by_name

    def table(self, name: str) -> TableMetadata:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownTableError(name) from None

    def edges_for(self, name: str) -> tuple[JoinEdge, ...]:
        self.table(name)
        return tuple(edge for edge in self.edges if name in (edge.source, edge.target))

    def neighbors(self, name: str) -> tuple[tuple[str, JoinEdge], ...]:
        """One-hop neighbours of ``name`` in either direction, with the joining edge."""

        result = []
        for edge in self.edges_for(name):
            other = edge.target if edge.source == name else edge.source
            result.append((other, edge))
        return tuple(result)

    def edge_between(self, a: str, b: str) -> Optional[JoinEdge]:
        for edge in self.edges:
            if {edge.source, edge.target} == {a, b}:
                return edge
        return None


def _columns(*specs: Iterable) -> tuple[ColumnMetadata, ...]:
    return tuple(ColumnMetadata(*entry) for entry in specs)


_FACT = TableMetadata(
    FACT_TABLE,
    "fact",
    _columns(
        ("order_id", "VARCHAR", True),
        ("time_id", "INTEGER", False, True),
        ("security_id", "INTEGER", False, True),
        ("trader_id", "INTEGER", False, True),
        ("counterparty_id", "INTEGER", False, True),
        ("order_type_id", "INTEGER", False, True),
        ("order_quantity", "DECIMAL"),
        ("order_price", "DECIMAL"),
        ("filled_quantity", "DECIMAL"),
        ("average_fill_price", "DECIMAL"),
        ("commission", "DECIMAL"),
        ("order_status", "VARCHAR"),
        ("pnl", "DECIMAL"),
        ("notional_value", "DECIMAL"),
        ("market_value", "DECIMAL"),
    ),
)

_SECURITY = TableMetadata(
    "dim_security",
    "dimension",
    _columns(
        ("security_id", "INTEGER", True),
        ("symbol", "VARCHAR"),
        ("security_name", "VARCHAR"),
        ("security_type", "VARCHAR"),
        ("exchange", "VARCHAR"),
        ("sector", "VARCHAR"),
        ("industry", "VARCHAR"),
        ("currency", "VARCHAR"),
        ("is_active", "BOOLEAN"),
    ),
)

_TRADER = TableMetadata(
    "dim_trader",
    "dimension",
    _columns(
        ("trader_id", "INTEGER", True),
        ("trader_code", "VARCHAR"),
        ("trader_name", "VARCHAR"),
        ("desk", "VARCHAR"),
        ("department", "VARCHAR"),
        ("experience_level", "VARCHAR"),
        ("region", "VARCHAR"),
        ("is_active", "BOOLEAN"),
    ),
)

_TIME = TableMetadata(
    TIME_TABLE,
    "dimension",
    _columns(
        ("time_id", "INTEGER", True),
        ("full_datetime", "TIMESTAMP"),
        ("date", "DATE"),
        ("year", "INTEGER"),
        ("quarter", "INTEGER"),
        ("month", "INTEGER"),
        ("week", "INTEGER"),
        ("day_of_month", "INTEGER"),
        ("hour", "INTEGER"),
        ("minute", "INTEGER"),
        ("is_trading_day", "BOOLEAN"),
        ("is_market_hours", "BOOLEAN"),
    ),
)

_COUNTERPARTY = TableMetadata(
    "dim_counterparty",
    "dimension",
    _columns(
        ("counterparty_id", "INTEGER", True),
        ("counterparty_code", "VARCHAR"),
        ("counterparty_name", "VARCHAR"),
        ("counterparty_type", "VARCHAR"),
        ("country", "VARCHAR"),
        ("credit_rating", "VARCHAR"),
        ("is_active", "BOOLEAN"),
    ),
)

_ORDER_TYPE = TableMetadata(
    "dim_order_type",
    "dimension",
    _columns(
        ("order_type_id", "INTEGER", True),
        ("order_type", "VARCHAR"),
        ("order_side", "VARCHAR"),
        ("time_in_force", "VARCHAR"),
        ("is_algorithmic", "BOOLEAN"),
        ("algorithm_name", "VARCHAR"),
    ),
)


def _edge(dimension: str, key: str) -> JoinEdge:
    return JoinEdge(FACT_TABLE, dimension, key, key)


TRADING_SCHEMA = StarSchema(
    tables=(_FACT, _SECURITY, _TRADER, _TIME, _COUNTERPARTY, _ORDER_TYPE),
    edges=(
        _edge("dim_security", "security_id"),
        _edge("dim_trader", "trader_id"),
        _edge("dim_time", "time_id"),
        _edge("dim_counterparty", "counterparty_id"),
        _edge("dim_order_type", "order_type_id"),
    ),
)

TABLE_TAGS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        FACT_TABLE: ("transactional", "core", "metrics", "performance"),
        "dim_security": ("reference", "instrument", "market"),
        "dim_trader": ("personnel", "organizational", "hierarchy"),
        TIME_TABLE: ("temporal", "calendar", "period"),
        "dim_counterparty": ("external", "relationship", "credit"),
        "dim_order_type": ("classification", "execution", "strategy"),
    }
)

SUGGESTION_TEMPLATES: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        FACT_TABLE: (
            "{query} with total volume > 1000",
            "{query} grouped by security type",
            "{query} where PnL > 0",
        ),
        "dim_security": (
            "{query} for equity securities",
            "{query} in technology sector",
        ),
        "dim_trader": (
            "{query} from equity desk",
            "{query} with experience level = 'Senior'",
        ),
    }
)
