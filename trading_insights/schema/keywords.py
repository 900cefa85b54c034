"""Hand-authored keyword to table weights used by the relevance scorer.

The table is built once at import and exposed read-only. Plural and inflected
forms are listed as their own entries; no stemming is applied to queries.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

KeywordWeights = Mapping[str, Mapping[str, float]]

_FACT = "fact_trading_orders"
_SECURITY = "dim_security"
_TRADER = "dim_trader"
_TIME = "dim_time"
_COUNTERPARTY = "dim_counterparty"
_ORDER_TYPE = "dim_order_type"

_BASE_WEIGHTS: dict[str, dict[str, float]] = {
    # orders and execution
    "order": {_FACT: 1.0, _ORDER_TYPE: 0.7},
    "trade": {_FACT: 1.0, _TRADER: 0.5},
    "trading": {_FACT: 1.0, _TRADER: 0.6},
    "transaction": {_FACT: 1.0},
    "execution": {_FACT: 0.9, _ORDER_TYPE: 0.4},
    "fill": {_FACT: 0.9},
    "pnl": {_FACT: 1.0},
    "profit": {_FACT: 1.0},
    "loss": {_FACT: 1.0},
    "commission": {_FACT: 0.9},
    "notional": {_FACT: 0.8},
    "volume": {_FACT: 0.9},
    # securities
    "security": {_SECURITY: 1.0, _FACT: 0.4},
    "stock": {_SECURITY: 1.0, _FACT: 0.5},
    "equity": {_SECURITY: 1.0, _FACT: 0.5},
    "bond": {_SECURITY: 1.0, _FACT: 0.5},
    "option": {_SECURITY: 1.0, _FACT: 0.5},
    "future": {_SECURITY: 1.0, _FACT: 0.5},
    "derivative": {_SECURITY: 1.0, _FACT: 0.5},
    "symbol": {_SECURITY: 1.0},
    "ticker": {_SECURITY: 1.0},
    "instrument": {_SECURITY: 0.9},
    "isin": {_SECURITY: 0.9},
    "exchange": {_SECURITY: 0.8},
    "sector": {_SECURITY: 0.8},
    # traders
    "trader": {_TRADER: 1.0, _FACT: 0.5},
    "desk": {_TRADER: 1.0, _FACT: 0.4},
    "department": {_TRADER: 0.9},
    "employee": {_TRADER: 0.8},
    "team": {_TRADER: 0.8},
    "region": {_TRADER: 0.7},
    # time
    "date": {_TIME: 1.0, _FACT: 0.3},
    "time": {_TIME: 1.0, _FACT: 0.3},
    "today": {_TIME: 1.0, _FACT: 0.4},
    "yesterday": {_TIME: 1.0, _FACT: 0.4},
    "week": {_TIME: 1.0, _FACT: 0.4},
    "month": {_TIME: 1.0, _FACT: 0.4},
    "quarter": {_TIME: 1.0, _FACT: 0.4},
    "year": {_TIME: 1.0, _FACT: 0.4},
    "hourly": {_TIME: 0.9, _FACT: 0.3},
    "daily": {_TIME: 0.9, _FACT: 0.3},
    # counterparties
    "counterparty": {_COUNTERPARTY: 1.0, _FACT: 0.5},
    "client": {_COUNTERPARTY: 1.0, _FACT: 0.5},
    "customer": {_COUNTERPARTY: 1.0, _FACT: 0.5},
    "institution": {_COUNTERPARTY: 0.9},
    "bank": {_COUNTERPARTY: 0.8},
    "broker": {_COUNTERPARTY: 0.8},
    "rating": {_COUNTERPARTY: 0.7},
    # order types
    "limit": {_ORDER_TYPE: 1.0, _FACT: 0.5},
    "market": {_ORDER_TYPE: 1.0, _FACT: 0.5},
    "stop": {_ORDER_TYPE: 1.0, _FACT: 0.5},
    "buy": {_ORDER_TYPE: 0.9, _FACT: 0.6},
    "sell": {_ORDER_TYPE: 0.9, _FACT: 0.6},
    "algorithmic": {_ORDER_TYPE: 0.9, _FACT: 0.4},
    "algo": {_ORDER_TYPE: 0.9, _FACT: 0.4},
}

# Plural and inflected spellings that share the weights of a base entry.
_INFLECTIONS: dict[str, str] = {
    "orders": "order",
    "trades": "trade",
    "traded": "trade",
    "transactions": "transaction",
    "executions": "execution",
    "fills": "fill",
    "filled": "fill",
    "profits": "profit",
    "losses": "loss",
    "commissions": "commission",
    "volumes": "volume",
    "securities": "security",
    "stocks": "stock",
    "equities": "equity",
    "bonds": "bond",
    "options": "option",
    "futures": "future",
    "derivatives": "derivative",
    "symbols": "symbol",
    "tickers": "ticker",
    "instruments": "instrument",
    "exchanges": "exchange",
    "sectors": "sector",
    "traders": "trader",
    "desks": "desk",
    "departments": "department",
    "employees": "employee",
    "teams": "team",
    "regions": "region",
    "dates": "date",
    "weeks": "week",
    "months": "month",
    "quarters": "quarter",
    "years": "year",
    "counterparties": "counterparty",
    "clients": "client",
    "customers": "customer",
    "institutions": "institution",
    "banks": "bank",
    "brokers": "broker",
    "ratings": "rating",
    "buys": "buy",
    "sells": "sell",
}


def build_keyword_weights(
    base: Mapping[str, Mapping[str, float]],
    inflections: Mapping[str, str] | None = None,
) -> KeywordWeights:
    """Freeze ``base`` (plus ``inflections``) into a read-only nested mapping."""

    table: dict[str, Mapping[str, float]] = {}
    for keyword, weights in base.items():
        for table_name, weight in weights.items():
            if not 0.0 <= weight <= 1.0:
                raise ValueError(f"Weight for {keyword!r}/{table_name!r} outside [0, 1]")
        table[keyword.lower()] = MappingProxyType(dict(weights))
    for inflected, keyword in (inflections or {}).items():
        table[inflected.lower()] = table[keyword.lower()]
    return MappingProxyType(table)


KEYWORD_TABLE_WEIGHTS: KeywordWeights = build_keyword_weights(_BASE_WEIGHTS, _INFLECTIONS)
