"""Order flow and daily summary payloads."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_serializer


class OrderFlowRow(BaseModel):
    """One order joined with its security, trader and order type."""

    model_config = ConfigDict(from_attributes=True)

    order_id: str
    order_timestamp: dt.datetime
    symbol: str
    security_type: str
    trader_name: str
    desk: str | None = None
    counterparty_name: str
    order_type: str
    order_side: str
    order_quantity: Decimal
    order_price: Decimal | None = None
    filled_quantity: Decimal
    average_fill_price: Decimal | None = None
    order_status: str
    notional_value: Decimal | None = None
    pnl: Decimal | None = None

    @field_serializer(
        "order_quantity",
        "order_price",
        "filled_quantity",
        "average_fill_price",
        "notional_value",
        "pnl",
    )
    def serialize_decimal(self, value: Decimal | None) -> float | None:
        return None if value is None else float(value)


class DailySummaryRow(BaseModel):
    """Per symbol and trading date totals."""

    symbol: str
    date: dt.date
    total_trades: int
    buy_volume: Decimal
    sell_volume: Decimal
    avg_price: Decimal | None = None
    total_notional: Decimal | None = None
    total_pnl: Decimal | None = None

    @field_serializer("buy_volume", "sell_volume", "avg_price", "total_notional", "total_pnl")
    def serialize_decimal(self, value: Decimal | None) -> float | None:
        return None if value is None else float(value)


class SeedSummary(BaseModel):
    seeded: bool
    securities: int
    traders: int
    counterparties: int
    order_types: int
    time_slots: int
    orders: int
