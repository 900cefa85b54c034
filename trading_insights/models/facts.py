"""Fact table of the trading star schema."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .dimensions import DimCounterparty, DimOrderType, DimSecurity, DimTime, DimTrader


class FactTradingOrder(Base):
    """One order with its execution measures, keyed to every dimension."""

    __tablename__ = "fact_trading_orders"

    order_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    time_id: Mapped[int] = mapped_column(ForeignKey("dim_time.time_id"), nullable=False, index=True)
    security_id: Mapped[int] = mapped_column(
        ForeignKey("dim_security.security_id"), nullable=False, index=True
    )
    trader_id: Mapped[int] = mapped_column(ForeignKey("dim_trader.trader_id"), nullable=False, index=True)
    counterparty_id: Mapped[int] = mapped_column(
        ForeignKey("dim_counterparty.counterparty_id"), nullable=False
    )
    order_type_id: Mapped[int] = mapped_column(
        ForeignKey("dim_order_type.order_type_id"), nullable=False
    )

    order_quantity: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    order_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    filled_quantity: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False, default=0)
    average_fill_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    commission: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False, default=0)

    order_status: Mapped[str] = mapped_column(String(16), nullable=False)
    order_timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    fill_timestamp: Mapped[datetime | None] = mapped_column(DateTime)

    notional_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    market_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    pnl: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))

    order_source: Mapped[str | None] = mapped_column(String(16))
    execution_venue: Mapped[str | None] = mapped_column(String(16))
    settlement_date: Mapped[date | None] = mapped_column(Date)

    time: Mapped[DimTime] = relationship()
    security: Mapped[DimSecurity] = relationship()
    trader: Mapped[DimTrader] = relationship()
    counterparty: Mapped[DimCounterparty] = relationship()
    order_type: Mapped[DimOrderType] = relationship()
