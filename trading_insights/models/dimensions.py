"""Dimension tables of the trading star schema."""
from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class DimSecurity(Base):
    """Tradable instrument: equities, listed options and OTC derivatives."""

    __tablename__ = "dim_security"

    security_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    symbol: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    security_name: Mapped[str] = mapped_column(String(160), nullable=False)
    security_type: Mapped[str] = mapped_column(String(32), nullable=False)
    exchange: Mapped[str | None] = mapped_column(String(16))
    sector: Mapped[str | None] = mapped_column(String(64))
    industry: Mapped[str | None] = mapped_column(String(64))
    market_cap_category: Mapped[str | None] = mapped_column(String(8))
    currency: Mapped[str | None] = mapped_column(String(3))
    underlying_symbol: Mapped[str | None] = mapped_column(String(32))
    strike_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    expiration_date: Mapped[dt.date | None] = mapped_column(Date)
    option_type: Mapped[str | None] = mapped_column(String(4))
    contract_size: Mapped[int | None] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class DimTrader(Base):
    __tablename__ = "dim_trader"

    trader_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    trader_code: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    trader_name: Mapped[str] = mapped_column(String(120), nullable=False)
    desk: Mapped[str | None] = mapped_column(String(64))
    department: Mapped[str | None] = mapped_column(String(64))
    experience_level: Mapped[str | None] = mapped_column(String(16))
    region: Mapped[str | None] = mapped_column(String(16))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class DimTime(Base):
    """Calendar slot at five-minute resolution, keyed by epoch seconds."""

    __tablename__ = "dim_time"

    time_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    full_datetime: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    quarter: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    day_of_month: Mapped[int] = mapped_column(Integer, nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    hour: Mapped[int] = mapped_column(Integer, nullable=False)
    minute: Mapped[int] = mapped_column(Integer, nullable=False)
    is_trading_day: Mapped[bool] = mapped_column(Boolean, nullable=False)
    is_market_hours: Mapped[bool] = mapped_column(Boolean, nullable=False)


class DimCounterparty(Base):
    __tablename__ = "dim_counterparty"

    counterparty_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    counterparty_code: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    counterparty_name: Mapped[str] = mapped_column(String(120), nullable=False)
    counterparty_type: Mapped[str | None] = mapped_column(String(16))
    country: Mapped[str | None] = mapped_column(String(32))
    credit_rating: Mapped[str | None] = mapped_column(String(8))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class DimOrderType(Base):
    """Order type and side combination (MARKET/BUY, LIMIT/SELL, ...)."""

    __tablename__ = "dim_order_type"

    order_type_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_type: Mapped[str] = mapped_column(String(16), nullable=False)
    order_side: Mapped[str] = mapped_column(String(4), nullable=False)
    time_in_force: Mapped[str | None] = mapped_column(String(4))
    is_algorithmic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    algorithm_name: Mapped[str | None] = mapped_column(String(64))
