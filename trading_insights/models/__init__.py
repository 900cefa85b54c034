"""Database models for the trading star schema."""
from __future__ import annotations

from .base import Base
from .dimensions import DimCounterparty, DimOrderType, DimSecurity, DimTime, DimTrader
from .facts import FactTradingOrder

__all__ = [
    "Base",
    "DimCounterparty",
    "DimOrderType",
    "DimSecurity",
    "DimTime",
    "DimTrader",
    "FactTradingOrder",
]
