"""Domain services for the trading insights backend."""

from .mock_data import MockDataGenerator
from .trading_service import TradingService

__all__ = ["MockDataGenerator", "TradingService"]
