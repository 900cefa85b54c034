"""Trading insights: table relevance and SQL generation over a trading star schema."""

__version__ = "0.1.0"
