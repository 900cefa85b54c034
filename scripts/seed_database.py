#!/usr/bin/env python3
"""Create the trading star schema and seed it with mock data."""
import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from trading_insights.core import get_settings
from trading_insights.core.logger import configure_logging, get_logger
from trading_insights.db.session import session_scope
from trading_insights.services import MockDataGenerator, TradingService

logger = get_logger(__name__)


def parse_args(argv=None):
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--url", default=settings.database.url, help="SQLAlchemy database URL")
    parser.add_argument(
        "--orders",
        type=int,
        default=settings.database.seed_order_count,
        help="Number of historical orders to generate",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings.logging)

    service = TradingService(MockDataGenerator(seed=args.seed))
    with session_scope(args.url) as session:
        summary = service.initialize(session, order_count=args.orders)

    if summary.seeded:
        logger.info(
            "Seeded %s securities, %s traders, %s time slots and %s orders",
            summary.securities,
            summary.traders,
            summary.time_slots,
            summary.orders,
        )
    else:
        logger.info("Database already populated with %s orders, nothing to do", summary.orders)
    return 0


if __name__ == "__main__":
    sys.exit(main())
