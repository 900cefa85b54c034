"""Deterministic-when-seeded generator for the demo trading dataset."""
from __future__ import annotations

import random
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from math import ceil
from typing import Iterator, Optional, Sequence, TypeVar

from ..models import (
    DimCounterparty,
    DimOrderType,
    DimSecurity,
    DimTime,
    DimTrader,
    FactTradingOrder,
)

T = TypeVar("T")

EQUITY_SYMBOLS = ("AAPL", "GOOGL", "MSFT", "AMZN", "TSLA", "JPM", "BAC", "NVDA", "META", "NFLX")
OPTION_UNDERLYINGS = ("SPY", "QQQ", "AAPL", "TSLA", "NVDA")
STRIKE_PERCENTAGES = (90, 95, 100, 105, 110)
OTC_SWAP_COUNT = 10
DESKS = ("Equity Trading", "Derivatives", "Fixed Income", "FX", "Commodities")
SECTORS = ("Technology", "Finance", "Healthcare", "Consumer", "Energy")
INDUSTRIES = ("Software", "Banks", "Biotech", "Retail", "Oil & Gas")
TRADER_NAMES = (
    "John Smith",
    "Sarah Johnson",
    "Mike Chen",
    "Lisa Wang",
    "Tom Brown",
    "Emma Davis",
    "Alex Kim",
    "Maria Garcia",
    "James Wilson",
    "Olivia Taylor",
)
COUNTERPARTY_NAMES = ("Goldman Sachs", "Morgan Stanley", "JP Morgan", "Citadel", "Virtu", "Jane Street")

ORDER_TYPES = ("MARKET", "LIMIT", "STOP", "STOP_LIMIT", "TRAILING_STOP")
ORDER_SIDES = ("BUY", "SELL")
ORDER_STATUSES = ("NEW", "PARTIAL", "FILLED", "CANCELLED", "REJECTED")
ORDER_SOURCES = ("MANUAL", "ALGO", "API")

TIME_SLOT_MINUTES = 5
HISTORY_DAYS = 30
COMMISSION_PER_UNIT = 0.001
PNL_SPREAD = 0.02
FIRST_ORDER_ID = 1_000_000


def order_type_id(order_type: str, side: str) -> int:
    """Surrogate key of an order type/side pair, matching ``order_types()``."""

    return ORDER_TYPES.index(order_type) * len(ORDER_SIDES) + ORDER_SIDES.index(side) + 1


def time_slot(moment: datetime) -> datetime:
    """Floor ``moment`` to the start of its five-minute slot."""

    return moment.replace(minute=moment.minute - moment.minute % TIME_SLOT_MINUTES, second=0, microsecond=0)


def epoch_seconds(moment: datetime) -> int:
    """Epoch seconds for a naive UTC datetime."""

    return int(moment.replace(tzinfo=timezone.utc).timestamp())


def build_time_row(slot: datetime) -> DimTime:
    day_of_week = (slot.weekday() + 1) % 7  # Sunday = 0
    is_trading_day = 0 < day_of_week < 6
    return DimTime(
        time_id=epoch_seconds(slot),
        full_datetime=slot,
        date=slot.date(),
        year=slot.year,
        quarter=(slot.month - 1) // 3 + 1,
        month=slot.month,
        week=ceil(slot.day / 7),
        day_of_month=slot.day,
        day_of_week=day_of_week,
        hour=slot.hour,
        minute=slot.minute,
        is_trading_day=is_trading_day,
        is_market_hours=is_trading_day and 9 <= slot.hour < 16,
    )


def _money(value: float, places: int = 4) -> Decimal:
    return Decimal(f"{value:.{places}f}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class MockDataGenerator:
    """Build dimension rows and random orders for the star schema.

    Pass ``seed`` for reproducible data; ``now`` pins the clock used for the
    time dimension and historical order timestamps.
    """

    def __init__(self, seed: Optional[int] = None, *, now: Optional[datetime] = None) -> None:
        self._rng = random.Random(seed)
        self._now = now
        self.next_order_id = FIRST_ORDER_ID
        self.securities: list[DimSecurity] = self._securities()
        self.traders: list[DimTrader] = self._traders()
        self.counterparties: list[DimCounterparty] = self._counterparties()

    def now(self) -> datetime:
        return self._now or _utcnow()

    def _choice(self, values: Sequence[T]) -> T:
        return self._rng.choice(values)

    def _future_date(self, min_days: float, max_days: float) -> date:
        days = self._rng.uniform(min_days, max_days)
        return (self.now() + timedelta(days=days)).date()

    # -- dimensions --------------------------------------------------------

    def _securities(self) -> list[DimSecurity]:
        securities = []
        for symbol in EQUITY_SYMBOLS:
            securities.append(
                DimSecurity(
                    security_id=len(securities) + 1,
                    symbol=symbol,
                    security_name=f"{symbol} Common Stock",
                    security_type="EQUITY",
                    exchange="NYSE" if self._rng.random() > 0.5 else "NASDAQ",
                    sector=self._choice(SECTORS),
                    industry=self._choice(INDUSTRIES),
                    market_cap_category=self._choice(("LARGE", "MID")),
                    currency="USD",
                    is_active=True,
                )
            )

        for underlying in OPTION_UNDERLYINGS:
            for pct in STRIKE_PERCENTAGES:
                strike = round((100 + self._rng.random() * 400) * pct / 100)
                for option_type in ("CALL", "PUT"):
                    securities.append(
                        DimSecurity(
                            security_id=len(securities) + 1,
                            symbol=f"{underlying}{strike}{option_type[0]}",
                            security_name=f"{underlying} {strike} {option_type}",
                            security_type="OPTION",
                            exchange="CBOE",
                            currency="USD",
                            underlying_symbol=underlying,
                            strike_price=Decimal(strike),
                            expiration_date=self._future_date(30, 90),
                            option_type=option_type,
                            contract_size=100,
                            is_active=True,
                        )
                    )

        for index in range(OTC_SWAP_COUNT):
            securities.append(
                DimSecurity(
                    security_id=len(securities) + 1,
                    symbol=f"OTC_SWAP_{index}",
                    security_name=f"Interest Rate Swap {index}",
                    security_type="OTC_DERIVATIVE",
                    exchange="OTC",
                    currency="USD",
                    is_active=True,
                )
            )
        return securities

    def _traders(self) -> list[DimTrader]:
        return [
            DimTrader(
                trader_id=index + 1,
                trader_code=f"TR{index + 1:03d}",
                trader_name=name,
                desk=self._choice(DESKS),
                department="Trading",
                experience_level=self._choice(("JUNIOR", "MID", "SENIOR", "PRINCIPAL")),
                region=self._choice(("Americas", "EMEA", "APAC")),
                is_active=True,
            )
            for index, name in enumerate(TRADER_NAMES)
        ]

    def _counterparties(self) -> list[DimCounterparty]:
        return [
            DimCounterparty(
                counterparty_id=index + 1,
                counterparty_code=f"CP{index + 1:03d}",
                counterparty_name=name,
                counterparty_type=self._choice(("BROKER", "BANK", "MARKET_MAKER")),
                country="USA",
                credit_rating=self._choice(("AAA", "AA", "A", "BBB")),
                is_active=True,
            )
            for index, name in enumerate(COUNTERPARTY_NAMES)
        ]

    @staticmethod
    def order_types() -> list[DimOrderType]:
        return [
            DimOrderType(
                order_type_id=order_type_id(kind, side),
                order_type=kind,
                order_side=side,
                time_in_force="DAY",
                is_algorithmic=False,
                algorithm_name=None,
            )
            for kind in ORDER_TYPES
            for side in ORDER_SIDES
        ]

    def time_slots(self, days: int = HISTORY_DAYS) -> Iterator[DimTime]:
        """Yield five-minute slots covering today and the previous ``days - 1`` days."""

        today = self.now().date()
        for offset in range(days):
            day = today - timedelta(days=offset)
            start = datetime.combine(day, time())
            for index in range(24 * 60 // TIME_SLOT_MINUTES):
                yield build_time_row(start + timedelta(minutes=index * TIME_SLOT_MINUTES))

    # -- facts -------------------------------------------------------------

    def realtime_order(self, timestamp: Optional[datetime] = None) -> FactTradingOrder:
        """Generate one random order placed at ``timestamp`` (defaults to now)."""

        placed_at = timestamp or self.now()
        security = self._choice(self.securities)
        trader = self._choice(self.traders)
        counterparty = self._choice(self.counterparties)

        kind = self._choice(ORDER_TYPES)
        side = self._choice(ORDER_SIDES)
        quantity = round(self._rng.random() * 10000 + 100)
        base_price = 50 + self._rng.random() * 450
        order_price = None if kind == "MARKET" else round(base_price, 2)

        status = self._choice(ORDER_STATUSES)
        if status == "FILLED":
            fill_ratio = 1.0
        elif status == "PARTIAL":
            fill_ratio = self._rng.random() * 0.8
        else:
            fill_ratio = 0.0

        filled = round(quantity * fill_ratio)
        avg_fill_price = base_price + (self._rng.random() - 0.5) * 2 if filled > 0 else None
        notional = filled * (avg_fill_price or base_price)
        pnl = (self._rng.random() - 0.5) * notional * PNL_SPREAD if filled > 0 else 0.0

        order_id = str(self.next_order_id)
        self.next_order_id += 1

        return FactTradingOrder(
            order_id=order_id,
            time_id=epoch_seconds(time_slot(placed_at)),
            security_id=security.security_id,
            trader_id=trader.trader_id,
            counterparty_id=counterparty.counterparty_id,
            order_type_id=order_type_id(kind, side),
            order_quantity=Decimal(quantity),
            order_price=None if order_price is None else _money(order_price, 2),
            filled_quantity=Decimal(filled),
            average_fill_price=None if avg_fill_price is None else _money(avg_fill_price),
            commission=_money(filled * COMMISSION_PER_UNIT),
            order_status=status,
            order_timestamp=placed_at,
            fill_timestamp=placed_at if filled > 0 else None,
            notional_value=_money(notional),
            market_value=_money(notional),
            pnl=_money(pnl, 2),
            order_source=self._choice(ORDER_SOURCES),
            execution_venue=security.exchange,
            settlement_date=self._future_date(1, 3),
        )

    def historical_orders(self, count: int) -> list[FactTradingOrder]:
        """Generate ``count`` orders spread over the time dimension, newest first."""

        now = self.now()
        window = (HISTORY_DAYS - 1) * 24 * 60 * 60
        orders = []
        for _ in range(count):
            placed_at = now - timedelta(seconds=self._rng.uniform(0, window))
            order = self.realtime_order(placed_at)
            if order.fill_timestamp is not None:
                order.fill_timestamp = placed_at + timedelta(seconds=self._rng.uniform(0, 60))
            orders.append(order)
        orders.sort(key=lambda order: order.order_timestamp, reverse=True)
        return orders
