"""Seeding and read models for the trading star schema."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, case, cast, func, select
from sqlalchemy.orm import Session

from ..core.logger import get_logger, progress_manager, timeit
from ..models import (
    Base,
    DimCounterparty,
    DimOrderType,
    DimSecurity,
    DimTime,
    DimTrader,
    FactTradingOrder,
)
from ..schemas.orders import DailySummaryRow, OrderFlowRow, SeedSummary
from .mock_data import MockDataGenerator, build_time_row, time_slot

LOGGER = get_logger(__name__)

_BATCH_SIZE = 500


class TradingService:
    """Populate the demo database and serve the order-flow dashboards."""

    DEFAULT_ORDER_COUNT = 1000
    RECENT_LIMIT = 50
    MAX_RECENT_LIMIT = 500
    SUMMARY_LIMIT = 30

    def __init__(self, generator: MockDataGenerator | None = None) -> None:
        self.generator = generator or MockDataGenerator()

    def initialize(self, session: Session, order_count: int | None = None) -> SeedSummary:
        """Create the star schema and seed it once.

        A database that already has a time dimension is left untouched; only
        the order id counter is moved past the stored orders.
        """

        Base.metadata.create_all(session.get_bind())

        existing_slots = session.scalar(select(func.count()).select_from(DimTime)) or 0
        if existing_slots:
            LOGGER.info("Database already seeded (%s time slots), skipping initialisation", existing_slots)
            self._sync_order_counter(session)
            return self._summary(session, seeded=False)

        count = self.DEFAULT_ORDER_COUNT if order_count is None else order_count
        with timeit("Seeding trading database", logger=LOGGER, unit="orders", total=count):
            session.add_all(self.generator.securities)
            session.add_all(self.generator.traders)
            session.add_all(self.generator.counterparties)
            session.add_all(self.generator.order_types())
            session.flush()

            batch: list[DimTime] = []
            for row in progress_manager.track(
                self.generator.time_slots(), description="Time dimension"
            ):
                batch.append(row)
                if len(batch) >= _BATCH_SIZE:
                    session.add_all(batch)
                    session.flush()
                    batch = []
            session.add_all(batch)
            session.flush()

            orders = self.generator.historical_orders(count)
            for order in progress_manager.track(orders, description="Historical orders", total=count):
                session.add(order)
            session.commit()

        return self._summary(session, seeded=True)

    def _sync_order_counter(self, session: Session) -> None:
        highest = session.scalar(select(func.max(cast(FactTradingOrder.order_id, Integer))))
        if highest is not None and highest >= self.generator.next_order_id:
            self.generator.next_order_id = int(highest) + 1

    @staticmethod
    def _summary(session: Session, *, seeded: bool) -> SeedSummary:
        def count(model) -> int:
            return session.scalar(select(func.count()).select_from(model)) or 0

        return SeedSummary(
            seeded=seeded,
            securities=count(DimSecurity),
            traders=count(DimTrader),
            counterparties=count(DimCounterparty),
            order_types=count(DimOrderType),
            time_slots=count(DimTime),
            orders=count(FactTradingOrder),
        )

    def recent_orders(self, session: Session, limit: int = RECENT_LIMIT) -> list[OrderFlowRow]:
        """Return the latest orders with their dimension attributes, newest first."""

        limit = max(1, min(limit, self.MAX_RECENT_LIMIT))
        statement = (
            select(
                FactTradingOrder.order_id,
                FactTradingOrder.order_timestamp,
                DimSecurity.symbol,
                DimSecurity.security_type,
                DimTrader.trader_name,
                DimTrader.desk,
                DimCounterparty.counterparty_name,
                DimOrderType.order_type,
                DimOrderType.order_side,
                FactTradingOrder.order_quantity,
                FactTradingOrder.order_price,
                FactTradingOrder.filled_quantity,
                FactTradingOrder.average_fill_price,
                FactTradingOrder.order_status,
                FactTradingOrder.notional_value,
                FactTradingOrder.pnl,
            )
            .join(DimSecurity, FactTradingOrder.security_id == DimSecurity.security_id)
            .join(DimTrader, FactTradingOrder.trader_id == DimTrader.trader_id)
            .join(DimCounterparty, FactTradingOrder.counterparty_id == DimCounterparty.counterparty_id)
            .join(DimOrderType, FactTradingOrder.order_type_id == DimOrderType.order_type_id)
            .order_by(FactTradingOrder.order_timestamp.desc())
            .limit(limit)
        )
        return [OrderFlowRow.model_validate(dict(row)) for row in session.execute(statement).mappings()]

    def daily_summary(self, session: Session, security_id: int | None = None) -> list[DailySummaryRow]:
        """Return per symbol/date trade counts, volumes, notional and PnL (30 rows max)."""

        buy_volume = func.sum(
            case((DimOrderType.order_side == "BUY", FactTradingOrder.filled_quantity), else_=0)
        )
        sell_volume = func.sum(
            case((DimOrderType.order_side == "SELL", FactTradingOrder.filled_quantity), else_=0)
        )
        statement = (
            select(
                DimSecurity.symbol,
                DimTime.date,
                func.count().label("total_trades"),
                buy_volume.label("buy_volume"),
                sell_volume.label("sell_volume"),
                func.avg(FactTradingOrder.average_fill_price).label("avg_price"),
                func.sum(FactTradingOrder.notional_value).label("total_notional"),
                func.sum(FactTradingOrder.pnl).label("total_pnl"),
            )
            .select_from(FactTradingOrder)
            .join(DimTime, FactTradingOrder.time_id == DimTime.time_id)
            .join(DimSecurity, FactTradingOrder.security_id == DimSecurity.security_id)
            .join(DimOrderType, FactTradingOrder.order_type_id == DimOrderType.order_type_id)
        )
        if security_id is not None:
            statement = statement.where(FactTradingOrder.security_id == security_id)
        statement = (
            statement.group_by(DimSecurity.symbol, DimTime.date)
            .order_by(DimTime.date.desc(), DimSecurity.symbol)
            .limit(self.SUMMARY_LIMIT)
        )
        return [DailySummaryRow.model_validate(dict(row)) for row in session.execute(statement).mappings()]

    def record_order(self, session: Session, order: FactTradingOrder | None = None) -> OrderFlowRow:
        """Insert one order (a freshly generated one by default) and return it joined.

        Generated orders take their id after the highest stored one, so a
        database seeded by another process does not collide.
        """

        if order is None:
            self._sync_order_counter(session)
            order = self.generator.realtime_order()
        self._ensure_time_slot(session, order.order_timestamp)
        session.add(order)
        session.commit()
        LOGGER.debug("Recorded order %s (%s)", order.order_id, order.order_status)

        statement = (
            select(FactTradingOrder)
            .where(FactTradingOrder.order_id == order.order_id)
        )
        stored = session.scalars(statement).one()
        return OrderFlowRow(
            order_id=stored.order_id,
            order_timestamp=stored.order_timestamp,
            symbol=stored.security.symbol,
            security_type=stored.security.security_type,
            trader_name=stored.trader.trader_name,
            desk=stored.trader.desk,
            counterparty_name=stored.counterparty.counterparty_name,
            order_type=stored.order_type.order_type,
            order_side=stored.order_type.order_side,
            order_quantity=stored.order_quantity,
            order_price=stored.order_price,
            filled_quantity=stored.filled_quantity,
            average_fill_price=stored.average_fill_price,
            order_status=stored.order_status,
            notional_value=stored.notional_value,
            pnl=stored.pnl,
        )

    @staticmethod
    def _ensure_time_slot(session: Session, moment: datetime) -> None:
        row = build_time_row(time_slot(moment))
        if session.get(DimTime, row.time_id) is None:
            session.add(row)
            session.flush()
