"""Order flow dashboard endpoints."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.logger import get_logger
from ..schemas.orders import DailySummaryRow, OrderFlowRow
from ..services import TradingService
from .dependencies import get_db_session, get_trading_service

router = APIRouter(prefix="/api", tags=["orders"])
LOGGER = get_logger(__name__)


@router.get("/orders/recent", response_model=List[OrderFlowRow])
def recent_orders(
    limit: int = Query(TradingService.RECENT_LIMIT, ge=1, le=TradingService.MAX_RECENT_LIMIT),
    service: TradingService = Depends(get_trading_service),
    session: Session = Depends(get_db_session),
) -> List[OrderFlowRow]:
    return service.recent_orders(session, limit=limit)


@router.get("/summary/daily", response_model=List[DailySummaryRow])
def daily_summary(
    security_id: Optional[int] = Query(None, alias="securityId"),
    service: TradingService = Depends(get_trading_service),
    session: Session = Depends(get_db_session),
) -> List[DailySummaryRow]:
    return service.daily_summary(session, security_id=security_id)


@router.post("/orders/simulate", response_model=OrderFlowRow, status_code=201)
def simulate_order(
    service: TradingService = Depends(get_trading_service),
    session: Session = Depends(get_db_session),
) -> OrderFlowRow:
    """Generate one realtime order and store it."""

    row = service.record_order(session)
    LOGGER.info("Simulated order %s for %s", row.order_id, row.symbol)
    return row
