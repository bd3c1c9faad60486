"""REST API routes.

Read-only publication of the market session state, plus the two inputs that
change it: selecting a market and importing a CSV dataset.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from core.models.analysis import BacktestResult, IndicatorSnapshot, Prediction
from core.models.candle import CandleSeries, Interval, MarketType

from app.config import get_settings
from app.services import MarketSession, MarketState, scan_market
from app.services.csv_import import parse_csv_bytes

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/response models
class SessionRequest(BaseModel):
    symbol: str
    interval: Interval = Interval.H1
    market_type: MarketType = MarketType.FUTURES


class SystemStatus(BaseModel):
    status: str
    version: str
    symbol: str | None
    interval: str | None
    market_type: str | None
    source: str | None
    streaming: bool
    candles: int
    updated_at: datetime | None


class ScannerRowResponse(BaseModel):
    symbol: str
    price: float
    signal: str
    confidence: float
    trend: str


class InsightContextResponse(BaseModel):
    symbol: str
    context: str


def get_session(request: Request) -> MarketSession:
    return request.app.state.session


def require_state(session: MarketSession = Depends(get_session)) -> MarketState:
    state = session.state
    if state is None:
        raise HTTPException(status_code=409, detail="No market selected yet")
    return state


@router.get("/status", response_model=SystemStatus)
async def get_status(session: MarketSession = Depends(get_session)):
    """Get session status."""
    state = session.state
    return SystemStatus(
        status="running",
        version="0.1.0",
        symbol=state.symbol if state else None,
        interval=state.interval if state else None,
        market_type=state.market_type.value if state else None,
        source=state.source.value if state else None,
        streaming=session.is_streaming,
        candles=len(state.series) if state else 0,
        updated_at=state.updated_at if state else None,
    )


@router.get("/state", response_model=MarketState)
async def get_state(state: MarketState = Depends(require_state)):
    return state


@router.get("/series", response_model=CandleSeries)
async def get_series(state: MarketState = Depends(require_state)):
    return state.series


@router.get("/indicators", response_model=IndicatorSnapshot)
async def get_indicators(state: MarketState = Depends(require_state)):
    return state.indicators


@router.get("/prediction", response_model=Prediction)
async def get_prediction(state: MarketState = Depends(require_state)):
    return state.prediction


@router.get("/backtest", response_model=BacktestResult)
async def get_backtest(state: MarketState = Depends(require_state)):
    return state.backtest


@router.get("/insight-context", response_model=InsightContextResponse)
async def get_insight_context(
    state: MarketState = Depends(require_state),
    session: MarketSession = Depends(get_session),
):
    """Text context passed through to the narrative-insight collaborator."""
    return InsightContextResponse(symbol=state.symbol, context=session.insight_context())


@router.post("/session", response_model=SystemStatus)
async def select_market(
    request: SessionRequest,
    session: MarketSession = Depends(get_session),
):
    """Switch the dashboard to another market."""
    await session.select(request.symbol, request.interval, request.market_type)
    return await get_status(session)


@router.post("/import", response_model=SystemStatus)
async def import_dataset(
    request: Request,
    name: str = "IMPORTED",
    session: MarketSession = Depends(get_session),
):
    """Replace the live source with an uploaded CSV body (disables streaming)."""
    try:
        candles = parse_csv_bytes(await request.body())
        await session.import_dataset(candles, name=name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Import Failed: {e}")
    return await get_status(session)


@router.get("/scanner", response_model=list[ScannerRowResponse])
async def get_scanner(session: MarketSession = Depends(get_session)):
    """Scan the configured symbols on a short spot history."""
    settings = get_settings()
    rows = await scan_market(
        session.provider,
        settings.scanner_symbols,
        scorer=session.enricher.scorer,
        interval=settings.scanner_interval,
        limit=settings.scanner_limit,
    )
    return [
        ScannerRowResponse(
            symbol=r.symbol,
            price=r.price,
            signal=r.signal.value,
            confidence=r.confidence,
            trend=r.trend.value,
        )
        for r in rows
    ]
