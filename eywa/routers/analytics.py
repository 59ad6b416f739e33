from fastapi import APIRouter, HTTPException

from eywa.dependencies import ReportingDep, StoreDep
from eywa.exceptions.custom import HotelNotFoundError
from eywa.schemas.analytics import MarketPosition, SentimentBreakdown
from eywa.schemas.responses import AlertsReport, TrendsReport
from eywa.store import ReviewStore

router = APIRouter(prefix="/hotels/{hotel_id}/analytics", tags=["analytics"])


def _require_hotel(store: ReviewStore, hotel_id: str) -> None:
    if store.get_hotel(hotel_id) is None:
        raise HotelNotFoundError(hotel_id)


@router.get("/alerts", response_model=AlertsReport)
async def hotel_alerts(store: StoreDep, reporting: ReportingDep, hotel_id: str) -> AlertsReport:
    _require_hotel(store, hotel_id)
    return reporting.hotel_alerts(hotel_id)


@router.get("/trends", response_model=TrendsReport)
async def hotel_trends(store: StoreDep, reporting: ReportingDep, hotel_id: str) -> TrendsReport:
    _require_hotel(store, hotel_id)
    return reporting.hotel_trends(hotel_id)


@router.get("/sentiment", response_model=SentimentBreakdown)
async def hotel_sentiment(
    store: StoreDep, reporting: ReportingDep, hotel_id: str
) -> SentimentBreakdown:
    _require_hotel(store, hotel_id)
    return reporting.hotel_sentiment(hotel_id)


@router.get("/market-position", response_model=MarketPosition)
async def hotel_market_position(
    store: StoreDep, reporting: ReportingDep, hotel_id: str
) -> MarketPosition:
    _require_hotel(store, hotel_id)
    position = reporting.market_position(hotel_id)
    if position is None:
        raise HTTPException(status_code=404, detail=f"No Eywa score yet for hotel {hotel_id}")
    return position
