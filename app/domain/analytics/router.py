"""Analytics router - Host dashboards and booking export"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .service import AnalyticsService, rows_to_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    """Dependency injection for AnalyticsService"""
    return AnalyticsService(db)


@router.get("/export")
async def export_bookings(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    format: str = Query("csv"),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    if format not in ("csv", "json"):
        raise HTTPException(status_code=400, detail="Invalid export format")

    rows = service.export_rows(current_user, startDate, endDate)
    if format == "json":
        return {"data": rows}

    return StreamingResponse(
        iter([rows_to_csv(rows)]),
        media_type="text/csv",
        headers={
            "Content-Disposition": 'attachment; filename="bookings-export.csv"',
            "Cache-Control": "no-cache",
        },
    )


@router.get("/trends")
async def get_trends(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return {"trends": service.get_trends(current_user, startDate, endDate)}


@router.get("/metrics")
async def get_metrics(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return service.get_booking_metrics(current_user, startDate, endDate)


@router.get("/event-types")
async def get_event_type_stats(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return {"eventTypes": service.get_event_type_stats(current_user, startDate, endDate)}


@router.get("/revenue")
async def get_revenue(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return service.get_revenue_metrics(current_user, startDate, endDate)


@router.get("/popular-times")
async def get_popular_times(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return {"popularTimes": service.get_popular_times(current_user, startDate, endDate)}
