"""Analytics service - Booking metrics, trends, revenue and CSV/JSON export"""

import csv
import logging
from collections import Counter
from datetime import date, datetime, time, timedelta
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...shared.dates import parse_date, to_iso, utc_now
from ..availability.slots import day_of_week
from .repository import AnalyticsRepository

logger = logging.getLogger(__name__)

DEFAULT_RANGE_DAYS = 30

EXPORT_COLUMNS = [
    "bookingId",
    "eventType",
    "guestName",
    "guestEmail",
    "startTime",
    "endTime",
    "status",
    "duration",
    "price",
    "currency",
    "createdAt",
]


def _percentage(part: int, total: int) -> float:
    return round(part / total * 100, 2) if total else 0.0


def rows_to_csv(rows: list[dict]) -> str:
    """RFC 4180 CSV with a header row; the empty export is a fixed message"""
    if not rows:
        return "No data to export"
    output = StringIO()
    writer = csv.DictWriter(output, fieldnames=EXPORT_COLUMNS, lineterminator="\r\n")
    writer.writeheader()
    writer.writerows(rows)
    return output.getvalue()


class AnalyticsService:
    """Service layer for host analytics"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AnalyticsRepository()

    @staticmethod
    def resolve_range(
        start_value: Optional[str], end_value: Optional[str], required: bool = False
    ) -> tuple[datetime, datetime, date, date]:
        """Whole-day UTC bounds for a date range, defaulting to the last 30 days"""
        if not start_value or not end_value:
            if required:
                raise HTTPException(status_code=400, detail="startDate and endDate are required")
            end_day = utc_now().date()
            start_day = end_day - timedelta(days=DEFAULT_RANGE_DAYS)
        else:
            try:
                start_day = parse_date(start_value)
                end_day = parse_date(end_value)
            except ValueError as e:
                raise HTTPException(status_code=400, detail="Invalid date format") from e
        if end_day < start_day:
            raise HTTPException(status_code=400, detail="endDate must be after startDate")
        return (
            datetime.combine(start_day, time.min),
            datetime.combine(end_day, time.max),
            start_day,
            end_day,
        )

    # ========================================================================
    # EXPORT
    # ========================================================================

    def export_rows(self, user: User, start_value: Optional[str], end_value: Optional[str]) -> list[dict]:
        start, end, _, _ = self.resolve_range(start_value, end_value, required=True)
        bookings = self.repo.bookings_created_between(self.db, user.id, start, end)
        logger.info(f"📊 Booking export for user {user.id}: {len(bookings)} rows")
        return [
            {
                "bookingId": b.id,
                "eventType": b.event_type.title if b.event_type else "",
                "guestName": b.guest_name,
                "guestEmail": b.guest_email,
                "startTime": to_iso(b.start_time),
                "endTime": to_iso(b.end_time),
                "status": b.status,
                "duration": int((b.end_time - b.start_time).total_seconds() // 60),
                "price": b.event_type.price if b.event_type and b.event_type.price is not None else 0,
                "currency": b.event_type.currency if b.event_type else "USD",
                "createdAt": to_iso(b.created_at),
            }
            for b in bookings
        ]

    # ========================================================================
    # METRICS
    # ========================================================================

    def get_trends(self, user: User, start_value: Optional[str], end_value: Optional[str]) -> list[dict]:
        start, end, start_day, end_day = self.resolve_range(start_value, end_value, required=True)

        trends = {}
        day = start_day
        while day <= end_day:
            trends[day.isoformat()] = {"date": day.isoformat(), "count": 0, "confirmed": 0, "cancelled": 0}
            day += timedelta(days=1)

        for booking in self.repo.bookings_created_between(self.db, user.id, start, end):
            trend = trends.get(booking.created_at.date().isoformat())
            if trend is None:
                continue
            trend["count"] += 1
            if booking.status == "CONFIRMED":
                trend["confirmed"] += 1
            elif booking.status == "CANCELLED":
                trend["cancelled"] += 1
        return list(trends.values())

    def get_booking_metrics(
        self, user: User, start_value: Optional[str] = None, end_value: Optional[str] = None
    ) -> dict:
        start, end, _, _ = self.resolve_range(start_value, end_value)
        bookings = self.repo.bookings_created_between(self.db, user.id, start, end)
        statuses = Counter(b.status for b in bookings)
        now = utc_now()
        total = len(bookings)
        return {
            "totalBookings": total,
            "confirmedBookings": statuses["CONFIRMED"],
            "cancelledBookings": statuses["CANCELLED"],
            "completedBookings": statuses["COMPLETED"],
            "upcomingBookings": sum(
                1 for b in bookings if b.status in ("CONFIRMED", "PENDING") and b.start_time > now
            ),
            "cancellationRate": _percentage(statuses["CANCELLED"], total),
            "noShowRate": _percentage(statuses["NO_SHOW"], total),
        }

    def get_event_type_stats(
        self, user: User, start_value: Optional[str] = None, end_value: Optional[str] = None
    ) -> list[dict]:
        start, end, _, _ = self.resolve_range(start_value, end_value)
        bookings = self.repo.bookings_created_between(self.db, user.id, start, end)

        stats = []
        for event_type in self.repo.event_types_for_user(self.db, user.id):
            own = [b for b in bookings if b.event_type_id == event_type.id]
            confirmed = [b for b in own if b.status == "CONFIRMED"]
            lead_times = [(b.start_time - b.created_at).total_seconds() / 3600 for b in confirmed]
            revenue = sum(
                b.payment.amount for b in own if b.payment and b.payment.status == "SUCCEEDED"
            )
            stats.append(
                {
                    "eventTypeId": event_type.id,
                    "eventTypeName": event_type.title,
                    "totalBookings": len(own),
                    "confirmedBookings": len(confirmed),
                    "cancelledBookings": sum(1 for b in own if b.status == "CANCELLED"),
                    "conversionRate": _percentage(len(confirmed), len(own)),
                    "averageLeadTime": round(sum(lead_times) / len(lead_times), 2) if lead_times else 0,
                    "revenue": round(revenue, 2),
                }
            )
        return stats

    def get_revenue_metrics(
        self, user: User, start_value: Optional[str] = None, end_value: Optional[str] = None
    ) -> dict:
        start, end, _, _ = self.resolve_range(start_value, end_value)
        payments = self.repo.payments_between(self.db, user.id, start, end)

        succeeded = [p for p in payments if p.status == "SUCCEEDED"]
        by_event_type: dict[str, dict] = {}
        for payment in succeeded:
            event_type = payment.booking.event_type if payment.booking else None
            if event_type is None:
                continue
            entry = by_event_type.setdefault(
                event_type.id,
                {"eventTypeId": event_type.id, "eventTypeName": event_type.title, "revenue": 0.0, "bookingCount": 0},
            )
            entry["revenue"] = round(entry["revenue"] + payment.amount, 2)
            entry["bookingCount"] += 1

        return {
            "totalRevenue": round(sum(p.amount for p in succeeded), 2),
            "successfulPayments": len(succeeded),
            "failedPayments": sum(1 for p in payments if p.status == "FAILED"),
            "refundedAmount": round(
                sum(
                    p.refund_amount if p.refund_amount is not None else p.amount
                    for p in payments
                    if p.status in ("REFUNDED", "PARTIALLY_REFUNDED")
                ),
                2,
            ),
            "currency": payments[0].currency if payments else "USD",
            "revenueByEventType": list(by_event_type.values()),
        }

    def get_popular_times(
        self, user: User, start_value: Optional[str] = None, end_value: Optional[str] = None
    ) -> list[dict]:
        """Confirmed bookings grouped by weekday (Sunday = 0) and UTC hour"""
        start, end, _, _ = self.resolve_range(start_value, end_value)
        counts = Counter(
            (day_of_week(b.start_time.date()), b.start_time.hour)
            for b in self.repo.confirmed_bookings_starting_between(self.db, user.id, start, end)
        )
        slots = [{"dayOfWeek": d, "hour": h, "count": c} for (d, h), c in counts.items()]
        return sorted(slots, key=lambda s: s["count"], reverse=True)
