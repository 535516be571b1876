"""Health router - Liveness, monitoring counters and CSRF token issuance"""

import logging
import os
import time
from datetime import timedelta

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy import func, text
from sqlalchemy.orm import Session

from ...config import APP_VERSION, REQUIRED_ENV_VARS
from ...csrf import CSRF_COOKIE_NAME, generate_csrf_token, set_csrf_cookie
from ...database import get_db
from ...models import Booking, Payment
from ...rate_limiter import get_redis_client
from ...shared.dates import to_iso, utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))

        missing = [name for name in REQUIRED_ENV_VARS if not os.getenv(name)]
        if missing:
            logger.error(f"❌ Health check: missing environment variables {missing}")
            return JSONResponse(
                status_code=500,
                content={
                    "status": "unhealthy",
                    "message": "Missing required environment variables",
                    "missing": missing,
                    "timestamp": to_iso(utc_now()),
                },
            )

        return {
            "status": "healthy",
            "message": "All systems operational",
            "database": "connected",
            "timestamp": to_iso(utc_now()),
            "version": APP_VERSION,
        }
    except Exception as e:
        logger.error(f"❌ Health check failed: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "status": "unhealthy",
                "message": "Database connection failed",
                "error": str(e),
                "timestamp": to_iso(utc_now()),
            },
        )


@router.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    redis_client = get_redis_client()
    if redis_client is None:
        return {"status": "disabled", "redis": {"connected": False}}

    try:
        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "redis": {"connected": True, "response_time_ms": round(response_time, 2)},
        }
    except Exception as e:
        logger.warning(f"⚠️ Redis health check failed: {e}")
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}


@router.get("/monitoring/metrics")
def get_metrics(db: Session = Depends(get_db)):
    now = utc_now()
    one_day_ago = now - timedelta(days=1)
    one_week_ago = now - timedelta(days=7)

    # Active users are hosts who received a booking in the last 7 days
    active_users = (
        db.query(func.count(func.distinct(Booking.user_id)))
        .filter(Booking.created_at >= one_week_ago)
        .scalar()
    )
    total_revenue = (
        db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(Payment.status == "SUCCEEDED").scalar()
    )

    return {
        "timestamp": to_iso(now),
        "metrics": {
            "totalBookings": db.query(func.count(Booking.id)).scalar(),
            "bookingsLast24h": db.query(func.count(Booking.id))
            .filter(Booking.created_at >= one_day_ago)
            .scalar(),
            "bookingsLast7d": db.query(func.count(Booking.id))
            .filter(Booking.created_at >= one_week_ago)
            .scalar(),
            "activeUsers": active_users or 0,
            "totalRevenue": round(float(total_revenue or 0), 2),
        },
    }


@router.get("/csrf")
async def get_csrf_token(request: Request, response: Response):
    """
    Get a CSRF token for the frontend.
    The token is also set as a cookie; state-changing requests echo it in X-CSRF-Token.
    """
    existing_token = request.cookies.get(CSRF_COOKIE_NAME)
    if existing_token:
        return {"token": existing_token}

    token = generate_csrf_token()
    set_csrf_cookie(response, token)
    return {"token": token}
