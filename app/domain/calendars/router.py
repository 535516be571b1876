"""Calendar router - Google/Outlook OAuth connect, callbacks, disconnect and sync"""

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...config import APP_URL
from ...database import get_db
from ...models import User
from ...services.calendar_service import CalendarProviderError
from .schemas import DisconnectCalendarRequest, calendar_to_response, event_to_response
from .service import PROVIDERS, CalendarService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/calendar", tags=["Calendars"])

SETTINGS_PATH = "/dashboard/settings/calendars"


def get_calendar_service(db: Session = Depends(get_db)) -> CalendarService:
    """Dependency injection for CalendarService"""
    return CalendarService(db)


def _provider(name: str) -> str:
    provider = PROVIDERS.get(name)
    if not provider:
        raise HTTPException(status_code=404, detail="Unknown calendar provider")
    return provider


def _settings_redirect(**params) -> RedirectResponse:
    return RedirectResponse(url=f"{APP_URL}{SETTINGS_PATH}?{urlencode(params)}", status_code=302)


@router.get("/list")
async def list_calendars(
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    return {"calendars": [calendar_to_response(c) for c in service.list_calendars(current_user)]}


@router.get("/{provider_name}/connect")
async def connect_calendar(
    provider_name: str,
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    """OAuth authorization URL for the provider"""
    return {"url": service.get_connect_url(_provider(provider_name), current_user)}


@router.get("/{provider_name}/callback")
async def calendar_callback(
    provider_name: str,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    service: CalendarService = Depends(get_calendar_service),
):
    """OAuth redirect target; always sends the browser back to calendar settings"""
    provider = _provider(provider_name)
    try:
        await service.handle_callback(provider, code, state, error)
    except CalendarProviderError as e:
        logger.warning(f"⚠️ {provider} calendar connection failed: {e}")
        return _settings_redirect(error=str(e))
    except httpx.HTTPError as e:
        logger.error(f"❌ {provider} calendar provider unreachable: {e}")
        return _settings_redirect(error="provider_unreachable")
    return _settings_redirect(success="true")


@router.delete("/disconnect")
async def disconnect_calendar(
    data: DisconnectCalendarRequest,
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    service.disconnect(current_user, data.calendarId)
    return {"success": True}


@router.post("/sync")
async def sync_calendars(
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    """Events for the next 30 days across every connected calendar"""
    events = await service.sync(current_user)
    return {
        "success": True,
        "eventCount": len(events),
        "events": [event_to_response(e) for e in events[:10]],
    }
