"""
CSRF Protection Middleware for FastAPI

Implements double-submit cookie pattern for CSRF protection.
- Generates a CSRF token and sets it as a cookie
- Validates that the X-CSRF-Token header matches the cookie value
- Applies to state-changing methods (POST, PUT, PATCH, DELETE)
- Excludes public booking endpoints, webhooks and cron triggers

Bearer-token API clients are not exposed to CSRF, so the middleware is off
unless CSRF_ENABLED=true.
"""

import logging
import os
import secrets
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

CSRF_ENABLED = os.getenv("CSRF_ENABLED", "false").lower() == "true"

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"

PROTECTED_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

# Callers of these paths are not browsers holding our cookie
EXEMPT_PATHS: list[str] = [
    "/api/webhooks/",
    "/api/cron/",
    "/api/bookings",
    "/api/payments/create-intent",
    "/api/public/",
    "/api/auth/verify-email",
    "/api/health",
    "/api/csrf",
    "/docs",
    "/openapi.json",
]


def generate_csrf_token() -> str:
    """Generate a cryptographically secure CSRF token"""
    return secrets.token_urlsafe(32)


def is_path_exempt(path: str) -> bool:
    """Check if a path is exempt from CSRF protection"""
    return any(path.startswith(exempt) for exempt in EXEMPT_PATHS)


def set_csrf_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=True,
        samesite="strict",
        max_age=86400,
        path="/",
    )


def _forbidden(detail: str) -> JSONResponse:
    return JSONResponse(status_code=403, content={"error": detail})


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    CSRF Protection Middleware using double-submit cookie pattern.

    1. On any request, if no CSRF cookie exists, generate one and set it
    2. For state-changing requests the X-CSRF-Token header must match the cookie
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        csrf_cookie = request.cookies.get(CSRF_COOKIE_NAME)

        needs_validation = request.method in PROTECTED_METHODS and not is_path_exempt(
            request.url.path
        )

        if needs_validation:
            csrf_header = request.headers.get(CSRF_HEADER_NAME)

            if not csrf_cookie:
                logger.warning(f"🚫 CSRF: Missing cookie for {request.method} {request.url.path}")
                return _forbidden("CSRF token missing")

            if not csrf_header:
                logger.warning(f"🚫 CSRF: Missing header for {request.method} {request.url.path}")
                return _forbidden("CSRF token header missing")

            if not secrets.compare_digest(csrf_cookie, csrf_header):
                logger.warning(f"🚫 CSRF: Token mismatch for {request.method} {request.url.path}")
                return _forbidden("CSRF token invalid")

        response = await call_next(request)

        if not csrf_cookie:
            set_csrf_cookie(response, generate_csrf_token())
            logger.debug("🔑 CSRF: Set new token cookie")

        return response
