"""
Identity Provider Service
Email verification and resend through the Supabase Auth (GoTrue) REST API
"""

import logging
from typing import Optional

import httpx

from ..config import APP_URL, SUPABASE_ANON_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    return bool(SUPABASE_URL and SUPABASE_ANON_KEY)


def _headers() -> dict:
    return {"apikey": SUPABASE_ANON_KEY, "Content-Type": "application/json"}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or "Unknown error"
    return body.get("msg") or body.get("error_description") or body.get("message") or "Unknown error"


async def verify_email_token(token_hash: str, kind: str = "signup") -> tuple[Optional[dict], Optional[str]]:
    """
    Exchange an emailed verification token for the verified user

    Args:
        token_hash: Token from the verification link
        kind: "signup" for new accounts, anything else for an email change

    Returns:
        Tuple of (user claims or None, error_message or None)
    """
    if not is_configured():
        logger.warning("⚠️ Supabase not configured - email not verified")
        return None, "Identity provider not configured"

    payload = {"token_hash": token_hash, "type": "email" if kind == "signup" else "email_change"}
    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{SUPABASE_URL}/auth/v1/verify", headers=_headers(), json=payload, timeout=10.0
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ Email verification request failed: {e}")
        return None, "Verification service unavailable"

    if response.status_code != 200:
        error_message = _error_message(response)
        logger.warning(f"⚠️ Email verification rejected: {error_message}")
        return None, error_message

    user = response.json().get("user") or {}
    if not user.get("id"):
        return None, None
    logger.info(f"✅ Email verified for {user.get('email')}")
    return {
        "sub": user["id"],
        "email": user.get("email"),
        "user_metadata": user.get("user_metadata") or {},
    }, None


async def resend_verification_email(email: str) -> Optional[str]:
    """Ask the provider to send the signup confirmation again; returns an error message on failure"""
    if not is_configured():
        logger.warning("⚠️ Supabase not configured - verification email not sent")
        return "Identity provider not configured"

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{SUPABASE_URL}/auth/v1/resend",
                headers=_headers(),
                params={"redirect_to": f"{APP_URL}/auth/callback?next=/dashboard"},
                json={"type": "signup", "email": email},
                timeout=10.0,
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ Resend verification request failed: {e}")
        return "Verification service unavailable"

    if response.status_code != 200:
        return _error_message(response)
    logger.info(f"📧 Verification email re-sent to {email}")
    return None
