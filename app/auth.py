import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from .config import SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

# Missing credentials are reported as 401 by get_current_user, not by HTTPBearer
security = HTTPBearer(auto_error=False)

UNAUTHORIZED = "Unauthorized"


def verify_access_token(token: str) -> dict:
    """
    Verify an identity provider access token (HS256 JWT signed with the
    project's JWT secret) and return its claims.
    """
    if not SUPABASE_JWT_SECRET:
        logger.error("❌ SUPABASE_JWT_SECRET not configured")
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)

    try:
        claims = jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=SUPABASE_JWT_AUDIENCE,
        )
    except ExpiredSignatureError as e:
        logger.info("ℹ️ Access token expired")
        raise HTTPException(
            status_code=401, detail=UNAUTHORIZED, headers={"X-Token-Expired": "true"}
        ) from e
    except JWTError as e:
        logger.warning(f"⚠️ Token verification failed: {e}")
        raise HTTPException(status_code=401, detail=UNAUTHORIZED) from e

    if not claims.get("sub"):
        logger.error(f"❌ Token missing subject claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)

    return claims


def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """Verified claims of the bearer token, without touching the database"""
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)
    return verify_access_token(credentials.credentials)


async def get_current_user(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> User:
    """Get the current user, creating their profile on first sight"""
    from .domain.users.service import UserService

    user = db.get(User, claims["sub"])
    if user:
        logger.debug(f"✅ User authenticated: {user.email}")
        return user

    try:
        return UserService(db).sync_profile(claims)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Authentication failed: {str(e)}")
        raise HTTPException(status_code=401, detail=UNAUTHORIZED) from e


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Current user for endpoints that also serve anonymous guests"""
    if not credentials or not credentials.credentials:
        return None
    try:
        claims = verify_access_token(credentials.credentials)
    except HTTPException:
        return None
    return db.get(User, claims["sub"])


async def require_premium(user: User = Depends(get_current_user)) -> User:
    """Gate white-label features behind the premium plan"""
    if not user.is_premium:
        logger.warning(f"⚠️ User {user.email} attempted to use a premium feature")
        raise HTTPException(
            status_code=403, detail="White-label features require a premium subscription"
        )
    return user
