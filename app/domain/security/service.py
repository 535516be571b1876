"""Security service - TOTP two-factor authentication and the audit trail"""

import base64
import io
import logging
import secrets
import string
from datetime import timedelta
from typing import Optional

import pyotp
import qrcode
from fastapi import HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import APP_NAME
from ...models import AuditLog, User
from ...security_utils import get_client_ip, get_user_agent
from ...shared.crypto import decrypt_value, encrypt_value, hash_value
from ...shared.dates import parse_datetime, utc_now
from .repository import AuditRepository

logger = logging.getLogger(__name__)

BACKUP_CODE_COUNT = 10

SECURITY_ACTIONS = (
    "LOGIN_SUCCESS",
    "LOGIN_FAILED",
    "PASSWORD_RESET",
    "PASSWORD_CHANGED",
    "TWO_FACTOR_ENABLED",
    "TWO_FACTOR_DISABLED",
    "SECURITY_ALERT",
    "SUSPICIOUS_ACTIVITY",
)
LOGIN_ACTIONS = ("LOGIN_SUCCESS", "LOGIN_FAILED")

FAILED_LOGIN_THRESHOLD = 5
DISTINCT_IP_THRESHOLD = 3
AUDIT_RETENTION_DAYS = 90


# ============================================================================
# AUDIT TRAIL
# ============================================================================


def create_audit_log(
    db: Session,
    action: str,
    resource: Optional[str] = None,
    user_id: Optional[str] = None,
    resource_id: Optional[str] = None,
    request: Optional[Request] = None,
    metadata: Optional[dict] = None,
) -> Optional[AuditLog]:
    """Record an audit entry; failures are logged and never reach the caller"""
    try:
        return AuditRepository.create(
            db,
            user_id=user_id,
            action=action,
            resource=resource,
            resource_id=resource_id,
            ip_address=get_client_ip(request) if request is not None else None,
            user_agent=get_user_agent(request) if request is not None else None,
            log_metadata=metadata,
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to create audit log ({action}): {e}")
        return None


def detect_suspicious_activity(db: Session, user_id: str) -> bool:
    """Flag bursts of failed logins or logins from many addresses within an hour"""
    since = utc_now() - timedelta(hours=1)

    failed = AuditRepository.count_since(db, user_id, "LOGIN_FAILED", since)
    if failed >= FAILED_LOGIN_THRESHOLD:
        create_audit_log(
            db,
            "SUSPICIOUS_ACTIVITY",
            "authentication",
            user_id=user_id,
            metadata={"reason": "Multiple failed login attempts", "count": failed},
        )
        logger.warning(f"⚠️ Suspicious activity for user {user_id}: {failed} failed logins")
        return True

    ip_count = AuditRepository.distinct_ips_since(db, user_id, "LOGIN_SUCCESS", since)
    if ip_count >= DISTINCT_IP_THRESHOLD:
        create_audit_log(
            db,
            "SUSPICIOUS_ACTIVITY",
            "authentication",
            user_id=user_id,
            metadata={"reason": "Multiple IPs in short time", "ipCount": ip_count},
        )
        logger.warning(f"⚠️ Suspicious activity for user {user_id}: {ip_count} addresses")
        return True

    return False


def cleanup_old_audit_logs(db: Session, retention_days: int = AUDIT_RETENTION_DAYS) -> int:
    deleted = AuditRepository.delete_before(db, utc_now() - timedelta(days=retention_days))
    logger.info(f"🧹 Removed {deleted} audit logs older than {retention_days} days")
    return deleted


class AuditService:
    """Read side of the audit trail"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AuditRepository()

    def get_logs(
        self,
        user: User,
        limit: int = 50,
        offset: int = 0,
        action: Optional[str] = None,
        resource: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> tuple[list[AuditLog], int]:
        try:
            start = parse_datetime(start_date) if start_date else None
            end = parse_datetime(end_date) if end_date else None
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid date format") from e
        return self.repo.list_for_user(
            self.db, user.id, limit, offset, action, resource, start, end
        )

    def get_security_overview(self, user: User) -> tuple[list[AuditLog], list[AuditLog]]:
        return (
            self.repo.list_actions(self.db, user.id, SECURITY_ACTIONS, 10),
            self.repo.list_actions(self.db, user.id, LOGIN_ACTIONS, 20),
        )


# ============================================================================
# TWO-FACTOR AUTHENTICATION
# ============================================================================


def generate_backup_codes(count: int = BACKUP_CODE_COUNT) -> list[str]:
    """Generate cryptographically secure backup codes"""
    charset = string.ascii_uppercase + string.digits
    codes = []
    for _ in range(count):
        first = "".join(secrets.choice(charset) for _ in range(4))
        second = "".join(secrets.choice(charset) for _ in range(4))
        codes.append(f"{first}-{second}")
    return codes


def hash_backup_code(code: str) -> str:
    return hash_value(code.strip().upper())


def render_qr_data_url(data: str) -> str:
    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return f"data:image/png;base64,{base64.b64encode(buffer.getvalue()).decode()}"


class TwoFactorService:
    """Service layer for TOTP setup and verification"""

    def __init__(self, db: Session):
        self.db = db

    def setup(self, user: User) -> dict:
        """Generate a secret and backup codes; nothing is stored until enable()"""
        secret = pyotp.random_base32()
        provisioning_uri = pyotp.TOTP(secret).provisioning_uri(name=user.email, issuer_name=APP_NAME)
        return {
            "secret": secret,
            "qrCodeUrl": provisioning_uri,
            "qrCode": render_qr_data_url(provisioning_uri),
            "backupCodes": generate_backup_codes(),
        }

    def enable(
        self,
        user: User,
        secret: Optional[str],
        code: Optional[str],
        backup_codes: Optional[list[str]],
        request: Optional[Request] = None,
    ) -> None:
        if not secret or not code or not backup_codes:
            raise HTTPException(status_code=400, detail="Missing required fields")
        if not pyotp.TOTP(secret).verify(code.strip(), valid_window=1):
            raise HTTPException(status_code=400, detail="Invalid verification code")

        user.two_factor_enabled = True
        user.two_factor_secret = encrypt_value(secret)
        user.backup_codes = [hash_backup_code(c) for c in backup_codes]
        self.db.commit()

        create_audit_log(self.db, "TWO_FACTOR_ENABLED", "security", user_id=user.id, request=request)
        logger.info(f"🔐 2FA enabled for user {user.id}")

    def disable(self, user: User, request: Optional[Request] = None) -> None:
        user.two_factor_enabled = False
        user.two_factor_secret = None
        user.backup_codes = None
        self.db.commit()

        create_audit_log(self.db, "TWO_FACTOR_DISABLED", "security", user_id=user.id, request=request)
        logger.info(f"🔓 2FA disabled for user {user.id}")

    def verify(self, user: User, code: Optional[str], request: Optional[Request] = None) -> bool:
        """Accept a TOTP code (one step of clock skew) or consume a backup code"""
        if not code:
            raise HTTPException(status_code=400, detail="Code is required")

        verified = self._check_code(user, code.strip())
        create_audit_log(
            self.db,
            "LOGIN_SUCCESS" if verified else "LOGIN_FAILED",
            "authentication",
            user_id=user.id,
            request=request,
            metadata={"method": "two_factor"},
        )
        if not verified:
            detect_suspicious_activity(self.db, user.id)
            raise HTTPException(status_code=400, detail="Invalid code")
        return True

    def _check_code(self, user: User, code: str) -> bool:
        if not user.two_factor_enabled:
            return False

        secret = decrypt_value(user.two_factor_secret)
        if secret and pyotp.TOTP(secret).verify(code, valid_window=1):
            return True

        hashed = hash_backup_code(code)
        stored = list(user.backup_codes or [])
        if hashed in stored:
            stored.remove(hashed)
            user.backup_codes = stored
            self.db.commit()
            logger.info(f"🔑 Backup code used by user {user.id} ({len(stored)} left)")
            return True
        return False

    @staticmethod
    def remaining_backup_codes(user: User) -> int:
        return len(user.backup_codes or [])

    def regenerate_backup_codes(self, user: User, request: Optional[Request] = None) -> list[str]:
        if not user.two_factor_enabled:
            raise HTTPException(status_code=400, detail="Two-factor authentication is not enabled")

        codes = generate_backup_codes()
        user.backup_codes = [hash_backup_code(c) for c in codes]
        self.db.commit()

        create_audit_log(
            self.db, "BACKUP_CODES_REGENERATED", "security", user_id=user.id, request=request
        )
        return codes
