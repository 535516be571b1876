"""Security schemas - 2FA requests and audit log responses"""

from typing import Optional

from pydantic import BaseModel

from ...models import AuditLog
from ...shared.dates import to_iso


class EnableTwoFactorRequest(BaseModel):
    # Presence is checked by the service so that one message covers every missing field
    secret: Optional[str] = None
    code: Optional[str] = None
    backupCodes: Optional[list[str]] = None


class VerifyTwoFactorRequest(BaseModel):
    code: Optional[str] = None


def audit_log_to_response(log: AuditLog) -> dict:
    return {
        "id": log.id,
        "userId": log.user_id,
        "action": log.action,
        "resource": log.resource,
        "resourceId": log.resource_id,
        "ipAddress": log.ip_address,
        "userAgent": log.user_agent,
        "metadata": log.log_metadata,
        "createdAt": to_iso(log.created_at),
    }


def login_event_to_response(log: AuditLog) -> dict:
    return {
        "action": log.action,
        "ipAddress": log.ip_address,
        "userAgent": log.user_agent,
        "createdAt": to_iso(log.created_at),
    }
