"""Audit repository - Database operations for audit logs"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import AuditLog


class AuditRepository:
    """Repository for audit log database operations"""

    @staticmethod
    def create(db: Session, **data) -> AuditLog:
        log = AuditLog(**data)
        db.add(log)
        db.commit()
        return log

    @staticmethod
    def list_for_user(
        db: Session,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        action: Optional[str] = None,
        resource: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> tuple[list[AuditLog], int]:
        query = db.query(AuditLog).filter(AuditLog.user_id == user_id)
        if action:
            query = query.filter(AuditLog.action == action)
        if resource:
            query = query.filter(AuditLog.resource == resource)
        if start_date:
            query = query.filter(AuditLog.created_at >= start_date)
        if end_date:
            query = query.filter(AuditLog.created_at <= end_date)

        total = query.count()
        logs = query.order_by(AuditLog.created_at.desc()).offset(offset).limit(limit).all()
        return logs, total

    @staticmethod
    def list_actions(db: Session, user_id: str, actions: tuple, limit: int) -> list[AuditLog]:
        return (
            db.query(AuditLog)
            .filter(AuditLog.user_id == user_id, AuditLog.action.in_(actions))
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def count_since(db: Session, user_id: str, action: str, since: datetime) -> int:
        return (
            db.query(AuditLog)
            .filter(
                AuditLog.user_id == user_id,
                AuditLog.action == action,
                AuditLog.created_at >= since,
            )
            .count()
        )

    @staticmethod
    def distinct_ips_since(db: Session, user_id: str, action: str, since: datetime) -> int:
        rows = (
            db.query(AuditLog.ip_address)
            .filter(
                AuditLog.user_id == user_id,
                AuditLog.action == action,
                AuditLog.created_at >= since,
            )
            .distinct()
            .all()
        )
        return len(rows)

    @staticmethod
    def delete_before(db: Session, cutoff: datetime) -> int:
        deleted = (
            db.query(AuditLog).filter(AuditLog.created_at < cutoff).delete(synchronize_session=False)
        )
        db.commit()
        return deleted
