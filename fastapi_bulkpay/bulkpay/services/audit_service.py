from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from bulkpay.models.domain import AuditLog


def log_action(
    db: Session,
    *,
    actor_id: str | None,
    action: str,
    target_type: str | None = None,
    target_id: str | None = None,
    success: bool = True,
    detail: str | None = None,
    commit: bool = False,
) -> AuditLog:
    log = AuditLog(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        success=success,
        detail=detail,
    )
    db.add(log)
    if commit:
        db.commit()
    else:
        db.flush()
    return log


def list_actions(db: Session, target_type: str, target_id: str) -> list[AuditLog]:
    stmt = (
        select(AuditLog)
        .where(AuditLog.target_type == target_type, AuditLog.target_id == target_id)
        .order_by(AuditLog.id.asc())
    )
    return list(db.scalars(stmt).all())
