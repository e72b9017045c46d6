from sqlalchemy.orm import Session
from typing import List, Optional
from models.audit_log import AuditLog


def add_audit_log(db: Session, actor_id: Optional[int], action: str, meta: dict = None) -> AuditLog:
    """Stage an audit entry in the current transaction; the caller commits"""
    log = AuditLog(actor_id=actor_id, action=action, meta=meta or {})
    db.add(log)
    return log


def get_audit_logs(db: Session, skip: int = 0, limit: int = 50, action: str = None) -> List[AuditLog]:
    """Audit entries, newest first"""
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit).all()


def get_audit_logs_count(db: Session, action: str = None) -> int:
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    return query.count()
