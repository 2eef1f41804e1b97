import json
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def log_audit(db: Session, action: str, entity_type: str, entity_id=None, new_value=None, old_value=None, user_id="system"):
    """Append an audit entry in the caller's transaction. Dict values are stored as JSON."""
    entry = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        old_value=json.dumps(old_value, default=str) if isinstance(old_value, dict) else old_value,
        new_value=json.dumps(new_value, default=str) if isinstance(new_value, dict) else new_value,
        user_id=user_id,
        timestamp=utcnow(),
    )
    db.add(entry)
    return entry


def get_recent(db: Session, limit: int = 50):
    return db.query(AuditLog).order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()


def get_by_action(db: Session, action: str, limit: int = 50):
    return db.query(AuditLog)\
        .filter(AuditLog.action == action)\
        .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())\
        .limit(limit)\
        .all()


def count_all(db: Session) -> int:
    return db.query(func.count(AuditLog.id)).scalar() or 0


def delete_older_than(db: Session, cutoff) -> int:
    deleted = db.query(AuditLog).filter(AuditLog.timestamp < cutoff).delete(synchronize_session=False)
    if deleted:
        logger.info(f"🗑️ Deleted {deleted} old audit logs")
    return deleted
