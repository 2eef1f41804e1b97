"""
Incident ledger.

An incident opens on a went-down transition and closes on the matching
recovery. Callers run these inside Database.writer() so the lookup and the
write happen under the same lock; the partial unique index on open incidents
backs this up at the database level.
"""
import logging
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from .audit_service import log_audit
from ..models.incident import Incident

logger = logging.getLogger(__name__)


def get_ongoing(db: Session, target_id: int) -> Incident | None:
    return db.query(Incident)\
        .filter(Incident.target_id == target_id, Incident.end_time.is_(None))\
        .order_by(Incident.start_time.desc())\
        .first()


def open_incident(db: Session, target_id: int, target_name: str, now: datetime, note: str | None = None) -> Incident:
    """
    Open an incident for a target unless one is already open.

    An existing open incident means the in-memory state was lost (e.g. restart);
    it is returned untouched.
    """
    ongoing = get_ongoing(db, target_id)
    if ongoing:
        logger.info(f"⏳ Ongoing incident already exists for {target_name} (incident {ongoing.id})")
        return ongoing

    incident = Incident(target_id=target_id, start_time=now, note=note)
    db.add(incident)
    db.flush()

    log_audit(db, "incident_started", "incident", incident.id, {
        "target_id": target_id,
        "target_name": target_name,
        "start_time": incident.start_time.isoformat(),
    })
    logger.info(f"🚨 Incident started for {target_name} (incident {incident.id})")
    return incident


def close_incident(db: Session, target_id: int, target_name: str, now: datetime) -> Incident | None:
    """Close the open incident for a target. Returns None when nothing was open."""
    ongoing = get_ongoing(db, target_id)
    if not ongoing:
        logger.info(f"⏭️ No open incident for {target_name}, nothing to close")
        return None

    ongoing.end_time = now
    ongoing.duration_seconds = max(0, int((ongoing.end_time - ongoing.start_time).total_seconds()))
    db.flush()

    log_audit(db, "incident_closed", "incident", ongoing.id, {
        "target_id": target_id,
        "target_name": target_name,
        "start_time": ongoing.start_time.isoformat(),
        "end_time": ongoing.end_time.isoformat(),
        "duration_seconds": ongoing.duration_seconds,
    })
    logger.info(f"✅ Incident closed for {target_name} (duration: {ongoing.duration_seconds} seconds)")
    return ongoing


def get_by_target(db: Session, target_id: int):
    return db.query(Incident)\
        .filter(Incident.target_id == target_id)\
        .order_by(Incident.start_time.desc())\
        .all()


def get_by_date_range(db: Session, target_id: int, start: datetime, end: datetime):
    """Incidents that started in [start, end)."""
    return db.query(Incident).filter(
        Incident.target_id == target_id,
        Incident.start_time >= start,
        Incident.start_time < end,
    ).order_by(Incident.start_time.asc()).all()


def get_overlapping(db: Session, target_id: int, start: datetime, end: datetime):
    """Incidents with any downtime inside [start, end), including ones still open."""
    return db.query(Incident).filter(
        Incident.target_id == target_id,
        Incident.start_time < end,
        or_(Incident.end_time.is_(None), Incident.end_time > start),
    ).order_by(Incident.start_time.asc()).all()


def overlap_seconds(incident: Incident, start: datetime, end: datetime, now: datetime) -> int:
    """Seconds of an incident that fall inside [start, end). Open incidents run until now."""
    incident_end = incident.end_time or now
    overlap = (min(incident_end, end) - max(incident.start_time, start)).total_seconds()
    return max(0, int(overlap))


def get_total_downtime(db: Session, target_id: int, start: datetime, end: datetime) -> int:
    """Total seconds of closed incidents that started in [start, end)."""
    total = db.query(func.coalesce(func.sum(Incident.duration_seconds), 0)).filter(
        Incident.target_id == target_id,
        Incident.start_time >= start,
        Incident.start_time < end,
        Incident.end_time.isnot(None),
    ).scalar()
    return int(total or 0)


def get_mttr(db: Session, target_id: int, start: datetime, end: datetime) -> int | None:
    """Mean Time To Repair over resolved incidents in the window, None if there were none."""
    avg = db.query(func.avg(Incident.duration_seconds)).filter(
        Incident.target_id == target_id,
        Incident.start_time >= start,
        Incident.start_time < end,
        Incident.end_time.isnot(None),
    ).scalar()
    return int(avg) if avg is not None else None


def get_longest_incident(db: Session, target_id: int, start: datetime, end: datetime) -> Incident | None:
    return db.query(Incident).filter(
        Incident.target_id == target_id,
        Incident.start_time >= start,
        Incident.start_time < end,
        Incident.end_time.isnot(None),
    ).order_by(Incident.duration_seconds.desc()).first()


def count_incidents(db: Session, target_id: int | None = None) -> int:
    query = db.query(func.count(Incident.id))
    if target_id is not None:
        query = query.filter(Incident.target_id == target_id)
    return query.scalar() or 0


def count_open(db: Session, target_id: int | None = None) -> int:
    query = db.query(func.count(Incident.id)).filter(Incident.end_time.is_(None))
    if target_id is not None:
        query = query.filter(Incident.target_id == target_id)
    return query.scalar() or 0


def delete_older_than(db: Session, cutoff: datetime) -> int:
    # Open incidents are kept regardless of age: the ledger still needs them to close
    deleted = db.query(Incident).filter(
        Incident.start_time < cutoff,
        Incident.end_time.isnot(None),
    ).delete(synchronize_session=False)
    if deleted:
        logger.info(f"🗑️ Deleted {deleted} old incidents")
    return deleted
