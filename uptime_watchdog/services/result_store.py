"""
Result store: append-only persistence of probe results plus the read paths
used by aggregation, the dashboard and detector seeding.
"""
import logging
from collections import OrderedDict
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.target import Target
from ..models.uptime_record import UptimeRecord
from ..schemas.probe import ProbeResult
from ..utils.time_utils import start_of_day

logger = logging.getLogger(__name__)


def record_result(db: Session, target_id: int, result: ProbeResult) -> UptimeRecord:
    record = UptimeRecord(
        target_id=target_id,
        timestamp=result.timestamp,
        status_code=result.http_status,
        is_up=result.is_up,
        latency_ms=result.latency_ms,
        error_message=result.error_message,
    )
    db.add(record)
    db.flush()
    return record


def get_by_date_range(db: Session, target_id: int, start: datetime, end: datetime):
    """Records for a target with start <= timestamp < end, oldest first."""
    return db.query(UptimeRecord).filter(
        UptimeRecord.target_id == target_id,
        UptimeRecord.timestamp >= start,
        UptimeRecord.timestamp < end,
    ).order_by(UptimeRecord.timestamp.asc(), UptimeRecord.id.asc()).all()


def get_latest(db: Session, target_id: int) -> UptimeRecord | None:
    return db.query(UptimeRecord)\
        .filter(UptimeRecord.target_id == target_id)\
        .order_by(UptimeRecord.timestamp.desc(), UptimeRecord.id.desc())\
        .first()


def get_latest_per_target(db: Session) -> dict[str, UptimeRecord]:
    """Latest record for every target that has one, keyed by target name."""
    latest_ts = db.query(
        UptimeRecord.target_id.label("target_id"),
        func.max(UptimeRecord.timestamp).label("max_ts"),
    ).group_by(UptimeRecord.target_id).subquery()

    rows = db.query(Target.name, UptimeRecord)\
        .join(UptimeRecord, UptimeRecord.target_id == Target.id)\
        .join(latest_ts, (latest_ts.c.target_id == UptimeRecord.target_id) & (latest_ts.c.max_ts == UptimeRecord.timestamp))\
        .all()

    latest = {}
    for name, record in rows:
        # Two records can share a timestamp; the later insert wins
        current = latest.get(name)
        if current is None or record.id > current.id:
            latest[name] = record
    return latest


def get_latency_stats(db: Session, target_id: int, start: datetime, end: datetime) -> list[dict]:
    """Hourly latency buckets (count/avg/min/max) over non-zero latencies."""
    records = db.query(UptimeRecord.timestamp, UptimeRecord.latency_ms).filter(
        UptimeRecord.target_id == target_id,
        UptimeRecord.timestamp >= start,
        UptimeRecord.timestamp < end,
        UptimeRecord.latency_ms > 0,
    ).order_by(UptimeRecord.timestamp.asc()).all()

    buckets = OrderedDict()
    for timestamp, latency in records:
        hour = timestamp.replace(minute=0, second=0, microsecond=0)
        buckets.setdefault(hour, []).append(latency)

    return [
        {
            "hour": hour,
            "count": len(values),
            "avg_latency_ms": round(sum(values) / len(values), 2),
            "min_latency_ms": min(values),
            "max_latency_ms": max(values),
        }
        for hour, values in buckets.items()
    ]


def count_all(db: Session, target_id: int | None = None) -> int:
    query = db.query(func.count(UptimeRecord.id))
    if target_id is not None:
        query = query.filter(UptimeRecord.target_id == target_id)
    return query.scalar() or 0


def retention_cutoff(now: datetime, retention_days: int) -> datetime:
    """
    Rows strictly before the returned instant may be purged.

    Never later than today's midnight, so an in-progress day is never truncated
    even with a zero-day horizon.
    """
    return min(now - timedelta(days=max(0, retention_days)), start_of_day(now))


def delete_older_than(db: Session, cutoff: datetime) -> int:
    deleted = db.query(UptimeRecord)\
        .filter(UptimeRecord.timestamp < cutoff)\
        .delete(synchronize_session=False)
    if deleted:
        logger.info(f"🗑️ Deleted {deleted} old uptime records")
    return deleted
