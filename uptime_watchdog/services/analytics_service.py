import logging
from datetime import date, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import incident_service, result_store
from ..models.daily_summary import DailySummary
from ..models.incident import Incident
from ..models.target import Target
from ..models.uptime_record import UptimeRecord
from ..utils.time_utils import day_bounds, utcnow

logger = logging.getLogger(__name__)


def is_successful(record) -> bool:
    """A check counts toward uptime only when it was up with a 2xx status."""
    return bool(record.is_up) and 200 <= (record.status_code or 0) < 300


def generate_daily_summary(db: Session, target_id: int, day: date, now=None):
    """
    Compute and upsert the summary for one target on one day.

    Returns None (and writes nothing) when the target had no checks that day.
    Re-running for the same day overwrites the existing row.
    """
    now = now or utcnow()
    start, end = day_bounds(day)

    records = result_store.get_by_date_range(db, target_id, start, end)
    if not records:
        logger.info(f"⚠️ No uptime records for target {target_id} on {day.isoformat()}, skipping")
        return None

    total_checks = len(records)
    successful_checks = sum(1 for r in records if is_successful(r))
    failed_checks = total_checks - successful_checks
    uptime_percentage = round(successful_checks / total_checks * 100, 2)

    latencies = [r.latency_ms for r in records if r.latency_ms and r.latency_ms > 0]
    avg_latency = round(sum(latencies) / len(latencies), 2) if latencies else 0.0
    min_latency = min(latencies) if latencies else 0
    max_latency = max(latencies) if latencies else 0

    # Downtime counts every incident overlapping the day, clipped to it;
    # incident_count only those that started on it.
    overlapping = incident_service.get_overlapping(db, target_id, start, end)
    downtime_seconds = sum(incident_service.overlap_seconds(i, start, end, now) for i in overlapping)
    incident_count = sum(1 for i in overlapping if start <= i.start_time < end)

    summary = db.query(DailySummary).filter_by(target_id=target_id, date=day).first()
    if not summary:
        summary = DailySummary(target_id=target_id, date=day)
        db.add(summary)

    summary.total_checks = total_checks
    summary.successful_checks = successful_checks
    summary.failed_checks = failed_checks
    summary.uptime_percentage = uptime_percentage
    summary.avg_latency_ms = avg_latency
    summary.min_latency_ms = min_latency
    summary.max_latency_ms = max_latency
    summary.downtime_minutes = downtime_seconds // 60
    summary.incident_count = incident_count
    summary.updated_at = now
    db.flush()

    logger.info(f"✅ Summary for target {target_id} on {day.isoformat()}: {uptime_percentage:.2f}% uptime")
    return summary


def generate_daily_summaries_for_all(database, day: date) -> int:
    """
    Generate summaries for every target. Best-effort: a failing target is
    logged and skipped, the rest still get their summary.
    """
    with database.session() as db:
        target_ids = [t.id for t in db.query(Target).order_by(Target.id).all()]

    generated = 0
    for target_id in target_ids:
        try:
            with database.writer() as db:
                if generate_daily_summary(db, target_id, day) is not None:
                    generated += 1
        except Exception as e:
            logger.error(f"❌ Error generating daily summary for target {target_id}: {e}")

    logger.info(f"✅ Daily summaries generated for {generated}/{len(target_ids)} targets ({day.isoformat()})")
    return generated


def get_uptime_percentage(db: Session, target_id: int, start, end) -> float:
    records = result_store.get_by_date_range(db, target_id, start, end)
    if not records:
        return 0.0
    successful = sum(1 for r in records if is_successful(r))
    return round(successful / len(records) * 100, 2)


def get_average_latency(db: Session, target_id: int, start, end) -> float:
    avg = db.query(func.avg(UptimeRecord.latency_ms)).filter(
        UptimeRecord.target_id == target_id,
        UptimeRecord.timestamp >= start,
        UptimeRecord.timestamp < end,
        UptimeRecord.latency_ms > 0,
    ).scalar()
    return round(float(avg), 2) if avg is not None else 0.0


def get_target_metrics(db: Session, target_id: int, days: int = 30, now=None):
    """
    Metrics for a target over the last `days` days.
    days: 1 (24 hours), 7 (week), 30 (month)
    """
    end_time = now or utcnow()
    start_time = end_time - timedelta(days=days)

    longest = incident_service.get_longest_incident(db, target_id, start_time, end_time)
    return {
        "target_id": target_id,
        "period_days": days,
        "start_time": start_time,
        "end_time": end_time,
        "total_checks": db.query(func.count(UptimeRecord.id)).filter(
            UptimeRecord.target_id == target_id,
            UptimeRecord.timestamp >= start_time,
            UptimeRecord.timestamp < end_time,
        ).scalar() or 0,
        "uptime_percentage": get_uptime_percentage(db, target_id, start_time, end_time),
        "avg_latency_ms": get_average_latency(db, target_id, start_time, end_time),
        "total_downtime_seconds": incident_service.get_total_downtime(db, target_id, start_time, end_time),
        "incident_count": len(incident_service.get_by_date_range(db, target_id, start_time, end_time)),
        "mttr_seconds": incident_service.get_mttr(db, target_id, start_time, end_time),
        "longest_incident_seconds": longest.duration_seconds if longest else None,
    }


def get_summaries(db: Session, target_id: int, days: int = 30, today=None):
    """Stored daily summaries for the last `days` days, newest first."""
    today = today or utcnow().date()
    start_date = today - timedelta(days=days)
    return db.query(DailySummary).filter(
        DailySummary.target_id == target_id,
        DailySummary.date >= start_date,
        DailySummary.date <= today,
    ).order_by(DailySummary.date.desc()).all()


def get_uptime_trend(db: Session, target_id: int, days: int = 30, today=None):
    """Daily summaries for the last `days` days, oldest first, for charting."""
    return list(reversed(get_summaries(db, target_id, days, today)))


def get_sla_report(db: Session, sla_target: float, days: int = 30, today=None) -> list[dict]:
    """
    Compare each enabled target's average daily uptime against sla_target.
    A target with no summaries in the period counts as 0% uptime.
    """
    today = today or utcnow().date()
    start_date = today - timedelta(days=days)

    averages = dict(
        db.query(DailySummary.target_id, func.avg(DailySummary.uptime_percentage))
        .filter(DailySummary.date >= start_date, DailySummary.date <= today)
        .group_by(DailySummary.target_id)
        .all()
    )

    report = []
    for target in db.query(Target).filter(Target.enabled.is_(True)).order_by(Target.name).all():
        actual = round(float(averages.get(target.id) or 0.0), 2)
        report.append({
            "target_id": target.id,
            "target_name": target.name,
            "sla_target_percentage": sla_target,
            "actual_uptime": actual,
            "sla_compliant": actual >= sla_target,
            "uptime_gap": round(sla_target - actual, 2),
        })
    return report


def get_dashboard_summary(db: Session, now=None):
    now = now or utcnow()
    week_ago = now - timedelta(days=7)

    targets = db.query(Target).filter(Target.enabled.is_(True)).all()
    average_uptime = db.query(func.avg(DailySummary.uptime_percentage))\
        .filter(DailySummary.date >= week_ago.date())\
        .scalar()

    return {
        "total_targets": len(targets),
        "targets_up": sum(1 for t in targets if t.current_status == "up"),
        "targets_down": sum(1 for t in targets if t.current_status == "down"),
        "average_uptime": round(float(average_uptime), 2) if average_uptime is not None else None,
        "total_incidents_last_7": db.query(func.count(Incident.id))
            .filter(Incident.start_time >= week_ago).scalar() or 0,
        "targets_with_issues": db.query(func.count(func.distinct(Incident.target_id)))
            .filter(Incident.end_time.is_(None)).scalar() or 0,
        "last_update": now,
    }


def delete_older_than(db: Session, cutoff) -> int:
    """Drop summaries for days before the cutoff's date."""
    deleted = db.query(DailySummary)\
        .filter(DailySummary.date < cutoff.date())\
        .delete(synchronize_session=False)
    if deleted:
        logger.info(f"🗑️ Deleted {deleted} old daily summaries")
    return deleted


def count_summaries(db: Session) -> int:
    return db.query(func.count(DailySummary.id)).scalar() or 0
