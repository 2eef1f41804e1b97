"""
Runtime settings changes.

Changes apply to the running watchdog (probe job interval, probe timeout and
round deadline, maintenance schedule) and are audited, but are not written
back to the environment or the targets file: a restart starts from those again.
"""
import logging

from .audit_service import log_audit
from .monitor_service import PROBE_JOB_ID, MonitorContext
from ..config import parse_time_of_day

logger = logging.getLogger(__name__)

PROBE_KEYS = ("check_interval_seconds", "timeout_seconds", "round_deadline_seconds")


def current_settings(context: MonitorContext) -> dict:
    settings = context.settings
    maintenance = context.maintenance.get_status()
    return {
        "check_interval_seconds": settings.CHECK_INTERVAL_SECONDS,
        "timeout_seconds": settings.TIMEOUT_SECONDS,
        "round_deadline_seconds": context.dispatcher.round_deadline,
        "retention_days": maintenance["retention_days"],
        "aggregation_time": maintenance["aggregation_time"],
        "cleanup_time": maintenance["cleanup_time"],
        "daily_aggregation_enabled": maintenance["daily_aggregation_enabled"],
        "data_cleanup_enabled": maintenance["data_cleanup_enabled"],
        "sla_target_percentage": settings.SLA_TARGET_PERCENTAGE,
    }


def apply_settings(context: MonitorContext, changes: dict) -> dict:
    """
    Apply the given changes and return the resulting settings.

    Raises ValueError for a malformed time of day, before anything is changed.
    Interval and timeout are clamped the same way as at startup.
    """
    aggregation_time = parse_time_of_day(changes["aggregation_time"]) if "aggregation_time" in changes else None
    cleanup_time = parse_time_of_day(changes["cleanup_time"]) if "cleanup_time" in changes else None

    old = current_settings(context)
    settings = context.settings
    maintenance = context.maintenance

    if "check_interval_seconds" in changes:
        settings.CHECK_INTERVAL_SECONDS = changes["check_interval_seconds"]
    if "timeout_seconds" in changes:
        settings.TIMEOUT_SECONDS = changes["timeout_seconds"]
    if "round_deadline_seconds" in changes:
        settings.ROUND_DEADLINE_SECONDS = changes["round_deadline_seconds"]
    if "sla_target_percentage" in changes:
        settings.SLA_TARGET_PERCENTAGE = changes["sla_target_percentage"]
    settings.normalize()

    if any(key in changes for key in PROBE_KEYS):
        context.dispatcher.configure(settings.TIMEOUT_SECONDS, settings.round_deadline)

    if "check_interval_seconds" in changes:
        _reschedule_probe_job(context, settings.CHECK_INTERVAL_SECONDS)

    if "retention_days" in changes:
        maintenance.set_retention_days(changes["retention_days"])
        settings.RETENTION_DAYS = maintenance.retention_days
    if aggregation_time is not None:
        maintenance.set_aggregation_time(*aggregation_time)
        settings.AGGREGATION_TIME = changes["aggregation_time"]
    if cleanup_time is not None:
        maintenance.set_cleanup_time(*cleanup_time)
        settings.CLEANUP_TIME = changes["cleanup_time"]
    if "daily_aggregation_enabled" in changes:
        maintenance.enable_daily_aggregation(changes["daily_aggregation_enabled"])
    if "data_cleanup_enabled" in changes:
        maintenance.enable_data_cleanup(changes["data_cleanup_enabled"])

    new = current_settings(context)
    changed = {key: value for key, value in new.items() if old[key] != value}
    if changed:
        with context.database.writer() as db:
            log_audit(
                db, "settings_updated", "settings",
                new_value=changed,
                old_value={key: old[key] for key in changed},
            )
        logger.info(f"⚙️ Settings updated: {', '.join(f'{k}={v}' for k, v in changed.items())}")
    return new


def _reschedule_probe_job(context: MonitorContext, seconds: int):
    scheduler = context.scheduler
    if scheduler is None or scheduler.get_job(PROBE_JOB_ID) is None:
        return
    scheduler.reschedule_job(PROBE_JOB_ID, trigger="interval", seconds=seconds)
    logger.info(f"🔁 Check interval set to {seconds}s")
