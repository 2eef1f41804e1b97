"""
Retention cleanup.

Categories are deleted one transaction at a time, in a fixed order. The first
failure stops the run: the remaining categories wait for the next scheduled
trigger instead of leaving a patchwork of partial deletes. This is stricter
than aggregation, which skips a failing target and carries on.
"""
import logging

from . import analytics_service, audit_service, incident_service, notification_service, result_store
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)

CLEANUP_STEPS = (
    ("uptime_records", result_store.delete_older_than),
    ("incidents", incident_service.delete_older_than),
    ("daily_summaries", analytics_service.delete_older_than),
    ("notification_logs", notification_service.delete_older_than),
    ("audit_logs", audit_service.delete_older_than),
)


class CleanupError(Exception):
    def __init__(self, category: str, skipped: list[str], deleted: dict, cause: Exception):
        self.category = category
        self.skipped = skipped
        self.deleted = deleted
        self.cause = cause
        super().__init__(
            f"Cleanup failed on {category}: {cause}"
            + (f" (skipped: {', '.join(skipped)})" if skipped else "")
        )


def cleanup_old_data(database, retention_days: int, now=None) -> dict:
    """Delete rows older than the retention horizon. Returns deleted counts per category."""
    now = now or utcnow()
    cutoff = result_store.retention_cutoff(now, retention_days)
    logger.info(f"🧹 Starting data cleanup (retention: {retention_days} days, cutoff: {cutoff.isoformat()})")

    deleted = {}
    for index, (category, delete) in enumerate(CLEANUP_STEPS):
        try:
            with database.writer() as db:
                deleted[category] = delete(db, cutoff)
        except Exception as e:
            skipped = [name for name, _ in CLEANUP_STEPS[index + 1:]]
            logger.error(f"❌ Cleanup of {category} failed, aborting run: {e}")
            raise CleanupError(category, skipped, deleted, e) from e

    logger.info(
        "✅ Cleanup complete: "
        + ", ".join(f"{count} {category}" for category, count in deleted.items())
        + " deleted"
    )
    return deleted
