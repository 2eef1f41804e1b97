"""
Daily aggregation and retention scheduler.

A short interval job ticks (once a minute by default) and fires each task when
the tick lands within one tick of its scheduled HH:MM. Each task runs at most
once per calendar day. If the process is down across a window, that day's run
is skipped: there is no catch-up.
"""
import logging
import threading
import time
from datetime import date, datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler

from .analytics_service import generate_daily_summaries_for_all
from .cleanup_service import CleanupError, cleanup_old_data
from ..config import parse_time_of_day
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)

JOB_ID = "maintenance_tick"


class MaintenanceService:
    def __init__(
        self,
        database,
        retention_days: int = 90,
        aggregation_time: str = "01:00",
        cleanup_time: str = "03:00",
        tick_seconds: int = 60,
    ):
        self.database = database
        self.tick_seconds = tick_seconds
        self._lock = threading.RLock()
        self._scheduler: BackgroundScheduler | None = None
        self._owns_scheduler = False

        self.daily_aggregation = True
        self.data_cleanup = True
        self.aggregation_time = parse_time_of_day(aggregation_time)
        self.cleanup_time = parse_time_of_day(cleanup_time)
        self.retention_days = retention_days

        self._last_run: dict[str, date] = {}
        self.last_results: dict[str, dict] = {}

    # -- lifecycle -----------------------------------------------------------

    def start(self, scheduler: BackgroundScheduler | None = None):
        with self._lock:
            if self._scheduler is not None:
                return  # Already running
            if scheduler is None:
                scheduler = BackgroundScheduler()
                self._owns_scheduler = True
            scheduler.add_job(
                self.check_and_run_tasks,
                "interval",
                seconds=self.tick_seconds,
                id=JOB_ID,
                max_instances=1,
                replace_existing=True,
            )
            if self._owns_scheduler:
                scheduler.start()
            self._scheduler = scheduler

        logger.info(
            f"✅ Maintenance service started (Aggregation: {self._fmt(self.aggregation_time)}, "
            f"Cleanup: {self._fmt(self.cleanup_time)}, Retention: {self.retention_days} days)"
        )

    def stop(self):
        with self._lock:
            if self._scheduler is None:
                return
            if self._scheduler.get_job(JOB_ID):
                self._scheduler.remove_job(JOB_ID)
            if self._owns_scheduler and self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self._owns_scheduler = False
        logger.info("✅ Maintenance service stopped")

    # -- scheduling ----------------------------------------------------------

    def is_time_to_run(self, now: datetime, scheduled: tuple[int, int]) -> bool:
        """True when now falls within one tick after today's HH:MM."""
        hour, minute = scheduled
        today_scheduled = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
        diff = now - today_scheduled
        return timedelta(0) <= diff < timedelta(seconds=self.tick_seconds)

    def check_and_run_tasks(self, now: datetime | None = None):
        now = now or utcnow()
        with self._lock:
            run_aggregation = self.daily_aggregation and self._due("aggregation", now, self.aggregation_time)
            run_cleanup = self.data_cleanup and self._due("cleanup", now, self.cleanup_time)

        # When both are due on the same tick, aggregation runs first
        if run_aggregation:
            self.run_daily_aggregation(now.date())
        if run_cleanup:
            self.run_data_cleanup(now)

    def _due(self, task: str, now: datetime, scheduled: tuple[int, int]) -> bool:
        if not self.is_time_to_run(now, scheduled):
            return False
        if self._last_run.get(task) == now.date():
            return False
        self._last_run[task] = now.date()
        return True

    # -- tasks ---------------------------------------------------------------

    def run_daily_aggregation(self, today: date) -> int:
        """Summarize the previous day; today's data is still incomplete."""
        yesterday = today - timedelta(days=1)
        logger.info(f"🔄 Starting daily aggregation for {yesterday.isoformat()}...")
        return self.run_aggregation_for(yesterday)

    def run_aggregation_for(self, day: date) -> int:
        """On-demand aggregation for an explicit date. Safe to repeat."""
        start = time.perf_counter()
        generated = generate_daily_summaries_for_all(self.database, day)
        duration = time.perf_counter() - start
        self.last_results["aggregation"] = {
            "date": day.isoformat(),
            "generated": generated,
            "finished_at": utcnow().isoformat(),
        }
        logger.info(f"✅ Daily aggregation completed in {duration:.2f}s")
        return generated

    def run_data_cleanup(self, now: datetime | None = None) -> dict | None:
        logger.info("🧹 Starting data cleanup task...")
        with self._lock:
            retention_days = self.retention_days

        start = time.perf_counter()
        try:
            deleted = cleanup_old_data(self.database, retention_days, now=now)
        except CleanupError as e:
            self.last_results["cleanup"] = {
                "status": "failed",
                "failed_category": e.category,
                "skipped": e.skipped,
                "deleted": e.deleted,
                "finished_at": utcnow().isoformat(),
            }
            logger.error(f"❌ Data cleanup failed: {e}")
            return None

        self.last_results["cleanup"] = {
            "status": "success",
            "deleted": deleted,
            "finished_at": utcnow().isoformat(),
        }
        logger.info(f"✅ Data cleanup completed in {time.perf_counter() - start:.2f}s")
        return deleted

    # -- settings ------------------------------------------------------------

    def set_aggregation_time(self, hour: int, minute: int):
        with self._lock:
            self.aggregation_time = parse_time_of_day(f"{hour}:{minute}")
        logger.info(f"ℹ️ Aggregation time set to {self._fmt(self.aggregation_time)}")

    def set_cleanup_time(self, hour: int, minute: int):
        with self._lock:
            self.cleanup_time = parse_time_of_day(f"{hour}:{minute}")
        logger.info(f"ℹ️ Cleanup time set to {self._fmt(self.cleanup_time)}")

    def set_retention_days(self, days: int):
        with self._lock:
            self.retention_days = max(0, days)
        logger.info(f"ℹ️ Cleanup retention set to {days} days")

    def enable_daily_aggregation(self, enable: bool):
        with self._lock:
            self.daily_aggregation = enable
        logger.info(f"ℹ️ Daily aggregation {'enabled' if enable else 'disabled'}")

    def enable_data_cleanup(self, enable: bool):
        with self._lock:
            self.data_cleanup = enable
        logger.info(f"ℹ️ Data cleanup {'enabled' if enable else 'disabled'}")

    def get_status(self) -> dict:
        with self._lock:
            return {
                "running": self._scheduler is not None,
                "daily_aggregation_enabled": self.daily_aggregation,
                "data_cleanup_enabled": self.data_cleanup,
                "aggregation_time": self._fmt(self.aggregation_time),
                "cleanup_time": self._fmt(self.cleanup_time),
                "retention_days": self.retention_days,
                "tick_seconds": self.tick_seconds,
                "last_run": {task: day.isoformat() for task, day in self._last_run.items()},
                "last_results": dict(self.last_results),
            }

    @staticmethod
    def _fmt(hhmm: tuple[int, int]) -> str:
        return f"{hhmm[0]:02d}:{hhmm[1]:02d}"
