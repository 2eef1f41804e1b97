"""
The probe-to-incident pipeline.

Each round: probe every enabled target, feed the results through the
transition detector, persist them, open/close incidents on transitions and
notify. Every write sub-step has its own transaction so one failure only
costs that step for that target.
"""
import logging
from dataclasses import dataclass, field

from apscheduler.schedulers.background import BackgroundScheduler

from . import incident_service, result_store
from .dispatcher import ProbeDispatcher
from .maintenance_service import MaintenanceService
from .notification_service import Notifier
from .status_board import StatusBoard
from .sync_service import SyncResult
from .transition_detector import TransitionDetector
from ..config import Settings
from ..database import Database
from ..models.target import Target
from ..schemas.event import TransitionEvent, TransitionKind
from ..schemas.probe import ProbeResult
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)

PROBE_JOB_ID = "probe_round"


@dataclass
class MonitorContext:
    """Everything the pipeline needs, passed explicitly instead of held in globals."""
    settings: Settings
    database: Database
    dispatcher: ProbeDispatcher
    detector: TransitionDetector = field(default_factory=TransitionDetector)
    notifier: Notifier | None = None
    status_board: StatusBoard = field(default_factory=StatusBoard)
    maintenance: MaintenanceService | None = None
    scheduler: BackgroundScheduler | None = None
    # Outcome of the most recent targets-file sync, if any
    last_sync: SyncResult | None = None

    def __post_init__(self):
        if self.notifier is None:
            self.notifier = Notifier(self.database, self.settings.DASHBOARD_NOTIFICATION_LIMIT)

    def close(self):
        self.dispatcher.close()


class MonitorService:
    def __init__(self, context: MonitorContext):
        self.context = context

    def seed_detector(self) -> int:
        with self.context.database.session() as db:
            return self.context.detector.seed_from_records(db)

    def enabled_targets(self) -> dict[str, tuple[int, str]]:
        """name -> (id, url) for every enabled target."""
        with self.context.database.session() as db:
            targets = db.query(Target).filter(Target.enabled.is_(True)).all()
            return {t.name: (t.id, t.url) for t in targets}

    def run_checks(self) -> list[ProbeResult]:
        targets = self.enabled_targets()
        if not targets:
            logger.info("No enabled targets, skipping round")
            return []

        logger.info(f"--- Check started at {utcnow().strftime('%H:%M:%S')} ({len(targets)} targets) ---")
        results = self.context.dispatcher.run_round((name, url) for name, (_, url) in targets.items())
        self.process_round(results, {name: target_id for name, (target_id, _) in targets.items()})
        return results

    def process_round(self, results: list[ProbeResult], target_ids: dict[str, int] | None = None) -> list[TransitionEvent]:
        """Detect transitions, persist and notify for one round's results."""
        if target_ids is None:
            target_ids = self._lookup_target_ids([r.target for r in results])

        events = []
        for result in results:
            event = self.context.detector.observe(result)
            target_id = target_ids.get(result.target)

            if target_id is None:
                logger.error(f"Error looking up target {result.target}: not in database")
            else:
                self._persist_result(target_id, result)
                if event is not None:
                    self._apply_to_ledger(target_id, event)

            if event is not None:
                events.append(event)
                self._notify(event, target_id)

            icon = "✅" if result.is_up else "❌"
            logger.info(f"{icon} {result.target:<20} | Latency: {result.latency_ms}ms | Status: {result.http_status}")

        # The dashboard snapshot is refreshed even if some writes failed
        self.context.status_board.update(results)
        return events

    def _lookup_target_ids(self, names: list[str]) -> dict[str, int]:
        with self.context.database.session() as db:
            rows = db.query(Target.name, Target.id).filter(Target.name.in_(names)).all()
            return {name: target_id for name, target_id in rows}

    def _persist_result(self, target_id: int, result: ProbeResult):
        try:
            with self.context.database.writer() as db:
                result_store.record_result(db, target_id, result)
                target = db.get(Target, target_id)
                if target is not None:
                    target.current_status = "up" if result.is_up else "down"
                    target.last_checked = result.timestamp
        except Exception as e:
            logger.exception(f"Error recording uptime for {result.target}: {e}")

    def _apply_to_ledger(self, target_id: int, event: TransitionEvent):
        try:
            with self.context.database.writer() as db:
                if event.kind == TransitionKind.WENT_DOWN:
                    incident_service.open_incident(db, target_id, event.target, event.timestamp)
                else:
                    incident_service.close_incident(db, target_id, event.target, event.timestamp)
        except Exception as e:
            logger.exception(f"❌ Error updating incident for {event.target}: {e}")

    def _notify(self, event: TransitionEvent, target_id: int | None):
        try:
            self.context.notifier.notify(event, target_id)
        except Exception as e:
            logger.exception(f"❌ Error sending notifications for {event.target}: {e}")
