import logging
import threading

from sqlalchemy.orm import Session

from .result_store import get_latest_per_target
from ..schemas.event import TargetState, TransitionEvent, TransitionKind
from ..schemas.probe import ProbeResult

logger = logging.getLogger(__name__)


class TransitionDetector:
    """
    Remembers the last observed up/down state per target and reports changes.

    Unknown -> Up/Down is a silent baseline. Up -> Down emits went-down,
    Down -> Up emits recovered, and a repeated state emits nothing, so a
    sustained outage yields exactly one event.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._previous: dict[str, bool] = {}

    def observe(self, result: ProbeResult) -> TransitionEvent | None:
        with self._lock:
            previous = self._previous.get(result.target)
            self._previous[result.target] = result.is_up

        # First observation only establishes the baseline
        if previous is None or previous == result.is_up:
            return None

        kind = TransitionKind.RECOVERED if result.is_up else TransitionKind.WENT_DOWN
        return TransitionEvent(
            target=result.target,
            url=result.url,
            kind=kind,
            previous_state=TargetState.from_is_up(previous),
            new_state=TargetState.from_is_up(result.is_up),
            latency_ms=result.latency_ms,
            status_code=result.http_status,
            timestamp=result.timestamp,
        )

    def state(self, name: str) -> TargetState:
        with self._lock:
            previous = self._previous.get(name)
        if previous is None:
            return TargetState.UNKNOWN
        return TargetState.from_is_up(previous)

    def seed(self, name: str, is_up: bool):
        with self._lock:
            self._previous[name] = is_up

    def forget(self, name: str):
        with self._lock:
            self._previous.pop(name, None)

    def snapshot(self) -> dict[str, TargetState]:
        with self._lock:
            return {name: TargetState.from_is_up(is_up) for name, is_up in self._previous.items()}

    def seed_from_records(self, db: Session) -> int:
        """Restore state from the latest persisted result per target so a restart keeps transitions."""
        seeded = 0
        for name, record in get_latest_per_target(db).items():
            self.seed(name, record.is_up)
            seeded += 1
        logger.info(f"🧠 Transition state seeded for {seeded} target(s)")
        return seeded
