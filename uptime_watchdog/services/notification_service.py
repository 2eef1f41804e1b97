import logging
import threading
import uuid
from typing import Callable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.notification_log import NotificationLog
from ..schemas.event import TransitionEvent, TransitionKind
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)

# A channel handler receives the event plus the formatted message and returns a
# dict; an "error" key marks the delivery as failed.
ChannelHandler = Callable[[TransitionEvent, str], dict]


class DashboardNotificationStore:
    """Bounded in-app notification list, newest first."""

    def __init__(self, max_size: int = 100):
        self._lock = threading.Lock()
        self._items: list[dict] = []
        self.max_size = max_size

    def add(self, notification: dict):
        with self._lock:
            self._items.insert(0, notification)
            del self._items[self.max_size:]

    def get_all(self) -> list[dict]:
        with self._lock:
            return [dict(n) for n in self._items]

    def get_unread(self) -> list[dict]:
        with self._lock:
            return [dict(n) for n in self._items if not n["read"]]

    def mark_as_read(self, notification_id: str) -> bool:
        with self._lock:
            for n in self._items:
                if n["id"] == notification_id:
                    n["read"] = True
                    return True
        return False

    def mark_all_as_read(self):
        with self._lock:
            for n in self._items:
                n["read"] = True

    def clear(self):
        with self._lock:
            self._items = []


def format_message(event: TransitionEvent) -> tuple[str, str]:
    """Return (message, severity) for a transition."""
    if event.kind == TransitionKind.WENT_DOWN:
        return f"🔴 Target DOWN: {event.target} ({event.url}) - Status: {event.status_code}", "error"
    return f"🟢 Target RECOVERED: {event.target} ({event.url}) is back online", "success"


class Notifier:
    """
    Receives transition events and fans them out.

    The dashboard store is always fed; extra channels are plain callables
    registered by the process that owns the delivery details.
    """

    def __init__(self, database=None, max_dashboard_notifications: int = 100):
        self.database = database
        self.dashboard = DashboardNotificationStore(max_dashboard_notifications)
        self._channels: dict[str, ChannelHandler] = {}

    def register_channel(self, name: str, handler: ChannelHandler):
        self._channels[name] = handler
        logger.info(f"📣 Notification channel registered: {name}")

    def notify(self, event: TransitionEvent, target_id: Optional[int] = None) -> dict:
        """Send an event to the dashboard and every registered channel.

        Returns:
            Dict with success/failure counts, like a batch send result
        """
        message, severity = format_message(event)
        results = {"success": 0, "failed": 0, "total": 1 + len(self._channels)}
        logs = []

        self.dashboard.add({
            "id": uuid.uuid4().hex,
            "target": event.target,
            "message": message,
            "severity": severity,
            "timestamp": event.timestamp,
            "read": False,
        })
        results["success"] += 1
        logs.append(("dashboard", "sent"))
        logger.info(f"📱 Dashboard notification: {message}")

        for name, handler in self._channels.items():
            try:
                result = handler(event, message) or {}
            except Exception as e:
                logger.exception(f"Error sending {event.kind.value} notification via {name}: {e}")
                result = {"error": str(e)}

            if result.get("error"):
                results["failed"] += 1
                logs.append((name, "failed"))
            else:
                results["success"] += 1
                logs.append((name, "sent"))

        self._persist(logs, target_id, message, severity)
        logger.info(f"Notification batch complete: {results['success']}/{results['total']} successful")
        return results

    def _persist(self, logs, target_id, message, severity):
        if self.database is None:
            return
        try:
            with self.database.writer() as db:
                now = utcnow()
                for channel, status in logs:
                    db.add(NotificationLog(
                        notification_id=uuid.uuid4().hex,
                        target_id=target_id,
                        channel=channel,
                        message=message,
                        severity=severity,
                        sent_at=now,
                        status=status,
                    ))
        except Exception as e:
            logger.error(f"❌ Failed to persist notification logs: {e}")


def count_logs(db: Session, target_id: Optional[int] = None) -> int:
    query = db.query(func.count(NotificationLog.id))
    if target_id is not None:
        query = query.filter(NotificationLog.target_id == target_id)
    return query.scalar() or 0


def delete_older_than(db: Session, cutoff) -> int:
    deleted = db.query(NotificationLog).filter(NotificationLog.sent_at < cutoff).delete(synchronize_session=False)
    if deleted:
        logger.info(f"🗑️ Deleted {deleted} old notification logs")
    return deleted
