import threading

from ..schemas.probe import ProbeResult


class StatusBoard:
    """Latest per-target status for the dashboard, replaced once per round."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: dict[str, dict] = {}
        self.updated_at = None

    def update(self, results: list[ProbeResult]):
        entries = {
            r.target: {
                "target": r.target,
                "url": r.url,
                "status": "up" if r.is_up else "down",
                "latency_ms": r.latency_ms,
                "status_code": r.http_status,
                "checked_at": r.timestamp,
            }
            for r in results
        }
        with self._lock:
            # Targets skipped by a round keep their previous entry
            self._entries.update(entries)
            if results:
                self.updated_at = max(r.timestamp for r in results)

    def remove(self, name: str):
        with self._lock:
            self._entries.pop(name, None)

    def get(self) -> list[dict]:
        with self._lock:
            return sorted((dict(e) for e in self._entries.values()), key=lambda e: e["target"])
