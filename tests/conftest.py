"""Shared pytest configuration and fixtures."""
import os

# Settings reads the environment at import time: keep tests off any local
# .env database, targets file and admin keys.
os.environ["DB_URL"] = "sqlite://"
os.environ["TARGETS_FILE"] = os.path.join(os.path.dirname(__file__), "no-such-targets.json")
os.environ["ADMIN_API_KEYS"] = ""

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402

from uptime_watchdog.database import Database  # noqa: E402
from uptime_watchdog.models.target import Target  # noqa: E402
from uptime_watchdog.schemas.probe import ProbeResult  # noqa: E402


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def make_target(database):
    def _make(name: str = "example", url: str = "https://example.com", enabled: bool = True) -> int:
        with database.writer() as db:
            target = Target(name=name, url=url, enabled=enabled)
            db.add(target)
            db.flush()
            return target.id
    return _make


@pytest.fixture
def make_result():
    def _make(
        target: str = "example",
        is_up: bool = True,
        timestamp: datetime | None = None,
        http_status: int | None = None,
        latency_ms: int = 100,
        url: str = "https://example.com",
    ) -> ProbeResult:
        if http_status is None:
            http_status = 200 if is_up else 503
        return ProbeResult(
            target=target,
            url=url,
            timestamp=timestamp or datetime(2026, 3, 10, 12, 0, 0),
            http_status=http_status,
            is_up=is_up,
            latency_ms=latency_ms if is_up else 0,
            error_message=None if is_up else f"HTTP {http_status}",
        )
    return _make
