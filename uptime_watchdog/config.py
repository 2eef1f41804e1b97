import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

# A round never ends before a probe has had its full timeout plus this much slack.
DEADLINE_MARGIN_SECONDS = 1.0


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _parse_api_keys(raw: Optional[str]) -> dict:
    """Parse "key:name,key2:name2" into {key: name}. A bare key gets a generic name."""
    keys = {}
    if not raw:
        return keys
    for i, item in enumerate(raw.split(","), start=1):
        item = item.strip()
        if not item:
            continue
        key, _, name = item.partition(":")
        keys[key.strip()] = name.strip() or f"Client {i}"
    return keys


class Settings:
    # If DB_URL is not provided, fall back to a local sqlite file so the watchdog
    # runs out of the box without a database server.
    DB_URL: str = os.getenv("DB_URL") or "sqlite:///./watchdog.db"

    # JSON file with {"settings": {...}, "sites": [{"name", "url"}]}
    TARGETS_FILE: str = os.getenv("TARGETS_FILE") or "config.json"

    CHECK_INTERVAL_SECONDS: int = _int_env("CHECK_INTERVAL_SECONDS", 20)
    TIMEOUT_SECONDS: int = _int_env("TIMEOUT_SECONDS", 10)

    # Probe pool size is independent of how many targets are configured.
    MAX_WORKERS: int = _int_env("MAX_WORKERS", 10)
    # 0 means "use the check interval". Either way the deadline is floored at
    # TIMEOUT_SECONDS + DEADLINE_MARGIN_SECONDS.
    ROUND_DEADLINE_SECONDS: int = _int_env("ROUND_DEADLINE_SECONDS", 0)

    RETENTION_DAYS: int = _int_env("RETENTION_DAYS", 90)
    AGGREGATION_TIME: str = os.getenv("AGGREGATION_TIME") or "01:00"
    CLEANUP_TIME: str = os.getenv("CLEANUP_TIME") or "03:00"
    MAINTENANCE_TICK_SECONDS: int = _int_env("MAINTENANCE_TICK_SECONDS", 60)

    CONFIG_SYNC_INTERVAL_SECONDS: int = _int_env("CONFIG_SYNC_INTERVAL_SECONDS", 300)
    DASHBOARD_NOTIFICATION_LIMIT: int = _int_env("DASHBOARD_NOTIFICATION_LIMIT", 100)

    # Admin routes are open when no keys are configured (local development).
    ADMIN_API_KEYS: dict = _parse_api_keys(os.getenv("ADMIN_API_KEYS"))

    # Default target for /analytics/sla-report
    SLA_TARGET_PERCENTAGE: float = float(os.getenv("SLA_TARGET_PERCENTAGE") or 99.9)

    PROJECT_NAME: str = os.getenv("PROJECT_NAME") or "Uptime Watchdog"

    def __init__(self, **overrides):
        for key, value in overrides.items():
            if not hasattr(type(self), key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)
        self.normalize()

    def normalize(self):
        """Clamp values to the minimums the scheduler can work with."""
        self.CHECK_INTERVAL_SECONDS = max(5, int(self.CHECK_INTERVAL_SECONDS))
        self.TIMEOUT_SECONDS = max(1, int(self.TIMEOUT_SECONDS))
        self.MAX_WORKERS = max(1, int(self.MAX_WORKERS))
        self.RETENTION_DAYS = max(0, int(self.RETENTION_DAYS))
        self.MAINTENANCE_TICK_SECONDS = max(1, int(self.MAINTENANCE_TICK_SECONDS))

    @property
    def round_deadline(self) -> float:
        if self.ROUND_DEADLINE_SECONDS and self.ROUND_DEADLINE_SECONDS > 0:
            deadline = float(self.ROUND_DEADLINE_SECONDS)
        else:
            deadline = float(self.CHECK_INTERVAL_SECONDS)
        return max(deadline, self.TIMEOUT_SECONDS + DEADLINE_MARGIN_SECONDS)


def parse_time_of_day(value: str) -> tuple[int, int]:
    """Parse "HH:MM" into (hour, minute)."""
    hour_str, _, minute_str = value.strip().partition(":")
    hour, minute = int(hour_str), int(minute_str or 0)
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Invalid time of day: {value!r}")
    return hour, minute


settings = Settings()
