from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ProbeResult(BaseModel):
    """Outcome of one probe. Created once, never mutated."""
    target: str
    url: str
    timestamp: datetime
    http_status: int = 0  # 0 means the request never got a response
    is_up: bool
    latency_ms: int = 0
    error_message: Optional[str] = None

    class Config:
        frozen = True


def is_up_status(status_code: int) -> bool:
    """A response counts as up when the status is in [200, 400)."""
    return 200 <= status_code < 400
