from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class TargetState(str, Enum):
    UNKNOWN = "unknown"
    UP = "up"
    DOWN = "down"

    @classmethod
    def from_is_up(cls, is_up: bool) -> "TargetState":
        return cls.UP if is_up else cls.DOWN


class TransitionKind(str, Enum):
    WENT_DOWN = "went-down"
    RECOVERED = "recovered"


class TransitionEvent(BaseModel):
    """Emitted only when a target changes between up and down."""
    target: str
    url: Optional[str] = None
    kind: TransitionKind
    previous_state: TargetState
    new_state: TargetState
    latency_ms: int = 0
    status_code: int = 0
    timestamp: datetime

    class Config:
        frozen = True
