from datetime import datetime

from pydantic import BaseModel


class TargetOut(BaseModel):
    id: int
    name: str
    url: str
    enabled: bool
    current_status: str = "unknown"
    last_checked: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class TargetUpdate(BaseModel):
    """Schema for updating a target - all fields optional"""
    url: str | None = None
    enabled: bool | None = None


class StatusEntry(BaseModel):
    target: str
    url: str
    status: str
    latency_ms: int
    status_code: int
    checked_at: datetime


class StatusOut(BaseModel):
    updated_at: datetime | None = None
    targets: list[StatusEntry] = []
