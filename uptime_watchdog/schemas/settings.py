from pydantic import BaseModel, Field


class SettingsUpdate(BaseModel):
    """Runtime settings - all fields optional, only the ones sent are applied"""
    check_interval_seconds: int | None = Field(None, ge=1)
    timeout_seconds: int | None = Field(None, ge=1)
    round_deadline_seconds: int | None = Field(None, ge=0)
    retention_days: int | None = Field(None, ge=0)
    aggregation_time: str | None = None  # HH:MM
    cleanup_time: str | None = None  # HH:MM
    daily_aggregation_enabled: bool | None = None
    data_cleanup_enabled: bool | None = None
    sla_target_percentage: float | None = Field(None, ge=0, le=100)


class SettingsOut(BaseModel):
    check_interval_seconds: int
    timeout_seconds: int
    round_deadline_seconds: float | None = None
    retention_days: int
    aggregation_time: str
    cleanup_time: str
    daily_aggregation_enabled: bool
    data_cleanup_enabled: bool
    sla_target_percentage: float
