from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class DailySummaryOut(BaseModel):
    target_id: int
    date: date
    total_checks: int
    successful_checks: int
    failed_checks: int
    uptime_percentage: float
    avg_latency_ms: float
    min_latency_ms: int
    max_latency_ms: int
    downtime_minutes: int
    incident_count: int

    class Config:
        from_attributes = True


class IncidentOut(BaseModel):
    id: int
    target_id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_seconds: int = 0
    note: Optional[str] = None

    class Config:
        from_attributes = True


class LatencyBucket(BaseModel):
    hour: datetime
    count: int
    avg_latency_ms: float
    min_latency_ms: int
    max_latency_ms: int


class TargetMetrics(BaseModel):
    target_id: int
    period_days: int
    start_time: datetime
    end_time: datetime
    total_checks: int
    uptime_percentage: float
    avg_latency_ms: float
    total_downtime_seconds: int
    incident_count: int
    mttr_seconds: Optional[int] = None  # Mean Time To Repair
    longest_incident_seconds: Optional[int] = None


class DashboardSummary(BaseModel):
    total_targets: int
    targets_up: int
    targets_down: int
    average_uptime: Optional[float] = None
    total_incidents_last_7: int
    targets_with_issues: int
    last_update: datetime



class SLAReportEntry(BaseModel):
    target_id: int
    target_name: str
    sla_target_percentage: float
    actual_uptime: float
    sla_compliant: bool
    uptime_gap: float  # target - actual, negative when above target
