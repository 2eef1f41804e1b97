from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..dependencies import get_context, get_db
from ..models.target import Target
from ..schemas.analytics import (
    DailySummaryOut,
    DashboardSummary,
    IncidentOut,
    LatencyBucket,
    SLAReportEntry,
    TargetMetrics,
)
from ..services import analytics_service, incident_service, result_store
from ..services.monitor_service import MonitorContext
from ..utils.time_utils import utcnow

router = APIRouter()


def _get_target_or_404(db: Session, target_id: int) -> Target:
    target = db.get(Target, target_id)
    if not target:
        raise HTTPException(status_code=404, detail="Target not found")
    return target


@router.get("/dashboard", response_model=DashboardSummary)
def dashboard(db: Session = Depends(get_db)):
    return analytics_service.get_dashboard_summary(db)


@router.get("/sla-report", response_model=list[SLAReportEntry])
def sla_report(
    days: int = Query(30, ge=1, le=365),
    sla_target: Optional[float] = Query(None, ge=0, le=100),
    context: MonitorContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Average daily uptime per enabled target against an SLA target (defaults to the configured one)."""
    if sla_target is None:
        sla_target = context.settings.SLA_TARGET_PERCENTAGE
    return analytics_service.get_sla_report(db, sla_target, days=days)


@router.get("/targets/{target_id}", response_model=TargetMetrics)
def target_metrics(target_id: int, days: int = Query(30, ge=1, le=365), db: Session = Depends(get_db)):
    """
    Metrics for a target over a time range
    days: 1 (24h), 7 (week), 30 (month)
    """
    _get_target_or_404(db, target_id)
    return analytics_service.get_target_metrics(db, target_id, days=days)


@router.get("/targets/{target_id}/summaries", response_model=list[DailySummaryOut])
def target_summaries(target_id: int, days: int = Query(30, ge=1, le=365), db: Session = Depends(get_db)):
    _get_target_or_404(db, target_id)
    return analytics_service.get_summaries(db, target_id, days=days)


@router.get("/targets/{target_id}/uptime-trend", response_model=list[DailySummaryOut])
def target_uptime_trend(target_id: int, days: int = Query(30, ge=1, le=365), db: Session = Depends(get_db)):
    _get_target_or_404(db, target_id)
    return analytics_service.get_uptime_trend(db, target_id, days=days)


@router.get("/targets/{target_id}/latency", response_model=list[LatencyBucket])
def target_latency(target_id: int, hours: int = Query(24, ge=1, le=24 * 31), db: Session = Depends(get_db)):
    _get_target_or_404(db, target_id)
    end = utcnow()
    return result_store.get_latency_stats(db, target_id, end - timedelta(hours=hours), end)


@router.get("/targets/{target_id}/incidents", response_model=list[IncidentOut])
def target_incidents(target_id: int, days: int = Query(7, ge=1, le=365), db: Session = Depends(get_db)):
    _get_target_or_404(db, target_id)
    end = utcnow()
    return incident_service.get_by_date_range(db, target_id, end - timedelta(days=days), end)
