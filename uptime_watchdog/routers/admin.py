from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from ..dependencies import get_context
from ..models.target import Target
from ..schemas.settings import SettingsOut, SettingsUpdate
from ..services import analytics_service, audit_service, incident_service, notification_service, result_store
from ..services.monitor_service import MonitorContext
from ..services.settings_service import apply_settings, current_settings
from ..services.sync_service import sync_from_file
from ..utils.time_utils import utcnow

router = APIRouter()


@router.post("/generate-summary")
def generate_summary(date: Optional[str] = None, context: MonitorContext = Depends(get_context)):
    """Aggregate one day for every target. Defaults to yesterday; re-running overwrites."""
    if date:
        try:
            day = datetime.strptime(date, "%Y-%m-%d").date()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid date format, expected YYYY-MM-DD")
    else:
        day = utcnow().date() - timedelta(days=1)

    generated = context.maintenance.run_aggregation_for(day)
    return {"message": "Daily summaries generated", "date": day.isoformat(), "generated": generated}


@router.post("/cleanup")
def run_cleanup(context: MonitorContext = Depends(get_context)):
    deleted = context.maintenance.run_data_cleanup()
    if deleted is None:
        raise HTTPException(status_code=500, detail=context.maintenance.last_results.get("cleanup"))
    return {"message": "Cleanup completed", "deleted": deleted}


@router.get("/stats")
def stats(context: MonitorContext = Depends(get_context)):
    with context.database.session() as db:
        counts = {
            "targets": db.query(Target).count(),
            "uptime_records": result_store.count_all(db),
            "incidents": incident_service.count_incidents(db),
            "open_incidents": incident_service.count_open(db),
            "daily_summaries": analytics_service.count_summaries(db),
            "notification_logs": notification_service.count_logs(db),
            "audit_logs": audit_service.count_all(db),
        }
    return {"counts": counts, "maintenance": context.maintenance.get_status()}


@router.post("/sync")
def sync(context: MonitorContext = Depends(get_context)):
    try:
        result = sync_from_file(context.database, context.settings.TARGETS_FILE)
    except (ValueError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid targets file: {e}")
    if result is None:
        raise HTTPException(status_code=404, detail="Targets file not found")
    context.last_sync = result
    return {
        "message": "Targets synced",
        "total_sites": result.total_sites,
        "added": result.added,
        "updated": result.updated,
        "orphaned": result.orphaned,
    }


@router.get("/sync/status")
def sync_status(context: MonitorContext = Depends(get_context)):
    """Compare the last synced targets file against what is stored."""
    with context.database.session() as db:
        database_sites = db.query(Target).count()

    last_sync = context.last_sync
    config_sites = last_sync.total_sites if last_sync else None
    return {
        "config_sites": config_sites,
        "database_sites": database_sites,
        "in_sync": config_sites == database_sites,
        "last_sync": last_sync.timestamp if last_sync else None,
        "orphaned": last_sync.orphaned if last_sync else [],
    }


@router.get("/settings", response_model=SettingsOut)
def get_settings(context: MonitorContext = Depends(get_context)):
    return current_settings(context)


@router.put("/settings", response_model=SettingsOut)
def update_settings(payload: SettingsUpdate, context: MonitorContext = Depends(get_context)):
    """Apply settings to the running watchdog. Not persisted across restarts."""
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    try:
        return apply_settings(context, changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
