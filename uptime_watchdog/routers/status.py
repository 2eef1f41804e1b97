from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_context
from ..schemas.target import StatusOut
from ..services.monitor_service import MonitorContext

router = APIRouter()


@router.get("/status", response_model=StatusOut)
def get_status(context: MonitorContext = Depends(get_context)):
    """Latest probe result per target, as seen by the last rounds."""
    return {
        "updated_at": context.status_board.updated_at,
        "targets": context.status_board.get(),
    }


@router.get("/notifications")
def list_notifications(unread: bool = False, context: MonitorContext = Depends(get_context)):
    dashboard = context.notifier.dashboard
    items = dashboard.get_unread() if unread else dashboard.get_all()
    return {"notifications": items, "count": len(items)}


@router.post("/notifications/read-all")
def mark_all_read(context: MonitorContext = Depends(get_context)):
    context.notifier.dashboard.mark_all_as_read()
    return {"message": "All notifications marked as read"}


@router.post("/notifications/clear")
def clear_notifications(context: MonitorContext = Depends(get_context)):
    context.notifier.dashboard.clear()
    return {"message": "Notifications cleared"}


@router.post("/notifications/{notification_id}/read")
def mark_read(notification_id: str, context: MonitorContext = Depends(get_context)):
    if not context.notifier.dashboard.mark_as_read(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"message": "Notification marked as read"}
