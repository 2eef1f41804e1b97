from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..dependencies import get_context, get_db
from ..models.target import Target
from ..schemas.target import TargetOut, TargetUpdate
from ..services.audit_service import log_audit
from ..services.monitor_service import MonitorContext
from ..utils.time_utils import utcnow

router = APIRouter()


@router.get("/", response_model=list[TargetOut])
def list_targets(db: Session = Depends(get_db)):
    return db.query(Target).order_by(Target.name).all()


# Get single target by ID
@router.get("/{target_id}", response_model=TargetOut)
def get_target(target_id: int, db: Session = Depends(get_db)):
    target = db.get(Target, target_id)
    if not target:
        raise HTTPException(status_code=404, detail="Target not found")
    return target


# Update target
@router.put("/{target_id}", response_model=TargetOut)
def update_target(target_id: int, payload: TargetUpdate, context: MonitorContext = Depends(get_context)):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    url = changes.get("url")
    if url is not None and not url.startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="URL must start with http:// or https://")

    with context.database.writer() as db:
        target = db.get(Target, target_id)
        if not target:
            raise HTTPException(status_code=404, detail="Target not found")

        old_value = {key: getattr(target, key) for key in changes}
        for key, value in changes.items():
            setattr(target, key, value)
        if changes:
            target.updated_at = utcnow()
            log_audit(db, "site_updated", "site", target.id, new_value=changes, old_value=old_value)
        name = target.name
        enabled = target.enabled

    # A disabled target leaves the live board; re-enabling starts from a fresh baseline
    if not enabled:
        context.status_board.remove(name)
        context.detector.forget(name)
    return target
