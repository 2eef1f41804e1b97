"""
Reconciles the targets file with persisted targets.

Targets are upserted by name. Nothing is ever deleted automatically: a target
that disappears from the file is only flagged in the audit log.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError
from sqlalchemy.orm import Session

from .audit_service import log_audit
from ..models.target import Target
from ..schemas.config import MonitorConfig, SiteConfig
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    timestamp: object = field(default_factory=utcnow)
    total_sites: int = 0
    added: int = 0
    updated: int = 0
    orphaned: list = field(default_factory=list)


def load_monitor_config(path: str) -> MonitorConfig | None:
    """Read and validate the targets file. Returns None when the file is absent."""
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"⚠️ Targets file not found at {config_path}")
        return None
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        return MonitorConfig(**data)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"❌ Invalid targets file {config_path}: {e}")
        raise


def sync_targets(db: Session, sites: list[SiteConfig]) -> SyncResult:
    result = SyncResult(total_sites=len(sites))
    existing = {t.name: t for t in db.query(Target).all()}

    for site in sites:
        target = existing.pop(site.name, None)
        if target is None:
            target = Target(name=site.name, url=site.url, enabled=True, current_status="unknown")
            db.add(target)
            db.flush()
            result.added += 1
            log_audit(db, "site_created", "site", target.id, {"name": site.name, "url": site.url})
            logger.info(f"✅ Added new target: {site.name}")
        elif target.url != site.url:
            old_url = target.url
            target.url = site.url
            result.updated += 1
            log_audit(db, "site_updated", "site", target.id,
                      new_value={"name": site.name, "url": site.url},
                      old_value={"name": site.name, "url": old_url})
            logger.info(f"✏️ Updated target: {site.name} -> {site.url}")

    # In the DB but not in the file: flag, don't delete
    for name, target in existing.items():
        result.orphaned.append(name)
        log_audit(db, "site_orphaned", "site", target.id, {"name": name, "url": target.url})
        logger.warning(f"⚠️ Target in DB but not in targets file: {name} ({target.url})")

    db.flush()
    return result


def sync_from_file(database, path: str) -> SyncResult | None:
    """Load the targets file and reconcile it in one transaction. None when the file is absent."""
    config = load_monitor_config(path)
    if config is None:
        return None
    with database.writer() as db:
        result = sync_targets(db, config.sites)
    logger.info(
        f"🔄 Config sync: {result.total_sites} sites, {result.added} added, "
        f"{result.updated} updated, {len(result.orphaned)} orphaned"
    )
    return result
