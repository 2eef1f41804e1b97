from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from datetime import datetime
from pydantic import ValidationError
from apscheduler.schedulers.background import BackgroundScheduler
from .config import Settings
from .database import Database
from .routers import admin, analytics, status, targets
from .middleware import api_key_middleware, logging_middleware
from .services.dispatcher import ProbeDispatcher
from .services.maintenance_service import MaintenanceService
from .services.monitor_service import PROBE_JOB_ID, MonitorContext, MonitorService
from .services.sync_service import SyncResult, load_monitor_config, sync_from_file, sync_targets

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "config_sync"


def load_targets_file(settings: Settings, database: Database) -> SyncResult | None:
    """Apply the file's settings over the environment and upsert its sites."""
    try:
        config = load_monitor_config(settings.TARGETS_FILE)
    except (ValueError, ValidationError):
        logger.error("⚠️ Continuing with the targets already in the database")
        return None

    if config is None:
        return None

    if config.settings.check_interval_seconds is not None:
        settings.CHECK_INTERVAL_SECONDS = config.settings.check_interval_seconds
    if config.settings.timeout_seconds is not None:
        settings.TIMEOUT_SECONDS = config.settings.timeout_seconds
    settings.normalize()

    with database.writer() as db:
        result = sync_targets(db, config.sites)
    logger.info(f"✅ Loaded {result.total_sites} sites ({result.added} new, {result.updated} updated)")
    return result


def build_context(settings: Settings) -> MonitorContext:
    database = Database(settings.DB_URL)
    database.init_db()
    last_sync = load_targets_file(settings, database)

    dispatcher = ProbeDispatcher(
        timeout=settings.TIMEOUT_SECONDS,
        max_workers=settings.MAX_WORKERS,
        round_deadline=settings.round_deadline,
    )
    maintenance = MaintenanceService(
        database,
        retention_days=settings.RETENTION_DAYS,
        aggregation_time=settings.AGGREGATION_TIME,
        cleanup_time=settings.CLEANUP_TIME,
        tick_seconds=settings.MAINTENANCE_TICK_SECONDS,
    )
    return MonitorContext(
        settings=settings,
        database=database,
        dispatcher=dispatcher,
        maintenance=maintenance,
        last_sync=last_sync,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    context = build_context(settings)
    monitor = MonitorService(context)
    seeded = monitor.seed_detector()
    logger.info(f"ℹ️ Detector seeded with {seeded} known target states")

    def run_config_sync():
        try:
            result = sync_from_file(context.database, settings.TARGETS_FILE)
        except Exception as e:
            logger.error(f"❌ Config sync failed: {e}")
            return
        if result is not None:
            context.last_sync = result

    # Jobs are registered here but the scheduler only starts on application
    # startup, so an app that is never served never probes.
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        monitor.run_checks,
        "interval",
        seconds=settings.CHECK_INTERVAL_SECONDS,
        id=PROBE_JOB_ID,
        max_instances=2,
        next_run_time=datetime.now(),
    )
    scheduler.add_job(
        run_config_sync,
        "interval",
        seconds=settings.CONFIG_SYNC_INTERVAL_SECONDS,
        id=SYNC_JOB_ID,
    )
    context.scheduler = scheduler

    app = FastAPI(title=settings.PROJECT_NAME)
    app.state.context = context
    app.state.monitor = monitor
    app.state.scheduler = scheduler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Middleware added last runs first: logging wraps authentication
    app.middleware("http")(api_key_middleware)
    app.middleware("http")(logging_middleware)

    app.include_router(status.router, tags=["Status"])
    app.include_router(targets.router, prefix="/targets", tags=["Targets"])
    app.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])

    @app.get("/")
    def root():
        return {"message": f"{settings.PROJECT_NAME} running"}

    @app.on_event("startup")
    def start_scheduler():
        if not scheduler.running:
            context.maintenance.start(scheduler)
            scheduler.start()
            logger.info(f"🚀 Monitoring started (interval: {settings.CHECK_INTERVAL_SECONDS}s)")

    @app.on_event("shutdown")
    def stop_scheduler():
        context.maintenance.stop()
        if scheduler.running:
            scheduler.shutdown(wait=False)
        context.close()
        context.database.dispose()
        logger.info("🛑 Monitoring stopped")

    return app


# Built on first access so importing this module (e.g. for create_app in tests)
# opens no database or HTTP client. `uvicorn uptime_watchdog.main:app` still works.
def __getattr__(name):
    if name == "app":
        application = create_app()
        globals()["app"] = application
        return application
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
