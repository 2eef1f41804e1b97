import logging
import threading
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """
    Owns the engine, the session factory and the writer lock.

    All writes go through writer(): one writer at a time, any number of readers.
    The incident ledger relies on this to keep its check-then-open/close atomic.
    """

    def __init__(self, db_url: str):
        self.db_url = db_url

        # sqlite needs check_same_thread=False because probe rounds, the
        # maintenance tick and the API all use sessions from different threads.
        connect_args = {}
        engine_kwargs = {}
        if db_url.startswith("sqlite"):
            connect_args = {"check_same_thread": False}
            if ":memory:" in db_url or db_url in ("sqlite://", "sqlite:///"):
                # A single shared connection, otherwise each thread sees an empty DB
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(db_url, connect_args=connect_args, future=True, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        self._write_lock = threading.RLock()

    @contextmanager
    def session(self):
        """Read session. Never commits."""
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    @contextmanager
    def writer(self):
        """Serialized write transaction: commit on success, rollback on error."""
        with self._write_lock:
            db = self.SessionLocal()
            try:
                yield db
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def init_db(self):
        # Import models so they register on Base.metadata
        from .models import (  # noqa: F401
            audit_log,
            daily_summary,
            incident,
            notification_log,
            target,
            uptime_record,
        )

        Base.metadata.create_all(bind=self.engine)
        logger.info("✅ Database ready")

    def dispose(self):
        self.engine.dispose()
