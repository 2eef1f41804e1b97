from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index

from ..database import Base


class UptimeRecord(Base):
    """One persisted probe result. Append-only."""
    __tablename__ = "uptime_records"
    __table_args__ = (
        Index("idx_uptime_target_time", "target_id", "timestamp"),
    )

    id = Column(Integer, primary_key=True)
    target_id = Column(Integer, ForeignKey("targets.id", ondelete="CASCADE"), nullable=False)
    timestamp = Column(DateTime, nullable=False)
    status_code = Column(Integer, default=0)
    is_up = Column(Boolean, nullable=False)
    latency_ms = Column(Integer, default=0)
    error_message = Column(String, nullable=True)
