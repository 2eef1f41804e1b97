from sqlalchemy import Column, Integer, Float, Date, DateTime, ForeignKey, UniqueConstraint

from ..database import Base
from ..utils.time_utils import utcnow


class DailySummary(Base):
    __tablename__ = "daily_summaries"
    __table_args__ = (
        UniqueConstraint("target_id", "date", name="uq_daily_summaries_target_date"),
    )

    id = Column(Integer, primary_key=True)
    target_id = Column(Integer, ForeignKey("targets.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    total_checks = Column(Integer, default=0)
    successful_checks = Column(Integer, default=0)
    failed_checks = Column(Integer, default=0)
    uptime_percentage = Column(Float, default=0.0)
    avg_latency_ms = Column(Float, default=0.0)
    min_latency_ms = Column(Integer, default=0)
    max_latency_ms = Column(Integer, default=0)
    downtime_minutes = Column(Integer, default=0)
    incident_count = Column(Integer, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
