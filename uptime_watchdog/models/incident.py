from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, text

from ..database import Base


class Incident(Base):
    __tablename__ = "downtime_incidents"
    __table_args__ = (
        Index("idx_incidents_target", "target_id"),
        # At most one open incident per target
        Index(
            "uq_incidents_open_per_target",
            "target_id",
            unique=True,
            sqlite_where=text("end_time IS NULL"),
            postgresql_where=text("end_time IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    target_id = Column(Integer, ForeignKey("targets.id", ondelete="CASCADE"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)
    duration_seconds = Column(Integer, default=0)
    note = Column(String, nullable=True)

    @property
    def is_open(self) -> bool:
        return self.end_time is None
