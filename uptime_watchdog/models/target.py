from sqlalchemy import Column, Integer, String, Boolean, DateTime

from ..database import Base
from ..utils.time_utils import utcnow


class Target(Base):
    __tablename__ = "targets"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    url = Column(String, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)

    # Only the probe pipeline writes these two
    current_status = Column(String, default="unknown", nullable=False)  # unknown / up / down
    last_checked = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
