from sqlalchemy import Column, Integer, String, DateTime

from ..database import Base
from ..utils.time_utils import utcnow


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    action = Column(String, nullable=False)  # incident_started, incident_closed, site_created ...
    entity_type = Column(String, nullable=False)
    entity_id = Column(Integer, nullable=True)
    old_value = Column(String, nullable=True)  # JSON
    new_value = Column(String, nullable=True)  # JSON
    user_id = Column(String, default="system")
    timestamp = Column(DateTime, default=utcnow, index=True)
