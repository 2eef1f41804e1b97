from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from ..database import Base


class NotificationLog(Base):
    __tablename__ = "notification_logs"

    id = Column(Integer, primary_key=True)
    notification_id = Column(String, unique=True, nullable=False)
    target_id = Column(Integer, ForeignKey("targets.id", ondelete="CASCADE"), nullable=True, index=True)
    channel = Column(String, nullable=False)  # dashboard / email / webhook ...
    message = Column(String)
    severity = Column(String)  # error / success
    sent_at = Column(DateTime, nullable=False)
    status = Column(String, default="pending")  # sent / failed / pending
