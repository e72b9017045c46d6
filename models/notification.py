from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from db import Base
from datetime import datetime, timezone


class Notification(Base):
    """Outbound message log kept by the notification gateway"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    kind = Column(String(40), nullable=False)
    payload = Column(JSON, nullable=True)
    status = Column(String(10), nullable=False, default="sent")  # sent | failed
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
