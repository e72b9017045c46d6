from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from db import Base


class Reminder(Base):
    """One row per (participant, milestone): the reminder has been handled."""
    __tablename__ = "reminders"

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=False, index=True)
    milestone = Column(String(8), nullable=False)  # m30, m20, m5
    sent_at = Column(DateTime(timezone=True), server_default=func.now())

    participant = relationship("Participant", back_populates="reminders")

    __table_args__ = (
        UniqueConstraint('participant_id', 'milestone', name='unique_participant_milestone'),
    )
