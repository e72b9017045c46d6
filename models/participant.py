from sqlalchemy import Column, Integer, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from db import Base, enum_values
import enum


class ParticipantStatus(str, enum.Enum):
    PENDING_PAYMENT = "pending_payment"
    PENDING_VERIFY = "pending_verify"
    APPROVED = "approved"
    REJECTED = "rejected"


class Participant(Base):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=True)
    status = Column(Enum(ParticipantStatus, values_callable=enum_values), default=ParticipantStatus.PENDING_PAYMENT, nullable=False)

    joined_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="participations")
    tournament = relationship("Tournament", back_populates="participants")
    payment = relationship("Payment", foreign_keys=[payment_id])
    reminders = relationship("Reminder", back_populates="participant", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('user_id', 'tournament_id', name='unique_tournament_participant'),
    )
