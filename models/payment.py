from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from db import Base, enum_values
import enum


class PaymentMethod(str, enum.Enum):
    BKASH = "bkash"
    NAGAD = "nagad"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # null for website purchases
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=True, index=True)
    method = Column(Enum(PaymentMethod, values_callable=enum_values), nullable=False)
    payer_number = Column(String(20), nullable=False)
    txn_id = Column(String(64), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(Enum(PaymentStatus, values_callable=enum_values), default=PaymentStatus.PENDING, nullable=False, index=True)
    verified_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(String, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    verifier = relationship("User", foreign_keys=[verified_by])
    tournament = relationship("Tournament")
