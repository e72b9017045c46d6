from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from models.payment import Payment, PaymentMethod, PaymentStatus


def get_payment(db: Session, payment_id: int) -> Optional[Payment]:
    return db.query(Payment).filter(Payment.id == payment_id).first()


def get_pending_payments(db: Session, skip: int = 0, limit: int = 100) -> List[Payment]:
    return db.query(Payment).filter(
        Payment.status == PaymentStatus.PENDING
    ).order_by(Payment.created_at.asc(), Payment.id.asc()).offset(skip).limit(limit).all()


def find_active_payment_by_txn(db: Session, method: PaymentMethod, txn_id: str) -> Optional[Payment]:
    """A transaction ID can back only one pending or approved payment"""
    return db.query(Payment).filter(
        Payment.method == method,
        Payment.txn_id == txn_id,
        Payment.status.in_([PaymentStatus.PENDING, PaymentStatus.APPROVED])
    ).first()


def add_payment(db: Session, user_id: int, tournament_id: Optional[int], method: PaymentMethod,
                payer_number: str, txn_id: str, amount) -> Payment:
    """Stage a pending payment; the caller commits"""
    payment = Payment(
        user_id=user_id,
        tournament_id=tournament_id,
        method=method,
        payer_number=payer_number,
        txn_id=txn_id,
        amount=amount,
        status=PaymentStatus.PENDING
    )
    db.add(payment)
    db.flush()
    return payment


def resolve_if_pending(db: Session, payment_id: int, new_status: PaymentStatus, admin_id: int,
                       now: datetime, reason: str = None) -> bool:
    """Resolve the payment only if nobody has resolved it yet"""
    updated = db.query(Payment).filter(
        Payment.id == payment_id,
        Payment.status == PaymentStatus.PENDING
    ).update({
        Payment.status: new_status,
        Payment.verified_by: admin_id,
        Payment.verified_at: now,
        Payment.rejection_reason: reason,
    }, synchronize_session=False)
    return updated == 1
