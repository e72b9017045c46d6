from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional
from api.deps.db import get_db
from schemas.payment import PaymentSubmit, PaymentDecision, Payment, PaymentSubmitted
from schemas.tournament import Participant
from core.auth import get_current_active_user
from models.payment import PaymentStatus
from models.user import User
from services.notification_service import get_notifier
from services.participation_service import submit_payment
from services.payment_service import resolve_payment

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("", response_model=PaymentSubmitted, status_code=status.HTTP_201_CREATED)
async def submit_payment_endpoint(
    data: PaymentSubmit,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Submit the bKash/Nagad transaction used to pay a tournament entry fee"""
    payment, participant = submit_payment(
        db, current_user, data.tournament_id, data.method, data.payer_number, data.txn_id, data.amount
    )
    return PaymentSubmitted(
        payment=Payment.model_validate(payment),
        participant=Participant.model_validate(participant)
    )


@router.post("/{payment_id}/approve", response_model=Payment)
async def approve_payment(
    payment_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier)
):
    return await resolve_payment(db, current_user, payment_id, PaymentStatus.APPROVED, notifier=notifier)


@router.post("/{payment_id}/reject", response_model=Payment)
async def reject_payment(
    payment_id: int,
    decision: Optional[PaymentDecision] = None,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier)
):
    reason = decision.reason if decision else None
    return await resolve_payment(db, current_user, payment_id, PaymentStatus.REJECTED, reason=reason, notifier=notifier)
