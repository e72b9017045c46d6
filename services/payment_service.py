"""
Admin verification of manual payments. A payment is resolved exactly once;
the decision cascades to the participation (or website order) it backs
within the same transaction, and the user is notified afterwards.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from api.crud.audit_log_crud import add_audit_log
from api.crud.participant_crud import set_status_for_payment
from api.crud.payment_crud import resolve_if_pending
from core.auth import ensure_role
from core.exceptions import AlreadyResolved, ValidationError
from core.roles import UserRole
from core.validators import validate_payment_exists, utcnow
from db import transaction
from models.participant import ParticipantStatus
from models.payment import Payment, PaymentStatus
from models.user import User
from models.website_order import OrderStatus
from services.notification_service import NotificationKind
from services.website_order_service import apply_payment_decision, download_url

logger = logging.getLogger(__name__)

DECISIONS = (PaymentStatus.APPROVED, PaymentStatus.REJECTED)


async def resolve_payment(
    db: Session,
    admin: User,
    payment_id: int,
    decision: PaymentStatus,
    reason: Optional[str] = None,
    notifier=None,
    now: Optional[datetime] = None,
) -> Payment:
    ensure_role(admin, UserRole.ADMIN)
    decision = PaymentStatus(decision)
    if decision not in DECISIONS:
        raise ValidationError("Decision must be 'approved' or 'rejected'")

    payment = validate_payment_exists(db, payment_id)
    if payment.status != PaymentStatus.PENDING:
        raise AlreadyResolved(payment.status.value)

    now = now or utcnow()
    order = None
    with transaction(db):
        if not resolve_if_pending(db, payment.id, decision, admin.id, now, reason):
            raise AlreadyResolved()
        if payment.tournament_id is not None:
            set_status_for_payment(db, payment.id, ParticipantStatus(decision.value))
        else:
            order = apply_payment_decision(db, payment.id, decision, now)
        add_audit_log(db, admin.id, f"payment_{decision.value}", {
            "payment_id": payment.id,
            "tournament_id": payment.tournament_id,
            "order_id": order.id if order else None,
            "reason": reason,
        })

    db.refresh(payment)
    logger.info(f"Payment {payment.id} {decision.value} by admin {admin.id}")

    if notifier is not None:
        await _notify_user(db, notifier, payment, order, reason)
    return payment


async def _notify_user(db: Session, notifier, payment: Payment, order, reason: Optional[str]):
    """Best effort: the decision is already committed whatever happens here"""
    if order is not None:
        db.refresh(order)
        if order.status == OrderStatus.APPROVED:
            await notifier.send(payment.user_id, NotificationKind.WEBSITE_ORDER_APPROVED, {
                "order_id": order.id,
                "download_url": download_url(order),
                "expires_at": order.download_expires_at.isoformat() if order.download_expires_at else None,
            })
            return

    await notifier.send(payment.user_id, NotificationKind.PAYMENT_STATUS, {
        "payment_id": payment.id,
        "tournament_id": payment.tournament_id,
        "tournament_name": payment.tournament.name if payment.tournament else "Website purchase",
        "amount": str(payment.amount),
        "status": payment.status.value,
        "reason": reason,
    })
