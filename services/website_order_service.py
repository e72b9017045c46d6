"""
Website source-code purchase: a pending order backed by a manual payment.
Approval issues a download token that expires after a few days and can
be redeemed once.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from api.crud.audit_log_crud import add_audit_log
from api.crud.payment_crud import add_payment, find_active_payment_by_txn
from api.crud.website_order_crud import get_order_by_payment, get_order_by_token, transition_order
from core.config import settings
from core.exceptions import ValidationError, OrderNotFound, DownloadExpired
from core.validators import validate_amount_matches, normalize_payer_number, as_utc
from db import transaction
from models.payment import PaymentMethod, PaymentStatus
from models.user import User
from models.website_order import WebsiteOrder, OrderStatus

logger = logging.getLogger(__name__)


def download_url(order: WebsiteOrder) -> str:
    return f"{settings.base_url.rstrip('/')}/download/{order.download_token}"


def create_order(db: Session, user: User, method: PaymentMethod, payer_number: str, txn_id: str, amount) -> WebsiteOrder:
    validate_amount_matches(amount, settings.website_price)
    try:
        payer_number = normalize_payer_number(payer_number)
    except ValueError as e:
        raise ValidationError(str(e))
    txn_id = txn_id.strip().upper()
    method = PaymentMethod(method)
    if find_active_payment_by_txn(db, method, txn_id):
        raise ValidationError("This transaction ID has already been submitted")

    with transaction(db):
        payment = add_payment(db, user.id, None, method, payer_number, txn_id, settings.website_price)
        order = WebsiteOrder(user_id=user.id, payment_id=payment.id, amount=settings.website_price)
        db.add(order)
        db.flush()
        add_audit_log(db, user.id, "website_order_created", {"order_id": order.id, "payment_id": payment.id})

    db.refresh(order)
    logger.info(f"Website order {order.id} created by user {user.id}")
    return order


def apply_payment_decision(db: Session, payment_id: int, decision: PaymentStatus, now: datetime) -> Optional[WebsiteOrder]:
    """Cascade a resolved payment to its order; runs inside the caller's transaction"""
    order = get_order_by_payment(db, payment_id)
    if order is None:
        return None

    if decision == PaymentStatus.APPROVED:
        transition_order(
            db, order.id, OrderStatus.PENDING, OrderStatus.APPROVED,
            download_token=secrets.token_urlsafe(32),
            download_expires_at=now + timedelta(days=settings.download_token_ttl_days),
        )
    else:
        transition_order(db, order.id, OrderStatus.PENDING, OrderStatus.REJECTED)
    return order


def redeem_download(db: Session, token: str, now: datetime) -> WebsiteOrder:
    order = get_order_by_token(db, token)
    if not order or order.status != OrderStatus.APPROVED:
        raise OrderNotFound("Invalid download link")
    if order.download_expires_at and as_utc(now) > as_utc(order.download_expires_at):
        raise DownloadExpired()

    with transaction(db):
        if not transition_order(db, order.id, OrderStatus.APPROVED, OrderStatus.DELIVERED, delivered_at=now):
            raise OrderNotFound("Invalid download link")
    db.refresh(order)
    logger.info(f"Website order {order.id} delivered")
    return order
