from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional
from api.deps.db import get_db
from api.crud.website_order_crud import get_order
from schemas.payment import WebsiteOrderCreate, WebsiteOrder, PaymentDecision
from core.auth import get_current_active_user, ensure_role
from core.exceptions import OrderNotFound
from core.roles import UserRole
from core.validators import utcnow
from models.payment import PaymentStatus
from models.user import User
from services.notification_service import get_notifier
from services.payment_service import resolve_payment
from services.website_order_service import create_order, redeem_download

router = APIRouter(tags=["Website orders"])


@router.post("/website-orders", response_model=WebsiteOrder, status_code=status.HTTP_201_CREATED)
async def create_website_order(
    data: WebsiteOrderCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Order the website source code, paid manually via bKash/Nagad"""
    return create_order(db, current_user, data.method, data.payer_number, data.txn_id, data.amount)


async def _resolve_order(db: Session, admin: User, order_id: int, decision: PaymentStatus, reason, notifier):
    ensure_role(admin, UserRole.ADMIN)
    order = get_order(db, order_id)
    if not order:
        raise OrderNotFound()
    await resolve_payment(db, admin, order.payment_id, decision, reason=reason, notifier=notifier)
    db.refresh(order)
    return order


@router.post("/website-orders/{order_id}/approve", response_model=WebsiteOrder)
async def approve_website_order(
    order_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier)
):
    return await _resolve_order(db, current_user, order_id, PaymentStatus.APPROVED, None, notifier)


@router.post("/website-orders/{order_id}/reject", response_model=WebsiteOrder)
async def reject_website_order(
    order_id: int,
    decision: Optional[PaymentDecision] = None,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier)
):
    reason = decision.reason if decision else None
    return await _resolve_order(db, current_user, order_id, PaymentStatus.REJECTED, reason, notifier)


@router.get("/download/{token}")
async def download_website(token: str, db: Session = Depends(get_db)):
    """Single-use download link issued when an order is approved"""
    order = redeem_download(db, token, utcnow())
    return {
        "order_id": order.id,
        "status": order.status.value,
        "file": "website-source.zip",
        "delivered_at": order.delivered_at,
    }
