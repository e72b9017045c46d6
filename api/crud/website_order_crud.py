from sqlalchemy.orm import Session
from typing import List, Optional
from models.website_order import WebsiteOrder, OrderStatus


def get_order(db: Session, order_id: int) -> Optional[WebsiteOrder]:
    return db.query(WebsiteOrder).filter(WebsiteOrder.id == order_id).first()


def get_order_by_payment(db: Session, payment_id: int) -> Optional[WebsiteOrder]:
    return db.query(WebsiteOrder).filter(WebsiteOrder.payment_id == payment_id).first()


def get_order_by_token(db: Session, token: str) -> Optional[WebsiteOrder]:
    return db.query(WebsiteOrder).filter(WebsiteOrder.download_token == token).first()


def get_pending_orders(db: Session) -> List[WebsiteOrder]:
    return db.query(WebsiteOrder).filter(
        WebsiteOrder.status == OrderStatus.PENDING
    ).order_by(WebsiteOrder.created_at.asc(), WebsiteOrder.id.asc()).all()


def transition_order(db: Session, order_id: int, expected: OrderStatus, new_status: OrderStatus, **values) -> bool:
    values[WebsiteOrder.status.key] = new_status
    updated = db.query(WebsiteOrder).filter(
        WebsiteOrder.id == order_id,
        WebsiteOrder.status == expected
    ).update(values, synchronize_session=False)
    return updated == 1
