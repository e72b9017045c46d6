from sqlalchemy.orm import Session
from typing import List
from models.notification import Notification


def create_notification(db: Session, user_id: int, kind: str, payload: dict, status: str, error: str = None):
    notification = Notification(user_id=user_id, kind=kind, payload=payload, status=status, error=error)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def get_user_notifications(db: Session, user_id: int, limit: int = 50) -> List[Notification]:
    return db.query(Notification).filter(
        Notification.user_id == user_id
    ).order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()
