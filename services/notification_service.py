"""
Notification gateway: records every outbound message, pushes it to the
user's live WebSocket connections and e-mails it when SMTP is configured.

Sending is fire-and-forget for callers: `send` never raises, it returns
False and logs when a channel fails.
"""
import asyncio
import enum
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from api.crud.notification_crud import create_notification
from db import SessionLocal
from models.user import User
from services.email_service import EmailService
from services.websocket_manager import websocket_manager

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    TOURNAMENT_REMINDER = "tournament_reminder"
    PAYMENT_STATUS = "payment_status"
    TOURNAMENT_CANCELLED = "tournament_cancelled"
    WEBSITE_ORDER_APPROVED = "website_order_approved"
    PASSWORD_RESET = "password_reset"


TITLES = {
    NotificationKind.TOURNAMENT_REMINDER: "⏰ Tournament starting soon",
    NotificationKind.PAYMENT_STATUS: "💳 Payment update",
    NotificationKind.TOURNAMENT_CANCELLED: "❌ Tournament cancelled",
    NotificationKind.WEBSITE_ORDER_APPROVED: "🚀 Your download is ready",
    NotificationKind.PASSWORD_RESET: "🔑 Password reset requested",
}


class NotificationService:
    def __init__(self, session_factory=SessionLocal, ws_manager=websocket_manager, email_service: EmailService = None):
        self.session_factory = session_factory
        self.ws_manager = ws_manager
        self.email_service = email_service or EmailService()

    async def send(self, user_id: int, kind: str, payload: dict) -> bool:
        kind = NotificationKind(kind)
        message = {
            "type": kind.value,
            "title": TITLES[kind],
            "payload": payload,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        errors = []

        db = self.session_factory()
        try:
            user = db.query(User).filter(User.id == user_id).first()
            if user is None:
                logger.warning(f"Notification {kind.value} dropped: user {user_id} not found")
                return False

            try:
                await self.ws_manager.send_to_user(user_id, message)
            except Exception as e:
                errors.append(f"websocket: {e}")

            if self.email_service.enabled and user.email:
                try:
                    await asyncio.to_thread(self.email_service.send, user.email, kind.value, payload)
                except Exception as e:
                    errors.append(f"email: {e}")

            status = "failed" if errors else "sent"
            create_notification(db, user_id, kind.value, payload, status, "; ".join(errors) or None)
            if errors:
                logger.error(f"Notification {kind.value} to user {user_id} failed: {errors}")
                return False
            logger.info(f"Sent {kind.value} notification to user {user_id}")
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not record notification {kind.value} for user {user_id}: {e}")
            return False
        finally:
            db.close()


notification_service = NotificationService()


def get_notifier() -> NotificationService:
    """FastAPI dependency; tests override it with a recording fake"""
    return notification_service
