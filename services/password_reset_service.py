"""
Password reset by e-mail. The token lives on the user row, expires after
PASSWORD_RESET_TTL_MINUTES and is cleared by the update that sets the new
password, so it works once.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from api.crud.audit_log_crud import add_audit_log
from api.crud.user import get_user_by_email, get_user_by_reset_token, consume_reset_token
from core.auth import hash_password
from core.config import settings
from core.exceptions import ValidationError
from core.validators import as_utc
from db import transaction
from models.user import User
from services.notification_service import NotificationKind

logger = logging.getLogger(__name__)

INVALID_TOKEN = "Invalid or expired reset token"


def reset_url(token: str) -> str:
    return f"{settings.base_url.rstrip('/')}/reset-password?token={token}"


async def request_password_reset(db: Session, email: str, now: datetime, notifier) -> Optional[User]:
    """
    Issue a fresh token and e-mail the link. Unknown or disabled accounts
    get no token; callers answer the same way either way.
    """
    user = get_user_by_email(db, email)
    if user is None or not user.is_active:
        logger.info("Password reset requested for an unknown or disabled account")
        return None

    token = secrets.token_urlsafe(32)
    expires_at = as_utc(now) + timedelta(minutes=settings.password_reset_ttl_minutes)
    with transaction(db):
        user.password_reset_token = token
        user.password_reset_expires = expires_at
        add_audit_log(db, user.id, "password_reset_requested", {"user_id": user.id})

    await notifier.send(user.id, NotificationKind.PASSWORD_RESET, {
        "reset_url": reset_url(token),
        "expires_at": expires_at.isoformat(),
    })
    logger.info(f"Password reset link issued for user {user.id}")
    return user


def reset_password(db: Session, token: str, new_password: str, now: datetime) -> User:
    user = get_user_by_reset_token(db, token)
    if user is None or user.password_reset_expires is None:
        raise ValidationError(INVALID_TOKEN)
    if as_utc(now) > as_utc(user.password_reset_expires):
        raise ValidationError(INVALID_TOKEN)

    with transaction(db):
        # a concurrent reset with the same token loses here
        if not consume_reset_token(db, user.id, token, hash_password(new_password)):
            raise ValidationError(INVALID_TOKEN)
        add_audit_log(db, user.id, "password_reset", {"user_id": user.id})

    db.refresh(user)
    logger.info(f"Password reset for user {user.id}")
    return user
