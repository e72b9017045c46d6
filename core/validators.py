import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from sqlalchemy.orm import Session
from models.payment import Payment
from models.user import User
from core.exceptions import PaymentNotFound, UserNotFound, ValidationError

BD_MOBILE_RE = re.compile(r"^(?:\+?88)?(01[3-9]\d{8})$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite drops tzinfo) as UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_minor_units(amount) -> int:
    """Convert a money amount (Decimal, int, float or str) to poisha"""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {amount!r}")
    if not value.is_finite() or value <= 0:
        raise ValidationError("Amount must be a positive number")
    minor = value * 100
    if minor != minor.to_integral_value():
        raise ValidationError("Amount cannot have more than 2 decimal places")
    return int(minor)


def validate_amount_matches(amount, expected) -> None:
    """Submitted amount must equal the expected price exactly"""
    if to_minor_units(amount) != to_minor_units(expected):
        raise ValidationError(f"Amount must be exactly {Decimal(str(expected)):.2f}")


def normalize_payer_number(number: str) -> str:
    """Accept 01XXXXXXXXX with optional +88/88 prefix, return the 11-digit form"""
    cleaned = re.sub(r"[\s-]", "", number or "")
    match = BD_MOBILE_RE.match(cleaned)
    if not match:
        raise ValueError("Payer number must be a valid Bangladeshi mobile number (01XXXXXXXXX)")
    return match.group(1)


def calculate_age(date_of_birth: date, today: date) -> int:
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def validate_payment_exists(db: Session, payment_id: int) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise PaymentNotFound()
    return payment


def validate_user_exists(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UserNotFound()
    return user
