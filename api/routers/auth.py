from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from api.deps.db import get_db
from api.crud.user import get_user_by_email, add_user
from api.crud.audit_log_crud import add_audit_log
from schemas.auth import (
    UserRegister, UserLogin, AgeVerification, ForgotPassword, ResetPassword, Token, User as UserSchema
)
from core.auth import hash_password, verify_password, create_user_token, get_current_active_user
from core.config import settings
from core.exceptions import AgeVerificationRequired, Unauthorized, ValidationError
from core.validators import calculate_age, utcnow
from core.logging import logger
from db import transaction
from services.notification_service import get_notifier
from services.password_reset_service import request_password_reset, reset_password
from models.user import User

router = APIRouter(prefix="/auth")


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister, db: Session = Depends(get_db)):
    """Create an account; only players old enough to take part may register"""
    if not user_data.accepted_terms or not user_data.accepted_privacy:
        raise ValidationError("You must accept the terms and the privacy policy")

    if calculate_age(user_data.date_of_birth, utcnow().date()) < settings.minimum_age:
        raise AgeVerificationRequired(settings.minimum_age)

    if get_user_by_email(db, user_data.email):
        raise ValidationError("An account with this email already exists")

    with transaction(db):
        user = add_user(
            db,
            name=user_data.name.strip(),
            email=user_data.email,
            password_hash=hash_password(user_data.password),
            date_of_birth=user_data.date_of_birth,
            is_age_verified=True,
            accepted_terms=True,
            accepted_privacy=True,
        )
        add_audit_log(db, user.id, "user_registered", {"user_id": user.id})
    db.refresh(user)

    logger.info(f"Registered user {user.id} ({user.email})")
    return Token(access_token=create_user_token(user), user=UserSchema.model_validate(user))


@router.post("/login", response_model=Token)
async def login(credentials: UserLogin, db: Session = Depends(get_db)):
    user = get_user_by_email(db, credentials.email)
    if not user or not verify_password(credentials.password, user.password_hash):
        raise Unauthorized("Invalid email or password")
    if not user.is_active:
        raise Unauthorized("Account is disabled")

    logger.info(f"User {user.id} logged in")
    return Token(access_token=create_user_token(user), user=UserSchema.model_validate(user))


@router.post("/forgot-password")
async def forgot_password(
    data: ForgotPassword,
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier)
):
    """E-mail a reset link; the answer is the same whether or not the account exists"""
    await request_password_reset(db, data.email, utcnow(), notifier)
    return {"message": "If an account with that email exists, a password reset link has been sent."}


@router.post("/reset-password")
async def reset_password_with_token(data: ResetPassword, db: Session = Depends(get_db)):
    reset_password(db, data.token, data.password, utcnow())
    return {"message": "Password reset successful"}


@router.get("/me", response_model=UserSchema)
async def get_current_user_info(current_user: User = Depends(get_current_active_user)):
    """Get current authenticated user info"""
    return current_user


@router.post("/verify-age", response_model=UserSchema)
async def verify_age(
    data: AgeVerification,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Confirm the caller's date of birth; unlocks tournament registration"""
    age = calculate_age(data.date_of_birth, utcnow().date())
    if age < settings.minimum_age:
        raise AgeVerificationRequired(settings.minimum_age)

    with transaction(db):
        current_user.date_of_birth = data.date_of_birth
        current_user.is_age_verified = True
        add_audit_log(db, current_user.id, "age_verified", {"user_id": current_user.id, "age": age})
    db.refresh(current_user)
    return current_user
