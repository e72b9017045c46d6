from datetime import date
from sqlalchemy.orm import Session
from models.user import User
from core.roles import UserRole


def get_user_by_id(db: Session, user_id: int):
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str):
    return db.query(User).filter(User.email == email.lower()).first()


def add_user(
    db: Session,
    name: str,
    email: str,
    password_hash: str,
    date_of_birth: date = None,
    is_age_verified: bool = False,
    role: UserRole = UserRole.USER,
    accepted_terms: bool = False,
    accepted_privacy: bool = False,
) -> User:
    """Stage a new user; the caller commits"""
    db_user = User(
        name=name,
        email=email.lower(),
        password_hash=password_hash,
        date_of_birth=date_of_birth,
        is_age_verified=is_age_verified,
        role=role,
        accepted_terms=accepted_terms,
        accepted_privacy=accepted_privacy,
    )
    db.add(db_user)
    db.flush()
    return db_user


def get_user_by_reset_token(db: Session, token: str):
    return db.query(User).filter(User.password_reset_token == token).first()


def consume_reset_token(db: Session, user_id: int, token: str, password_hash: str) -> bool:
    """Set the new password and clear the token, only while the token is still on the row"""
    updated = db.query(User).filter(
        User.id == user_id,
        User.password_reset_token == token
    ).update({
        User.password_hash: password_hash,
        User.password_reset_token: None,
        User.password_reset_expires: None,
    }, synchronize_session=False)
    return updated == 1
