from datetime import datetime, timedelta, timezone
from typing import Optional
import bcrypt
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from core.config import settings
from core.roles import UserRole
from core.exceptions import Unauthorized, Forbidden
from api.deps.db import get_db
from api.crud.user import get_user_by_id
from models.user import User
from schemas.auth import TokenData

security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def create_user_token(user: User) -> str:
    role = user.role.value if hasattr(user.role, "value") else str(user.role)
    return create_access_token({"sub": str(user.id), "role": role})


def verify_token(token: str) -> TokenData:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        user_id = payload.get("sub")
        if user_id is None:
            raise Unauthorized()
        return TokenData(user_id=int(user_id))
    except (JWTError, ValueError):
        raise Unauthorized()


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security), db: Session = Depends(get_db)):
    if credentials is None:
        raise Unauthorized("Not authenticated")

    token_data = verify_token(credentials.credentials)
    user = get_user_by_id(db, token_data.user_id)
    if user is None:
        raise Unauthorized()
    return user


def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Like get_current_user, but anonymous callers get None instead of 401"""
    if credentials is None:
        return None
    try:
        token_data = verify_token(credentials.credentials)
    except Unauthorized:
        return None
    return get_user_by_id(db, token_data.user_id)


def get_current_active_user(current_user: User = Depends(get_current_user)):
    if not current_user.is_active:
        raise Forbidden("Inactive user")
    return current_user


def ensure_role(user: User, required_role: UserRole) -> User:
    """Role guard used at the start of every privileged workflow operation"""
    if user is None or not UserRole.has_permission(user.role, required_role):
        raise Forbidden(f"Access denied. Required role: {required_role.value}")
    return user


def require_role(required_role: UserRole):
    """
    Dependency factory for role checks. Higher roles include lower ones.

    Example:
    @router.get("/admin-only")
    async def admin_endpoint(user: User = Depends(require_role(UserRole.ADMIN))):
        return {"message": "Admin access granted"}
    """
    def role_checker(current_user: User = Depends(get_current_active_user)):
        return ensure_role(current_user, required_role)
    return role_checker


def get_super_admin(current_user: User = Depends(require_role(UserRole.SUPER_ADMIN))):
    """Endpoints reserved for the super admin"""
    return current_user


def get_admin(current_user: User = Depends(require_role(UserRole.ADMIN))):
    """Endpoints available to admins and above"""
    return current_user
