from pydantic import BaseModel
from typing import Optional, Any, Dict
from datetime import datetime
from core.roles import UserRole


class UserRoleUpdate(BaseModel):
    """Role change payload (super admin only)"""
    role: UserRole


class NotificationRead(BaseModel):
    id: int
    kind: str
    payload: Optional[Dict[str, Any]] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogRead(BaseModel):
    id: int
    actor_id: Optional[int] = None
    action: str
    meta: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True
