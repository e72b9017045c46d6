"""
Admin-only endpoints: verification queues, audit trail, role management
and the on-demand reminder pass.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from core.auth import get_admin, get_super_admin
from core.exceptions import ValidationError
from core.logging import logger
from core.roles import UserRole
from core.validators import utcnow, validate_user_exists
from api.deps.db import get_db
from api.crud.audit_log_crud import add_audit_log, get_audit_logs, get_audit_logs_count
from api.crud.participant_crud import get_participants_for_tournament
from api.crud.payment_crud import get_pending_payments
from api.crud.website_order_crud import get_pending_orders
from db import transaction
from models.user import User
from schemas.auth import User as UserSchema
from schemas.payment import Payment, WebsiteOrder
from schemas.tournament import TournamentAdmin, TournamentAdminDetail, Participant
from schemas.user import UserRoleUpdate, AuditLogRead
from services.notification_service import get_notifier
from services.reminder_scheduler import run_reminder_tick
from services.tournament_lifecycle import TournamentLifecycleManager, tournament_summary

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/audit-logs")
async def list_audit_logs(
    skip: int = 0,
    limit: int = 50,
    action: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_admin)
):
    """Audit trail, newest first. `action` filters on a single action name."""
    limit = min(max(1, limit), 200)
    skip = max(0, skip)
    logs = get_audit_logs(db, skip=skip, limit=limit, action=action)
    return {
        "data": [AuditLogRead.model_validate(log) for log in logs],
        "total": get_audit_logs_count(db, action=action),
        "skip": skip,
        "limit": limit,
    }


@router.get("/payments/pending", response_model=List[Payment])
async def list_pending_payments(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_admin)
):
    """Payments waiting for manual verification, oldest first"""
    return get_pending_payments(db, skip=max(0, skip), limit=min(max(1, limit), 200))


@router.get("/website-orders/pending", response_model=List[WebsiteOrder])
async def list_pending_website_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_admin)
):
    return get_pending_orders(db)


@router.get("/tournaments/{tournament_id}", response_model=TournamentAdminDetail)
async def get_tournament_admin_view(
    tournament_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_admin)
):
    """Full tournament record including match credentials and participants"""
    tournament = TournamentLifecycleManager(db).get_tournament(tournament_id, include_drafts=True)
    return TournamentAdminDetail(
        tournament=TournamentAdmin.model_validate(tournament),
        participants=[
            Participant.model_validate(p) for p in get_participants_for_tournament(db, tournament.id)
        ],
        summary=tournament_summary(tournament, utcnow()),
    )


@router.post("/reminders/run")
async def run_reminders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_admin),
    notifier=Depends(get_notifier)
):
    """Run one reminder pass now instead of waiting for the scheduler"""
    dispatched = await run_reminder_tick(db, utcnow(), notifier)
    logger.info(f"Manual reminder pass by admin {current_user.id}: {len(dispatched)} dispatched")
    return {
        "dispatched": [
            {"participant_id": participant_id, "milestone": milestone}
            for participant_id, milestone in dispatched
        ],
        "count": len(dispatched),
    }


@router.patch("/users/{user_id}/role", response_model=UserSchema)
async def update_user_role(
    user_id: int,
    role_update: UserRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_super_admin)
):
    """Change a user's role (super admin only)"""
    user = validate_user_exists(db, user_id)

    if user.id == current_user.id:
        raise ValidationError("Cannot change your own role")

    previous = user.role
    with transaction(db):
        user.role = role_update.role
        add_audit_log(db, current_user.id, "role_changed", {
            "user_id": user.id,
            "from": UserRole(previous).value,
            "to": role_update.role.value,
        })
    db.refresh(user)
    logger.info(f"User {user.id} role changed {UserRole(previous).value} -> {role_update.role.value}")
    return user
