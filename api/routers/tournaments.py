from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from api.deps.db import get_db
from schemas.tournament import (
    Tournament, TournamentAdmin, TournamentCreate, TournamentUpdate, TournamentStatusUpdate,
    TournamentList, Participant
)
from core.auth import get_current_active_user, get_current_user_optional
from models.tournament import TournamentStatus
from models.user import User
from services.notification_service import get_notifier
from services.participation_service import join_tournament
from services.tournament_lifecycle import TournamentLifecycleManager

router = APIRouter(prefix="/tournaments", tags=["Tournaments"])


def _is_admin(user: Optional[User]) -> bool:
    return user is not None and user.is_admin


@router.get("", response_model=TournamentList)
async def list_tournaments(
    status_filter: Optional[List[TournamentStatus]] = Query(None, alias="status"),
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional)
):
    """
    Browse tournaments ordered by start time. Drafts are only listed for admins;
    match credentials are never part of this response.
    """
    limit = min(max(1, limit), 100)
    skip = max(0, skip)
    manager = TournamentLifecycleManager(db)
    tournaments, total = manager.list_tournaments(
        status=status_filter, skip=skip, limit=limit, include_drafts=_is_admin(current_user)
    )
    return TournamentList(data=[Tournament.model_validate(t) for t in tournaments], total=total)


@router.get("/{tournament_id}", response_model=Tournament)
async def get_tournament_details(
    tournament_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional)
):
    manager = TournamentLifecycleManager(db)
    return manager.get_tournament(tournament_id, include_drafts=_is_admin(current_user))


@router.post("", response_model=TournamentAdmin, status_code=status.HTTP_201_CREATED)
async def create_tournament(
    tournament: TournamentCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Create a draft tournament (admin)"""
    return TournamentLifecycleManager(db).create_tournament(current_user, tournament)


@router.patch("/{tournament_id}", response_model=TournamentAdmin)
async def update_tournament(
    tournament_id: int,
    tournament_update: TournamentUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Edit metadata or match credentials (admin)"""
    return TournamentLifecycleManager(db).update_tournament(current_user, tournament_id, tournament_update)


@router.patch("/{tournament_id}/status", response_model=TournamentAdmin)
async def change_tournament_status(
    tournament_id: int,
    status_update: TournamentStatusUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier)
):
    manager = TournamentLifecycleManager(db, notifier=notifier)
    return await manager.transition(current_user, tournament_id, status_update.status)


@router.delete("/{tournament_id}")
async def delete_tournament(
    tournament_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Delete a tournament that has no approved participants (admin)"""
    TournamentLifecycleManager(db).delete_tournament(current_user, tournament_id)
    return {"message": "Tournament deleted successfully"}


@router.post("/{tournament_id}/join", response_model=Participant)
async def join_tournament_endpoint(
    tournament_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Join a published tournament; repeated calls return the same participation"""
    participant, _ = join_tournament(db, current_user, tournament_id)
    return participant
