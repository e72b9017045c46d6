from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from api.deps.db import get_db
from api.crud.participant_crud import get_user_participations
from api.crud.notification_crud import get_user_notifications
from api.crud.tournament_crud import attach_occupied_slots
from schemas.tournament import MyTournament, Participant, Tournament
from schemas.user import NotificationRead
from core.auth import get_current_active_user
from core.validators import utcnow
from models.tournament import TournamentStatus
from models.user import User
from services.disclosure_gate import reveal_credentials, credentials_available_at

router = APIRouter(prefix="/user", tags=["Users"])


@router.get("/tournaments", response_model=List[MyTournament])
async def get_my_tournaments(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    The caller's participations. Match credentials are filled in only while
    the disclosure gate is open for that participation.
    """
    now = utcnow()
    participations = [
        p for p in get_user_participations(db, current_user.id)
        if p.tournament.status != TournamentStatus.DRAFT
    ]
    attach_occupied_slots(db, [p.tournament for p in participations])

    result = []
    for participant in participations:
        tournament = participant.tournament
        result.append(MyTournament(
            participant=Participant.model_validate(participant),
            tournament=Tournament.model_validate(tournament),
            credentials=reveal_credentials(participant, tournament, now),
            credentials_available_at=credentials_available_at(tournament),
        ))
    return result


@router.get("/notifications", response_model=List[NotificationRead])
async def get_my_notifications(
    limit: int = 50,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return get_user_notifications(db, current_user.id, limit=min(max(1, limit), 100))
