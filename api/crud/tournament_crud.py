from typing import List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session
from models.tournament import Tournament, TournamentStatus
from models.participant import Participant, ParticipantStatus


def get_tournament(db: Session, tournament_id: int) -> Optional[Tournament]:
    return db.query(Tournament).filter(Tournament.id == tournament_id).first()


def get_tournaments(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    status: List[TournamentStatus] = None
) -> Tuple[List[Tournament], int]:
    query = db.query(Tournament)
    if status:
        query = query.filter(Tournament.status.in_([TournamentStatus(s) for s in status]))

    total = query.count()
    tournaments = query.order_by(
        Tournament.start_time.asc(), Tournament.id.asc()
    ).offset(skip).limit(limit).all()
    return tournaments, total


def count_participants(db: Session, tournament_id: int, statuses: List[ParticipantStatus] = None) -> int:
    query = db.query(func.count(Participant.id)).filter(Participant.tournament_id == tournament_id)
    if statuses:
        query = query.filter(Participant.status.in_(statuses))
    return query.scalar() or 0


def count_occupied_slots(db: Session, tournament_id: int) -> int:
    """Every join that has not been rejected holds a slot"""
    return count_participants(db, tournament_id, [
        ParticipantStatus.PENDING_PAYMENT,
        ParticipantStatus.PENDING_VERIFY,
        ParticipantStatus.APPROVED,
    ])


def attach_occupied_slots(db: Session, tournaments: List[Tournament]) -> List[Tournament]:
    if not tournaments:
        return tournaments
    ids = [t.id for t in tournaments]
    rows = db.query(Participant.tournament_id, func.count(Participant.id)).filter(
        Participant.tournament_id.in_(ids),
        Participant.status != ParticipantStatus.REJECTED
    ).group_by(Participant.tournament_id).all()
    counts = dict(rows)
    for tournament in tournaments:
        tournament.occupied_slots = counts.get(tournament.id, 0)
    return tournaments


def compare_and_set_status(
    db: Session,
    tournament_id: int,
    expected: TournamentStatus,
    new_status: TournamentStatus
) -> bool:
    """Move to new_status only if the stored status is still `expected`"""
    updated = db.query(Tournament).filter(
        Tournament.id == tournament_id,
        Tournament.status == expected
    ).update({Tournament.status: new_status, Tournament.updated_at: func.now()}, synchronize_session=False)
    return updated == 1
