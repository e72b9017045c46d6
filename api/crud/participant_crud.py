from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from sqlalchemy import and_
from sqlalchemy.orm import Session, joinedload
from models.participant import Participant, ParticipantStatus
from models.tournament import Tournament, VISIBLE_STATUSES


def get_participant_by_ids(db: Session, tournament_id: int, user_id: int) -> Optional[Participant]:
    return db.query(Participant).filter(
        and_(
            Participant.tournament_id == tournament_id,
            Participant.user_id == user_id
        )
    ).first()


def get_user_participations(db: Session, user_id: int) -> List[Participant]:
    return db.query(Participant).options(
        joinedload(Participant.tournament)
    ).filter(
        Participant.user_id == user_id
    ).order_by(Participant.joined_at.desc(), Participant.id.desc()).all()


def add_participant(db: Session, tournament_id: int, user_id: int) -> Participant:
    """Stage a new join in pending_payment; the caller commits"""
    participant = Participant(
        tournament_id=tournament_id,
        user_id=user_id,
        status=ParticipantStatus.PENDING_PAYMENT
    )
    db.add(participant)
    db.flush()
    return participant


def transition_participant(
    db: Session,
    participant_id: int,
    expected: ParticipantStatus,
    new_status: ParticipantStatus,
    **values
) -> bool:
    """Conditional update: applies only while the row is still in `expected`"""
    values[Participant.status.key] = new_status
    updated = db.query(Participant).filter(
        Participant.id == participant_id,
        Participant.status == expected
    ).update(values, synchronize_session=False)
    return updated == 1


def set_status_for_payment(db: Session, payment_id: int, new_status: ParticipantStatus) -> int:
    """Cascade a payment decision to the participant waiting on it"""
    return db.query(Participant).filter(
        Participant.payment_id == payment_id,
        Participant.status == ParticipantStatus.PENDING_VERIFY
    ).update({Participant.status: new_status}, synchronize_session=False)


def get_participants_for_tournament(db: Session, tournament_id: int, statuses: List[ParticipantStatus] = None):
    query = db.query(Participant).filter(Participant.tournament_id == tournament_id)
    if statuses:
        query = query.filter(Participant.status.in_(statuses))
    return query.all()


def get_due_for_reminders(db: Session, now: datetime, horizon: timedelta) -> List[Tuple[Participant, Tournament]]:
    """Approved participants of visible tournaments starting within (now, now + horizon]"""
    return db.query(Participant, Tournament).join(
        Tournament, Participant.tournament_id == Tournament.id
    ).filter(
        Participant.status == ParticipantStatus.APPROVED,
        Tournament.status.in_(VISIBLE_STATUSES),
        Tournament.start_time > now,
        Tournament.start_time <= now + horizon
    ).order_by(Tournament.start_time.asc(), Participant.id.asc()).all()
