from typing import Set
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from models.reminder import Reminder


def get_handled_milestones(db: Session, participant_id: int) -> Set[str]:
    rows = db.query(Reminder.milestone).filter(Reminder.participant_id == participant_id).all()
    return {row[0] for row in rows}


def claim_milestone(db: Session, participant_id: int, milestone: str) -> bool:
    """
    Persist the Reminder row and commit. Returns False when another tick
    already owns the (participant, milestone) pair.
    """
    db.add(Reminder(participant_id=participant_id, milestone=milestone))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    return True


def count_reminders(db: Session, participant_id: int, milestone: str = None) -> int:
    query = db.query(Reminder).filter(Reminder.participant_id == participant_id)
    if milestone:
        query = query.filter(Reminder.milestone == milestone)
    return query.count()
