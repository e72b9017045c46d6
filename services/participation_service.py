"""
Per-user participation workflow:

    pending_payment --submit payment--> pending_verify --admin--> approved | rejected

Joining is idempotent. A rejected participation may join again, which
resets the same row to pending_payment so the user can resubmit a
corrected payment.
"""
import logging
from typing import Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from api.crud.audit_log_crud import add_audit_log
from api.crud.participant_crud import get_participant_by_ids, add_participant, transition_participant
from api.crud.payment_crud import add_payment, find_active_payment_by_txn
from api.crud.tournament_crud import get_tournament, count_occupied_slots
from core.config import settings
from core.exceptions import (
    AgeVerificationRequired, TournamentNotFound, TournamentNotJoinable, NoPendingJoin,
    ValidationError, StorageUnavailable
)
from core.validators import validate_amount_matches, normalize_payer_number
from db import transaction
from models.participant import Participant, ParticipantStatus
from models.payment import Payment, PaymentMethod
from models.tournament import Tournament, TournamentStatus, TERMINAL_STATUSES
from models.user import User

logger = logging.getLogger(__name__)


def _get_visible_tournament(db: Session, tournament_id: int) -> Tournament:
    tournament = get_tournament(db, tournament_id)
    if not tournament or tournament.status == TournamentStatus.DRAFT:
        raise TournamentNotFound()
    return tournament


def _ensure_capacity(db: Session, tournament: Tournament, staged: int = 0):
    """Raise when full; `staged` is how many of the counted joins this transaction has flushed itself"""
    if tournament.max_participants and count_occupied_slots(db, tournament.id) - staged >= tournament.max_participants:
        raise TournamentNotJoinable("Tournament is full")


def join_tournament(db: Session, user: User, tournament_id: int) -> Tuple[Participant, bool]:
    """
    Join a published tournament. Returns (participant, created); calling it
    again for a live participation returns the existing row unchanged.
    """
    if not user.is_age_verified:
        raise AgeVerificationRequired(settings.minimum_age)

    tournament = _get_visible_tournament(db, tournament_id)
    if tournament.status != TournamentStatus.PUBLISHED:
        raise TournamentNotJoinable(f"Tournament is {tournament.status.value}, registration is closed")

    existing = get_participant_by_ids(db, tournament.id, user.id)
    if existing and existing.status != ParticipantStatus.REJECTED:
        return existing, False

    _ensure_capacity(db, tournament)

    if existing:
        with transaction(db):
            retried = transition_participant(
                db, existing.id, ParticipantStatus.REJECTED, ParticipantStatus.PENDING_PAYMENT, payment_id=None
            )
            if retried:
                _ensure_capacity(db, tournament, staged=1)
                add_audit_log(db, user.id, "tournament_joined", {
                    "tournament_id": tournament.id, "participant_id": existing.id, "retry": True
                })
        db.refresh(existing)
        if retried:
            logger.info(f"User {user.id} re-joined tournament {tournament.id} after rejection")
        return existing, retried

    try:
        participant = add_participant(db, tournament.id, user.id)
        # recount with this join flushed; catches joins committed since the first check
        _ensure_capacity(db, tournament, staged=1)
        add_audit_log(db, user.id, "tournament_joined", {
            "tournament_id": tournament.id, "participant_id": participant.id
        })
        db.commit()
    except IntegrityError:
        # a concurrent join for the same pair won the unique constraint
        db.rollback()
        existing = get_participant_by_ids(db, tournament.id, user.id)
        if existing is None:
            raise StorageUnavailable()
        return existing, False
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageUnavailable() from e
    except TournamentNotJoinable:
        db.rollback()
        raise

    db.refresh(participant)
    logger.info(f"User {user.id} joined tournament {tournament.id} (participant {participant.id})")
    return participant, True


def submit_payment(
    db: Session,
    user: User,
    tournament_id: int,
    method: PaymentMethod,
    payer_number: str,
    txn_id: str,
    amount,
) -> Tuple[Payment, Participant]:
    """Record a manual bKash/Nagad payment and move the join to pending_verify"""
    tournament = _get_visible_tournament(db, tournament_id)
    if tournament.status in TERMINAL_STATUSES:
        raise TournamentNotJoinable(f"Tournament is {tournament.status.value}")

    validate_amount_matches(amount, tournament.entry_fee)

    participant = get_participant_by_ids(db, tournament.id, user.id)
    if not participant or participant.status != ParticipantStatus.PENDING_PAYMENT:
        raise NoPendingJoin()

    try:
        payer_number = normalize_payer_number(payer_number)
    except ValueError as e:
        raise ValidationError(str(e))
    txn_id = txn_id.strip().upper()
    method = PaymentMethod(method)
    if find_active_payment_by_txn(db, method, txn_id):
        raise ValidationError("This transaction ID has already been submitted")

    with transaction(db):
        payment = add_payment(db, user.id, tournament.id, method, payer_number, txn_id, tournament.entry_fee)
        # conditional update: a concurrent submission for the same join loses here
        if not transition_participant(
            db, participant.id, ParticipantStatus.PENDING_PAYMENT, ParticipantStatus.PENDING_VERIFY,
            payment_id=payment.id
        ):
            raise NoPendingJoin()
        add_audit_log(db, user.id, "payment_submitted", {
            "payment_id": payment.id,
            "tournament_id": tournament.id,
            "participant_id": participant.id,
            "method": method.value,
            "txn_id": txn_id,
        })

    db.refresh(payment)
    db.refresh(participant)
    logger.info(f"Payment {payment.id} submitted by user {user.id} for tournament {tournament.id}")
    return payment, participant
