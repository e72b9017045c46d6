"""
Tournament lifecycle: draft -> published -> live -> finished, with
cancellation from any non-terminal state. Transitions are applied with
compare-and-swap on the stored status, so two admins acting at once
cannot both move the same tournament.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from api.crud.audit_log_crud import add_audit_log
from api.crud.participant_crud import get_participants_for_tournament
from api.crud.tournament_crud import (
    get_tournament, get_tournaments, count_participants, compare_and_set_status,
    attach_occupied_slots
)
from core.auth import ensure_role
from core.exceptions import (
    InvalidTransition, TournamentNotFound, ValidationError, TournamentClosed,
    TournamentHasApprovedParticipants
)
from core.roles import UserRole
from core.validators import as_utc
from db import transaction
from models.participant import Participant, ParticipantStatus
from models.payment import Payment
from models.reminder import Reminder
from models.tournament import Tournament, TournamentStatus, TERMINAL_STATUSES
from models.user import User
from schemas.tournament import TournamentCreate, TournamentUpdate
from services.notification_service import NotificationKind

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[TournamentStatus, Set[TournamentStatus]] = {
    TournamentStatus.DRAFT: {TournamentStatus.PUBLISHED, TournamentStatus.CANCELLED},
    TournamentStatus.PUBLISHED: {TournamentStatus.LIVE, TournamentStatus.CANCELLED},
    TournamentStatus.LIVE: {TournamentStatus.FINISHED, TournamentStatus.CANCELLED},
    TournamentStatus.FINISHED: set(),
    TournamentStatus.CANCELLED: set(),
}

REQUIRED_TO_PUBLISH = ("name", "game_mode", "start_time", "entry_fee")
NOT_NULL_FIELDS = ("name", "game")

# statuses anonymous players may see
PUBLIC_STATUSES = [
    TournamentStatus.PUBLISHED, TournamentStatus.LIVE,
    TournamentStatus.FINISHED, TournamentStatus.CANCELLED,
]


def validate_transition(current: TournamentStatus, requested: TournamentStatus):
    if requested not in TRANSITIONS.get(current, set()):
        raise InvalidTransition(current.value, requested.value)


def missing_publish_fields(tournament: Tournament) -> List[str]:
    return [field for field in REQUIRED_TO_PUBLISH if getattr(tournament, field) in (None, "")]


class TournamentLifecycleManager:
    """Admin-driven tournament state machine plus the read-only query surface"""

    def __init__(self, db: Session, notifier=None):
        self.db = db
        self.notifier = notifier

    # -- queries --

    def list_tournaments(
        self,
        status: Optional[List[TournamentStatus]] = None,
        skip: int = 0,
        limit: int = 100,
        include_drafts: bool = False
    ) -> Tuple[List[Tournament], int]:
        allowed = list(TournamentStatus) if include_drafts else PUBLIC_STATUSES
        wanted = [s for s in (status or allowed) if s in allowed]
        if not wanted:
            return [], 0
        tournaments, total = get_tournaments(self.db, skip=skip, limit=limit, status=wanted)
        return attach_occupied_slots(self.db, tournaments), total

    def get_tournament(self, tournament_id: int, include_drafts: bool = False) -> Tournament:
        tournament = get_tournament(self.db, tournament_id)
        if not tournament or (tournament.status == TournamentStatus.DRAFT and not include_drafts):
            raise TournamentNotFound()
        attach_occupied_slots(self.db, [tournament])
        return tournament

    # -- admin operations --

    def create_tournament(self, admin: User, data: TournamentCreate) -> Tournament:
        ensure_role(admin, UserRole.ADMIN)
        values = data.dict()
        values["start_time"] = as_utc(values.get("start_time"))

        tournament = Tournament(**values, status=TournamentStatus.DRAFT, created_by=admin.id)
        with transaction(self.db):
            self.db.add(tournament)
            self.db.flush()
            add_audit_log(self.db, admin.id, "tournament_created", {
                "tournament_id": tournament.id, "name": tournament.name
            })
        self.db.refresh(tournament)
        logger.info(f"Tournament {tournament.id} '{tournament.name}' created by admin {admin.id}")
        return tournament

    def update_tournament(self, admin: User, tournament_id: int, data: TournamentUpdate) -> Tournament:
        ensure_role(admin, UserRole.ADMIN)
        tournament = get_tournament(self.db, tournament_id)
        if not tournament:
            raise TournamentNotFound()
        if tournament.status in TERMINAL_STATUSES:
            raise TournamentClosed()

        update_data = data.dict(exclude_unset=True)
        cleared = [field for field in NOT_NULL_FIELDS if field in update_data and update_data[field] is None]
        if cleared:
            raise ValidationError(f"Fields cannot be cleared: {', '.join(cleared)}")
        if "start_time" in update_data:
            if update_data["start_time"] is None and tournament.status != TournamentStatus.DRAFT:
                raise ValidationError("start_time cannot be cleared after publishing")
            update_data["start_time"] = as_utc(update_data["start_time"])
        if "entry_fee" in update_data and tournament.status != TournamentStatus.DRAFT:
            raise ValidationError("Entry fee cannot change after the tournament is published")

        with transaction(self.db):
            for field, value in update_data.items():
                setattr(tournament, field, value)
            add_audit_log(self.db, admin.id, "tournament_updated", {
                "tournament_id": tournament.id,
                # never write credential values to the audit log
                "fields": sorted(update_data.keys()),
            })
        self.db.refresh(tournament)
        return tournament

    async def transition(self, admin: User, tournament_id: int, new_status: TournamentStatus) -> Tournament:
        ensure_role(admin, UserRole.ADMIN)
        tournament = get_tournament(self.db, tournament_id)
        if not tournament:
            raise TournamentNotFound()

        current = tournament.status
        validate_transition(current, new_status)
        if new_status == TournamentStatus.PUBLISHED:
            missing = missing_publish_fields(tournament)
            if missing:
                raise ValidationError(f"Cannot publish, missing required fields: {', '.join(missing)}")

        with transaction(self.db):
            swapped = compare_and_set_status(self.db, tournament.id, current, new_status)
            if swapped:
                add_audit_log(self.db, admin.id, "tournament_status_changed", {
                    "tournament_id": tournament.id,
                    "from": current.value,
                    "to": new_status.value,
                })
        if not swapped:
            # someone else moved it first
            self.db.refresh(tournament)
            raise InvalidTransition(tournament.status.value, new_status.value)

        self.db.refresh(tournament)
        logger.info(f"Tournament {tournament.id}: {current.value} -> {new_status.value} by admin {admin.id}")

        if new_status == TournamentStatus.CANCELLED:
            await self._notify_cancelled(tournament)
        return tournament

    def delete_tournament(self, admin: User, tournament_id: int):
        ensure_role(admin, UserRole.ADMIN)
        tournament = get_tournament(self.db, tournament_id)
        if not tournament:
            raise TournamentNotFound()

        with transaction(self.db):
            approved = count_participants(self.db, tournament.id, [ParticipantStatus.APPROVED])
            if approved:
                raise TournamentHasApprovedParticipants(approved)
            participant_ids = [
                row[0] for row in self.db.query(Participant.id).filter(Participant.tournament_id == tournament.id)
            ]
            if participant_ids:
                self.db.query(Reminder).filter(
                    Reminder.participant_id.in_(participant_ids)
                ).delete(synchronize_session=False)
            self.db.query(Participant).filter(
                Participant.tournament_id == tournament.id
            ).delete(synchronize_session=False)
            self.db.query(Payment).filter(
                Payment.tournament_id == tournament.id
            ).delete(synchronize_session=False)
            add_audit_log(self.db, admin.id, "tournament_deleted", {
                "tournament_id": tournament.id,
                "name": tournament.name,
                "participants_removed": len(participant_ids),
            })
            self.db.delete(tournament)
        logger.info(f"Tournament {tournament_id} deleted by admin {admin.id}")

    async def _notify_cancelled(self, tournament: Tournament):
        if self.notifier is None:
            return
        participants = get_participants_for_tournament(self.db, tournament.id, [
            ParticipantStatus.PENDING_PAYMENT,
            ParticipantStatus.PENDING_VERIFY,
            ParticipantStatus.APPROVED,
        ])
        payload = {"tournament_id": tournament.id, "tournament_name": tournament.name}
        for participant in participants:
            await self.notifier.send(participant.user_id, NotificationKind.TOURNAMENT_CANCELLED, payload)


def tournament_summary(tournament: Tournament, now: datetime) -> dict:
    """Admin view of what can happen next to a tournament"""
    start = as_utc(tournament.start_time)
    return {
        "tournament_id": tournament.id,
        "status": tournament.status.value,
        "allowed_transitions": sorted(s.value for s in TRANSITIONS[tournament.status]),
        "missing_to_publish": missing_publish_fields(tournament) if tournament.status == TournamentStatus.DRAFT else [],
        "has_credentials": tournament.has_secrets,
        "seconds_until_start": int((start - now).total_seconds()) if start else None,
    }
