"""
Disclosure gate for match credentials (room ID, room password, party code).

Credentials open a fixed window before the scheduled start and stay open
afterwards; they are closed again only by an admin moving the tournament
to finished/cancelled. Everything here is a pure function of its inputs,
so it is safe to call on every request and every scheduler tick.
"""
from datetime import datetime, timedelta
from typing import Optional

from core.config import settings
from core.validators import as_utc
from models.participant import Participant, ParticipantStatus
from models.tournament import Tournament, VISIBLE_STATUSES


def reveal_window() -> timedelta:
    return timedelta(minutes=settings.reveal_window_minutes)


def credentials_available_at(tournament: Tournament) -> Optional[datetime]:
    """Moment the gate opens for approved participants"""
    if tournament.start_time is None:
        return None
    return as_utc(tournament.start_time) - reveal_window()


def can_reveal(participant: Participant, tournament: Tournament, now: datetime) -> bool:
    if participant.tournament_id != tournament.id:
        raise ValueError("Participant does not belong to this tournament")

    if participant.status != ParticipantStatus.APPROVED:
        return False
    if tournament.status not in VISIBLE_STATUSES:
        return False
    if not tournament.has_secrets:
        return False

    opens_at = credentials_available_at(tournament)
    if opens_at is None:
        return False
    return as_utc(now) >= opens_at


def reveal_credentials(participant: Participant, tournament: Tournament, now: datetime) -> Optional[dict]:
    """Credential dict when the gate is open for this participant, else None"""
    if not can_reveal(participant, tournament, now):
        return None
    return {
        "room_id": tournament.room_id,
        "room_password": tournament.room_password,
        "party_code": tournament.party_code,
    }
