from pydantic import BaseModel, Field, validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal
from models.tournament import TournamentStatus, GameMode
from models.participant import ParticipantStatus


class TournamentBase(BaseModel):
    name: str = Field(..., min_length=3, max_length=100, description="Tournament name")
    description: Optional[str] = Field(None, max_length=2000)
    game: str = "Free Fire"
    game_mode: Optional[GameMode] = None
    start_time: Optional[datetime] = None
    entry_fee: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    prize_1: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    prize_2: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    prize_3: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    max_participants: Optional[int] = Field(None, ge=1, le=1000)

    @validator('start_time', pre=True)
    def parse_start_time(cls, v):
        if v == "":
            return None
        return v


class TournamentCreate(TournamentBase):
    room_id: Optional[str] = Field(None, max_length=64)
    room_password: Optional[str] = Field(None, max_length=64)
    party_code: Optional[str] = Field(None, max_length=64)


class TournamentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    game: Optional[str] = None
    game_mode: Optional[GameMode] = None
    start_time: Optional[datetime] = None
    entry_fee: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    prize_1: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    prize_2: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    prize_3: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    max_participants: Optional[int] = Field(None, ge=1, le=1000)
    room_id: Optional[str] = Field(None, max_length=64)
    room_password: Optional[str] = Field(None, max_length=64)
    party_code: Optional[str] = Field(None, max_length=64)


class TournamentStatusUpdate(BaseModel):
    status: TournamentStatus


class Tournament(TournamentBase):
    """Public response schema: never carries match credentials"""
    id: int
    status: TournamentStatus
    occupied_slots: Optional[int] = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TournamentAdmin(Tournament):
    room_id: Optional[str] = None
    room_password: Optional[str] = None
    party_code: Optional[str] = None
    created_by: Optional[int] = None


class MatchCredentials(BaseModel):
    room_id: str
    room_password: str
    party_code: str


class Participant(BaseModel):
    id: int
    user_id: int
    tournament_id: int
    payment_id: Optional[int] = None
    status: ParticipantStatus
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MyTournament(BaseModel):
    """One of the caller's participations, credentials only once revealed"""
    participant: Participant
    tournament: Tournament
    credentials: Optional[MatchCredentials] = None
    credentials_available_at: Optional[datetime] = None


class TournamentList(BaseModel):
    data: List[Tournament]
    total: int


class TournamentAdminDetail(BaseModel):
    tournament: TournamentAdmin
    participants: List[Participant]
    summary: Dict[str, Any]
