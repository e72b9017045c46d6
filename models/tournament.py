from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from db import Base, enum_values
import enum


class TournamentStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    LIVE = "live"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class GameMode(str, enum.Enum):
    SOLO = "solo"
    SQUAD = "squad"


TERMINAL_STATUSES = (TournamentStatus.FINISHED, TournamentStatus.CANCELLED)
VISIBLE_STATUSES = (TournamentStatus.PUBLISHED, TournamentStatus.LIVE)


class Tournament(Base):
    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    game = Column(String, default="Free Fire", nullable=False)
    game_mode = Column(Enum(GameMode, values_callable=enum_values), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=True, index=True)
    entry_fee = Column(Numeric(10, 2), nullable=True)
    prize_1 = Column(Numeric(10, 2), nullable=True)
    prize_2 = Column(Numeric(10, 2), nullable=True)
    prize_3 = Column(Numeric(10, 2), nullable=True)
    max_participants = Column(Integer, nullable=True)

    # Match credentials, never serialized to players unless the disclosure gate opens
    room_id = Column(String, nullable=True)
    room_password = Column(String, nullable=True)
    party_code = Column(String, nullable=True)

    status = Column(Enum(TournamentStatus, values_callable=enum_values), default=TournamentStatus.DRAFT, nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    creator = relationship("User", back_populates="created_tournaments", lazy='select')
    participants = relationship("Participant", back_populates="tournament", lazy='select')

    @property
    def has_secrets(self) -> bool:
        return all([self.room_id, self.room_password, self.party_code])
