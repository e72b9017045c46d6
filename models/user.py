from sqlalchemy import Column, Integer, String, DateTime, Boolean, Date
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import Enum as SQLEnum
from db import Base, enum_values
from core.roles import UserRole


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    date_of_birth = Column(Date, nullable=True)
    is_age_verified = Column(Boolean, default=False, nullable=False)
    role = Column(
        SQLEnum(UserRole, values_callable=enum_values),
        default=UserRole.USER,
        nullable=False
    )
    is_active = Column(Boolean, default=True, nullable=False)
    password_reset_token = Column(String, unique=True, index=True, nullable=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)
    accepted_terms = Column(Boolean, default=False, nullable=False)
    accepted_privacy = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def is_admin(self) -> bool:
        return UserRole.has_permission(self.role, UserRole.ADMIN)

    created_tournaments = relationship("Tournament", back_populates="creator")
    participations = relationship("Participant", back_populates="user")
