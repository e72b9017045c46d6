import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REMINDER_SCHEDULER_ENABLED"] = "false"
os.environ["SMTP_HOST"] = ""

import asyncio
import itertools
from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from main import app
from db import Base, engine, SessionLocal
from api.deps.db import get_db
from core.auth import create_user_token, hash_password
from core.roles import UserRole
from core.validators import utcnow
from models.participant import Participant, ParticipantStatus
from models.payment import Payment, PaymentMethod, PaymentStatus
from models.tournament import Tournament, TournamentStatus, GameMode
from models.user import User
from services.notification_service import NotificationKind, get_notifier

PASSWORD = "correct-horse-42"
PASSWORD_HASH = hash_password(PASSWORD)

SECRETS = {"room_id": "884213", "room_password": "ff-2024", "party_code": "PX91Q"}


class RecordingNotifier:
    """Stands in for the notification gateway and remembers every send"""

    def __init__(self):
        self.sent = []
        self.fail_for = set()
        self.raise_for = set()
        self.delay = 0

    async def send(self, user_id, kind, payload):
        if self.delay:
            await asyncio.sleep(self.delay)
        if user_id in self.raise_for:
            raise RuntimeError("gateway down")
        self.sent.append((user_id, NotificationKind(kind).value, payload))
        return user_id not in self.fail_for

    def of_kind(self, kind):
        return [entry for entry in self.sent if entry[1] == kind]


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------
@pytest.fixture(scope="function")
def db_session():
    """Create a fresh DB for each test (SQLite in-memory)."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def client(db_session, notifier):
    """FastAPI client that uses the test DB session and the recording notifier."""
    def _get_test_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ----------------------------------------------------------------------
# Factories
# ----------------------------------------------------------------------
@pytest.fixture
def make_user(db_session):
    counter = itertools.count(1)

    def _make(role=UserRole.USER, age_verified=True, email=None, is_active=True):
        n = next(counter)
        user = User(
            name=f"Player {n}",
            email=email or f"player{n}@example.com",
            password_hash=PASSWORD_HASH,
            date_of_birth=date(2000, 1, 1) if age_verified else None,
            is_age_verified=age_verified,
            role=role,
            is_active=is_active,
            accepted_terms=True,
            accepted_privacy=True,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN, email="admin@example.com")


@pytest.fixture
def player(make_user):
    return make_user(email="player@example.com")


@pytest.fixture
def make_tournament(db_session, admin):
    def _make(
        status=TournamentStatus.PUBLISHED,
        start_time=None,
        entry_fee=Decimal("50.00"),
        with_secrets=True,
        max_participants=None,
        name="Friday Night Clash",
    ):
        tournament = Tournament(
            name=name,
            game_mode=GameMode.SOLO,
            start_time=start_time or utcnow() + timedelta(hours=2),
            entry_fee=entry_fee,
            max_participants=max_participants,
            status=status,
            created_by=admin.id,
            **(SECRETS if with_secrets else {}),
        )
        db_session.add(tournament)
        db_session.commit()
        db_session.refresh(tournament)
        return tournament

    return _make


@pytest.fixture
def make_participant(db_session):
    """Insert a participation directly in the given state, with a matching payment when paid"""
    txn_counter = itertools.count(1)

    def _make(user, tournament, status=ParticipantStatus.APPROVED):
        payment = None
        if status != ParticipantStatus.PENDING_PAYMENT:
            payment_status = {
                ParticipantStatus.PENDING_VERIFY: PaymentStatus.PENDING,
                ParticipantStatus.APPROVED: PaymentStatus.APPROVED,
                ParticipantStatus.REJECTED: PaymentStatus.REJECTED,
            }[status]
            payment = Payment(
                user_id=user.id,
                tournament_id=tournament.id,
                method=PaymentMethod.BKASH,
                payer_number="01712345678",
                txn_id=f"SEED{next(txn_counter):06d}",
                amount=tournament.entry_fee,
                status=payment_status,
            )
            db_session.add(payment)
            db_session.flush()

        participant = Participant(
            user_id=user.id,
            tournament_id=tournament.id,
            payment_id=payment.id if payment else None,
            status=status,
        )
        db_session.add(participant)
        db_session.commit()
        db_session.refresh(participant)
        return participant

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_user_token(user)}"}
    return _headers
