"""
Notification gateway: record, push over WebSocket, e-mail
"""
import asyncio

from db import SessionLocal
from models.notification import Notification
from services.email_service import render_email
from services.notification_service import NotificationService


class FakeSocketManager:
    def __init__(self, fail=False):
        self.messages = []
        self.fail = fail

    async def send_to_user(self, user_id, message):
        if self.fail:
            raise ConnectionError("socket closed")
        self.messages.append((user_id, message))
        return 1


class FakeEmail:
    def __init__(self, enabled=True):
        self.enabled = enabled
        self.outbox = []

    def send(self, to_email, kind, payload):
        self.outbox.append((to_email, kind, payload))


def make_service(ws=None, email=None):
    return NotificationService(
        session_factory=SessionLocal,
        ws_manager=ws or FakeSocketManager(),
        email_service=email or FakeEmail(),
    )


def test_send_pushes_emails_and_records(db_session, player):
    ws, email = FakeSocketManager(), FakeEmail()
    service = make_service(ws, email)

    assert asyncio.run(service.send(player.id, "payment_status", {"status": "approved"})) is True

    [(user_id, message)] = ws.messages
    assert user_id == player.id
    assert message["type"] == "payment_status"
    assert email.outbox == [(player.email, "payment_status", {"status": "approved"})]

    record = db_session.query(Notification).one()
    assert record.status == "sent"
    assert record.error is None


def test_email_skipped_when_disabled(db_session, player):
    email = FakeEmail(enabled=False)
    assert asyncio.run(make_service(email=email).send(player.id, "tournament_reminder", {"minutes": 30})) is True
    assert email.outbox == []


def test_channel_failure_is_reported_not_raised(db_session, player):
    service = make_service(ws=FakeSocketManager(fail=True))

    assert asyncio.run(service.send(player.id, "tournament_cancelled", {"tournament_id": 1})) is False

    record = db_session.query(Notification).one()
    assert record.status == "failed"
    assert "socket closed" in record.error


def test_unknown_user(db_session):
    assert asyncio.run(make_service().send(12345, "payment_status", {})) is False
    assert db_session.query(Notification).count() == 0


def test_reminder_email_includes_credentials():
    subject, html = render_email("tournament_reminder", {
        "tournament_name": "Friday Night Clash",
        "minutes": 5,
        "credentials": {"room_id": "884213", "room_password": "ff-2024", "party_code": "PX91Q"},
    })
    assert subject == "Tournament Reminder: Friday Night Clash - 5 minutes to start!"
    assert "884213" in html and "PX91Q" in html


def test_password_reset_email_has_link():
    subject, html = render_email("password_reset", {
        "reset_url": "http://localhost:8000/reset-password?token=abc123",
        "expires_at": "2026-03-14T18:00:00+00:00",
    })
    assert subject == "Reset your password"
    assert "reset-password?token=abc123" in html
