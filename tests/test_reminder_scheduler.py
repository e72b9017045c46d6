"""
Countdown reminders (30 / 20 / 5 minutes) and their exactly-once delivery
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from api.crud.reminder_crud import claim_milestone, count_reminders
from core.config import settings
from core.validators import utcnow
from db import SessionLocal
from models.participant import ParticipantStatus
from models.tournament import TournamentStatus
from services.reminder_scheduler import (
    ReminderScheduler, due_milestones, minutes_until_start, run_reminder_tick
)

START = datetime(2026, 3, 14, 18, 0, tzinfo=timezone.utc)


def tick(db, minutes_before, notifier, seconds=0, send_timeout=None):
    now = START - timedelta(minutes=minutes_before, seconds=seconds)
    return asyncio.run(run_reminder_tick(db, now, notifier, send_timeout=send_timeout))


def milestones_sent(notifier):
    return [payload["milestone"] for _, kind, payload in notifier.of_kind("tournament_reminder")]


@pytest.fixture
def approved(player, make_tournament, make_participant):
    tournament = make_tournament(start_time=START)
    return make_participant(player, tournament, ParticipantStatus.APPROVED)


class TestMilestoneMath:

    def test_minutes_are_floored(self):
        assert minutes_until_start(START, START - timedelta(minutes=29, seconds=30)) == 29
        assert minutes_until_start(START, START - timedelta(minutes=30)) == 30
        assert minutes_until_start(START, START - timedelta(seconds=59)) == 0

    def test_due_milestones(self):
        assert due_milestones(timedelta(minutes=31), set()) == []
        assert due_milestones(timedelta(minutes=30), set()) == [("m30", 30)]
        assert due_milestones(timedelta(minutes=25), set()) == [("m30", 30)]
        assert due_milestones(timedelta(minutes=4), {"m30"}) == [("m20", 20), ("m5", 5)]
        assert due_milestones(timedelta(minutes=4), {"m30", "m20", "m5"}) == []

    def test_five_minute_milestone_waits_for_the_gate(self):
        assert due_milestones(timedelta(minutes=5, seconds=30), {"m30", "m20"}) == []
        assert due_milestones(timedelta(minutes=5), {"m30", "m20"}) == [("m5", 5)]

    def test_five_minute_milestone_follows_a_narrower_gate(self, monkeypatch):
        monkeypatch.setattr(settings, "reveal_window_minutes", 3)

        assert due_milestones(timedelta(minutes=4), {"m30", "m20"}) == []
        assert due_milestones(timedelta(minutes=3), {"m30", "m20"}) == [("m5", 5)]


class TestTick:

    def test_nothing_before_thirty_minutes(self, db_session, approved, notifier):
        assert tick(db_session, 31, notifier) == []
        assert notifier.sent == []

    def test_thirty_minute_reminder(self, db_session, approved, notifier):
        assert tick(db_session, 30, notifier) == [(approved.id, "m30")]

        [(user_id, kind, payload)] = notifier.sent
        assert user_id == approved.user_id
        assert payload["minutes"] == 30
        assert payload["tournament_name"] == "Friday Night Clash"
        assert "credentials" not in payload

    def test_same_tick_twice_sends_once(self, db_session, approved, notifier):
        tick(db_session, 30, notifier)
        assert tick(db_session, 30, notifier) == []
        assert tick(db_session, 25, notifier) == []
        assert milestones_sent(notifier) == ["m30"]

    def test_each_milestone_in_turn(self, db_session, approved, notifier):
        for minutes in (30, 28, 20, 12, 5, 3):
            tick(db_session, minutes, notifier)

        assert milestones_sent(notifier) == ["m30", "m20", "m5"]
        five_minute = notifier.sent[-1][2]
        assert five_minute["credentials"] == {
            "room_id": "884213", "room_password": "ff-2024", "party_code": "PX91Q"
        }

    def test_credentials_arrive_with_off_minute_ticks(self, db_session, approved, notifier):
        assert tick(db_session, 30, notifier, seconds=30) == []
        assert tick(db_session, 29, notifier, seconds=30) == [(approved.id, "m30")]
        assert tick(db_session, 5, notifier, seconds=30) == [(approved.id, "m20")]
        assert tick(db_session, 4, notifier, seconds=30) == [(approved.id, "m5")]

        assert milestones_sent(notifier) == ["m30", "m20", "m5"]
        five_minute = notifier.sent[-1][2]
        assert five_minute["minutes"] == 4
        assert five_minute["credentials"]["room_password"] == "ff-2024"

    def test_missed_milestones_fire_in_one_pass(self, db_session, approved, notifier):
        assert tick(db_session, 4, notifier) == [
            (approved.id, "m30"), (approved.id, "m20"), (approved.id, "m5")
        ]
        assert milestones_sent(notifier) == ["m30", "m20", "m5"]

    def test_five_minute_reminder_without_credentials_set(self, db_session, player, make_tournament,
                                                           make_participant, notifier):
        tournament = make_tournament(start_time=START, with_secrets=False)
        make_participant(player, tournament, ParticipantStatus.APPROVED)

        tick(db_session, 5, notifier)
        assert "credentials" not in notifier.sent[-1][2]

    def test_only_approved_participants(self, db_session, make_user, make_tournament, make_participant, notifier):
        tournament = make_tournament(start_time=START)
        for status in (ParticipantStatus.PENDING_PAYMENT, ParticipantStatus.PENDING_VERIFY,
                       ParticipantStatus.REJECTED):
            make_participant(make_user(), tournament, status)

        assert tick(db_session, 10, notifier) == []

    @pytest.mark.parametrize("status", [
        TournamentStatus.DRAFT, TournamentStatus.FINISHED, TournamentStatus.CANCELLED
    ])
    def test_closed_tournaments_are_skipped(self, db_session, player, make_tournament, make_participant,
                                            notifier, status):
        tournament = make_tournament(start_time=START, status=status)
        make_participant(player, tournament, ParticipantStatus.APPROVED)

        assert tick(db_session, 10, notifier) == []

    def test_live_tournament_before_scheduled_start_still_reminds(self, db_session, player, make_tournament,
                                                                  make_participant, notifier):
        tournament = make_tournament(start_time=START, status=TournamentStatus.LIVE)
        participant = make_participant(player, tournament, ParticipantStatus.APPROVED)

        assert tick(db_session, 5, notifier)[-1] == (participant.id, "m5")

    def test_no_reminders_once_started(self, db_session, approved, notifier):
        assert tick(db_session, 0, notifier) == []

    def test_failure_is_isolated_per_participant(self, db_session, make_user, make_tournament,
                                                 make_participant, notifier):
        tournament = make_tournament(start_time=START)
        broken, fine = make_user(), make_user()
        broken_participant = make_participant(broken, tournament, ParticipantStatus.APPROVED)
        fine_participant = make_participant(fine, tournament, ParticipantStatus.APPROVED)
        notifier.raise_for.add(broken.id)

        assert tick(db_session, 30, notifier) == [(fine_participant.id, "m30")]
        assert [user_id for user_id, _, _ in notifier.sent] == [fine.id]
        # the milestone was claimed before sending and is not retried
        assert count_reminders(db_session, broken_participant.id, "m30") == 1
        assert tick(db_session, 29, notifier) == []

    def test_slow_send_times_out_and_consumes_milestone(self, db_session, approved, notifier):
        notifier.delay = 0.5

        assert tick(db_session, 30, notifier, send_timeout=0.05) == [(approved.id, "m30")]
        assert notifier.sent == []
        assert count_reminders(db_session, approved.id, "m30") == 1

    def test_undelivered_notification_is_not_retried(self, db_session, approved, notifier):
        notifier.fail_for.add(approved.user_id)

        tick(db_session, 30, notifier)
        tick(db_session, 29, notifier)
        assert milestones_sent(notifier) == ["m30"]


def test_claim_is_exclusive(db_session, approved):
    assert claim_milestone(db_session, approved.id, "m20") is True
    assert claim_milestone(db_session, approved.id, "m20") is False
    assert count_reminders(db_session, approved.id) == 1


class TestReminderScheduler:

    def test_tick_once_uses_fresh_session(self, db_session, player, make_tournament, make_participant, notifier):
        tournament = make_tournament(start_time=utcnow() + timedelta(minutes=10))
        participant = make_participant(player, tournament, ParticipantStatus.APPROVED)
        scheduler = ReminderScheduler(session_factory=SessionLocal, notifier=notifier)

        dispatched = asyncio.run(scheduler.tick_once())
        assert dispatched == [(participant.id, "m30"), (participant.id, "m20")]

    def test_tick_error_is_swallowed(self, notifier):
        def broken_factory():
            raise RuntimeError("database is down")

        scheduler = ReminderScheduler(session_factory=broken_factory, notifier=notifier)
        assert asyncio.run(scheduler.tick_once()) == []

    def test_start_and_stop(self, db_session, player, make_tournament, make_participant, notifier):
        tournament = make_tournament(start_time=utcnow() + timedelta(minutes=10))
        make_participant(player, tournament, ParticipantStatus.APPROVED)
        scheduler = ReminderScheduler(session_factory=SessionLocal, notifier=notifier, interval=3600)

        async def scenario():
            await scheduler.start()
            assert scheduler.running is True
            await asyncio.sleep(0.3)
            await scheduler.stop()

        asyncio.run(scenario())

        assert scheduler.running is False
        assert milestones_sent(notifier) == ["m30", "m20"]
