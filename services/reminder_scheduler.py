"""
Countdown reminders at 30, 20 and 5 minutes before start.

The Reminder row is written (and committed) before the notification goes
out, and the unique (participant_id, milestone) constraint decides who
owns a milestone. Overlapping ticks therefore never send the same
reminder twice; a send that fails still consumes its milestone.
"""
import asyncio
import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from api.crud.participant_crud import get_due_for_reminders
from api.crud.reminder_crud import get_handled_milestones, claim_milestone
from core.config import settings
from core.validators import as_utc, utcnow
from db import SessionLocal
from models.participant import Participant
from models.tournament import Tournament
from services.disclosure_gate import reveal_credentials, reveal_window
from services.notification_service import NotificationKind

logger = logging.getLogger(__name__)

MILESTONES: Tuple[Tuple[str, int], ...] = (("m30", 30), ("m20", 20), ("m5", 5))
CREDENTIALS_MILESTONE = "m5"
LOOKAHEAD = timedelta(minutes=31)


def minutes_until_start(start_time: datetime, now: datetime) -> int:
    """Whole minutes left before start, floored"""
    return math.floor((as_utc(start_time) - as_utc(now)).total_seconds() / 60)


def milestone_threshold(key: str, minutes: int) -> timedelta:
    threshold = timedelta(minutes=minutes)
    # m5 never fires before the credential gate opens
    if key == CREDENTIALS_MILESTONE:
        threshold = min(threshold, reveal_window())
    return threshold


def due_milestones(time_left: timedelta, handled) -> List[Tuple[str, int]]:
    """Every milestone already crossed and not yet handled, earliest first"""
    return [
        (key, minutes) for key, minutes in MILESTONES
        if time_left <= milestone_threshold(key, minutes) and key not in handled
    ]


async def _remind_participant(
    db: Session,
    participant: Participant,
    tournament: Tournament,
    now: datetime,
    notifier,
    send_timeout: float
) -> List[Tuple[int, str]]:
    participant_id = participant.id
    user_id = participant.user_id
    time_left = as_utc(tournament.start_time) - now
    minutes_left = minutes_until_start(tournament.start_time, now)

    dispatched = []
    for milestone, _ in due_milestones(time_left, get_handled_milestones(db, participant_id)):
        if not claim_milestone(db, participant_id, milestone):
            continue

        payload = {
            "tournament_id": tournament.id,
            "tournament_name": tournament.name,
            "milestone": milestone,
            "minutes": minutes_left,
            "start_time": as_utc(tournament.start_time).isoformat(),
        }
        if milestone == CREDENTIALS_MILESTONE:
            credentials = reveal_credentials(participant, tournament, now)
            if credentials:
                payload["credentials"] = credentials

        dispatched.append((participant_id, milestone))
        try:
            sent = await asyncio.wait_for(
                notifier.send(user_id, NotificationKind.TOURNAMENT_REMINDER, payload),
                timeout=send_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Reminder {milestone} for participant {participant_id} timed out")
            continue
        if sent:
            logger.info(f"Reminder {milestone} sent to participant {participant_id} ({minutes_left} min left)")
        else:
            logger.warning(f"Reminder {milestone} for participant {participant_id} was not delivered")
    return dispatched


async def run_reminder_tick(
    db: Session,
    now: datetime,
    notifier,
    send_timeout: Optional[float] = None
) -> List[Tuple[int, str]]:
    """
    One scheduler pass at `now`. Returns the (participant_id, milestone)
    pairs claimed in this pass. A failure for one participant is logged
    and does not stop the others.
    """
    now = as_utc(now)
    send_timeout = send_timeout or settings.reminder_send_timeout_seconds

    dispatched = []
    for participant, tournament in get_due_for_reminders(db, now, LOOKAHEAD):
        participant_id = participant.id
        try:
            dispatched.extend(
                await _remind_participant(db, participant, tournament, now, notifier, send_timeout)
            )
        except Exception as e:
            db.rollback()
            logger.error(f"Reminder processing failed for participant {participant_id}: {e}")
    return dispatched


class ReminderScheduler:
    """Runs run_reminder_tick on a fixed interval on the event loop"""

    def __init__(self, session_factory=SessionLocal, notifier=None, interval: int = None, send_timeout: float = None):
        self.session_factory = session_factory
        self.notifier = notifier
        self.interval = interval or settings.reminder_interval_seconds
        self.send_timeout = send_timeout or settings.reminder_send_timeout_seconds
        self.running = False
        self._task: Optional[asyncio.Task] = None

    def _get_notifier(self):
        if self.notifier is None:
            from services.notification_service import notification_service
            self.notifier = notification_service
        return self.notifier

    async def start(self):
        if self._task is not None:
            return
        self.running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Reminder scheduler started (every {self.interval}s)")

    async def stop(self):
        self.running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Reminder scheduler stopped")

    async def _run(self):
        while self.running:
            await self.tick_once()
            await asyncio.sleep(self.interval)

    async def tick_once(self, now: Optional[datetime] = None) -> List[Tuple[int, str]]:
        db = None
        try:
            db = self.session_factory()
            return await run_reminder_tick(db, now or utcnow(), self._get_notifier(), self.send_timeout)
        except Exception as e:
            logger.error(f"Reminder tick failed: {e}")
            return []
        finally:
            if db is not None:
                db.close()


reminder_scheduler = ReminderScheduler()
