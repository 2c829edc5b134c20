"""
Pomodoro focus timer.

Alternates work and break intervals. A work interval is mirrored as a calendar event:
created `in_progress` when the interval starts, moved to `completed` when it runs out
(with one study-session row logged against it), or `cancelled` when it is abandoned.

Run from backend/:  python pomodoro.py --email demo@studyplanner.com --password password123
"""
import argparse
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import httpx

from client import PlannerClient
from config import POMODORO_BREAK_MINUTES, POMODORO_WORK_MINUTES
from logging_config import setup_logging
from models import utcnow

logger = logging.getLogger(__name__)

WORK = "work"
BREAK = "break"

DEFAULT_TITLE = "Pomodoro Focus Session"
DEFAULT_NOTES = "Pomodoro session"
DEFAULT_RATING = 4


@dataclass
class ActiveSession:
    """The work (or break) interval currently underway."""

    mode: str
    start_time: datetime
    event_id: Optional[int] = None


class PomodoroTimer:
    def __init__(
        self,
        client: PlannerClient,
        work_minutes: int = POMODORO_WORK_MINUTES,
        break_minutes: int = POMODORO_BREAK_MINUTES,
        task_id: Optional[int] = None,
        syllabus_id: Optional[int] = None,
        notes: Optional[str] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.client = client
        self.work_minutes = work_minutes
        self.break_minutes = break_minutes
        self.task_id = task_id
        self.syllabus_id = syllabus_id
        self.notes = notes
        self.now = now

        self.mode = WORK
        self.time_left = work_minutes * 60
        self.is_running = False
        self.session_count = 0
        self.current_session: Optional[ActiveSession] = None

    # --- Controls ---

    def start(self) -> None:
        """Start or resume. A fresh work interval opens an in-progress event."""
        if self.is_running:
            return
        if self.current_session is None:
            started = self.now()
            event_id = None
            if self.mode == WORK:
                event_id = self._open_event(started)
            self.current_session = ActiveSession(self.mode, started, event_id)
        self.is_running = True

    def pause(self) -> None:
        self.is_running = False

    def reset(self) -> None:
        """Abandon the current interval and go back to a full work interval."""
        self.is_running = False
        self._cancel_active()
        self.mode = WORK
        self.time_left = self.work_minutes * 60
        self.notes = None

    def skip_to_break(self) -> None:
        self._switch(BREAK)

    def skip_to_work(self) -> None:
        self._switch(WORK)

    def configure(self, work_minutes: int, break_minutes: int) -> None:
        """Change interval lengths. Only allowed with no interval underway, paused or not."""
        if self.is_running or self.current_session is not None:
            raise RuntimeError("Reset the timer before changing durations")
        if work_minutes < 1 or break_minutes < 1:
            raise ValueError("Durations must be at least one minute")
        self.work_minutes = work_minutes
        self.break_minutes = break_minutes
        self.time_left = self._full_duration()

    def tick(self, seconds: float = 1) -> None:
        """Advance the clock; finishing the interval triggers the mode transition."""
        if not self.is_running:
            return
        self.time_left = max(0, self.time_left - seconds)
        if self.time_left == 0:
            self._complete()

    def run(self, sleep: Callable[[float], None] = time.sleep) -> None:
        """Block until the current interval ends or the timer is paused."""
        self.start()
        while self.is_running:
            sleep(1)
            self.tick(1)

    # --- Display ---

    def progress(self) -> float:
        """Percent of the current interval already elapsed."""
        total = self._full_duration()
        return (total - self.time_left) / total * 100

    def format_time(self) -> str:
        minutes, seconds = divmod(int(self.time_left), 60)
        return f"{minutes:02d}:{seconds:02d}"

    # --- Internals ---

    def _full_duration(self) -> int:
        return (self.work_minutes if self.mode == WORK else self.break_minutes) * 60

    def _switch(self, mode: str) -> None:
        self.is_running = False
        self._cancel_active()
        self.mode = mode
        self.time_left = self._full_duration()

    def _event_fields(self) -> dict:
        return {
            "title": self.notes or DEFAULT_TITLE,
            "event_type": "study_session",
            "priority": "medium",
            "task_id": self.task_id,
            "syllabus_id": self.syllabus_id,
        }

    def _open_event(self, started: datetime) -> Optional[int]:
        try:
            event = self.client.create_event(
                description=f"{self.work_minutes} minute Pomodoro work session",
                start_time=started,
                end_time=started + timedelta(minutes=self.work_minutes),
                status="in_progress",
                **self._event_fields(),
            )
        except httpx.HTTPError:
            logger.exception("Could not create event for Pomodoro session")
            return None
        logger.info("Pomodoro session event %s created", event["id"])
        return event["id"]

    def _cancel_active(self) -> None:
        session, self.current_session = self.current_session, None
        if session is None or session.mode != WORK or session.event_id is None:
            return
        # end_time must stay after start_time or the API rejects the update
        ended = max(self.now(), session.start_time + timedelta(seconds=1))
        try:
            self.client.update_event(session.event_id, status="cancelled", end_time=ended)
        except httpx.HTTPError:
            logger.exception("Could not cancel event %s", session.event_id)
        else:
            logger.info("Pomodoro event %s cancelled", session.event_id)

    def _complete(self) -> None:
        self.is_running = False
        session, self.current_session = self.current_session, None
        if self.mode == WORK:
            if session is not None:
                self._record(session)
            self.session_count += 1
            self.mode = BREAK
        else:
            self.mode = WORK
        self.time_left = self._full_duration()

    def _record(self, session: ActiveSession) -> None:
        """Close the event as completed and log one study session against it."""
        ended = max(self.now(), session.start_time + timedelta(seconds=1))
        minutes = self.work_minutes
        description = f"Completed {minutes} minute Pomodoro session"
        event_id = session.event_id
        try:
            if event_id is not None:
                self.client.update_event(
                    event_id, status="completed", end_time=ended, description=description
                )
            else:
                event = self.client.create_event(
                    description=description,
                    start_time=session.start_time,
                    end_time=ended,
                    status="completed",
                    **self._event_fields(),
                )
                event_id = event["id"]
        except httpx.HTTPError:
            logger.exception("Could not complete event for Pomodoro session")

        try:
            self.client.create_study_session(
                event_id=event_id,
                task_id=self.task_id,
                syllabus_id=self.syllabus_id,
                start_time=session.start_time,
                end_time=ended,
                duration_minutes=minutes,
                productivity_rating=DEFAULT_RATING,
                notes=self.notes or DEFAULT_NOTES,
                break_count=0,
            )
        except httpx.HTTPError:
            logger.exception("Could not save study session for event %s", event_id)
        else:
            logger.info("Pomodoro session saved (event %s, %d min)", event_id, minutes)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run Pomodoro intervals against the Study Planner API.")
    parser.add_argument("--url", default=None, help="API base URL")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--task-id", type=int)
    parser.add_argument("--syllabus-id", type=int)
    parser.add_argument("--notes")
    parser.add_argument("--work", type=int, default=POMODORO_WORK_MINUTES, help="work minutes")
    parser.add_argument("--break", dest="break_", type=int, default=POMODORO_BREAK_MINUTES, help="break minutes")
    parser.add_argument("--rounds", type=int, default=1, help="work intervals to run")
    args = parser.parse_args(argv)

    setup_logging()
    client = PlannerClient(base_url=args.url)
    timer = PomodoroTimer(
        client,
        work_minutes=args.work,
        break_minutes=args.break_,
        task_id=args.task_id,
        syllabus_id=args.syllabus_id,
        notes=args.notes,
    )
    try:
        client.login(args.email, args.password)
        while timer.session_count < args.rounds:
            logger.info("Starting %s interval (%s)", timer.mode, timer.format_time())
            timer.run()
    except KeyboardInterrupt:
        timer.reset()
    finally:
        client.close()


if __name__ == "__main__":
    main()
