from datetime import datetime, timedelta, timezone

import httpx
import pytest

from client import PlannerClient
import pomodoro
from pomodoro import BREAK, WORK, PomodoroTimer

START = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now=START):
        self.now = now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeClient:
    """Records calls; `fail` names the methods that should raise."""

    def __init__(self, fail=()):
        self.calls = []
        self.fail = set(fail)
        self.next_id = 1

    def _call(self, name, **fields):
        self.calls.append((name, fields))
        if name in self.fail:
            raise httpx.ConnectError("API unreachable")
        self.next_id += 1
        return {"id": self.next_id - 1, **fields}

    def create_event(self, **fields):
        return self._call("create_event", **fields)

    def update_event(self, event_id, **fields):
        return self._call("update_event", event_id=event_id, **fields)

    def create_study_session(self, **fields):
        return self._call("create_study_session", **fields)

    def names(self):
        return [name for name, _ in self.calls]


@pytest.fixture
def clock():
    return Clock()


def make_timer(client, clock, **kwargs):
    return PomodoroTimer(client, work_minutes=25, break_minutes=5, now=lambda: clock.now, **kwargs)


def run_out(timer, clock):
    clock.advance(seconds=timer.time_left)
    timer.tick(timer.time_left)


# --- State machine ---


def test_start_creates_in_progress_event(clock):
    fake = FakeClient()
    timer = make_timer(fake, clock, task_id=3)
    timer.start()

    assert timer.is_running
    name, fields = fake.calls[0]
    assert name == "create_event"
    assert fields["status"] == "in_progress"
    assert fields["event_type"] == "study_session"
    assert fields["end_time"] == START + timedelta(minutes=25)
    assert fields["task_id"] == 3
    assert timer.current_session.event_id == 1


def test_pause_and_resume_keep_session(clock):
    fake = FakeClient()
    timer = make_timer(fake, clock)
    timer.start()
    timer.tick(60)
    timer.pause()
    timer.tick(60)
    assert timer.time_left == 24 * 60

    timer.start()
    assert fake.names() == ["create_event"]
    assert timer.current_session.event_id == 1


def test_expiry_completes_event_and_logs_one_session(clock):
    fake = FakeClient()
    timer = make_timer(fake, clock, notes="Chapter 4")
    timer.start()
    run_out(timer, clock)

    assert fake.names() == ["create_event", "update_event", "create_study_session"]
    _, update = fake.calls[1]
    assert update["event_id"] == 1
    assert update["status"] == "completed"
    assert update["description"] == "Completed 25 minute Pomodoro session"
    _, logged = fake.calls[2]
    assert logged["event_id"] == 1
    assert logged["duration_minutes"] == 25
    assert logged["productivity_rating"] == 4
    assert logged["notes"] == "Chapter 4"
    assert logged["break_count"] == 0

    assert timer.mode == BREAK
    assert timer.session_count == 1
    assert not timer.is_running
    assert timer.current_session is None
    assert timer.time_left == 5 * 60


def test_break_expiry_returns_to_work_without_api_calls(clock):
    fake = FakeClient()
    timer = make_timer(fake, clock)
    timer.skip_to_break()
    timer.start()
    run_out(timer, clock)

    assert fake.calls == []
    assert timer.mode == WORK
    assert timer.time_left == 25 * 60
    assert timer.session_count == 0


def test_next_work_interval_opens_a_new_event(clock):
    fake = FakeClient()
    timer = make_timer(fake, clock)
    timer.start()
    run_out(timer, clock)
    timer.start()
    run_out(timer, clock)
    timer.start()

    creates = [f for name, f in fake.calls if name == "create_event"]
    assert len(creates) == 2
    assert timer.current_session.event_id != 1


def test_reset_cancels_event_without_logging(clock):
    fake = FakeClient()
    timer = make_timer(fake, clock, notes="draft")
    timer.start()
    clock.advance(minutes=10)
    timer.tick(600)
    timer.reset()

    assert fake.names() == ["create_event", "update_event"]
    _, cancel = fake.calls[1]
    assert cancel["status"] == "cancelled"
    assert cancel["end_time"] == START + timedelta(minutes=10)
    assert timer.mode == WORK
    assert timer.time_left == 25 * 60
    assert timer.notes is None
    assert timer.current_session is None


def test_immediate_reset_keeps_end_after_start(clock):
    fake = FakeClient()
    timer = make_timer(fake, clock)
    timer.start()
    timer.reset()

    assert fake.calls[1][1]["end_time"] > START


def test_skip_to_break_cancels_active_work(clock):
    fake = FakeClient()
    timer = make_timer(fake, clock)
    timer.start()
    timer.skip_to_break()

    assert fake.calls[-1][1]["status"] == "cancelled"
    assert timer.mode == BREAK
    assert not timer.is_running
    assert timer.session_count == 0


def test_event_failure_on_start_falls_back_to_completed_event(clock):
    fake = FakeClient(fail={"create_event"})
    timer = make_timer(fake, clock)
    timer.start()
    assert timer.is_running
    assert timer.current_session.event_id is None

    fake.fail.clear()
    run_out(timer, clock)

    assert fake.names() == ["create_event", "create_event", "create_study_session"]
    _, fallback = fake.calls[1]
    assert fallback["status"] == "completed"
    assert fallback["start_time"] == START
    assert fake.calls[2][1]["event_id"] == 1
    assert timer.mode == BREAK


def test_api_failure_does_not_block_transition(clock):
    fake = FakeClient(fail={"update_event", "create_study_session"})
    timer = make_timer(fake, clock)
    timer.start()
    run_out(timer, clock)

    assert timer.mode == BREAK
    assert timer.session_count == 1
    assert fake.names().count("create_study_session") == 1


def test_configure_only_when_stopped(clock):
    timer = make_timer(FakeClient(), clock)
    timer.configure(50, 10)
    assert timer.time_left == 50 * 60
    with pytest.raises(ValueError):
        timer.configure(0, 5)

    timer.start()
    with pytest.raises(RuntimeError):
        timer.configure(25, 5)


def test_configure_rejected_while_paused_mid_interval(clock):
    timer = make_timer(FakeClient(), clock)
    timer.start()
    timer.tick(60)
    timer.pause()

    with pytest.raises(RuntimeError):
        timer.configure(50, 10)
    assert timer.work_minutes == 25
    assert timer.time_left == 24 * 60

    timer.reset()
    timer.configure(50, 10)
    assert timer.time_left == 50 * 60


def test_display_helpers(clock):
    timer = make_timer(FakeClient(), clock)
    assert timer.format_time() == "25:00"
    assert timer.progress() == 0

    timer.start()
    timer.tick(5 * 60 + 30)
    assert timer.format_time() == "19:30"
    assert timer.progress() == pytest.approx(22.0)


def test_run_ticks_until_interval_ends(clock):
    fake = FakeClient()
    timer = PomodoroTimer(fake, work_minutes=1, break_minutes=1, now=lambda: clock.now)
    sleeps = []

    def sleep(seconds):
        sleeps.append(seconds)
        clock.advance(seconds=seconds)

    timer.run(sleep=sleep)

    assert len(sleeps) == 60
    assert timer.mode == BREAK
    assert fake.names()[-1] == "create_study_session"


# --- Against the API ---


@pytest.fixture
def planner(client, student):
    planner = PlannerClient(http=client)
    planner.login("student@example.com", "password123")
    return planner


def test_completed_session_against_api(client, planner, headers, clock):
    task = client.post("/api/tasks", headers=headers, json={"title": "Essay"}).json()
    timer = make_timer(planner, clock, task_id=task["id"])

    timer.start()
    event_id = timer.current_session.event_id
    event = client.get(f"/api/events/{event_id}", headers=headers).json()
    assert event["status"] == "in_progress"

    run_out(timer, clock)

    event = client.get(f"/api/events/{event_id}", headers=headers).json()
    assert event["status"] == "completed"
    assert event["description"] == "Completed 25 minute Pomodoro session"
    sessions = client.get("/api/study-sessions", headers=headers).json()
    assert len(sessions) == 1
    assert sessions[0]["event_id"] == event_id
    assert sessions[0]["duration_minutes"] == 25
    assert sessions[0]["task_id"] == task["id"]


def test_reset_against_api(client, planner, headers, clock):
    timer = make_timer(planner, clock)
    timer.start()
    event_id = timer.current_session.event_id
    clock.advance(minutes=3)
    timer.tick(180)
    timer.reset()

    event = client.get(f"/api/events/{event_id}", headers=headers).json()
    assert event["status"] == "cancelled"
    assert client.get("/api/study-sessions", headers=headers).json() == []


def test_client_raises_on_error_status(planner):
    with pytest.raises(httpx.HTTPStatusError):
        planner.update_event(999, status="completed")


class FailingLoginClient:
    closed = False

    def __init__(self, base_url=None):
        pass

    def login(self, email, password):
        raise httpx.ConnectError("API unreachable")

    def close(self):
        FailingLoginClient.closed = True


def test_main_closes_client_when_login_fails(monkeypatch):
    monkeypatch.setattr(pomodoro, "PlannerClient", FailingLoginClient)
    monkeypatch.setattr(pomodoro, "setup_logging", lambda: None)

    with pytest.raises(httpx.ConnectError):
        pomodoro.main(["--email", "student@example.com", "--password", "password123"])
    assert FailingLoginClient.closed
