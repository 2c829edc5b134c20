from datetime import datetime, timedelta

from models import StudySession, utcnow


def create_session(client, headers, **fields):
    payload = {"start_time": utcnow().isoformat(), "duration_minutes": 25, **fields}
    response = client.post("/api/study-sessions", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_linked_to_event(client, headers):
    event = client.post(
        "/api/events",
        headers=headers,
        json={
            "title": "Focus",
            "start_time": "2026-03-10T09:00:00",
            "end_time": "2026-03-10T09:25:00",
        },
    ).json()
    session = create_session(client, headers, event_id=event["id"], productivity_rating=4)

    assert session["event_id"] == event["id"]
    assert session["break_count"] == 0
    assert client.get(f"/api/study-sessions/{session['id']}", headers=headers).status_code == 200


def test_validation(client, headers):
    start = datetime(2026, 3, 10, 9, 0)
    bad_rating = {"start_time": start.isoformat(), "productivity_rating": 6}
    assert client.post("/api/study-sessions", headers=headers, json=bad_rating).status_code == 422
    assert client.post("/api/study-sessions", headers=headers, json={}).status_code == 422

    backwards = {
        "start_time": start.isoformat(),
        "end_time": (start - timedelta(minutes=1)).isoformat(),
    }
    assert client.post("/api/study-sessions", headers=headers, json=backwards).status_code == 400
    assert client.post(
        "/api/study-sessions", headers=headers, json={"start_time": start.isoformat(), "event_id": 999}
    ).status_code == 400


def test_list_newest_first_and_summary(client, headers):
    now = utcnow()
    create_session(client, headers, start_time=(now - timedelta(days=2)).isoformat(), productivity_rating=2)
    create_session(client, headers, start_time=now.isoformat(), productivity_rating=4, break_count=1)

    sessions = client.get("/api/study-sessions", headers=headers).json()
    assert sessions[0]["productivity_rating"] == 4

    summary = client.get("/api/study-sessions/stats/summary", headers=headers).json()
    assert summary["total_sessions"] == 2
    assert summary["total_minutes"] == 50
    assert summary["avg_productivity"] == 3.0
    assert summary["total_breaks"] == 1
    assert summary["today_sessions"] == 1
    assert summary["today_minutes"] == 25


def test_update_and_delete(client, headers, other_headers):
    session = create_session(client, headers)

    updated = client.put(
        f"/api/study-sessions/{session['id']}", headers=headers, json={"productivity_rating": 5}
    )
    assert updated.json()["productivity_rating"] == 5
    assert client.put(f"/api/study-sessions/{session['id']}", headers=headers, json={}).status_code == 400

    assert client.get(f"/api/study-sessions/{session['id']}", headers=other_headers).status_code == 404
    assert client.delete(f"/api/study-sessions/{session['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/study-sessions/{session['id']}", headers=headers).status_code == 404


def test_list_page_size_is_capped(client, db, student, headers):
    now = utcnow()
    for i in range(105):
        db.add(StudySession(user_id=student.id, start_time=now - timedelta(minutes=i), duration_minutes=25))
    db.commit()

    page = client.get("/api/study-sessions?limit=500", headers=headers).json()
    assert len(page) == 100
    assert len(client.get("/api/study-sessions?limit=5", headers=headers).json()) == 5
    rest = client.get("/api/study-sessions?limit=500&offset=100", headers=headers).json()
    assert len(rest) == 5
