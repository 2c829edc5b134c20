from datetime import datetime, timedelta

START = datetime(2026, 3, 10, 9, 0)


def create_event(client, headers, **fields):
    payload = {
        "title": "Revision",
        "start_time": START.isoformat(),
        "end_time": (START + timedelta(hours=1)).isoformat(),
        **fields,
    }
    response = client.post("/api/events", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_event_defaults(client, headers):
    event = create_event(client, headers)
    assert event["event_type"] == "study_session"
    assert event["status"] == "scheduled"
    assert event["priority"] == "medium"


def test_end_must_follow_start(client, headers):
    response = client.post(
        "/api/events",
        headers=headers,
        json={"title": "x", "start_time": START.isoformat(), "end_time": START.isoformat()},
    )
    assert response.status_code == 400

    event = create_event(client, headers)
    response = client.put(
        f"/api/events/{event['id']}",
        headers=headers,
        json={"end_time": (START - timedelta(minutes=5)).isoformat()},
    )
    assert response.status_code == 400


def test_timezone_aware_times_stored_as_utc(client, headers):
    event = create_event(
        client,
        headers,
        start_time="2026-03-10T11:00:00+02:00",
        end_time="2026-03-10T12:00:00+02:00",
    )
    assert event["start_time"].startswith("2026-03-10T09:00:00")


def test_status_lifecycle(client, headers):
    event = create_event(client, headers, status="in_progress")
    response = client.put(
        f"/api/events/{event['id']}",
        headers=headers,
        json={"status": "completed", "description": "done"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["description"] == "done"
    assert response.json()["title"] == "Revision"


def test_links_must_belong_to_user(client, headers, other_headers):
    task = client.post("/api/tasks", headers=other_headers, json={"title": "not yours"}).json()
    response = client.post(
        "/api/events",
        headers=headers,
        json={
            "title": "x",
            "start_time": START.isoformat(),
            "end_time": (START + timedelta(hours=1)).isoformat(),
            "task_id": task["id"],
        },
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid task_id"


def test_list_filters_and_calendar(client, headers):
    create_event(client, headers, title="march")
    create_event(
        client,
        headers,
        title="april exam",
        event_type="exam",
        start_time="2026-04-02T10:00:00",
        end_time="2026-04-02T12:00:00",
    )

    exams = client.get("/api/events", headers=headers, params={"event_type": "exam"}).json()
    assert [e["title"] for e in exams] == ["april exam"]

    windowed = client.get(
        "/api/events", headers=headers, params={"start_date": "2026-04-01T00:00:00"}
    ).json()
    assert [e["title"] for e in windowed] == ["april exam"]

    march = client.get("/api/events/calendar/2026/3", headers=headers).json()
    assert [e["title"] for e in march] == ["march"]
    assert client.get("/api/events/calendar/2026/13", headers=headers).status_code == 400


def test_break_event_type_round_trips(client, headers):
    event = create_event(client, headers, event_type="break")
    assert client.get(f"/api/events/{event['id']}", headers=headers).json()["event_type"] == "break"


def test_calendar_link(client, headers):
    event = create_event(client, headers, title="Deep work", location="Library")
    response = client.get(f"/api/events/{event['id']}/calendar-link", headers=headers)

    assert response.status_code == 200
    url = response.json()["url"]
    assert url.startswith("https://calendar.google.com/calendar/render?action=TEMPLATE")
    assert "dates=20260310T090000Z/20260310T100000Z" in url
    assert "location=Library" in url


def test_events_are_private(client, headers, other_headers):
    event = create_event(client, headers)
    assert client.get(f"/api/events/{event['id']}", headers=other_headers).status_code == 404
    assert client.put(
        f"/api/events/{event['id']}", headers=other_headers, json={"status": "cancelled"}
    ).status_code == 404
    assert client.delete(f"/api/events/{event['id']}", headers=headers).status_code == 200
