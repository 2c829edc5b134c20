from datetime import timedelta

from models import utcnow


def log_session(client, headers, start, minutes, rating=None):
    payload = {"start_time": start.isoformat(), "duration_minutes": minutes}
    if rating:
        payload["productivity_rating"] = rating
    assert client.post("/api/study-sessions", headers=headers, json=payload).status_code == 201


def test_dashboard(client, headers):
    now = utcnow()
    log_session(client, headers, now - timedelta(hours=1), 30, rating=4)
    log_session(client, headers, now - timedelta(hours=2), 20, rating=2)
    log_session(client, headers, now - timedelta(days=10), 60)

    overdue = str(utcnow().date() - timedelta(days=2))
    client.post("/api/tasks", headers=headers, json={"title": "late", "due_date": overdue})
    client.post("/api/syllabus", headers=headers, json={"subject": "Art", "topic": "Colour"})

    data = client.get("/api/analytics/dashboard", headers=headers).json()

    assert sum(d["total_study_time_minutes"] for d in data["daily_analytics"]) == 110
    assert data["task_stats"]["total_tasks"] == 1
    assert data["task_stats"]["overdue_tasks"] == 1
    assert data["syllabus_stats"]["total_subjects"] == 1
    current = data["productivity_trend"]["current_week"]
    assert current["sessions"] == 2
    assert current["avg_rating"] == 3.0
    assert data["productivity_trend"]["previous_week"]["sessions"] == 1


def test_study_session_analytics(client, headers):
    now = utcnow()
    log_session(client, headers, now - timedelta(hours=1), 25, rating=5)
    log_session(client, headers, now - timedelta(hours=3), 35, rating=3)

    data = client.get("/api/analytics/study-sessions", headers=headers).json()
    assert len(data["sessions"]) == 2
    assert data["stats"]["total_study_minutes"] == 60
    assert data["stats"]["avg_duration_minutes"] == 30.0
    assert data["stats"]["high_productivity_sessions"] == 1


def test_web_tracking(client, headers):
    for url, category, minutes in [
        ("https://docs.python.org", "productive", 40),
        ("https://docs.python.org", "productive", 20),
        ("https://video.example.com", "distracting", 15),
    ]:
        response = client.post(
            "/api/analytics/web-tracking",
            headers=headers,
            json={"website_url": url, "website_category": category, "time_spent_minutes": minutes},
        )
        assert response.status_code == 201

    data = client.get("/api/analytics/web-tracking", headers=headers).json()
    productive = data["category_stats"][0]
    assert productive["website_category"] == "productive"
    assert productive["total_time_minutes"] == 60
    assert productive["unique_websites"] == 1
    assert data["top_websites"][0]["session_count"] == 2
    assert data["daily_patterns"][0]["distracting_time"] == 15


def test_web_tracking_validation(client, headers):
    response = client.post(
        "/api/analytics/web-tracking",
        headers=headers,
        json={"website_url": "https://x.example.com", "website_category": "gaming", "time_spent_minutes": 5},
    )
    assert response.status_code == 422
