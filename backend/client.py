"""
Small HTTP client for the Study Planner API, used by the Pomodoro timer.
"""
from datetime import date, datetime
from typing import Optional

import httpx

from config import API_PORT


def _jsonable(payload: dict) -> dict:
    """Drop unset values and ISO-format dates."""
    out = {}
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        out[key] = value
    return out


class PlannerClient:
    """
    Wraps an httpx.Client (or anything with the same interface, e.g. FastAPI's TestClient).
    Every call raises httpx.HTTPStatusError on a non-2xx response.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self.http = http or httpx.Client(
            base_url=base_url or f"http://localhost:{API_PORT}", timeout=timeout
        )
        if token:
            self.set_token(token)

    def set_token(self, token: str) -> None:
        self.http.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, url: str, payload: Optional[dict] = None) -> dict:
        resp = self.http.request(method, url, json=_jsonable(payload) if payload is not None else None)
        resp.raise_for_status()
        return resp.json()

    def login(self, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/login", {"email": email, "password": password})
        self.set_token(data["token"])
        return data["user"]

    def create_event(self, **fields) -> dict:
        return self._request("POST", "/api/events", fields)

    def update_event(self, event_id: int, **fields) -> dict:
        return self._request("PUT", f"/api/events/{event_id}", fields)

    def create_study_session(self, **fields) -> dict:
        return self._request("POST", "/api/study-sessions", fields)

    def close(self) -> None:
        self.http.close()
