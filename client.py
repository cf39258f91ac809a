import requests
from typing import Optional


class FitnessClient:
    """Simple REST client for the fitness tracker API.

    ``session`` may be any object with a requests-style ``request`` method,
    which lets tests drive the API in-process.
    """

    def __init__(
        self, base_url: str = "http://localhost:8000", session=None, timeout: float = 10
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _send(self, method: str, path: str, **kwargs):
        if isinstance(self.session, requests.Session):
            kwargs.setdefault("timeout", self.timeout)
        return self.session.request(method, f"{self.base_url}{path}", **kwargs)

    @staticmethod
    def _check(resp, method: str, path: str) -> None:
        if resp.status_code >= 400:
            raise requests.HTTPError(
                f"{resp.status_code} error for {method} {path}: {resp.text}",
                response=resp,
            )

    def _request(self, method: str, path: str, **kwargs):
        resp = self._send(method, path, **kwargs)
        self._check(resp, method, path)
        return resp

    def _json(self, method: str, path: str, **kwargs):
        return self._request(method, path, **kwargs).json()

    def health(self) -> dict:
        return self._json("GET", "/health")

    def list(self, resource: str, **params: str) -> list:
        return self._json("GET", f"/api/{resource}", params=params or None)

    def get(self, resource: str, row_id: str) -> dict:
        return self._json("GET", f"/api/{resource}/{row_id}")

    def create(self, resource: str, payload: dict) -> dict:
        return self._json("POST", f"/api/{resource}", json=payload)

    def update(self, resource: str, row_id: str, payload: dict) -> dict:
        return self._json("PATCH", f"/api/{resource}/{row_id}", json=payload)

    def delete(self, resource: str, row_id: str) -> None:
        self._request("DELETE", f"/api/{resource}/{row_id}")

    def create_exercise(self, name: str, category: str, **fields) -> dict:
        return self.create("exercises", {"name": name, "category": category, **fields})

    def log_workout(self, category: str) -> dict:
        return self.create("workout-logs", {"category": category})

    def add_weight_entry(self, date: str, weight: float, **fields) -> dict:
        return self.create("weight-entries", {"date": date, "weight": weight, **fields})

    def import_weight_csv(self, text: str) -> dict:
        return self._json(
            "POST",
            "/api/weight-entries/import_csv",
            data=text.encode("utf-8"),
            headers={"Content-Type": "text/csv"},
        )

    def export_weight_csv(self) -> str:
        return self._request("GET", "/api/weight-entries/export_csv").text

    def get_timer(self, storage_key: str) -> Optional[dict]:
        path = f"/api/timers/{storage_key}"
        resp = self._send("GET", path)
        if resp.status_code == 404:
            return None
        self._check(resp, "GET", path)
        return resp.json()

    def save_timer(self, storage_key: str, payload: dict) -> dict:
        return self._json("PUT", f"/api/timers/{storage_key}", json=payload)

    def delete_timer(self, storage_key: str) -> None:
        self._request("DELETE", f"/api/timers/{storage_key}")

    def add_lap(self, storage_key: str, lap_time_ms: int, started_at_ms: int = 0) -> dict:
        return self._json(
            "POST",
            f"/api/timers/{storage_key}/laps",
            json={"lap_time_ms": lap_time_ms, "started_at_ms": started_at_ms},
        )

    def login(self, password: str) -> dict:
        return self._json("POST", "/api/auth/login", json={"password": password})
