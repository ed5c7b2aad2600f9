"""
HTTP client for the Hazard Alert Hub API.

Keeps the logged-in Session in a SessionStore and attaches its bearer token
to every protected call.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from hazard_hub.client.session_store import SessionStore
from hazard_hub.models.user import Session

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx answer from the API, with its machine-readable code."""

    def __init__(self, status_code: int, code: Optional[str], detail: Any):
        self.status_code = status_code
        self.code = code
        self.detail = detail
        super().__init__(f"{status_code} {code}: {detail}")


class HazardHubClient:

    def __init__(
        self,
        base_url: str,
        session_store: SessionStore,
        timeout: float = 10.0,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session_store = session_store
        self.timeout = timeout
        self.http = http or requests.Session()

    # Authentication

    def login(self, email: str, password: str) -> Session:
        data = self._request("POST", "/auth/login", json={"email": email, "password": password})
        return self._persist(data)

    def signup(self, email: str, password: str, phone: str) -> Session:
        data = self._request("POST", "/auth/signup", json={"email": email, "password": password, "phone": phone})
        return self._persist(data)

    def request_otp(self, phone: str) -> None:
        self._request("POST", "/auth/otp/send", json={"phone": phone})

    def verify_otp(self, phone: str, code: str) -> Session:
        data = self._request("POST", "/auth/otp/verify", json={"phone": phone, "code": code})
        return self._persist(data)

    def logout(self) -> None:
        self.session_store.clear()

    @property
    def session(self) -> Optional[Session]:
        return self.session_store.load()

    # Reports

    def submit_report(
        self,
        description: str,
        urgency: str,
        latitude: float,
        longitude: float,
        image_url: Optional[str] = None,
    ) -> Dict:
        payload = {
            "description": description,
            "urgency": urgency,
            "latitude": latitude,
            "longitude": longitude,
        }
        if image_url:
            payload["image_url"] = image_url
        # Logged-in reporters are credited; otherwise the report is anonymous
        return self._request("POST", "/reports", json=payload, authenticated=self.session is not None)

    def list_reports(self) -> List[Dict]:
        return self._request("GET", "/reports", authenticated=True)

    def update_status(self, report_id: str, status: str, expected_updated_at: Optional[datetime] = None) -> Dict:
        payload: Dict[str, Any] = {"status": status}
        if expected_updated_at is not None:
            payload["expected_updated_at"] = expected_updated_at.isoformat()
        return self._request("PATCH", f"/admin/reports/{report_id}/status", json=payload, authenticated=True)

    def _persist(self, data: Dict) -> Session:
        session = Session.model_validate(dict(data["session"], token=data["token"]))
        self.session_store.save(session)
        logger.info(f"Logged in as {session.name} ({session.role.value})")
        return session

    def _request(self, method: str, path: str, json: Optional[Dict] = None, authenticated: bool = False):
        headers = {}
        if authenticated:
            session = self.session
            if session is None or not session.token:
                raise ApiError(401, "unauthorized", "Not logged in")
            headers["Authorization"] = f"Bearer {session.token}"

        resp = self.http.request(method, f"{self.base_url}{path}", json=json, headers=headers, timeout=self.timeout)
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {"detail": resp.text}
            raise ApiError(resp.status_code, body.get("code"), body.get("detail"))
        return resp.json()
