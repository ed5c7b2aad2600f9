from datetime import datetime, timedelta, timezone
from typing import Dict, List

import pytest
from fastapi.testclient import TestClient

from hazard_hub.config.mock_firestore import MockFirestore
from hazard_hub.core.container import build_services
from hazard_hub.core.settings import Settings
from hazard_hub.main import create_app
from hazard_hub.models.user import Role
from hazard_hub.services.credential_store import USERS_COLLECTION
from hazard_hub.services.notifications import NotificationSink
from hazard_hub.services.otp import OtpProvider, OtpStatus
from hazard_hub.utils.security import hash_password

ADMIN_EMAIL = "admin@example.org"
ADMIN_PASSWORD = "admin-pass-123"
REPORTER_EMAIL = "reporter@example.org"
REPORTER_PASSWORD = "reporter-pass-123"
REPORTER_PHONE = "+15551234567"


class FrozenClock:
    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 1.0) -> datetime:
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


class ScriptedOtpProvider(OtpProvider):
    """Answers with preset statuses and records every call."""

    name = "scripted"

    def __init__(self):
        self.request_status = OtpStatus.PENDING
        self.check_status = OtpStatus.APPROVED
        self.requests: List[str] = []
        self.checks: List[tuple] = []

    def request_code(self, phone: str) -> OtpStatus:
        self.requests.append(phone)
        return self.request_status

    def check_code(self, phone: str, code: str) -> OtpStatus:
        self.checks.append((phone, code))
        return self.check_status


class RecordingSink(NotificationSink):
    name = "recording"

    def __init__(self):
        self.new_reports: List[Dict] = []
        self.sms: List[tuple] = []
        self.fail = False

    def send_sms(self, phone: str, body: str) -> bool:
        self.sms.append((phone, body))
        return True

    def notify_new_report(self, summary: Dict) -> None:
        self.new_reports.append(summary)
        if self.fail:
            raise RuntimeError("SMS gateway down")


@pytest.fixture(scope="session")
def password_hashes():
    # bcrypt is slow on purpose; hash once per run
    return {
        ADMIN_EMAIL: hash_password(ADMIN_PASSWORD),
        REPORTER_EMAIL: hash_password(REPORTER_PASSWORD),
    }


@pytest.fixture
def settings():
    return Settings(
        USE_MOCK_DB=True,
        MOCK_DB_PATH=None,
        JWT_SECRET="test-secret",
        JWT_EXPIRE_MINUTES=30,
        OTP_PROVIDER="local",
        TEST_PHONE_NUMBER=None,
        NOTIFICATIONS_ENABLED=True,
        TWILIO_SID=None,
        TWILIO_TOKEN=None,
    )


@pytest.fixture
def db(password_hashes):
    db = MockFirestore()
    users = db.collection(USERS_COLLECTION)
    users.document("admin-1").set({
        "email": ADMIN_EMAIL,
        "password_hash": password_hashes[ADMIN_EMAIL],
        "phone": "+15550000001",
        "role": Role.ADMIN.value,
    })
    users.document("reporter-1").set({
        "email": REPORTER_EMAIL,
        "password_hash": password_hashes[REPORTER_EMAIL],
        "phone": REPORTER_PHONE,
        "role": Role.REPORTER.value,
    })
    return db


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def otp_provider():
    return ScriptedOtpProvider()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def services(settings, db, otp_provider, sink, clock):
    services = build_services(settings, db=db, otp_provider=otp_provider, notifier=sink)
    services.reports.clock = clock
    return services


@pytest.fixture
def admin(services):
    return services.credential_store.get_by_id("admin-1")


@pytest.fixture
def reporter(services):
    return services.credential_store.get_by_id("reporter-1")


@pytest.fixture
def admin_token(services):
    return services.auth.login_with_credentials(ADMIN_EMAIL, ADMIN_PASSWORD).token


@pytest.fixture
def reporter_token(services):
    return services.auth.login_with_credentials(REPORTER_EMAIL, REPORTER_PASSWORD).token


@pytest.fixture
def client(services):
    return TestClient(create_app(services))


@pytest.fixture
def valid_report():
    return {
        "description": "Gas leak near 5th ave",
        "urgency": "High",
        "latitude": 12.34,
        "longitude": 56.78,
    }


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
