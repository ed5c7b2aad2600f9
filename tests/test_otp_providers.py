import re
from datetime import timedelta

import pytest
import requests

from hazard_hub.config.mock_firestore import MockFirestore
from hazard_hub.core.errors import UpstreamFailure
from hazard_hub.core.settings import Settings
from hazard_hub.services.otp import OtpStatus, build_otp_provider
from hazard_hub.services.otp.local_provider import OTP_COLLECTION, LocalOtpProvider
from hazard_hub.services.otp.twilio_provider import TwilioVerifyProvider

PHONE = "+15551234567"


class Outbox:
    def __init__(self, accept=True):
        self.accept = accept
        self.messages = []

    def __call__(self, phone, body):
        self.messages.append((phone, body))
        return self.accept

    def last_code(self):
        return re.search(r"(\d{6})$", self.messages[-1][1]).group(1)


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def provider(clock, outbox):
    return LocalOtpProvider(
        MockFirestore(),
        send_sms=outbox,
        expiry_minutes=5,
        max_attempts=3,
        test_phone_number="+15550000000",
        test_code="123456",
        clock=clock,
    )


def test_local_code_round_trip(provider, outbox):
    assert provider.request_code(PHONE) == OtpStatus.PENDING
    code = outbox.last_code()

    assert provider.check_code(PHONE, code) == OtpStatus.APPROVED
    # Single use
    assert provider.check_code(PHONE, code) == OtpStatus.EXPIRED


def test_local_stores_only_a_hash(provider, outbox):
    provider.request_code(PHONE)
    code = outbox.last_code()

    stored = [doc.to_dict() for doc in provider.db.collection(OTP_COLLECTION).stream()]
    assert len(stored) == 1
    assert code not in str(stored)


def test_local_wrong_code_then_right_code(provider, outbox):
    provider.request_code(PHONE)
    code = outbox.last_code()
    wrong = "000000" if code != "000000" else "111111"

    assert provider.check_code(PHONE, wrong) == OtpStatus.REJECTED
    assert provider.check_code(PHONE, code) == OtpStatus.APPROVED


def test_local_attempt_budget(provider, outbox):
    provider.request_code(PHONE)
    code = outbox.last_code()
    wrong = "000000" if code != "000000" else "111111"

    for _ in range(3):
        assert provider.check_code(PHONE, wrong) == OtpStatus.REJECTED

    assert provider.check_code(PHONE, code) == OtpStatus.EXPIRED


def test_local_code_expires(provider, outbox, clock):
    provider.request_code(PHONE)
    code = outbox.last_code()
    clock.advance(timedelta(minutes=6).total_seconds())

    assert provider.check_code(PHONE, code) == OtpStatus.EXPIRED


def test_local_new_request_supersedes_old(provider, outbox, clock):
    provider.request_code(PHONE)
    first = outbox.last_code()
    clock.advance(10)
    provider.request_code(PHONE)
    second = outbox.last_code()

    if first != second:
        assert provider.check_code(PHONE, first) == OtpStatus.REJECTED
    assert provider.check_code(PHONE, second) == OtpStatus.APPROVED


def test_local_check_without_request(provider):
    assert provider.check_code(PHONE, "123456") == OtpStatus.EXPIRED


def test_local_delivery_failure(clock):
    provider = LocalOtpProvider(MockFirestore(), send_sms=Outbox(accept=False), clock=clock)

    assert provider.request_code(PHONE) == OtpStatus.FAILED


def test_local_test_number(provider, outbox):
    assert provider.request_code("+15550000000") == OtpStatus.PENDING
    assert outbox.messages == []
    assert provider.check_code("+15550000000", "123456") == OtpStatus.APPROVED
    assert provider.check_code("+15550000000", "654321") == OtpStatus.REJECTED


def test_local_store_failure_is_upstream(clock):
    class BrokenDb:
        def collection(self, name):
            raise RuntimeError("firestore unavailable")

    provider = LocalOtpProvider(BrokenDb(), clock=clock)

    with pytest.raises(UpstreamFailure):
        provider.request_code(PHONE)
    with pytest.raises(UpstreamFailure):
        provider.check_code(PHONE, "123456")


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = str(self._payload)

    def json(self):
        return self._payload


class FakePost:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def __call__(self, url, data=None, auth=None, timeout=None):
        self.calls.append({"url": url, "data": data, "auth": auth, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def twilio():
    return TwilioVerifyProvider("AC123", "token", "VA456", timeout=3.0)


def test_twilio_request_code(monkeypatch, twilio):
    post = FakePost(FakeResponse(201, {"status": "pending"}))
    monkeypatch.setattr(requests, "post", post)

    assert twilio.request_code(PHONE) == OtpStatus.PENDING

    call = post.calls[0]
    assert call["url"] == "https://verify.twilio.com/v2/Services/VA456/Verifications"
    assert call["data"] == {"To": PHONE, "Channel": "sms"}
    assert call["auth"] == ("AC123", "token")
    assert call["timeout"] == 3.0


def test_twilio_request_code_refused(monkeypatch, twilio):
    monkeypatch.setattr(requests, "post", FakePost(FakeResponse(400, {"message": "Invalid parameter"})))

    assert twilio.request_code(PHONE) == OtpStatus.FAILED


@pytest.mark.parametrize("status_code,payload,expected", [
    (200, {"status": "approved"}, OtpStatus.APPROVED),
    (200, {"status": "pending"}, OtpStatus.REJECTED),
    (200, {"status": "canceled"}, OtpStatus.EXPIRED),
    (404, {}, OtpStatus.EXPIRED),
    (429, {}, OtpStatus.EXPIRED),
    (400, {}, OtpStatus.REJECTED),
])
def test_twilio_check_code(monkeypatch, twilio, status_code, payload, expected):
    post = FakePost(FakeResponse(status_code, payload))
    monkeypatch.setattr(requests, "post", post)

    assert twilio.check_code(PHONE, "123456") == expected
    assert post.calls[0]["url"].endswith("/VerificationCheck")


def test_twilio_network_error_is_upstream(monkeypatch, twilio):
    monkeypatch.setattr(requests, "post", FakePost(error=requests.ConnectionError("boom")))

    with pytest.raises(UpstreamFailure):
        twilio.request_code(PHONE)


def test_twilio_server_error_is_upstream(monkeypatch, twilio):
    monkeypatch.setattr(requests, "post", FakePost(FakeResponse(503)))

    with pytest.raises(UpstreamFailure):
        twilio.check_code(PHONE, "123456")


def test_resolver_prefers_twilio_when_configured():
    settings = Settings(
        USE_MOCK_DB=True,
        OTP_PROVIDER="twilio",
        TWILIO_SID="AC123",
        TWILIO_TOKEN="token",
        TWILIO_VERIFY_SID="VA456",
    )

    assert build_otp_provider(settings, MockFirestore()).name == "twilio"


def test_resolver_falls_back_to_local():
    settings = Settings(USE_MOCK_DB=True, OTP_PROVIDER="twilio", TWILIO_SID=None, TWILIO_TOKEN=None)

    assert build_otp_provider(settings, MockFirestore()).name == "local"


class InterleavingClock:
    """Runs one extra check the first time the provider reads the time mid-check."""

    def __init__(self, clock):
        self.clock = clock
        self.interleave = None
        self.results = []

    def __call__(self):
        if self.interleave is not None:
            interleave, self.interleave = self.interleave, None
            self.results.append(interleave())
        return self.clock()


def _interleaving_provider(clock, outbox):
    ticking = InterleavingClock(clock)
    provider = LocalOtpProvider(MockFirestore(), send_sms=outbox, max_attempts=3, clock=ticking)
    return provider, ticking


def test_local_concurrent_wrong_guesses_all_count(clock, outbox):
    provider, ticking = _interleaving_provider(clock, outbox)
    provider.request_code(PHONE)
    code = outbox.last_code()
    wrong = "000000" if code != "000000" else "111111"

    ticking.interleave = lambda: provider.check_code(PHONE, wrong)
    assert provider.check_code(PHONE, wrong) == OtpStatus.REJECTED
    assert ticking.results == [OtpStatus.REJECTED]

    challenge = next(provider.db.collection(OTP_COLLECTION).stream()).to_dict()
    assert challenge["attempts"] == 2

    # Third guess spends the budget even though two raced
    assert provider.check_code(PHONE, wrong) == OtpStatus.REJECTED
    assert provider.check_code(PHONE, code) == OtpStatus.EXPIRED


def test_local_concurrent_correct_checks_approve_once(clock, outbox):
    provider, ticking = _interleaving_provider(clock, outbox)
    provider.request_code(PHONE)
    code = outbox.last_code()

    ticking.interleave = lambda: provider.check_code(PHONE, code)
    assert provider.check_code(PHONE, code) == OtpStatus.EXPIRED
    assert ticking.results == [OtpStatus.APPROVED]
