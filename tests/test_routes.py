from fastapi.testclient import TestClient

from hazard_hub.core.errors import UpstreamFailure
from hazard_hub.main import create_app
from hazard_hub.services.otp import OtpStatus

from .conftest import ADMIN_EMAIL, ADMIN_PASSWORD, REPORTER_PHONE, bearer


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "running"

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"

    db_health = client.get("/health/db")
    assert db_health.status_code == 200
    assert db_health.json()["database"] == "mock"


def test_db_health_failure(client, services, monkeypatch):
    def broken_ping():
        raise RuntimeError("connection refused")

    monkeypatch.setattr(services.report_store, "ping", broken_ping)

    resp = client.get("/health/db")

    assert resp.status_code == 503


def test_login(client):
    resp = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})

    assert resp.status_code == 200
    body = resp.json()
    assert body["session"]["role"] == "admin"
    assert body["session"]["token"] == body["token"]
    assert "password_hash" not in body["session"]


def test_login_failures_look_the_same(client):
    wrong_password = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    unknown_email = client.post("/auth/login", json={"email": "ghost@example.org", "password": ADMIN_PASSWORD})

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["code"] == "invalid_credentials"


def test_login_validation_error(client):
    resp = client.post("/auth/login", json={"email": "not-an-email", "password": ""})

    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"
    assert resp.json()["errors"]


def test_signup_then_me(client):
    resp = client.post("/auth/signup", json={
        "email": "citizen@example.org",
        "password": "citizen-pass",
        "phone": "+15553334444",
    })
    assert resp.status_code == 201
    token = resp.json()["token"]

    me = client.get("/auth/me", headers=bearer(token))

    assert me.status_code == 200
    assert me.json()["email"] == "citizen@example.org"
    assert me.json()["role"] == "reporter"


def test_signup_ignores_role_in_body(client):
    resp = client.post("/auth/signup", json={
        "email": "sneaky@example.org",
        "password": "sneaky-pass",
        "phone": "+15553335555",
        "role": "admin",
    })

    assert resp.status_code == 201
    assert resp.json()["session"]["role"] == "reporter"


def test_signup_duplicate_email(client):
    resp = client.post("/auth/signup", json={
        "email": ADMIN_EMAIL,
        "password": "whatever-pass",
        "phone": "+15553336666",
    })

    assert resp.status_code == 409
    assert resp.json()["code"] == "email_already_registered"


def test_otp_flow(client, otp_provider):
    sent = client.post("/auth/otp/send", json={"phone": REPORTER_PHONE})
    assert sent.status_code == 200

    verified = client.post("/auth/otp/verify", json={"phone": REPORTER_PHONE, "code": "123456"})

    assert verified.status_code == 200
    assert verified.json()["session"]["id"] == "reporter-1"


def test_otp_send_failure(client, otp_provider):
    otp_provider.request_status = OtpStatus.FAILED

    resp = client.post("/auth/otp/send", json={"phone": REPORTER_PHONE})

    assert resp.status_code == 500
    assert resp.json()["code"] == "otp_send_failed"


def test_otp_not_approved(client, otp_provider):
    otp_provider.check_status = OtpStatus.REJECTED

    resp = client.post("/auth/otp/verify", json={"phone": REPORTER_PHONE, "code": "000000"})

    assert resp.status_code == 401
    assert resp.json()["code"] == "otp_not_approved"


def test_otp_unknown_phone(client):
    resp = client.post("/auth/otp/verify", json={"phone": "+15557777777", "code": "123456"})

    assert resp.status_code == 404
    assert resp.json()["code"] == "user_not_found"


def test_otp_bad_phone_is_validation_error(client, otp_provider):
    resp = client.post("/auth/otp/send", json={"phone": "5551234567xx"})

    assert resp.status_code == 400
    assert otp_provider.requests == []


def test_anonymous_report_submission(client, sink, valid_report):
    resp = client.post("/reports", json=valid_report)

    assert resp.status_code == 201
    body = resp.json()
    assert body["report_id"] == body["report"]["id"]
    assert body["report"]["status"] == "New"
    assert body["report"]["reported_by"] == "anonymous"
    assert body["report"]["resolved_at"] is None
    assert len(sink.new_reports) == 1


def test_authenticated_report_is_attributed(client, reporter_token, valid_report):
    resp = client.post("/reports", json=dict(valid_report, reported_by="someone-else"), headers=bearer(reporter_token))

    assert resp.status_code == 201
    assert resp.json()["report"]["reported_by"] == "reporter-1"


def test_report_with_invalid_token_is_rejected(client, valid_report):
    resp = client.post("/reports", json=valid_report, headers=bearer("garbage"))

    assert resp.status_code == 401


def test_report_validation_error(client, sink):
    resp = client.post("/reports", json={"description": "too short", "urgency": "Extreme", "latitude": 200})

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "validation_error"
    fields = {error["loc"][-1] for error in body["errors"]}
    assert {"description", "urgency", "latitude", "longitude"} <= fields
    assert sink.new_reports == []


def test_listing_requires_authentication(client):
    resp = client.get("/reports")

    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthorized"


def test_listing_newest_first(client, clock, reporter_token, valid_report):
    first = client.post("/reports", json=valid_report).json()["report_id"]
    clock.advance(60)
    second = client.post("/reports", json=dict(valid_report, description="Second hazard report")).json()["report_id"]

    resp = client.get("/reports", headers=bearer(reporter_token))

    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()] == [second, first]


def test_get_report(client, reporter_token, valid_report):
    report_id = client.post("/reports", json=valid_report).json()["report_id"]

    assert client.get(f"/reports/{report_id}", headers=bearer(reporter_token)).json()["id"] == report_id
    missing = client.get("/reports/missing", headers=bearer(reporter_token))
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"


def test_admin_resolves_report(client, clock, admin_token, valid_report):
    report_id = client.post("/reports", json=valid_report).json()["report_id"]
    clock.advance(120)

    resp = client.patch(f"/admin/reports/{report_id}/status", json={"status": "Resolved"}, headers=bearer(admin_token))

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "Resolved"
    assert body["resolved_at"] is not None
    assert body["resolved_at"] == body["updated_at"]


def test_reporter_cannot_change_status(client, reporter_token, valid_report):
    report_id = client.post("/reports", json=valid_report).json()["report_id"]

    resp = client.patch(f"/admin/reports/{report_id}/status", json={"status": "Resolved"}, headers=bearer(reporter_token))

    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"


def test_status_change_without_token(client, valid_report):
    report_id = client.post("/reports", json=valid_report).json()["report_id"]

    resp = client.patch(f"/admin/reports/{report_id}/status", json={"status": "Resolved"})

    assert resp.status_code == 401


def test_invalid_transition_is_conflict(client, admin_token, valid_report):
    report_id = client.post("/reports", json=valid_report).json()["report_id"]
    url = f"/admin/reports/{report_id}/status"
    client.patch(url, json={"status": "InProgress"}, headers=bearer(admin_token))

    resp = client.patch(url, json={"status": "New"}, headers=bearer(admin_token))

    assert resp.status_code == 409
    assert resp.json()["code"] == "invalid_transition"


def test_stale_status_change_is_conflict(client, clock, admin_token, valid_report):
    created = client.post("/reports", json=valid_report).json()["report"]
    url = f"/admin/reports/{created['id']}/status"
    clock.advance(5)
    client.patch(url, json={"status": "InProgress"}, headers=bearer(admin_token))

    resp = client.patch(
        url,
        json={"status": "Resolved", "expected_updated_at": created["updated_at"]},
        headers=bearer(admin_token),
    )

    assert resp.status_code == 409
    assert resp.json()["code"] == "stale_update"


def test_unknown_status_value(client, admin_token, valid_report):
    report_id = client.post("/reports", json=valid_report).json()["report_id"]

    resp = client.patch(f"/admin/reports/{report_id}/status", json={"status": "Closed"}, headers=bearer(admin_token))

    assert resp.status_code == 400


def test_status_change_on_missing_report(client, admin_token):
    resp = client.patch("/admin/reports/missing/status", json={"status": "Resolved"}, headers=bearer(admin_token))

    assert resp.status_code == 404


def test_admin_triage_filter(client, admin_token, reporter_token, valid_report):
    first = client.post("/reports", json=valid_report).json()["report_id"]
    client.post("/reports", json=dict(valid_report, description="Second hazard report"))
    client.patch(f"/admin/reports/{first}/status", json={"status": "InProgress"}, headers=bearer(admin_token))

    resp = client.get("/admin/reports", params={"status": "InProgress"}, headers=bearer(admin_token))

    assert [r["id"] for r in resp.json()] == [first]
    assert client.get("/admin/reports", headers=bearer(reporter_token)).status_code == 403


def test_upstream_failure_is_opaque(client, services, reporter_token, monkeypatch):
    def broken_list(status=None, limit=None):
        raise UpstreamFailure("firestore: deadline exceeded on projects/secret-project")

    monkeypatch.setattr(services.report_store, "list", broken_list)

    resp = client.get("/reports", headers=bearer(reporter_token))

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error", "code": "internal_error"}


def test_unexpected_error_is_opaque(services, reporter_token, monkeypatch):
    client = TestClient(create_app(services), raise_server_exceptions=False)

    def broken_list(status=None, limit=None):
        raise RuntimeError("secret internals")

    monkeypatch.setattr(services.reports, "list_reports", broken_list)

    resp = client.get("/reports", headers=bearer(reporter_token))

    assert resp.status_code == 500
    assert "secret" not in resp.text


def test_deleted_account_token_stops_working(client, db, reporter_token):
    assert client.get("/auth/me", headers=bearer(reporter_token)).status_code == 200

    db.collection("users").document("reporter-1").delete()

    assert client.get("/auth/me", headers=bearer(reporter_token)).status_code == 401


def test_liveness_without_services(settings):
    app = create_app(settings=settings)
    client = TestClient(app)

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["service"] == settings.APP_NAME

    assert client.get("/reports").status_code == 500
