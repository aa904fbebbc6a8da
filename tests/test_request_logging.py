from conftest import auth_headers
from household.core import observability
from household.core.config import settings
from household.db.models.request_log import RequestLog
from household.repositories.request_log import RequestLogRepository


def test_correlation_id_header_present_on_404(client):
    resp = client.get("/this-path-does-not-exist")
    assert resp.status_code == 404
    assert resp.headers["X-Correlation-ID"]


def test_inbound_correlation_id_is_echoed(client):
    resp = client.get("/invites/doesnotexist", headers={"X-Correlation-ID": "abc-123"})
    assert resp.headers["X-Correlation-ID"] == "abc-123"


def test_inbound_request_is_persisted_without_token(client, db, session_factory, make_user, monkeypatch):
    monkeypatch.setattr(settings, "ENABLE_REQUEST_LOGGING", True)
    monkeypatch.setattr(observability, "SessionLocal", session_factory)
    pat = make_user("Pat", persona="dual")

    client.get("/invites/SECRETTOKEN1", headers={**auth_headers(pat), "X-Correlation-ID": "log-1"})

    logs = RequestLogRepository(db).list_for_correlation("log-1")
    assert len(logs) == 1
    log = logs[0]
    assert log.direction == "inbound"
    assert log.status_code == 404
    assert log.path_template == "/invites/{token}"
    assert log.raw_path == "/invites/{token}"
    assert log.auth_type == "bearer"
    assert log.user_id == pat.id


def test_outbound_email_is_persisted(client, db, session_factory, make_user, monkeypatch):
    monkeypatch.setattr(settings, "ENABLE_OUTBOUND_LOGGING", True)
    monkeypatch.setattr(observability, "SessionLocal", session_factory)
    pat = make_user("Pat", persona="dual")

    client.post(
        "/invites",
        json={"partner_email": "sam@example.com"},
        headers={**auth_headers(pat), "X-Correlation-ID": "mail-1"},
    )

    logs = RequestLogRepository(db).list_for_correlation("mail-1")
    assert [(log.direction, log.provider, log.target) for log in logs] == [("outbound", "email", "send:partner_invite")]


def test_repository_clips_long_values(db):
    log = RequestLogRepository(db).insert_inbound({
        "correlation_id": "c" * 100,
        "method": "GET",
        "raw_path": "/" + "x" * 1000,
        "user_agent": "agent" * 100,
        "duration_ms": 5,
    })

    stored = db.get(RequestLog, log.id)
    assert len(stored.correlation_id) == 64
    assert len(stored.raw_path) == 512
    assert len(stored.user_agent) == 256
    assert stored.duration_ms == 5
