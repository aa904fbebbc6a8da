from conftest import auth_headers
from household.schemas.conflict import EmojiVerdict
from household.services import conflict_services


def test_endpoints_require_a_token(client):
    assert client.get("/partnership/status").status_code == 401
    assert client.put("/settings", json={"emoji": "🌞"}).status_code == 401
    assert client.post("/invites", json={"partner_email": "sam@example.com"}).status_code == 401
    bad = client.get("/partnership/status", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401


def test_invite_flow_over_http(client, make_user, outbox):
    pat = make_user("Pat", persona="solo", group_id="42", group_name="Home", currency="USD", ratio="3:2")
    sam = make_user("Sam", emoji="🤑")

    resp = client.put("/partnership/persona", json={"persona": "dual"}, headers=auth_headers(pat))
    assert resp.status_code == 200
    assert resp.json()["status"] == "committed"

    resp = client.post("/invites", json={"partner_email": "sam@example.com", "partner_name": "Sam"}, headers=auth_headers(pat))
    assert resp.status_code == 201
    token = resp.json()["token"]
    assert outbox.templates() == ["partner_invite"]

    again = client.post("/invites", json={"partner_email": "sam@example.com"}, headers=auth_headers(pat))
    assert again.status_code == 200
    assert again.json()["reused"] is True
    assert again.json()["token"] == token

    preview = client.get(f"/invites/{token}")
    assert preview.status_code == 200
    assert preview.json()["primary_name"] == "Pat"
    assert preview.json()["group_name"] == "Home"

    accepted = client.post(f"/invites/{token}/accept", headers=auth_headers(sam))
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "committed"

    status = client.get("/partnership/status", headers=auth_headers(sam)).json()
    assert status == {"type": "secondary", "primary_name": "Pat", "primary_email": "pat@example.com", "primary_emoji": "✅"}

    settings = client.get("/settings", headers=auth_headers(sam)).json()
    assert settings["group_id"] == "42"
    assert settings["default_split_ratio"] == "2:3"

    reused = client.post(f"/invites/{token}/accept", headers=auth_headers(sam))
    assert reused.status_code == 404
    assert reused.json()["reason"] == "already_used"


def test_result_variants_map_to_status_codes(client, make_user):
    pat = make_user("Pat", persona="dual", group_id="42", group_name="Home", currency="USD")
    sam = make_user("Sam", persona="dual", primary=pat, group_id="42", group_name="Home", currency="USD", emoji="🤑")

    conflict = client.put("/settings", json={"emoji": "✅"}, headers=auth_headers(sam))
    assert conflict.status_code == 409
    assert conflict.json()["status"] == "emoji_conflict"
    assert conflict.json()["owner"] == "Pat"

    locked = client.put("/settings", json={"group_id": "77", "currency_code": "USD"}, headers=auth_headers(sam))
    assert locked.status_code == 400
    assert locked.json()["error_code"] == "SECONDARY_GROUP_LOCKED"

    confirm = client.put("/partnership/persona", json={"persona": "solo"}, headers=auth_headers(pat))
    assert confirm.status_code == 200
    assert confirm.json()["status"] == "confirmation_required"
    assert confirm.json()["kind"] == "primary_has_partner"

    not_secondary = client.post("/partnership/unlink", headers=auth_headers(pat))
    assert not_secondary.status_code == 400
    assert not_secondary.json()["status"] == "not_a_secondary"

    missing = client.get("/invites/doesnotexist")
    assert missing.status_code == 404
    assert missing.json()["reason"] == "not_found"


def test_resend_limit_over_http(client, make_user):
    pat = make_user("Pat", persona="dual")
    client.post("/invites", json={"partner_email": "sam@example.com"}, headers=auth_headers(pat))

    for expected in (1, 2, 3):
        resp = client.post("/invites/resend", headers=auth_headers(pat))
        assert resp.status_code == 200
        assert resp.json()["reminder_count"] == expected

    resp = client.post("/invites/resend", headers=auth_headers(pat))
    assert resp.status_code == 409
    assert resp.json()["status"] == "max_reminders_exceeded"


def test_group_conflict_over_http(client, make_user):
    make_user("Kim", persona="solo", group_id="99", currency="EUR")
    pat = make_user("Pat", persona="solo", emoji="🌞")

    resp = client.put("/settings", json={"group_id": "99", "currency_code": "EUR"}, headers=auth_headers(pat))

    assert resp.status_code == 409
    assert resp.json()["status"] == "group_conflict"
    assert resp.json()["owner"] == "Kim"


def test_settings_reads_over_http(client, make_user):
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD")
    sam = make_user("Sam", persona="dual", primary=pat, group_id="42", currency="USD", emoji="🤑")

    partner = client.get("/settings/partner", params={"group_id": "42"}, headers=auth_headers(sam))
    assert partner.status_code == 200
    assert partner.json()["partner_name"] == "Pat"

    nobody = client.get("/settings/partner", params={"group_id": "7"}, headers=auth_headers(sam))
    assert nobody.status_code == 404

    sync = client.get("/settings/currency-sync", headers=auth_headers(sam))
    assert sync.status_code == 200
    assert sync.json()["recently_updated"] is False

    suggestion = client.get("/settings/emoji-suggestion", headers=auth_headers(sam))
    assert suggestion.status_code == 200
    assert suggestion.json()["emoji"] not in ("✅", "🤑")


def test_concurrent_modification_is_a_409(client, make_user, monkeypatch):
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD")
    sam = make_user("Sam", persona="dual", primary=pat, group_id="42", currency="USD", emoji="🤑")
    monkeypatch.setattr(conflict_services, "check_emoji_conflict", lambda *args, **kwargs: EmojiVerdict())

    resp = client.put(
        "/settings", json={"emoji": "✅"}, headers={**auth_headers(sam), "X-Correlation-ID": "race-1"}
    )

    assert resp.status_code == 409
    body = resp.json()
    assert body["error_code"] == "CONCURRENT_MODIFICATION"
    assert body["correlation_id"] == "race-1"
