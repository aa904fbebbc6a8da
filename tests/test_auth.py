def _register(client, email="pat@example.com", password="secret123", name="Pat"):
    return client.post("/auth/register", json={"email": email, "name": name, "password": password})


def _login(client, email="pat@example.com", password="secret123"):
    return client.post("/auth/login", data={"username": email, "password": password})


def test_register_then_login_and_read_me(client):
    resp = _register(client, email="Pat@Example.com")
    assert resp.status_code == 201
    user = resp.json()
    assert user["email"] == "pat@example.com"
    assert user["persona"] is None
    assert user["primary_user_id"] is None
    assert "hashed_password" not in user

    login = _login(client)
    assert login.status_code == 200
    token = login.json()
    assert token["token_type"] == "bearer"
    assert token["expires_in"] == 30 * 60

    me = client.get("/users/me", headers={"Authorization": f"Bearer {token['access_token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]


def test_duplicate_email_is_rejected(client):
    assert _register(client).status_code == 201
    resp = _register(client, email="PAT@example.com")
    assert resp.status_code == 400


def test_wrong_password_is_unauthorized(client):
    _register(client)
    assert _login(client, password="wrong1234").status_code == 401
    assert _login(client, email="nobody@example.com").status_code == 401


def test_short_password_fails_validation(client):
    assert _register(client, password="short").status_code == 422
