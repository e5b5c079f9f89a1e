def _register(client, email="u1@example.com", password="password123", name="Olena"):
    return client.post("/auth/register", json={"name": name, "email": email, "password": password})


def test_register_and_me(client):
    r = _register(client)
    assert r.status_code == 201, r.text
    token = r.json()["access_token"]
    assert token

    r2 = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert r2.status_code == 200, r2.text
    body = r2.json()
    assert body["email"] == "u1@example.com"
    assert body["name"] == "Olena"
    assert body["isActive"] is True
    assert body["isEmailActivated"] is False
    assert body["role"] == "user"


def test_register_duplicate_email_409(client):
    assert _register(client, email="dup@example.com").status_code == 201

    r2 = _register(client, email="DUP@example.com")
    assert r2.status_code == 409
    assert r2.json()["errorCode"] == "EMAIL_TAKEN"


def test_register_malformed_body_400(client):
    r = client.post("/auth/register", json={"email": "not-an-email", "password": "short"})
    assert r.status_code == 400
    body = r.json()
    assert body["errorCode"] == "VALIDATION_ERROR"
    assert {"email", "password", "name"} <= set(body["fields"])


def test_login_invalid_credentials_401(client):
    r = client.post("/auth/token", data={"username": "nope@example.com", "password": "password123"})
    assert r.status_code == 401
    assert r.json()["errorCode"] == "INVALID_CREDENTIALS"


def test_login_success(client):
    _register(client, email="u2@example.com")
    r = client.post("/auth/token", data={"username": "u2@example.com", "password": "password123"})
    assert r.status_code == 200, r.text
    assert r.json()["token_type"] == "bearer"


def test_me_requires_token(client):
    r = client.get("/me")
    assert r.status_code == 401
    assert r.json()["errorCode"] == "UNAUTHORIZED"

    r = client.get("/me", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401


def test_rate_limit_on_login(client):
    for _ in range(10):
        r = client.post("/auth/token", data={"username": "x@example.com", "password": "wrongpass"})
        assert r.status_code in (401, 200)

    r = client.post("/auth/token", data={"username": "x@example.com", "password": "wrongpass"})
    assert r.status_code == 429, r.text
    assert r.json()["errorCode"] == "TOO_MANY_REQUESTS"
    assert "Retry-After" in r.headers
