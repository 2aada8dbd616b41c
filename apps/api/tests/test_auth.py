from conftest import auth_headers, register


def test_register_creates_user_with_default_family(client):
    session = register(client, "Parent@Example.com", first_name="Pat", last_name="Doe")

    me = client.get("/v1/me", headers=session["headers"])
    assert me.status_code == 200
    body = me.json()
    assert body["user"]["email"] == "parent@example.com"
    assert len(body["memberships"]) == 1
    assert body["memberships"][0]["role"] == "Primary User"
    assert body["memberships"][0]["family_name"] == "Default Family"


def test_register_duplicate_email_conflicts(client):
    register(client, "dup@example.com")
    resp = client.post("/v1/auth/register", json={"email": "DUP@example.com", "password": "other"})
    assert resp.status_code == 409
    assert resp.json()["kind"] == "conflict"


def test_register_rejects_malformed_email(client):
    resp = client.post("/v1/auth/register", json={"email": "not-an-email", "password": "pw"})
    assert resp.status_code == 400
    assert resp.json()["kind"] == "invalid_input"


def test_login_round_trip(client):
    register(client, "login@example.com", password="correct-horse")

    bad = client.post("/v1/auth/login", json={"email": "login@example.com", "password": "wrong"})
    assert bad.status_code == 401

    ok = client.post("/v1/auth/login", json={"email": "LOGIN@example.com", "password": "correct-horse"})
    assert ok.status_code == 200
    me = client.get("/v1/me", headers=auth_headers(ok.json()["session_token"]))
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "login@example.com"


def test_me_requires_valid_session(client):
    assert client.get("/v1/me").status_code == 401
    assert client.get("/v1/me", headers={"Authorization": "Token abc"}).status_code == 401
    assert client.get("/v1/me", headers=auth_headers("not-a-jwt")).status_code == 401


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
