import jwt

import config
from routers import auth


def test_register_returns_token_and_user(client):
    resp = client.post("/auth/register", json={
        "name": "Ada", "email": "ada@example.com", "password": "secret123", "role": "CONSUMER",
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["role"] == "CONSUMER"
    assert "password_hash" not in body["user"]

    payload = jwt.decode(body["access_token"], config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    assert payload["sub"] == body["user"]["_id"]
    assert payload["role"] == "CONSUMER"


def test_register_defaults_to_unassigned(client):
    resp = client.post("/auth/register", json={"name": "Bo", "email": "bo@example.com", "password": "secret123"})
    assert resp.status_code == 201
    assert resp.json()["user"]["role"] == "UNASSIGNED"


def test_register_duplicate_email_conflicts(client):
    data = {"name": "Ada", "email": "ada@example.com", "password": "secret123"}
    assert client.post("/auth/register", json=data).status_code == 201
    resp = client.post("/auth/register", json=data)
    assert resp.status_code == 409


def test_register_race_on_unique_email_conflicts(client, monkeypatch):
    data = {"name": "Ada", "email": "ada@example.com", "password": "secret123"}
    assert client.post("/auth/register", json=data).status_code == 201
    # Second request passes the lookup before the first insert is visible
    monkeypatch.setattr(auth, "get_documents", lambda *args, **kwargs: [])
    resp = client.post("/auth/register", json=data)
    assert resp.status_code == 409
    assert resp.json() == {"detail": "User already exists"}


def test_register_cannot_claim_admin(client):
    resp = client.post("/auth/register", json={
        "name": "Eve", "email": "eve@example.com", "password": "secret123", "role": "ADMIN",
    })
    assert resp.status_code == 422


def test_login(client, db):
    client.post("/auth/register", json={"name": "Ada", "email": "ada@example.com", "password": "secret123"})

    ok = client.post("/auth/login", json={"email": "ada@example.com", "password": "secret123"})
    assert ok.status_code == 200
    assert ok.json()["user"]["name"] == "Ada"

    bad = client.post("/auth/login", json={"email": "ada@example.com", "password": "wrong-pass"})
    assert bad.status_code == 401
    unknown = client.post("/auth/login", json={"email": "nobody@example.com", "password": "secret123"})
    assert unknown.status_code == 401


def test_password_is_hashed(client, db):
    client.post("/auth/register", json={"name": "Ada", "email": "ada@example.com", "password": "secret123"})
    stored = db["user"].find_one({"email": "ada@example.com"})
    assert stored["password_hash"] != "secret123"
    assert stored["password_hash"].startswith("$2")


def test_me_requires_token(client, consumer):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401

    resp = client.get("/auth/me", headers=consumer.headers)
    assert resp.status_code == 200
    assert resp.json()["delivery_address"] == "42 Elm Road"


def test_token_for_deleted_user_is_rejected(client, consumer, db):
    db["user"].delete_many({})
    assert client.get("/auth/me", headers=consumer.headers).status_code == 401


def test_expired_token_is_rejected(client, consumer, monkeypatch):
    monkeypatch.setattr(config, "JWT_EXPIRY_SECONDS", -10)
    resp = client.post("/auth/login", json={"email": consumer.user["email"], "password": "secret123"})
    token = resp.json()["access_token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 401
    assert me.json()["detail"] == "Token expired"


def test_role_specific_fields(client, business, courier):
    biz = client.get("/auth/me", headers=business.headers).json()
    assert biz["business_name"] == "Corner Bakery"
    assert "is_available" not in biz

    cour = client.get("/auth/me", headers=courier.headers).json()
    assert cour["is_available"] is True
    assert cour["vehicle_type"] == "BICYCLE"
    assert "business_name" not in cour
