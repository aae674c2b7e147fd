import database


def test_root(client):
    assert client.get("/").json() == {"message": "Food Waste Marketplace API running"}


def test_database_status(client, consumer):
    body = client.get("/test").json()
    assert body["backend"] == "✅ Running"
    assert body["connection_status"] == "Connected"
    assert "user" in body["collections"]


def test_missing_database_answers_503(client, monkeypatch):
    monkeypatch.setattr(database, "db", None)
    resp = client.get("/items")
    assert resp.status_code == 503
    assert resp.json() == {"detail": "Database not available"}
    assert client.get("/test").json()["connection_status"] == "Not Connected"


def test_auth_module_alive(client):
    assert client.get("/auth/test").json() == {"message": "Auth module is working!"}


def test_cors_allows_dashboard_origin(client):
    resp = client.options("/items", headers={
        "Origin": "http://localhost:3000",
        "Access-Control-Request-Method": "GET",
    })
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_ping(db):
    assert database.ping() is True
