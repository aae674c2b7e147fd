import os
from datetime import datetime, timedelta, timezone

os.environ["DATABASE_URL"] = ""
os.environ["DATABASE_NAME"] = ""
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret"

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app
from security import create_access_token


@pytest.fixture
def db(monkeypatch):
    mock_db = mongomock.MongoClient()["foodwaste_test"]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c


def future(days=3):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


class Account:
    def __init__(self, user, token):
        self.user = user
        self.id = user["_id"]
        self.headers = auth_header(token)


@pytest.fixture
def make_user(client):
    counter = {"n": 0}

    def _make(role="CONSUMER", **profile):
        counter["n"] += 1
        resp = client.post("/auth/register", json={
            "name": f"{role.title()} {counter['n']}",
            "email": f"{role.lower()}{counter['n']}@example.com",
            "password": "secret123",
            "role": role,
        })
        assert resp.status_code == 201, resp.text
        body = resp.json()
        if profile:
            database.update_document("user", body["user"]["_id"], profile)
        return Account(body["user"], body["access_token"])

    return _make


@pytest.fixture
def admin(db):
    user_id = database.create_document("user", {"email": "admin@example.com", "name": "Admin", "role": "ADMIN"})
    user = database.get_document_by_id("user", user_id)
    return Account(user, create_access_token(user))


@pytest.fixture
def business(make_user):
    return make_user("BUSINESS", business_name="Corner Bakery", business_address="12 Baker Street, Springfield",
                     business_phone="+15550001111")


@pytest.fixture
def consumer(make_user):
    return make_user("CONSUMER", delivery_address="42 Elm Road")


@pytest.fixture
def courier(make_user):
    return make_user("COURIER", is_available=True, vehicle_type="BICYCLE")


@pytest.fixture
def make_item(client):
    def _make(owner, **overrides):
        body = {
            "name": "Sourdough loaf",
            "description": "Baked this morning",
            "price": 2.5,
            "original_price": 6.0,
            "quantity": 10,
            "expiry_date": future(),
            "images": ["https://img.example.com/loaf.jpg"],
            "category": "BAKERY",
        }
        body.update(overrides)
        resp = client.post("/business/food-items", json=body, headers=owner.headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make


@pytest.fixture
def place_order(client):
    def _place(buyer, lines, address="42 Elm Road"):
        return client.post("/consumer/orders", headers=buyer.headers, json={
            "customer_name": buyer.user["name"],
            "delivery_address": address,
            "phone_number": "+15552223333",
            "payment_method": "CASH",
            "items": [{"food_item_id": item_id, "quantity": qty} for item_id, qty in lines],
        })

    return _place
