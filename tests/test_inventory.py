from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

import database
from inventory import effective_price, expire_items, reserve_items, restock_items

NOW = datetime(2026, 10, 19, 12, 0)


def _item(**fields):
    doc = {
        "name": "Milk",
        "price": 2.0,
        "original_price": 3.0,
        "quantity": 3,
        "expiry_date": NOW + timedelta(days=1),
        "business_id": "b1",
        "status": "AVAILABLE",
    }
    doc.update(fields)
    return database.get_document_by_id("fooditem", database.create_document("fooditem", doc))


def test_effective_price_without_discount():
    assert effective_price({"price": 5.0, "expiry_date": NOW}, NOW) == 5.0


def test_effective_price_outside_threshold():
    item = {"price": 8.0, "discount_percentage": 50, "discount_threshold": 2, "expiry_date": NOW + timedelta(hours=5)}
    assert effective_price(item, NOW) == 8.0


def test_effective_price_inside_threshold():
    item = {"price": 8.0, "discount_percentage": 30, "discount_threshold": 6, "expiry_date": NOW + timedelta(hours=5)}
    assert effective_price(item, NOW) == 5.6


def test_reserve_decrements_all_lines(db):
    milk = _item()
    eggs = _item(name="Eggs", quantity=12)
    reserve_items({milk["_id"]: 1, eggs["_id"]: 6})
    assert database.get_document_by_id("fooditem", milk["_id"])["quantity"] == 2
    assert database.get_document_by_id("fooditem", eggs["_id"])["quantity"] == 6


def test_reserve_rolls_back_on_shortage(db):
    milk = _item()
    eggs = _item(name="Eggs", quantity=1)
    with pytest.raises(HTTPException) as err:
        reserve_items({milk["_id"]: 3, eggs["_id"]: 2})
    assert err.value.status_code == 400
    assert "Eggs" in err.value.detail
    restored = database.get_document_by_id("fooditem", milk["_id"])
    assert restored["quantity"] == 3
    assert restored["status"] == "AVAILABLE"


def test_restock_missing_item_is_skipped(db):
    milk = _item(quantity=0, status="SOLD")
    restock_items([{"food_item_id": milk["_id"], "quantity": 2}, {"food_item_id": "000000000000000000000000", "quantity": 1}])
    restored = database.get_document_by_id("fooditem", milk["_id"])
    assert restored["quantity"] == 2
    assert restored["status"] == "AVAILABLE"


def test_expire_items(db):
    stale = _item(expiry_date=NOW - timedelta(minutes=1))
    reserved = _item(expiry_date=NOW - timedelta(days=1), status="RESERVED")
    sold = _item(expiry_date=NOW - timedelta(days=1), status="SOLD")
    fresh = _item()

    assert expire_items(NOW) == 2
    statuses = {i["_id"]: database.get_document_by_id("fooditem", i["_id"])["status"] for i in (stale, reserved, sold, fresh)}
    assert statuses == {stale["_id"]: "EXPIRED", reserved["_id"]: "EXPIRED", sold["_id"]: "SOLD", fresh["_id"]: "AVAILABLE"}
