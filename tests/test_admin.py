from bson import ObjectId


def test_admin_moves_order_along_any_listed_transition(client, admin, business, consumer, make_item, place_order, db):
    item = make_item(business, quantity=3)
    order_id = place_order(consumer, [(item["_id"], 2)]).json()[0]["_id"]
    path = f"/admin/orders/{order_id}/status"

    confirmed = client.patch(path, json={"status": "BUSINESS_CONFIRMED"}, headers=admin.headers)
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "BUSINESS_CONFIRMED"
    assert confirmed.json()["status_history"][-1]["role"] == "ADMIN"

    cancelled = client.patch(path, json={"status": "CANCELLED"}, headers=admin.headers)
    assert cancelled.json()["status"] == "CANCELLED"
    assert db["fooditem"].find_one({"_id": ObjectId(item["_id"])})["quantity"] == 3


def test_admin_cannot_skip_the_lifecycle(client, admin, business, consumer, make_item, place_order):
    item = make_item(business)
    order_id = place_order(consumer, [(item["_id"], 1)]).json()[0]["_id"]

    resp = client.patch(f"/admin/orders/{order_id}/status", json={"status": "DELIVERED"}, headers=admin.headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid status transition from PENDING to DELIVERED"


def test_admin_order_routes_are_guarded(client, admin, business, consumer, make_item, place_order):
    item = make_item(business)
    order_id = place_order(consumer, [(item["_id"], 1)]).json()[0]["_id"]

    assert client.patch(f"/admin/orders/{order_id}/status", json={"status": "CANCELLED"},
                        headers=business.headers).status_code == 403
    assert client.get("/admin/orders").status_code == 401
    assert client.patch(f"/admin/orders/{ObjectId()}/status", json={"status": "CANCELLED"},
                        headers=admin.headers).status_code == 404


def test_admin_lists_orders_by_status(client, admin, business, consumer, make_item, place_order):
    item = make_item(business)
    first = place_order(consumer, [(item["_id"], 1)]).json()[0]["_id"]
    second = place_order(consumer, [(item["_id"], 1)]).json()[0]["_id"]
    client.post(f"/consumer/orders/{first}/cancel", headers=consumer.headers)

    assert {o["_id"] for o in client.get("/admin/orders", headers=admin.headers).json()} == {first, second}
    pending = client.get("/admin/orders", params={"status": "PENDING"}, headers=admin.headers).json()
    assert [o["_id"] for o in pending] == [second]
