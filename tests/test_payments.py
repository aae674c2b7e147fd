VISA = "4111 1111 1111 1111"
MASTERCARD = "5555555555554444"


def _add(client, account, **body):
    return client.post("/users/payments/methods", json=body, headers=account.headers)


def test_add_card_keeps_last_four(client, consumer, db):
    resp = _add(client, consumer, type="CREDIT_CARD", card_number=VISA, expiry_date="12/29")
    assert resp.status_code == 201
    method = resp.json()
    assert method["card_number"] == "1111"
    assert method["card_brand"] == "VISA"
    assert method["user_id"] == consumer.id
    assert db["paymentmethod"].find_one({})["card_number"] == "1111"


def test_add_paypal(client, consumer):
    method = _add(client, consumer, type="PAYPAL").json()
    assert method["card_brand"] == "PAYPAL"
    assert method["card_number"] is None


def test_card_validation(client, consumer):
    assert _add(client, consumer, type="CREDIT_CARD", card_number="4111", expiry_date="12/29").status_code == 400
    assert _add(client, consumer, type="DEBIT_CARD", card_number=VISA, expiry_date="2029-12").status_code == 400
    assert _add(client, consumer, type="DEBIT_CARD", card_number=VISA, expiry_date="13/29").status_code == 400
    amex = _add(client, consumer, type="CREDIT_CARD", card_number="378282246310005", expiry_date="12/29")
    assert amex.status_code == 400
    assert amex.json()["detail"] == "Only VISA and Mastercard are supported"


def test_single_default(client, consumer):
    first = _add(client, consumer, type="CREDIT_CARD", card_number=VISA, expiry_date="12/29", is_default=True).json()
    second = _add(client, consumer, type="CREDIT_CARD", card_number=MASTERCARD, expiry_date="01/30").json()

    resp = client.patch(f"/users/payments/methods/{second['_id']}/default", headers=consumer.headers)
    assert resp.json()["is_default"] is True

    methods = client.get("/users/payments/methods", headers=consumer.headers).json()
    assert [m["_id"] for m in methods] == [second["_id"], first["_id"]]
    assert [m["is_default"] for m in methods] == [True, False]


def test_methods_are_private(client, consumer, make_user):
    other = make_user("CONSUMER")
    method = _add(client, consumer, type="PAYPAL").json()

    assert client.get("/users/payments/methods", headers=other.headers).json() == []
    assert client.patch(f"/users/payments/methods/{method['_id']}/default", headers=other.headers).status_code == 404
    assert client.delete(f"/users/payments/methods/{method['_id']}", headers=other.headers).status_code == 404

    assert client.delete(f"/users/payments/methods/{method['_id']}", headers=consumer.headers).status_code == 204
    assert client.get("/users/payments/methods", headers=consumer.headers).json() == []


def test_requires_authentication(client):
    assert client.get("/users/payments/methods").status_code == 401
