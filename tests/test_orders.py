from database import ORDERS

ITEMS = [{"productId": "p1", "title": "Linen robe", "price": 40, "quantity": 2}]


def test_place_order_without_coupon(client, db):
    res = client.post("/orders", json={"customer": {"name": "Ada", "email": "a@x.com"}, "items": ITEMS, "total": 80})
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True

    doc = db[ORDERS].find_one()
    assert str(doc["_id"]) == body["orderId"]
    assert doc["total"] == 80
    assert doc["createdAt"] is not None
    assert "couponApplied" not in doc


def test_missing_customer_is_rejected(client, db):
    res = client.post("/orders", json={"items": ITEMS})
    assert res.status_code == 400
    assert res.json()["success"] is False
    assert "customer" in res.json()["message"]
    assert db[ORDERS].count_documents({}) == 0


def test_empty_customer_is_rejected(client, db):
    res = client.post("/orders", json={"customer": {}, "items": ITEMS})
    assert res.status_code == 400
    assert db[ORDERS].count_documents({}) == 0


def test_empty_items_are_rejected(client, db):
    res = client.post("/orders", json={"customer": {"name": "Ada"}, "items": []})
    assert res.status_code == 400
    assert "items" in res.json()["message"]
    assert db[ORDERS].count_documents({}) == 0


def test_unknown_coupon_rejects_order(client, db):
    res = client.post("/orders", json={"customer": {"name": "Ada"}, "items": ITEMS, "couponApplied": "GHOST"})
    assert res.status_code == 400
    assert res.json()["message"] == "Invalid coupon"
    assert db[ORDERS].count_documents({}) == 0


def test_list_orders_newest_first(client):
    client.post("/orders", json={"customer": {"name": "old"}, "items": ITEMS, "createdAt": "2024-01-01T10:00:00"})
    client.post("/orders", json={"customer": {"name": "new"}, "items": ITEMS, "createdAt": "2025-06-01T10:00:00"})
    client.post("/orders", json={"customer": {"name": "mid"}, "items": ITEMS, "createdAt": "2024-09-01T10:00:00"})

    res = client.get("/orders")
    assert res.status_code == 200
    assert [o["customer"]["name"] for o in res.json()] == ["new", "mid", "old"]
    assert all("id" in o for o in res.json())
