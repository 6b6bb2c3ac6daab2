import pytest
from helpers import make_product, place_order, set_status, stock_of

# --- POST /orders ---

def test_create_order_returns_201(client, db_session):
    a = make_product(db_session, name="A", price="100.00", discount="20", discount_type="PERCENTAGE")
    b = make_product(db_session, name="B", price="50.00")
    r = place_order(client, [(a.id, 2), (b.id, 1)])
    assert r.status_code == 201
    order = r.get_json()["order"]
    assert order["totalPrice"] == 210.0
    assert order["status"] == "RECEIVED"
    assert order["orderNumber"].startswith("PED-")
    assert [h["status"] for h in order["history"]] == ["RECEIVED"]


def test_create_order_stock_failure_is_all_or_nothing(client, db_session):
    a = make_product(db_session, name="A", stock=10)
    b = make_product(db_session, name="B", stock=5)
    r = place_order(client, [(a.id, 2), (b.id, 1000)])
    assert r.status_code == 400
    assert r.get_json()["code"] == "INSUFFICIENT_STOCK"
    assert stock_of(db_session, a.id) == 10
    assert stock_of(db_session, b.id) == 5


def test_create_order_empty_items_returns_400(client):
    r = client.post("/api/orders", json={"usuarioId": 1, "items": []})
    assert r.status_code == 400
    assert r.get_json()["code"] == "VALIDATION_ERROR"


def test_create_order_missing_user_returns_400(client, db_session):
    p = make_product(db_session)
    r = client.post("/api/orders", json={"items": [{"produtoId": p.id, "quantidade": 1}]})
    assert r.status_code == 400


def test_create_order_unknown_product_returns_404(client):
    r = place_order(client, [(777, 1)])
    assert r.status_code == 404
    assert r.get_json()["code"] == "PRODUCT_NOT_FOUND"


def test_create_order_with_coupon_adjustment(client, db_session):
    p = make_product(db_session, price="40.00")
    r = place_order(client, [(p.id, 2)], cupomId=3, desconto=10, precoTotal=70)
    order = r.get_json()["order"]
    assert order["couponId"] == 3
    assert order["subtotal"] == 80.0
    assert order["totalPrice"] == 70.0


def test_unparseable_client_total_does_not_fail_the_order(client, db_session):
    p = make_product(db_session, stock=5)
    r = place_order(client, [(p.id, 2)], precoTotal="Infinity")
    assert r.status_code == 201
    assert r.get_json()["order"]["totalPrice"] == 200.0
    assert stock_of(db_session, p.id) == 3


@pytest.mark.parametrize("discount", ["NaN", "Infinity", "abc"])
def test_malformed_coupon_discount_returns_400(client, db_session, discount):
    p = make_product(db_session, stock=5)
    r = place_order(client, [(p.id, 1)], desconto=discount)
    assert r.status_code == 400
    assert r.get_json()["code"] == "VALIDATION_ERROR"
    assert stock_of(db_session, p.id) == 5

# --- Queries ---

def test_get_order_by_id(client, db_session):
    p = make_product(db_session)
    order_id = place_order(client, [(p.id, 1)]).get_json()["order"]["id"]
    r = client.get(f"/api/orders/{order_id}")
    assert r.status_code == 200
    assert r.get_json()["order"]["id"] == order_id


def test_get_missing_order_returns_404(client):
    r = client.get("/api/orders/999")
    assert r.status_code == 404
    assert r.get_json()["code"] == "ORDER_NOT_FOUND"


def test_list_user_orders(client, db_session):
    p = make_product(db_session, stock=None)
    place_order(client, [(p.id, 1)], user_id=1)
    place_order(client, [(p.id, 1)], user_id=1)
    place_order(client, [(p.id, 1)], user_id=2)
    r = client.get("/api/orders?usuarioId=1")
    assert r.status_code == 200
    orders = r.get_json()["orders"]
    assert len(orders) == 2
    assert all(o["userId"] == 1 for o in orders)


def test_list_all_orders_with_status_filter(client, db_session):
    p = make_product(db_session, stock=None)
    first = place_order(client, [(p.id, 1)]).get_json()["order"]["id"]
    place_order(client, [(p.id, 1)], user_id=2)
    set_status(client, first, "CANCELLED")

    assert len(client.get("/api/orders/all").get_json()["orders"]) == 2
    cancelled = client.get("/api/orders/all?status=CANCELLED").get_json()["orders"]
    assert [o["id"] for o in cancelled] == [first]
    assert client.get("/api/orders/all?status=NOPE").status_code == 400

# --- PUT /orders/<id>/status ---

def test_update_status_appends_history(client, db_session):
    p = make_product(db_session)
    order_id = place_order(client, [(p.id, 1)]).get_json()["order"]["id"]

    r = set_status(client, order_id, "PENDING_PAYMENT", actor_id=42, note="awaiting pix")
    assert r.status_code == 200
    order = r.get_json()["order"]
    assert order["status"] == "PENDING_PAYMENT"
    assert order["history"][-1]["actorId"] == 42
    assert order["history"][-1]["note"] == "awaiting pix"

    history = client.get(f"/api/orders/{order_id}/history").get_json()["history"]
    assert [h["status"] for h in history] == ["RECEIVED", "PENDING_PAYMENT"]


def test_update_status_invalid_value_returns_400(client, db_session):
    p = make_product(db_session)
    order_id = place_order(client, [(p.id, 1)]).get_json()["order"]["id"]
    r = set_status(client, order_id, "LOST_IN_SPACE")
    assert r.status_code == 400
    assert r.get_json()["code"] == "INVALID_STATUS"


def test_update_status_missing_value_returns_400(client, db_session):
    p = make_product(db_session)
    order_id = place_order(client, [(p.id, 1)]).get_json()["order"]["id"]
    r = client.put(f"/api/orders/{order_id}/status", json={"criadoPor": 1})
    assert r.status_code == 400


def test_update_status_illegal_jump_returns_409(client, db_session):
    p = make_product(db_session)
    order_id = place_order(client, [(p.id, 1)]).get_json()["order"]["id"]
    r = set_status(client, order_id, "DELIVERED")
    assert r.status_code == 409
    assert r.get_json()["code"] == "INVALID_TRANSITION"


def test_update_status_on_cancelled_order_returns_409(client, db_session):
    p = make_product(db_session)
    order_id = place_order(client, [(p.id, 1)]).get_json()["order"]["id"]
    set_status(client, order_id, "CANCELLED")
    r = set_status(client, order_id, "PENDING_PAYMENT")
    assert r.status_code == 409


def test_update_status_missing_order_returns_404(client):
    r = set_status(client, 31337, "CANCELLED")
    assert r.status_code == 404
    assert r.get_json()["code"] == "ORDER_NOT_FOUND"


def test_transitions_endpoint(client, db_session):
    p = make_product(db_session)
    order_id = place_order(client, [(p.id, 1)]).get_json()["order"]["id"]
    data = client.get(f"/api/orders/{order_id}/transitions").get_json()
    assert data["status"] == "RECEIVED"
    assert data["allowed"] == ["CANCELLED", "DELIVERY_FAILED", "PENDING_PAYMENT"]

# --- DELETE /orders/<id> ---

def test_delete_order(client, db_session):
    p = make_product(db_session)
    order_id = place_order(client, [(p.id, 1)]).get_json()["order"]["id"]
    r = client.delete(f"/api/orders/{order_id}")
    assert r.status_code == 200
    assert client.get(f"/api/orders/{order_id}").status_code == 404


def test_update_status_missing_order_with_bad_status_returns_404(client):
    r = set_status(client, 31337, "LOST_IN_SPACE")
    assert r.status_code == 404
    assert r.get_json()["code"] == "ORDER_NOT_FOUND"


def test_update_status_without_actor_returns_400(client, db_session):
    p = make_product(db_session)
    order_id = place_order(client, [(p.id, 1)]).get_json()["order"]["id"]
    r = client.put(f"/api/orders/{order_id}/status", json={"status": "PENDING_PAYMENT"})
    assert r.status_code == 400
    assert r.get_json()["code"] == "VALIDATION_ERROR"
    assert client.get(f"/api/orders/{order_id}").get_json()["order"]["status"] == "RECEIVED"
