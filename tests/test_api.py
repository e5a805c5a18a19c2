"""Tests for the HTTP surface, backed by the in-memory ledgers."""

import uuid
import pytest
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

import api
import auth
from api import app
from api.accounts import get_account_manager as accounts_manager_dependency
from api.auth import get_account_manager as register_manager_dependency
from api.cart import get_cart_manager
from api.orders import get_order_manager
from accounts import AccountExistsError, AccountNotFoundError
from auth import InvalidCredentialsError
from cart import CartManager
from orders import OrderManager

from conftest import BUYER_ID, SELLER_ID, PRODUCT_ID, SHIPPING

PRODUCT_JSON = {"name": "Walnut Desk", "image": "images/walnut-desk.png", "price": "249.00"}

ORDER_JSON = {
    "product_id": PRODUCT_ID,
    "seller_id": SELLER_ID,
    "quantity": 2,
    "shipping": SHIPPING,
    "product": PRODUCT_JSON,
}

@pytest.fixture
def account_manager():
    manager = AsyncMock()
    manager.register.return_value = {"id": BUYER_ID, "email": "buyer@example.com"}
    manager.get_account.return_value = {"id": BUYER_ID, "email": "buyer@example.com"}
    manager.update_account.return_value = {"id": BUYER_ID, "name": "Ada"}
    manager.delete_account.return_value = None
    return manager

@pytest.fixture
def client(pool, account_manager):
    app.dependency_overrides[get_order_manager] = lambda: OrderManager(pool)
    app.dependency_overrides[get_cart_manager] = lambda: CartManager(pool)
    app.dependency_overrides[accounts_manager_dependency] = lambda: account_manager
    app.dependency_overrides[register_manager_dependency] = lambda: account_manager
    yield TestClient(app)
    app.dependency_overrides.clear()

def bearer(account_id=BUYER_ID, role="buyer"):
    token = auth.signer.issue(account_id, f"{role}@example.com", role)["token"]
    return {"Authorization": f"Bearer {token}"}

def place(client, headers=None, **overrides):
    body = dict(ORDER_JSON, **overrides)
    return client.post("/orders", json=body, headers=headers or bearer())

def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "running"

def test_health_reports_unavailable_store(client, monkeypatch):
    """Test the health check fails when the database cannot be reached."""
    monkeypatch.setattr(api, "get_pool", AsyncMock(side_effect=OSError("connection refused")))

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "database_unavailable"

@pytest.mark.parametrize("method, path", [
    ("post", "/orders"),
    ("get", f"/orders/buyer/{BUYER_ID}"),
    ("get", f"/orders/seller/{SELLER_ID}"),
    ("get", f"/orders/{uuid.uuid4()}"),
    ("patch", f"/orders/{uuid.uuid4()}/status"),
    ("get", f"/users/{BUYER_ID}/cart"),
    ("get", f"/accounts/{BUYER_ID}"),
    ("get", "/auth/verify"),
])
def test_protected_routes_require_token(client, store, method, path):
    """Test protected routes reject requests without a token."""
    response = getattr(client, method)(path)

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert store.customer_orders == {}

def test_invalid_token_rejected(client):
    response = client.get("/auth/verify", headers={"Authorization": "Bearer not.a.token"})

    assert response.status_code == 401

def test_bare_token_accepted(client):
    """Test a token sent without the Bearer scheme is accepted."""
    token = bearer()["Authorization"].split(" ", 1)[1]

    response = client.get("/auth/verify", headers={"Authorization": token})

    assert response.status_code == 200
    assert response.json()["subject_id"] == BUYER_ID

def test_verify_token(client):
    response = client.get("/auth/verify", headers=bearer(SELLER_ID, "seller"))

    assert response.status_code == 200
    assert response.json() == {
        "valid": True,
        "subject_id": SELLER_ID,
        "email": "seller@example.com",
        "role": "seller",
    }

def test_register(client, account_manager):
    """Test registration maps the shipping address onto the account."""
    response = client.post("/auth/register", json={
        "email": "buyer@example.com",
        "password": "secret1",
        "username": "ada_buyer",
        "name": "Ada",
        "shipping_address": {"street": "1 Market Street", "country": "US"},
    })

    assert response.status_code == 201
    assert response.json()["id"] == BUYER_ID
    args, kwargs = account_manager.register.call_args
    assert args == ("buyer@example.com", "secret1")
    assert kwargs["account_type"] == "buyer"
    assert kwargs["shipping_country"] == "US"
    assert kwargs["street"] == "1 Market Street"
    assert kwargs["name"] == "Ada"
    assert kwargs["username"] == "ada_buyer"

@pytest.mark.parametrize("email", ["foo@bar..com", "not-an-email", "buyer@", ""])
def test_register_malformed_email(client, account_manager, email):
    """Test malformed addresses are rejected before reaching the store."""
    response = client.post("/auth/register", json={
        "email": email,
        "password": "secret1",
        "username": "ada_buyer",
    })

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "validation_error"
    assert response.json()["detail"]["field"] == "email"
    account_manager.register.assert_not_awaited()

def test_register_existing_email(client, account_manager):
    account_manager.register.side_effect = AccountExistsError("Account buyer@example.com already exists")

    response = client.post("/auth/register", json={"email": "buyer@example.com", "password": "secret1"})

    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "conflict"

def test_login(client, monkeypatch):
    monkeypatch.setattr(auth.manager, "login", AsyncMock(return_value={
        "token": "abc",
        "subject_id": BUYER_ID,
        "role": "buyer",
        "expires_at": "2030-01-01T00:00:00+00:00",
    }))

    response = client.post("/auth/login", json={"email": "buyer@example.com", "password": "secret1"})

    assert response.status_code == 200
    assert response.json()["subject_id"] == BUYER_ID

def test_login_invalid_credentials(client, monkeypatch):
    monkeypatch.setattr(auth.manager, "login", AsyncMock(side_effect=InvalidCredentialsError()))

    response = client.post("/auth/login", json={"email": "buyer@example.com", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["detail"] == {
        "error": "authentication_error",
        "message": "Invalid credentials",
    }

def test_account_routes(client, account_manager):
    headers = bearer()

    assert client.get(f"/accounts/{BUYER_ID}", headers=headers).status_code == 200

    response = client.patch(f"/accounts/{BUYER_ID}", json={"name": "Ada"}, headers=headers)
    assert response.status_code == 200
    account_manager.update_account.assert_awaited_with(BUYER_ID, {"name": "Ada"})

    assert client.delete(f"/accounts/{BUYER_ID}", headers=headers).json() == {"success": True}

def test_unknown_account(client, account_manager):
    account_manager.get_account.side_effect = AccountNotFoundError("Account 5 not found")

    response = client.get("/accounts/5", headers=bearer())

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "not_found"

def test_unexpected_error_is_not_leaked(client, account_manager):
    """Test an unexpected failure answers 500 without its internal message."""
    account_manager.get_account.side_effect = RuntimeError('relation "accounts" does not exist')

    response = client.get(f"/accounts/{BUYER_ID}", headers=bearer())

    assert response.status_code == 500
    assert response.json()["detail"] == {
        "error": "internal_error",
        "message": "Internal server error",
    }
    assert "relation" not in response.text

def test_cart_routes(client, store):
    """Test adding, listing and removing cart lines."""
    headers = bearer()

    response = client.post(
        f"/users/{BUYER_ID}/cart",
        json={"product_id": PRODUCT_ID, "seller_id": SELLER_ID, "quantity": 1},
        headers=headers
    )
    assert response.status_code == 201
    line_id = response.json()["id"]

    duplicate = client.post(
        f"/users/{BUYER_ID}/cart",
        json={"product_id": PRODUCT_ID, "seller_id": SELLER_ID, "quantity": 1},
        headers=headers
    )
    assert duplicate.status_code == 409

    lines = client.get(f"/users/{BUYER_ID}/cart", headers=headers).json()
    assert [line["id"] for line in lines] == [line_id]

    response = client.delete(f"/users/{BUYER_ID}/cart/{line_id}", headers=headers)
    assert response.status_code == 200
    assert store.cart_lines == {}

    response = client.delete(f"/users/{BUYER_ID}/cart/{line_id}", headers=headers)
    assert response.status_code == 404

def test_place_order(client, store):
    """Test placing an order for the authenticated buyer."""
    store.add_cart_line(BUYER_ID, PRODUCT_ID, SELLER_ID, 2)

    response = place(client)

    assert response.status_code == 201
    order_id = uuid.UUID(response.json()["order_id"])
    assert store.statuses(order_id) == ("PLACED", "PLACED")
    assert store.customer_orders[order_id]["buyer_id"] == BUYER_ID
    assert store.cart_of(BUYER_ID) == []

def test_place_order_with_idempotency_key(client, store):
    headers = dict(bearer(), **{"Idempotency-Key": "checkout-1"})

    first = place(client, headers=headers)
    second = place(client, headers=headers)

    assert first.status_code == second.status_code == 201
    assert first.json()["order_id"] == second.json()["order_id"]
    assert len(store.customer_orders) == 1

@pytest.mark.parametrize("overrides, field", [
    ({"product_id": None}, "product_id"),
    ({"quantity": 0}, "quantity"),
    ({"shipping": None}, "shipping"),
    ({"shipping": dict(SHIPPING, city=None)}, "shipping.city"),
    ({"product": dict(PRODUCT_JSON, image=None)}, "product.image"),
])
def test_place_order_missing_field(client, store, overrides, field):
    """Test a missing field is reported by name and nothing is written."""
    response = place(client, **overrides)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "validation_error"
    assert response.json()["detail"]["field"] == field
    assert store.customer_orders == {}

def test_place_order_malformed_body(client, store):
    """Test a body that fails request parsing is a 400 naming the field."""
    response = place(client, quantity="several")

    assert response.status_code == 400
    assert response.json()["detail"]["field"] == "quantity"
    assert store.customer_orders == {}

def test_place_order_store_failure(client, store):
    """Test a failed placement is reported as unavailable with nothing written."""
    store.fail_on.add("insert_seller_order")

    response = place(client)

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "transaction_failed"
    assert store.customer_orders == {}

def test_order_queries(client, store):
    """Test the buyer, seller, single order and history views."""
    order_id = place(client).json()["order_id"]
    headers = bearer()

    buyer_orders = client.get(f"/orders/buyer/{BUYER_ID}", headers=headers).json()
    assert [o["id"] for o in buyer_orders] == [order_id]

    seller_orders = client.get(f"/orders/seller/{SELLER_ID}", headers=headers).json()
    assert [o["order_id"] for o in seller_orders] == [order_id]
    assert seller_orders[0]["buyer_name"] == SHIPPING["name"]

    order = client.get(f"/orders/{order_id}", headers=headers).json()
    assert order["customer"]["status"] == order["seller"]["status"] == "PLACED"

    history = client.get(f"/orders/{order_id}/history", headers=headers).json()
    assert [h["to_status"] for h in history] == ["PLACED"]

    assert client.get(f"/orders/buyer/{BUYER_ID + 1}", headers=headers).json() == []
    assert client.get(f"/orders/{uuid.uuid4()}", headers=headers).status_code == 404

@pytest.mark.parametrize("failing_query, path", [
    ("fetch_customer_orders", f"/orders/buyer/{BUYER_ID}"),
    ("fetch_seller_orders", f"/orders/seller/{SELLER_ID}"),
])
def test_order_query_store_failure(client, store, failing_query, path):
    """Test a store failure while listing orders is reported as unavailable."""
    store.fail_on.add(failing_query)

    response = client.get(path, headers=bearer())

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "transaction_failed"

def test_single_order_store_failure(client, store):
    order_id = place(client).json()["order_id"]
    store.fail_on.add("fetch_order")

    response = client.get(f"/orders/{order_id}", headers=bearer())

    assert response.status_code == 503

def test_update_order_status(client, store):
    """Test moving an order forward and the rejection of a backward move."""
    order_id = place(client).json()["order_id"]
    headers = bearer(SELLER_ID, "seller")

    response = client.patch(f"/orders/{order_id}/status", json={"status": "shipped"}, headers=headers)
    assert response.status_code == 200
    assert response.json() == {
        "order_id": order_id,
        "previous_status": "PLACED",
        "status": "SHIPPED",
    }
    assert store.statuses(uuid.UUID(order_id)) == ("SHIPPED", "SHIPPED")
    assert store.history[-1]["changed_by"] == SELLER_ID

    response = client.patch(f"/orders/{order_id}/status", json={"status": "PLACED"}, headers=headers)
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "invalid_transition"
    assert store.statuses(uuid.UUID(order_id)) == ("SHIPPED", "SHIPPED")

def test_update_status_unknown_status(client, store):
    order_id = place(client).json()["order_id"]

    response = client.patch(f"/orders/{order_id}/status", json={"status": "LOST"}, headers=bearer())

    assert response.status_code == 400
    assert response.json()["detail"]["field"] == "status"

def test_update_status_unknown_order(client):
    response = client.patch(f"/orders/{uuid.uuid4()}/status", json={"status": "CONFIRMED"}, headers=bearer())

    assert response.status_code == 404
