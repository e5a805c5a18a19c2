"""Shared fixtures for storefront tests."""

from datetime import timedelta
from decimal import Decimal

import pytest

from auth import TokenSigner
from cart import CartManager
from orders import OrderManager

from fakes import FakePool, LedgerStore

BUYER_ID = 42
SELLER_ID = 9
PRODUCT_ID = 7

SHIPPING = {
    "name": "Ada Buyer",
    "mobile": "+15550100",
    "street": "1 Market Street",
    "city": "Springfield",
    "state": "IL",
    "zipcode": "62701",
    "country": "US",
}

PRODUCT = {
    "name": "Walnut Desk",
    "image": "images/walnut-desk.png",
    "price": Decimal("249.00"),
}

@pytest.fixture
def store(monkeypatch):
    """In-memory ledger tables wired in place of the SQL queries."""
    ledger = LedgerStore()
    ledger.install(monkeypatch)
    return ledger

@pytest.fixture
def pool(store):
    return FakePool(store)

@pytest.fixture
def order_manager(pool):
    return OrderManager(pool)

@pytest.fixture
def cart_manager(pool):
    return CartManager(pool)

@pytest.fixture
def token_signer():
    return TokenSigner(
        secret="test-secret",
        algorithm="HS256",
        buyer_expiry=timedelta(days=1),
        shop_expiry=timedelta(days=7),
    )
