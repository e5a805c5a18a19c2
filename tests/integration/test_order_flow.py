"""End to end order flow against a real database.

Set STOREFRONT_TEST_DB_URL to a disposable database to run these.
"""

import os
import uuid
import pytest
import pytest_asyncio
from decimal import Decimal

from database import init_db, get_pool, close as close_db
from accounts import AccountManager
from cart import CartManager, DuplicateCartLineError
from errors import InvalidTransitionError
from orders import OrderManager, OrderStatus

DB_URL = os.environ.get("STOREFRONT_TEST_DB_URL")

pytestmark = pytest.mark.skipif(not DB_URL, reason="STOREFRONT_TEST_DB_URL not set")

SHIPPING = {
    "name": "Ada Buyer",
    "mobile": "+15550100",
    "street": "1 Market Street",
    "city": "Springfield",
    "state": "IL",
    "zipcode": "62701",
    "country": "US",
}

PRODUCT = {"name": "Walnut Desk", "image": "images/walnut-desk.png", "price": Decimal("249.00")}

@pytest_asyncio.fixture
async def db_pool():
    """Create and return a database connection pool."""
    await init_db(DB_URL)
    pool = await get_pool()
    yield pool
    await close_db()

@pytest_asyncio.fixture
async def buyer(db_pool):
    """Register a throwaway buyer and delete it afterwards."""
    accounts = AccountManager(db_pool)
    account = await accounts.register(
        f"buyer-{uuid.uuid4().hex}@example.com", "secret1", username="ada_buyer"
    )
    yield account
    async with db_pool.acquire() as conn:
        await conn.execute('DELETE FROM customer_orders WHERE buyer_id = $1', account["id"])
    await accounts.delete_account(account["id"])

@pytest.mark.asyncio
async def test_place_and_ship_order(db_pool, buyer):
    """Test an order placed from the cart and moved through fulfillment."""
    carts = CartManager(db_pool)
    orders = OrderManager(db_pool)
    seller_id = 9

    await carts.add_item(buyer["id"], 7, seller_id, 2)
    with pytest.raises(DuplicateCartLineError):
        await carts.add_item(buyer["id"], 7, seller_id, 1)

    order_id = await orders.place_order(
        buyer_id=buyer["id"],
        product_id=7,
        seller_id=seller_id,
        quantity=2,
        shipping=SHIPPING,
        product=PRODUCT
    )

    assert await carts.list_items(buyer["id"]) == []
    order = await orders.get_order(order_id)
    assert order["customer"].status == order["seller"].status == OrderStatus.PLACED
    assert order["seller"].buyer_name == SHIPPING["name"]
    assert order["customer"].product_price == PRODUCT["price"]

    await orders.update_status(order_id, OrderStatus.SHIPPED, changed_by=seller_id)
    with pytest.raises(InvalidTransitionError):
        await orders.update_status(order_id, OrderStatus.PLACED, changed_by=seller_id)

    order = await orders.get_order(order_id)
    assert order["customer"].status == order["seller"].status == OrderStatus.SHIPPED

    history = await orders.order_history(order_id)
    assert [h.to_status for h in history] == [OrderStatus.PLACED, OrderStatus.SHIPPED]

@pytest.mark.asyncio
async def test_idempotency_key_against_store(db_pool, buyer):
    orders = OrderManager(db_pool)
    request = dict(
        buyer_id=buyer["id"],
        product_id=11,
        seller_id=9,
        quantity=1,
        shipping=SHIPPING,
        product=PRODUCT
    )

    first = await orders.place_order(**request, idempotency_key="checkout-1")
    second = await orders.place_order(**request, idempotency_key="checkout-1")
    third = await orders.place_order(**request)

    assert first == second
    assert third != first
    assert len(await orders.orders_for_buyer(buyer["id"])) == 2
