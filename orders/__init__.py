"""Orders module for placing orders and keeping both order ledgers in step.

Every order is written twice: a customer_orders row for the buyer's view and
a seller_orders row, under the same order id, carrying the shipping snapshot
for the shop. Both rows come from one Order built in memory and are written,
together with the removal of the matching cart line, inside one transaction.
Status changes lock and update both rows in one transaction as well, so the
two statuses are never observed apart.
"""
import logging
from typing import Dict, List, Optional, Any, Mapping, Union
from uuid import UUID

from asyncpg.pool import Pool
from asyncpg.exceptions import UniqueViolationError
from pydantic import BaseModel, ValidationError as PydanticValidationError

from cart import db as cart_db
from database import get_pool
from database.exceptions import STORAGE_ERRORS
from errors import (
    StorefrontError, NotFoundError, ValidationError,
    InvalidTransitionError, TransactionError
)
from . import db
from .models import (
    Order, OrderStatus, ShippingSnapshot, ProductSnapshot,
    CustomerOrder, SellerOrder, StatusChange,
    allowed_transitions, can_transition, TERMINAL_STATUSES
)

logger = logging.getLogger(__name__)

SHIPPING_FIELDS = ('name', 'mobile', 'street', 'city', 'country')
PRODUCT_FIELDS = ('name', 'image', 'price')

Snapshot = Union[Mapping[str, Any], BaseModel]

class OrderError(StorefrontError):
    """Base class for order-related errors."""
    pass

class OrderNotFoundError(OrderError, NotFoundError):
    """Raised when an order id does not resolve to both ledger rows."""
    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")

class InvalidStatusTransitionError(OrderError, InvalidTransitionError):
    """Raised when the requested status is not reachable from the current one."""
    pass

class OrderTransactionError(OrderError, TransactionError):
    """Raised when the store fails inside an order transaction. Nothing persisted."""
    pass

class OrderPlacementFailed(OrderTransactionError):
    """Raised when placing an order failed and was rolled back in full."""
    pass

def _snapshot_fields(name: str, snapshot: Optional[Snapshot], required) -> Dict[str, Any]:
    """Check a snapshot carries every required field, naming the first missing one."""
    if snapshot is None:
        raise ValidationError(name, f"{name} snapshot is required")
    data = snapshot.model_dump() if isinstance(snapshot, BaseModel) else dict(snapshot)
    for field in required:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{name}.{field}")
    return data

def _first_error_field(e: PydanticValidationError) -> str:
    errors = e.errors()
    loc = errors[0].get("loc", ()) if errors else ()
    return str(loc[0]) if loc else "value"

def build_order(
    buyer_id: int,
    product_id: int,
    seller_id: int,
    quantity: int,
    shipping: Optional[Snapshot],
    product: Optional[Snapshot],
    idempotency_key: Optional[str] = None
) -> Order:
    """Validate a placement request and build the Order both ledgers come from.

    Raises:
        ValidationError: Naming the first missing or malformed field
    """
    for field, value in (('buyer_id', buyer_id), ('product_id', product_id), ('seller_id', seller_id)):
        if value is None:
            raise ValidationError(field)
    if quantity is None:
        raise ValidationError('quantity')
    if quantity <= 0:
        raise ValidationError('quantity', "quantity must be greater than 0")

    shipping_data = _snapshot_fields('shipping', shipping, SHIPPING_FIELDS)
    product_data = _snapshot_fields('product', product, PRODUCT_FIELDS)

    try:
        product_snapshot = ProductSnapshot(**product_data)
    except PydanticValidationError as e:
        field = _first_error_field(e)
        raise ValidationError(f"product.{field}", f"product.{field} is invalid")
    if product_snapshot.price < 0:
        raise ValidationError('product.price', "product.price must not be negative")

    try:
        shipping_snapshot = ShippingSnapshot(**{
            k: v for k, v in shipping_data.items()
            if k in ShippingSnapshot.model_fields and v is not None
        })
    except PydanticValidationError as e:
        field = _first_error_field(e)
        raise ValidationError(f"shipping.{field}", f"shipping.{field} is invalid")

    if idempotency_key is not None and not idempotency_key.strip():
        raise ValidationError('idempotency_key', "idempotency_key must not be blank")

    return Order(
        buyer_id=buyer_id,
        product_id=product_id,
        seller_id=seller_id,
        quantity=quantity,
        shipping=shipping_snapshot,
        product=product_snapshot,
        idempotency_key=idempotency_key
    )

def parse_status(value: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(value.upper() if isinstance(value, str) else value)
    except (ValueError, AttributeError):
        raise ValidationError(
            'status',
            f"Unknown status {value!r}, expected one of "
            f"{', '.join(s.value for s in OrderStatus)}"
        )

class OrderManager:
    """Coordinates order placement, status changes and order queries."""

    def __init__(self, pool: Optional[Pool] = None) -> None:
        """Initialize order manager.

        Args:
            pool: Optional database connection pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def place_order(
        self,
        buyer_id: int,
        product_id: int,
        seller_id: int,
        quantity: int,
        shipping: Optional[Snapshot],
        product: Optional[Snapshot],
        idempotency_key: Optional[str] = None
    ) -> UUID:
        """Place an order as one unit of work.

        Writes the customer ledger row, the seller ledger row under the same id,
        and removes the buyer's cart line for the product if there is one. The
        snapshots are trusted as given and never re-read from the catalog.

        Without an idempotency key, two identical calls place two orders. With
        one, a repeat by the same buyer returns the first order's id.

        Args:
            buyer_id: Buyer account id
            product_id: Catalog product id
            seller_id: Shop account id
            quantity: Units ordered, must be positive
            shipping: name, mobile, street, city, state, zipcode, country
            product: name, image, price
            idempotency_key: Optional caller-chosen key for safe retries

        Returns:
            The order id shared by both ledger rows

        Raises:
            ValidationError: If a required field is missing or invalid
            OrderPlacementFailed: If the store failed. Nothing was persisted.
        """
        order = build_order(
            buyer_id, product_id, seller_id, quantity,
            shipping, product, idempotency_key
        )

        await self.ensure_pool()
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    if idempotency_key:
                        existing = await db.find_by_idempotency_key(conn, buyer_id, idempotency_key)
                        if existing:
                            logger.info(
                                f"Order {existing} already placed for key {idempotency_key}"
                            )
                            return existing

                    created = await db.insert_customer_order(conn, order)
                    order.id = created['id']
                    await db.insert_seller_order(conn, order, created['created_at'])
                    await db.insert_status_change(conn, order.id, None, order.status, buyer_id)
                    from_cart = await cart_db.delete_line(conn, buyer_id, product_id)

        except UniqueViolationError as e:
            if idempotency_key:
                # A concurrent request with the same key committed first
                existing = await self._find_by_key(buyer_id, idempotency_key)
                if existing:
                    return existing
            logger.error(f"Constraint violation placing order for buyer {buyer_id}: {e}")
            raise OrderPlacementFailed(f"Failed to place order: {e}") from e
        except STORAGE_ERRORS as e:
            logger.error(f"Database error placing order for buyer {buyer_id}: {e}")
            raise OrderPlacementFailed(f"Failed to place order: {e}") from e

        logger.info(
            f"Order {order.id} placed by buyer {buyer_id} with seller {seller_id}"
            f"{' from cart' if from_cart else ''}"
        )
        return order.id

    async def _find_by_key(self, buyer_id: int, idempotency_key: str) -> Optional[UUID]:
        try:
            async with self.pool.acquire() as conn:
                return await db.find_by_idempotency_key(conn, buyer_id, idempotency_key)
        except STORAGE_ERRORS as e:
            logger.error(f"Database error looking up idempotency key: {e}")
            return None

    async def update_status(
        self,
        order_id: UUID,
        new_status: Union[str, OrderStatus],
        changed_by: Optional[int] = None
    ) -> OrderStatus:
        """Move an order to a new status in both ledgers at once.

        Args:
            order_id: Order to update
            new_status: Target status
            changed_by: Account making the change, recorded in the history

        Returns:
            The previous status

        Raises:
            ValidationError: If the status is not a known status
            OrderNotFoundError: If the order does not exist
            InvalidStatusTransitionError: If the target is not reachable
            OrderTransactionError: If the store failed. Nothing was changed.
        """
        target = parse_status(new_status)

        await self.ensure_pool()
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    statuses = await db.lock_order(conn, order_id)
                    if statuses is None:
                        raise OrderNotFoundError(order_id)

                    current = OrderStatus(statuses['customer_status'])
                    if statuses['seller_status'] != statuses['customer_status']:
                        logger.error(
                            f"Order {order_id} ledgers disagree: customer {current.value}, "
                            f"seller {statuses['seller_status']}"
                        )

                    if not can_transition(current, target):
                        raise InvalidStatusTransitionError(current.value, target.value)

                    await db.set_status(conn, order_id, target)
                    await db.insert_status_change(conn, order_id, current, target, changed_by)

        except STORAGE_ERRORS as e:
            logger.error(f"Database error updating order {order_id}: {e}")
            raise OrderTransactionError(f"Failed to update order status: {e}") from e

        logger.info(f"Order {order_id} moved from {current.value} to {target.value}")
        return current

    async def _read(self, description: str, query, *args):
        """Run a read query on its own connection."""
        await self.ensure_pool()
        try:
            async with self.pool.acquire() as conn:
                return await query(conn, *args)
        except STORAGE_ERRORS as e:
            logger.error(f"Database error reading {description}: {e}")
            raise OrderTransactionError(f"Failed to read {description}: {e}") from e

    async def orders_for_buyer(self, buyer_id: int) -> List[CustomerOrder]:
        """Get a buyer's orders, newest first. Empty when there are none.

        Raises:
            OrderTransactionError: If the store failed
        """
        rows = await self._read(f"orders of buyer {buyer_id}", db.fetch_customer_orders, buyer_id)
        return [CustomerOrder(**row) for row in rows]

    async def orders_for_seller(self, seller_id: int) -> List[SellerOrder]:
        """Get a shop's orders, newest first. Empty when there are none."""
        rows = await self._read(f"orders of seller {seller_id}", db.fetch_seller_orders, seller_id)
        return [SellerOrder(**row) for row in rows]

    async def get_order(self, order_id: UUID) -> Dict[str, Any]:
        """Get both ledger views of one order, read in a single statement.

        Raises:
            OrderNotFoundError: If the order does not exist
            OrderTransactionError: If the store failed
        """
        order = await self._read(f"order {order_id}", db.fetch_order, order_id)
        if not order:
            raise OrderNotFoundError(order_id)
        return {
            'customer': CustomerOrder(**order['customer']),
            'seller': SellerOrder(**order['seller'])
        }

    async def order_history(self, order_id: UUID) -> List[StatusChange]:
        """Get an order's status changes, oldest first.

        Raises:
            OrderNotFoundError: If the order has no history
        """
        rows = await self._read(f"history of order {order_id}", db.fetch_status_changes, order_id)
        if not rows:
            raise OrderNotFoundError(order_id)
        return [StatusChange(**row) for row in rows]

# Export public interface
__all__ = [
    'OrderManager',
    'OrderError',
    'OrderNotFoundError',
    'InvalidStatusTransitionError',
    'OrderTransactionError',
    'OrderPlacementFailed',
    'OrderStatus',
    'Order',
    'ShippingSnapshot',
    'ProductSnapshot',
    'CustomerOrder',
    'SellerOrder',
    'StatusChange',
    'build_order',
    'parse_status',
    'allowed_transitions',
    'can_transition',
    'TERMINAL_STATUSES'
]
