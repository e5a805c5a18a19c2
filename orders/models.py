from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional
from uuid import UUID

from pydantic import BaseModel


class OrderStatus(str, Enum):
    PLACED = "PLACED"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


FULFILLMENT_SEQUENCE = (
    OrderStatus.PLACED,
    OrderStatus.CONFIRMED,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
})


def allowed_transitions(current: OrderStatus) -> FrozenSet[OrderStatus]:
    """States reachable from ``current``: any later fulfillment step, or CANCELLED."""
    if current in TERMINAL_STATUSES:
        return frozenset()
    position = FULFILLMENT_SEQUENCE.index(current)
    return frozenset(FULFILLMENT_SEQUENCE[position + 1:]) | {OrderStatus.CANCELLED}


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in allowed_transitions(current)


class ShippingSnapshot(BaseModel):
    """Buyer shipping details copied into the seller ledger at placement."""
    name: str
    mobile: str
    street: str
    city: str
    state: str = ""
    zipcode: str = ""
    country: str


class ProductSnapshot(BaseModel):
    """Catalog details copied into both ledgers at placement."""
    name: str
    image: str
    price: Decimal


class Order(BaseModel):
    """One logical order. Both ledger rows are projections of this."""
    id: Optional[UUID] = None
    buyer_id: int
    product_id: int
    seller_id: int
    quantity: int
    shipping: ShippingSnapshot
    product: ProductSnapshot
    status: OrderStatus = OrderStatus.PLACED
    idempotency_key: Optional[str] = None

    def customer_view(self) -> Dict[str, Any]:
        """Column values for the customer_orders row."""
        return {
            'buyer_id': self.buyer_id,
            'product_id': self.product_id,
            'seller_id': self.seller_id,
            'quantity': self.quantity,
            'product_name': self.product.name,
            'product_image': self.product.image,
            'product_price': self.product.price,
            'status': self.status.value,
            'idempotency_key': self.idempotency_key,
        }

    def seller_view(self) -> Dict[str, Any]:
        """Column values for the seller_orders row, keyed by the same order id."""
        return {
            'order_id': self.id,
            'seller_id': self.seller_id,
            'buyer_id': self.buyer_id,
            'product_id': self.product_id,
            'quantity': self.quantity,
            'buyer_name': self.shipping.name,
            'buyer_mobile': self.shipping.mobile,
            'street': self.shipping.street,
            'city': self.shipping.city,
            'state': self.shipping.state,
            'zipcode': self.shipping.zipcode,
            'country': self.shipping.country,
            'product_name': self.product.name,
            'product_image': self.product.image,
            'product_price': self.product.price,
            'status': self.status.value,
        }


class CustomerOrder(BaseModel):
    id: UUID
    buyer_id: int
    product_id: int
    seller_id: int
    quantity: int
    product_name: str
    product_image: str
    product_price: Decimal
    status: OrderStatus
    created_at: datetime
    updated_at: datetime


class SellerOrder(BaseModel):
    order_id: UUID
    seller_id: int
    buyer_id: int
    product_id: int
    quantity: int
    buyer_name: str
    buyer_mobile: str
    street: str
    city: str
    state: str
    zipcode: str
    country: str
    product_name: str
    product_image: str
    product_price: Decimal
    status: OrderStatus
    created_at: datetime
    updated_at: datetime


class StatusChange(BaseModel):
    order_id: UUID
    from_status: Optional[OrderStatus] = None
    to_status: OrderStatus
    changed_by: Optional[int] = None
    changed_at: datetime
