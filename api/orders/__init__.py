"""Orders API endpoints.

Any authenticated caller may list the orders of any buyer or seller id and
change the status of any order; ownership is not checked here.
"""

from fastapi import APIRouter, Header, status, Depends, Security
from typing import List, Optional
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel

from auth import get_current_user, Claims
from errors import StorefrontError
from orders import OrderManager, CustomerOrder, SellerOrder, StatusChange
from api.errors import http_error, internal_error

# Create router
router = APIRouter(
    prefix="/orders",
    tags=["Orders"]
)

class ShippingDetails(BaseModel):
    """Buyer shipping snapshot for the seller ledger."""
    name: Optional[str] = None
    mobile: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None

class ProductDetails(BaseModel):
    """Product snapshot taken from the catalog at order time."""
    name: Optional[str] = None
    image: Optional[str] = None
    price: Optional[Decimal] = None

class PlaceOrderRequest(BaseModel):
    """Request model for placing an order.

    buyer_id defaults to the authenticated account.
    """
    buyer_id: Optional[int] = None
    product_id: Optional[int] = None
    seller_id: Optional[int] = None
    quantity: Optional[int] = None
    shipping: Optional[ShippingDetails] = None
    product: Optional[ProductDetails] = None

class PlaceOrderResponse(BaseModel):
    """Response model for a placed order."""
    order_id: UUID

class StatusUpdateRequest(BaseModel):
    """Request model for a status change."""
    status: str

def get_order_manager() -> OrderManager:
    return OrderManager()

@router.post("", response_model=PlaceOrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    order_request: PlaceOrderRequest,
    claims: Claims = Security(get_current_user),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    orders: OrderManager = Depends(get_order_manager)
):
    """Place an order and remove the product from the buyer's cart."""
    try:
        order_id = await orders.place_order(
            buyer_id=order_request.buyer_id if order_request.buyer_id is not None else claims.account_id,
            product_id=order_request.product_id,
            seller_id=order_request.seller_id,
            quantity=order_request.quantity,
            shipping=order_request.shipping,
            product=order_request.product,
            idempotency_key=idempotency_key
        )
        return {"order_id": order_id}
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

@router.get("/buyer/{buyer_id}", response_model=List[CustomerOrder])
async def list_buyer_orders(
    buyer_id: int,
    claims: Claims = Security(get_current_user),
    orders: OrderManager = Depends(get_order_manager)
):
    """List a buyer's orders, newest first."""
    try:
        return await orders.orders_for_buyer(buyer_id)
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

@router.get("/seller/{seller_id}", response_model=List[SellerOrder])
async def list_seller_orders(
    seller_id: int,
    claims: Claims = Security(get_current_user),
    orders: OrderManager = Depends(get_order_manager)
):
    """List a shop's orders, newest first."""
    try:
        return await orders.orders_for_seller(seller_id)
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

@router.get("/{order_id}/history", response_model=List[StatusChange])
async def get_order_history(
    order_id: UUID,
    claims: Claims = Security(get_current_user),
    orders: OrderManager = Depends(get_order_manager)
):
    """Get the status changes of an order."""
    try:
        return await orders.order_history(order_id)
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: UUID,
    update: StatusUpdateRequest,
    claims: Claims = Security(get_current_user),
    orders: OrderManager = Depends(get_order_manager)
):
    """Move an order to a new status in both ledgers."""
    try:
        previous = await orders.update_status(order_id, update.status, changed_by=claims.account_id)
        return {
            "order_id": order_id,
            "previous_status": previous.value,
            "status": update.status.upper()
        }
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

@router.get("/{order_id}")
async def get_order(
    order_id: UUID,
    claims: Claims = Security(get_current_user),
    orders: OrderManager = Depends(get_order_manager)
):
    """Get both ledger views of an order."""
    try:
        return await orders.get_order(order_id)
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

# Export the router
__all__ = ['router']
