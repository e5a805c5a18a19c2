"""Shopping cart endpoints."""

from fastapi import APIRouter, status, Depends, Security
from typing import Optional
from uuid import UUID
from pydantic import BaseModel

from auth import get_current_user, Claims
from cart import CartManager
from errors import StorefrontError
from api.errors import http_error, internal_error

router = APIRouter(
    prefix="/users",
    tags=["Cart"]
)

class CartItemRequest(BaseModel):
    """Request model for adding a product to the cart."""
    product_id: Optional[int] = None
    seller_id: Optional[int] = None
    quantity: Optional[int] = None
    category_id: Optional[int] = None

def get_cart_manager() -> CartManager:
    return CartManager()

@router.post("/{buyer_id}/cart", status_code=status.HTTP_201_CREATED)
async def add_cart_item(
    buyer_id: int,
    item: CartItemRequest,
    claims: Claims = Security(get_current_user),
    cart: CartManager = Depends(get_cart_manager)
):
    """Add a product to a buyer's cart."""
    try:
        line = await cart.add_item(
            buyer_id=buyer_id,
            product_id=item.product_id,
            seller_id=item.seller_id,
            quantity=item.quantity,
            category_id=item.category_id
        )
        return {"id": line["id"]}
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

@router.get("/{buyer_id}/cart")
async def list_cart_items(
    buyer_id: int,
    claims: Claims = Security(get_current_user),
    cart: CartManager = Depends(get_cart_manager)
):
    """List a buyer's cart lines."""
    try:
        return await cart.list_items(buyer_id)
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

@router.delete("/{buyer_id}/cart/{line_id}")
async def remove_cart_item(
    buyer_id: int,
    line_id: UUID,
    claims: Claims = Security(get_current_user),
    cart: CartManager = Depends(get_cart_manager)
):
    """Remove a line from a buyer's cart."""
    try:
        await cart.remove_item(buyer_id, line_id)
        return {"message": "Item removed from shopping bag"}
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

# Export the router
__all__ = ['router']
