"""Cart module for a buyer's pending line items.

A buyer holds at most one line per product. The check and the insert run
in one transaction and the store's unique index on (buyer_id, product_id)
settles concurrent adds, so the loser gets DuplicateCartLineError instead
of a second line.
"""
import logging
from typing import Dict, List, Optional, Any
from uuid import UUID

from asyncpg.pool import Pool
from asyncpg.exceptions import UniqueViolationError

from database import get_pool
from database.exceptions import STORAGE_ERRORS
from errors import ConflictError, NotFoundError, ValidationError, TransactionError
from . import db

logger = logging.getLogger(__name__)

class DuplicateCartLineError(ConflictError):
    """Raised when the buyer already has a line for the product."""
    def __init__(self, buyer_id: int, product_id: int):
        self.buyer_id = buyer_id
        self.product_id = product_id
        super().__init__(
            f"Product {product_id} is already in the cart of buyer {buyer_id}"
        )

class CartLineNotFoundError(NotFoundError):
    """Raised when removing a line that does not exist."""
    pass

class CartManager:
    """Manages cart lines."""

    def __init__(self, pool: Optional[Pool] = None) -> None:
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def add_item(
        self,
        buyer_id: int,
        product_id: int,
        seller_id: int,
        quantity: int,
        category_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """Add a product to a buyer's cart.

        Args:
            buyer_id: Buyer account id
            product_id: Catalog product id
            seller_id: Shop selling the product
            quantity: Number of units, must be positive
            category_id: Optional catalog category

        Returns:
            The created cart line

        Raises:
            ValidationError: If a required field is missing or quantity is not positive
            DuplicateCartLineError: If the product is already in the cart
        """
        for field, value in (('buyer_id', buyer_id), ('product_id', product_id), ('seller_id', seller_id)):
            if value is None:
                raise ValidationError(field)
        if quantity is None or quantity <= 0:
            raise ValidationError('quantity', "quantity must be greater than 0")

        await self.ensure_pool()
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    if await db.find_line(conn, buyer_id, product_id):
                        raise DuplicateCartLineError(buyer_id, product_id)
                    line = await db.insert_line(
                        conn, buyer_id, product_id, seller_id, quantity, category_id
                    )
        except UniqueViolationError:
            logger.warning(
                f"Concurrent add of product {product_id} for buyer {buyer_id} rejected"
            )
            raise DuplicateCartLineError(buyer_id, product_id)
        except STORAGE_ERRORS as e:
            logger.error(f"Database error adding to cart: {e}")
            raise TransactionError(f"Failed to add cart line: {e}") from e

        logger.debug(f"Added product {product_id} to cart of buyer {buyer_id}")
        return line

    async def list_items(self, buyer_id: int) -> List[Dict[str, Any]]:
        """List a buyer's cart lines, oldest first."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return await db.list_lines(conn, buyer_id)

    async def remove_item(self, buyer_id: int, line_id: UUID) -> None:
        """Remove one line from a buyer's cart.

        Raises:
            CartLineNotFoundError: If the buyer has no such line
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            removed = await db.delete_line_by_id(conn, buyer_id, line_id)
        if not removed:
            raise CartLineNotFoundError(f"Cart line {line_id} not found")

# Export public interface
__all__ = ['CartManager', 'DuplicateCartLineError', 'CartLineNotFoundError']
