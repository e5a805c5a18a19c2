from typing import Dict, List, Optional, Any
from uuid import UUID
import asyncpg


async def insert_line(
    conn: asyncpg.Connection,
    buyer_id: int,
    product_id: int,
    seller_id: int,
    quantity: int,
    category_id: Optional[int] = None
) -> Dict[str, Any]:
    """Insert a cart line. Raises UniqueViolationError on a duplicate product"""
    row = await conn.fetchrow(
        """
        INSERT INTO cart_lines (buyer_id, category_id, product_id, quantity, seller_id)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING *
        """,
        buyer_id, category_id, product_id, quantity, seller_id
    )
    return dict(row)


async def find_line(
    conn: asyncpg.Connection,
    buyer_id: int,
    product_id: int
) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        "SELECT * FROM cart_lines WHERE buyer_id = $1 AND product_id = $2",
        buyer_id, product_id
    )
    return dict(row) if row else None


async def list_lines(conn: asyncpg.Connection, buyer_id: int) -> List[Dict[str, Any]]:
    rows = await conn.fetch(
        "SELECT * FROM cart_lines WHERE buyer_id = $1 ORDER BY created_at, id",
        buyer_id
    )
    return [dict(r) for r in rows]


async def delete_line(conn: asyncpg.Connection, buyer_id: int, product_id: int) -> bool:
    """Delete the line for a product. Returns whether a line existed"""
    result = await conn.execute(
        "DELETE FROM cart_lines WHERE buyer_id = $1 AND product_id = $2",
        buyer_id, product_id
    )
    return result != "DELETE 0"


async def delete_line_by_id(conn: asyncpg.Connection, buyer_id: int, line_id: UUID) -> bool:
    result = await conn.execute(
        "DELETE FROM cart_lines WHERE id = $1 AND buyer_id = $2",
        line_id, buyer_id
    )
    return result != "DELETE 0"
