from typing import Dict, List, Optional, Any
from uuid import UUID
import asyncpg
from .models import Order, OrderStatus


async def insert_customer_order(conn: asyncpg.Connection, order: Order) -> Dict[str, Any]:
    """Insert the buyer's ledger row and return the generated id and created_at"""
    row = order.customer_view()
    created = await conn.fetchrow(
        """
        INSERT INTO customer_orders (
            buyer_id, product_id, seller_id, quantity,
            product_name, product_image, product_price,
            status, idempotency_key
        ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
        RETURNING id, created_at
        """,
        row['buyer_id'], row['product_id'], row['seller_id'], row['quantity'],
        row['product_name'], row['product_image'], row['product_price'],
        row['status'], row['idempotency_key']
    )
    return dict(created)


async def insert_seller_order(conn: asyncpg.Connection, order: Order, created_at) -> None:
    """Insert the seller's ledger row for an order that already has its id"""
    row = order.seller_view()
    await conn.execute(
        """
        INSERT INTO seller_orders (
            order_id, seller_id, buyer_id, product_id, quantity,
            buyer_name, buyer_mobile, street, city, state, zipcode, country,
            product_name, product_image, product_price, status,
            created_at, updated_at
        ) VALUES (
            $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16,
            $17, $17
        )
        """,
        row['order_id'], row['seller_id'], row['buyer_id'], row['product_id'], row['quantity'],
        row['buyer_name'], row['buyer_mobile'], row['street'], row['city'],
        row['state'], row['zipcode'], row['country'],
        row['product_name'], row['product_image'], row['product_price'], row['status'],
        created_at
    )


async def find_by_idempotency_key(
    conn: asyncpg.Connection,
    buyer_id: int,
    idempotency_key: str
) -> Optional[UUID]:
    return await conn.fetchval(
        "SELECT id FROM customer_orders WHERE buyer_id = $1 AND idempotency_key = $2",
        buyer_id, idempotency_key
    )


async def lock_order(conn: asyncpg.Connection, order_id: UUID) -> Optional[Dict[str, Any]]:
    """Lock both ledger rows of an order and return their statuses.

    Returns None unless both rows exist.
    """
    row = await conn.fetchrow(
        """
        SELECT c.status AS customer_status, s.status AS seller_status
        FROM customer_orders c
        JOIN seller_orders s ON s.order_id = c.id
        WHERE c.id = $1
        FOR UPDATE
        """,
        order_id
    )
    return dict(row) if row else None


async def set_status(conn: asyncpg.Connection, order_id: UUID, status: OrderStatus) -> None:
    await conn.execute(
        "UPDATE customer_orders SET status = $2, updated_at = now() WHERE id = $1",
        order_id, status.value
    )
    await conn.execute(
        "UPDATE seller_orders SET status = $2, updated_at = now() WHERE order_id = $1",
        order_id, status.value
    )


async def insert_status_change(
    conn: asyncpg.Connection,
    order_id: UUID,
    from_status: Optional[OrderStatus],
    to_status: OrderStatus,
    changed_by: Optional[int] = None
) -> None:
    await conn.execute(
        """
        INSERT INTO order_status_history (order_id, from_status, to_status, changed_by)
        VALUES ($1, $2, $3, $4)
        """,
        order_id,
        from_status.value if from_status else None,
        to_status.value,
        changed_by
    )


async def fetch_customer_orders(conn: asyncpg.Connection, buyer_id: int) -> List[Dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT id, buyer_id, product_id, seller_id, quantity,
               product_name, product_image, product_price,
               status, created_at, updated_at
        FROM customer_orders
        WHERE buyer_id = $1
        ORDER BY created_at DESC, id
        """,
        buyer_id
    )
    return [dict(r) for r in rows]


async def fetch_seller_orders(conn: asyncpg.Connection, seller_id: int) -> List[Dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT * FROM seller_orders
        WHERE seller_id = $1
        ORDER BY created_at DESC, order_id
        """,
        seller_id
    )
    return [dict(r) for r in rows]


CUSTOMER_COLUMNS = (
    'id', 'buyer_id', 'product_id', 'seller_id', 'quantity',
    'product_name', 'product_image', 'product_price',
    'status', 'created_at', 'updated_at',
)

SELLER_COLUMNS = (
    'order_id', 'seller_id', 'buyer_id', 'product_id', 'quantity',
    'buyer_name', 'buyer_mobile', 'street', 'city', 'state', 'zipcode', 'country',
    'product_name', 'product_image', 'product_price',
    'status', 'created_at', 'updated_at',
)


async def fetch_order(conn: asyncpg.Connection, order_id: UUID) -> Optional[Dict[str, Any]]:
    """Read both ledger rows of an order in one statement.

    Returns None unless both rows exist.
    """
    columns = ', '.join(
        [f"c.{col} AS customer_{col}" for col in CUSTOMER_COLUMNS] +
        [f"s.{col} AS seller_{col}" for col in SELLER_COLUMNS]
    )
    row = await conn.fetchrow(
        f"""
        SELECT {columns}
        FROM customer_orders c
        JOIN seller_orders s ON s.order_id = c.id
        WHERE c.id = $1
        """,
        order_id
    )
    if not row:
        return None
    return {
        'customer': {col: row[f'customer_{col}'] for col in CUSTOMER_COLUMNS},
        'seller': {col: row[f'seller_{col}'] for col in SELLER_COLUMNS},
    }


async def fetch_status_changes(conn: asyncpg.Connection, order_id: UUID) -> List[Dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT order_id, from_status, to_status, changed_by, changed_at
        FROM order_status_history
        WHERE order_id = $1
        ORDER BY changed_at, id
        """,
        order_id
    )
    return [dict(r) for r in rows]
