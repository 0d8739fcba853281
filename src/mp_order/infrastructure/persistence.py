"""Order and message repositories: raw SQL over the tables from migrations 005-006."""

import json
import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.enums import OrderStatus, PaymentStatus
from src.mp_order.domain.models import (
    CheckoutItem,
    LockedProduct,
    Message,
    MessageThread,
    Order,
    OrderItem,
    OrderTotals,
    SellerContact,
    ShippingAddress,
)

logger = logging.getLogger("mp.orders")

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

# Ordered by id so concurrent checkouts take row locks in the same order.
_LOCK_PRODUCTS_SQL = text("""
    SELECT id, name, price, stock, is_active
    FROM products
    WHERE id = ANY(:ids)
    ORDER BY id
    FOR UPDATE
""")

_DECREMENT_STOCK_SQL = text("""
    UPDATE products
    SET stock = stock - :quantity,
        sales_count = sales_count + :quantity,
        updated_at = NOW()
    WHERE id = :product_id
""")

_INSERT_ORDER_SQL = text("""
    INSERT INTO orders (id, order_number, buyer_id, status, payment_status,
        total_amount, tax_amount, shipping_cost, shipping_address)
    VALUES (:id, :order_number, :buyer_id, :status, :payment_status,
        :total_amount, :tax_amount, :shipping_cost, :shipping_address)
    RETURNING created_at, updated_at
""")

_INSERT_ITEM_SQL = text("""
    INSERT INTO order_items (id, order_id, product_id, quantity, price)
    VALUES (:id, :order_id, :product_id, :quantity, :price)
""")

_ORDER_COLUMNS = """
    o.id, o.order_number, o.buyer_id, o.status, o.payment_status,
    o.total_amount, o.tax_amount, o.shipping_cost, o.shipping_address,
    o.estimated_delivery, o.delivered_at, o.created_at, o.updated_at
"""

_GET_ORDER_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders o
    WHERE o.id = :order_id
""")

_LIST_BUYER_ORDERS_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders o
    WHERE o.buyer_id = :buyer_id
    ORDER BY o.created_at DESC
""")

_LIST_SELLER_ORDERS_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders o
    WHERE EXISTS (
        SELECT 1 FROM order_items oi
        JOIN products p ON p.id = oi.product_id
        WHERE oi.order_id = o.id AND p.seller_id = :seller_id
    )
    ORDER BY o.created_at DESC
""")

_ITEMS_FOR_ORDERS_SQL = text("""
    SELECT oi.id, oi.order_id, oi.product_id, oi.quantity, oi.price,
           p.name AS product_name, p.slug AS product_slug, p.image_urls,
           u.id AS seller_id, u.name AS seller_name,
           u.email AS seller_email, u.phone AS seller_phone
    FROM order_items oi
    JOIN products p ON p.id = oi.product_id
    JOIN users u ON u.id = p.seller_id
    WHERE oi.order_id = ANY(:order_ids)
    ORDER BY oi.order_id, p.name
""")

_SELLER_OWNS_ITEM_SQL = text("""
    SELECT 1 FROM order_items oi
    JOIN products p ON p.id = oi.product_id
    WHERE oi.order_id = :order_id AND p.seller_id = :seller_id
    LIMIT 1
""")

_LOCK_ORDER_SQL = text("""
    SELECT status FROM orders WHERE id = :order_id FOR UPDATE
""")

_UPDATE_STATUS_SQL = text("""
    UPDATE orders
    SET status = :status,
        delivered_at = COALESCE(CAST(:delivered_at AS TIMESTAMPTZ), delivered_at),
        updated_at = NOW()
    WHERE id = :order_id
""")

_INSERT_THREAD_SQL = text("""
    INSERT INTO message_threads (id, kind, title, order_id, target, participants)
    VALUES (:id, 'order', :title, :order_id, :target, :participants)
    ON CONFLICT (id) DO NOTHING
""")

_GET_THREAD_SQL = text("""
    SELECT id, kind, title, order_id, target, participants, created_at, updated_at
    FROM message_threads WHERE id = :id
""")

_LIST_MESSAGES_SQL = text("""
    SELECT id, thread_id, author_id, author_role, content, created_at
    FROM messages
    WHERE thread_id = :thread_id
    ORDER BY created_at ASC, id ASC
""")

_INSERT_MESSAGE_SQL = text("""
    INSERT INTO messages (id, thread_id, author_id, author_role, content)
    VALUES (:id, :thread_id, :author_id, :author_role, :content)
    RETURNING created_at
""")

_TOUCH_THREAD_SQL = text("""
    UPDATE message_threads SET updated_at = NOW() WHERE id = :thread_id
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _as_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _loads(raw: str | None, default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Malformed JSON column value %r", raw[:80])
        return default


def _row_to_order(row: Any) -> Order:
    return Order(
        id=str(row.id),
        order_number=row.order_number,
        buyer_id=str(row.buyer_id),
        status=row.status,
        payment_status=row.payment_status,
        total_amount=row.total_amount,
        tax_amount=row.tax_amount,
        shipping_cost=row.shipping_cost,
        shipping_address=_loads(row.shipping_address, {}),
        estimated_delivery=row.estimated_delivery,
        delivered_at=row.delivered_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_item(row: Any) -> OrderItem:
    images = _loads(row.image_urls, [])
    return OrderItem(
        id=str(row.id),
        product_id=str(row.product_id),
        quantity=row.quantity,
        price=row.price,
        product_name=row.product_name,
        product_slug=row.product_slug,
        image_url=images[0] if isinstance(images, list) and images else None,
        seller=SellerContact(
            id=str(row.seller_id),
            name=row.seller_name,
            email=row.seller_email,
            phone=row.seller_phone,
        ),
    )


def _row_to_message(row: Any) -> Message:
    return Message(
        id=str(row.id),
        thread_id=row.thread_id,
        author_id=str(row.author_id),
        author_role=row.author_role,
        content=row.content,
        created_at=row.created_at,
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class OrderRepository:
    async def lock_products(
        self, db: AsyncSession, product_ids: list[str]
    ) -> dict[str, LockedProduct]:
        ids = [u for u in (_as_uuid(pid) for pid in product_ids) if u is not None]
        if not ids:
            return {}
        result = await db.execute(_LOCK_PRODUCTS_SQL, {"ids": ids})
        return {
            str(row.id): LockedProduct(
                id=str(row.id),
                name=row.name,
                price=row.price,
                stock=row.stock,
                is_active=row.is_active,
            )
            for row in result.fetchall()
        }

    async def decrement_stock(self, db: AsyncSession, items: list[CheckoutItem]) -> None:
        for item in items:
            await db.execute(
                _DECREMENT_STOCK_SQL,
                {"product_id": uuid.UUID(item.product_id), "quantity": item.quantity},
            )

    async def create_order(
        self,
        db: AsyncSession,
        order_number: str,
        buyer_id: str,
        totals: OrderTotals,
        address: ShippingAddress,
        items: list[CheckoutItem],
        prices: dict[str, int],
    ) -> Order:
        order_id = uuid.uuid4()
        address_dict = address.to_dict()
        result = await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order_id,
                "order_number": order_number,
                "buyer_id": uuid.UUID(buyer_id),
                "status": OrderStatus.PENDING.value,
                "payment_status": PaymentStatus.PENDING.value,
                "total_amount": totals.total,
                "tax_amount": totals.tax,
                "shipping_cost": totals.shipping,
                "shipping_address": json.dumps(address_dict),
            },
        )
        stamps = result.fetchone()
        item_rows = [
            {
                "id": uuid.uuid4(),
                "order_id": order_id,
                "product_id": uuid.UUID(item.product_id),
                "quantity": item.quantity,
                "price": prices[item.product_id],
            }
            for item in items
        ]
        await db.execute(_INSERT_ITEM_SQL, item_rows)
        return Order(
            id=str(order_id),
            order_number=order_number,
            buyer_id=buyer_id,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            total_amount=totals.total,
            tax_amount=totals.tax,
            shipping_cost=totals.shipping,
            shipping_address=address_dict,
            estimated_delivery=None,
            delivered_at=None,
            created_at=stamps.created_at,  # type: ignore[union-attr]
            updated_at=stamps.updated_at,  # type: ignore[union-attr]
            items=[
                OrderItem(
                    id=str(row["id"]),
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price=row["price"],
                )
                for item, row in zip(items, item_rows, strict=True)
            ],
        )

    async def _attach_items(self, db: AsyncSession, orders: list[Order]) -> list[Order]:
        if not orders:
            return orders
        by_id = {o.id: o for o in orders}
        result = await db.execute(
            _ITEMS_FOR_ORDERS_SQL, {"order_ids": [uuid.UUID(o.id) for o in orders]}
        )
        for row in result.fetchall():
            by_id[str(row.order_id)].items.append(_row_to_item(row))
        return orders

    async def get_order(self, db: AsyncSession, order_id: str) -> Order | None:
        oid = _as_uuid(order_id)
        if oid is None:
            return None
        row = (await db.execute(_GET_ORDER_SQL, {"order_id": oid})).fetchone()
        if row is None:
            return None
        order = _row_to_order(row)
        await self._attach_items(db, [order])
        return order

    async def list_for_buyer(self, db: AsyncSession, buyer_id: str) -> list[Order]:
        result = await db.execute(_LIST_BUYER_ORDERS_SQL, {"buyer_id": uuid.UUID(buyer_id)})
        return await self._attach_items(db, [_row_to_order(r) for r in result.fetchall()])

    async def list_for_seller(self, db: AsyncSession, seller_id: str) -> list[Order]:
        result = await db.execute(_LIST_SELLER_ORDERS_SQL, {"seller_id": uuid.UUID(seller_id)})
        return await self._attach_items(db, [_row_to_order(r) for r in result.fetchall()])

    async def seller_owns_item(self, db: AsyncSession, order_id: str, seller_id: str) -> bool:
        oid = _as_uuid(order_id)
        if oid is None:
            return False
        result = await db.execute(
            _SELLER_OWNS_ITEM_SQL, {"order_id": oid, "seller_id": uuid.UUID(seller_id)}
        )
        return result.fetchone() is not None

    async def lock_order_status(self, db: AsyncSession, order_id: str) -> str | None:
        oid = _as_uuid(order_id)
        if oid is None:
            return None
        row = (await db.execute(_LOCK_ORDER_SQL, {"order_id": oid})).fetchone()
        return row.status if row else None

    async def update_status(
        self,
        db: AsyncSession,
        order_id: str,
        status: str,
        delivered_at: datetime | None,
    ) -> None:
        await db.execute(
            _UPDATE_STATUS_SQL,
            {"order_id": uuid.UUID(order_id), "status": status, "delivered_at": delivered_at},
        )


class MessageRepository:
    async def get_or_create_thread(
        self,
        db: AsyncSession,
        thread_id: str,
        order_id: str,
        target: str,
        title: str,
        participants: list[dict],
    ) -> MessageThread:
        await db.execute(
            _INSERT_THREAD_SQL,
            {
                "id": thread_id,
                "title": title,
                "order_id": uuid.UUID(order_id),
                "target": target,
                "participants": json.dumps(participants),
            },
        )
        row = (await db.execute(_GET_THREAD_SQL, {"id": thread_id})).fetchone()
        return MessageThread(
            id=row.id,  # type: ignore[union-attr]
            kind=row.kind,  # type: ignore[union-attr]
            title=row.title,  # type: ignore[union-attr]
            order_id=str(row.order_id) if row.order_id else None,  # type: ignore[union-attr]
            target=row.target,  # type: ignore[union-attr]
            participants=_loads(row.participants, []),  # type: ignore[union-attr]
            created_at=row.created_at,  # type: ignore[union-attr]
            updated_at=row.updated_at,  # type: ignore[union-attr]
        )

    async def list_messages(self, db: AsyncSession, thread_id: str) -> list[Message]:
        result = await db.execute(_LIST_MESSAGES_SQL, {"thread_id": thread_id})
        return [_row_to_message(r) for r in result.fetchall()]

    async def add_message(
        self,
        db: AsyncSession,
        thread_id: str,
        author_id: str,
        author_role: str,
        content: str,
    ) -> Message:
        message_id = uuid.uuid4()
        result = await db.execute(
            _INSERT_MESSAGE_SQL,
            {
                "id": message_id,
                "thread_id": thread_id,
                "author_id": uuid.UUID(author_id),
                "author_role": author_role,
                "content": content,
            },
        )
        created_at = result.scalar_one()
        await db.execute(_TOUCH_THREAD_SQL, {"thread_id": thread_id})
        return Message(
            id=str(message_id),
            thread_id=thread_id,
            author_id=author_id,
            author_role=author_role,
            content=content,
            created_at=created_at,
        )
