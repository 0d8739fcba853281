"""OrderService — checkout, order reads, status lifecycle and order messages.

Write paths own their transaction (commit, or rollback and re-raise).
Checkout takes product row locks so concurrent orders cannot oversell.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.datetime_utils import utc_now
from src.mp_common.enums import AuthorRole, MessageTarget, OrderStatus
from src.mp_common.errors import (
    OrderAccessDeniedError,
    OrderNotFoundError,
    ValidationError,
)
from src.mp_order.application.schemas import MessageOut, OrderDetailOut, OrderOut
from src.mp_order.domain.checkout import (
    check_availability,
    compute_totals,
    generate_order_number,
    normalize_items,
    validate_shipping_address,
)
from src.mp_order.domain.models import Order
from src.mp_order.domain.repository import MessageRepositoryProtocol, OrderRepositoryProtocol
from src.mp_order.domain.timeline import build_timeline, ensure_transition
from src.mp_order.infrastructure.persistence import MessageRepository, OrderRepository

logger = logging.getLogger("mp.orders")


def thread_id_for(order_id: str, target: MessageTarget) -> str:
    return f"order-{order_id}-{target.value}"


def _parse_target(raw: str | None) -> MessageTarget:
    try:
        return MessageTarget((raw or MessageTarget.VIDYUT.value).lower())
    except ValueError:
        raise ValidationError("target must be 'seller' or 'vidyut'") from None


class OrderService:
    def __init__(
        self,
        orders: OrderRepositoryProtocol | None = None,
        messages: MessageRepositoryProtocol | None = None,
    ) -> None:
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._messages: MessageRepositoryProtocol = messages or MessageRepository()

    async def checkout(self, db: AsyncSession, buyer_id: str, body: dict[str, Any]) -> OrderOut:
        items = normalize_items(body.get("items"))
        address = validate_shipping_address(body.get("shippingAddress"))

        try:
            products = await self._orders.lock_products(db, [i.product_id for i in items])
            check_availability(items, products)
            totals = compute_totals(items, products)
            await self._orders.decrement_stock(db, items)
            order = await self._orders.create_order(
                db,
                generate_order_number(),
                buyer_id,
                totals,
                address,
                items,
                {pid: p.price for pid, p in products.items()},
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Order placed id=%s number=%s buyer=%s items=%d total=%d",
            order.id,
            order.order_number,
            buyer_id,
            len(items),
            totals.total,
        )
        return OrderOut.from_domain(order)

    async def list_orders(self, db: AsyncSession, user_id: str, role: str) -> list[OrderOut]:
        if role == "buyer":
            orders = await self._orders.list_for_buyer(db, user_id)
        elif role == "seller":
            orders = await self._orders.list_for_seller(db, user_id)
        else:
            raise ValidationError("role must be 'buyer' or 'seller'")
        return [OrderOut.from_domain(o) for o in orders]

    async def _buyer_order(self, db: AsyncSession, order_id: str, buyer_id: str) -> Order:
        # Other users' orders are reported as missing, not forbidden.
        order = await self._orders.get_order(db, order_id)
        if order is None or order.buyer_id != buyer_id:
            raise OrderNotFoundError(order_id)
        return order

    async def get_order(self, db: AsyncSession, order_id: str, buyer_id: str) -> OrderDetailOut:
        order = await self._buyer_order(db, order_id, buyer_id)
        return OrderDetailOut.build(order, build_timeline(order))

    async def order_for_invoice(self, db: AsyncSession, order_id: str, buyer_id: str) -> Order:
        return await self._buyer_order(db, order_id, buyer_id)

    async def update_status(
        self, db: AsyncSession, order_id: str, seller_id: str, target: str
    ) -> OrderOut:
        try:
            current = await self._orders.lock_order_status(db, order_id)
            if current is None:
                raise OrderNotFoundError(order_id)
            if not await self._orders.seller_owns_item(db, order_id, seller_id):
                raise OrderAccessDeniedError()
            new_status = ensure_transition(current, target)
            delivered_at = utc_now() if new_status is OrderStatus.DELIVERED else None
            await self._orders.update_status(db, order_id, new_status.value, delivered_at)
            order = await self._orders.get_order(db, order_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Order status changed id=%s %s -> %s by seller=%s",
            order_id,
            current,
            new_status.value,
            seller_id,
        )
        return OrderOut.from_domain(order)  # type: ignore[arg-type]

    async def _thread(
        self, db: AsyncSession, order: Order, target: MessageTarget, user_id: str, name: str
    ) -> str:
        thread_id = thread_id_for(order.id, target)
        participants = [{"id": user_id, "name": name, "role": AuthorRole.BUYER.value}]
        if target is MessageTarget.SELLER:
            participants += [
                {"id": i.seller.id, "name": i.seller.name, "role": AuthorRole.SELLER.value}
                for i in order.items
                if i.seller is not None
            ]
        else:
            participants.append({"id": "vidyut", "name": "Vidyut", "role": AuthorRole.VIDYUT.value})
        # De-duplicate sellers with several items on the order.
        unique = list({p["id"]: p for p in participants}.values())
        await self._messages.get_or_create_thread(
            db,
            thread_id,
            order.id,
            target.value,
            f"Order {order.order_number}",
            unique,
        )
        return thread_id

    async def list_messages(
        self, db: AsyncSession, order_id: str, user_id: str, name: str, target: str | None
    ) -> list[MessageOut]:
        parsed = _parse_target(target)
        try:
            order = await self._buyer_order(db, order_id, user_id)
            thread_id = await self._thread(db, order, parsed, user_id, name)
            messages = await self._messages.list_messages(db, thread_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return [MessageOut.from_domain(m) for m in messages]

    async def post_message(
        self,
        db: AsyncSession,
        order_id: str,
        user_id: str,
        name: str,
        target: str | None,
        content: str,
    ) -> MessageOut:
        parsed = _parse_target(target)
        content = content.strip()
        if not content:
            raise ValidationError("Empty message")
        try:
            order = await self._buyer_order(db, order_id, user_id)
            thread_id = await self._thread(db, order, parsed, user_id, name)
            message = await self._messages.add_message(
                db, thread_id, user_id, AuthorRole.BUYER.value, content
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order message posted thread=%s author=%s", thread_id, user_id)
        return MessageOut.from_domain(message)
