"""Repository Protocol — dependency inversion for testability."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_order.domain.models import (
    CheckoutItem,
    LockedProduct,
    Message,
    MessageThread,
    Order,
    OrderTotals,
    ShippingAddress,
)


class OrderRepositoryProtocol(Protocol):
    async def lock_products(
        self, db: AsyncSession, product_ids: list[str]
    ) -> dict[str, LockedProduct]: ...

    async def decrement_stock(self, db: AsyncSession, items: list[CheckoutItem]) -> None: ...

    async def create_order(
        self,
        db: AsyncSession,
        order_number: str,
        buyer_id: str,
        totals: OrderTotals,
        address: ShippingAddress,
        items: list[CheckoutItem],
        prices: dict[str, int],
    ) -> Order: ...

    async def get_order(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def list_for_buyer(self, db: AsyncSession, buyer_id: str) -> list[Order]: ...

    async def list_for_seller(self, db: AsyncSession, seller_id: str) -> list[Order]: ...

    async def seller_owns_item(self, db: AsyncSession, order_id: str, seller_id: str) -> bool: ...

    async def lock_order_status(self, db: AsyncSession, order_id: str) -> str | None: ...

    async def update_status(
        self,
        db: AsyncSession,
        order_id: str,
        status: str,
        delivered_at: datetime | None,
    ) -> None: ...


class MessageRepositoryProtocol(Protocol):
    async def get_or_create_thread(
        self,
        db: AsyncSession,
        thread_id: str,
        order_id: str,
        target: str,
        title: str,
        participants: list[dict],
    ) -> MessageThread: ...

    async def list_messages(self, db: AsyncSession, thread_id: str) -> list[Message]: ...

    async def add_message(
        self,
        db: AsyncSession,
        thread_id: str,
        author_id: str,
        author_role: str,
        content: str,
    ) -> Message: ...
