"""Pydantic schemas for mp_order."""

from pydantic import BaseModel, Field

from src.mp_common.money import paise_to_display
from src.mp_order.domain.models import Message, Order, OrderItem, SellerContact, TimelineStep


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., min_length=1)


class PostMessageRequest(BaseModel):
    content: str = Field("", max_length=5000)
    target: str | None = None


class SellerContactOut(BaseModel):
    id: str
    name: str | None
    email: str | None
    phone: str | None

    @classmethod
    def from_domain(cls, s: SellerContact) -> "SellerContactOut":
        return cls(id=s.id, name=s.name, email=s.email, phone=s.phone)


class OrderItemOut(BaseModel):
    id: str
    product_id: str
    quantity: int
    price: int
    price_display: str
    product_name: str | None
    product_slug: str | None
    image_url: str | None
    seller: SellerContactOut | None

    @classmethod
    def from_domain(cls, i: OrderItem) -> "OrderItemOut":
        return cls(
            id=i.id,
            product_id=i.product_id,
            quantity=i.quantity,
            price=i.price,
            price_display=paise_to_display(i.price),
            product_name=i.product_name,
            product_slug=i.product_slug,
            image_url=i.image_url,
            seller=SellerContactOut.from_domain(i.seller) if i.seller else None,
        )


class OrderOut(BaseModel):
    id: str
    order_number: str
    buyer_id: str
    status: str
    payment_status: str
    subtotal: int
    tax_amount: int
    shipping_cost: int
    total_amount: int
    total_display: str
    shipping_address: dict
    estimated_delivery: str | None
    delivered_at: str | None
    created_at: str
    updated_at: str
    items: list[OrderItemOut]

    @classmethod
    def from_domain(cls, o: Order) -> "OrderOut":
        return cls(
            id=o.id,
            order_number=o.order_number,
            buyer_id=o.buyer_id,
            status=o.status,
            payment_status=o.payment_status,
            subtotal=o.subtotal,
            tax_amount=o.tax_amount,
            shipping_cost=o.shipping_cost,
            total_amount=o.total_amount,
            total_display=paise_to_display(o.total_amount),
            shipping_address=o.shipping_address,
            estimated_delivery=o.estimated_delivery.isoformat() if o.estimated_delivery else None,
            delivered_at=o.delivered_at.isoformat() if o.delivered_at else None,
            created_at=o.created_at.isoformat(),
            updated_at=o.updated_at.isoformat(),
            items=[OrderItemOut.from_domain(i) for i in o.items],
        )


class TimelineStepOut(BaseModel):
    id: str
    status: str
    label: str
    timestamp: str
    is_completed: bool


class OrderDetailOut(OrderOut):
    timeline: list[TimelineStepOut]

    @classmethod
    def build(cls, o: Order, steps: list[TimelineStep]) -> "OrderDetailOut":
        base = OrderOut.from_domain(o).model_dump()
        timeline = [
            TimelineStepOut(
                id=str(index + 1),
                status=step.key,
                label=step.label,
                timestamp=step.at.isoformat(),
                is_completed=step.is_completed,
            )
            for index, step in enumerate(steps)
        ]
        return cls(**base, timeline=timeline)


class MessageOut(BaseModel):
    id: str
    thread_id: str
    author_id: str
    author_role: str
    content: str
    created_at: str

    @classmethod
    def from_domain(cls, m: Message) -> "MessageOut":
        return cls(
            id=m.id,
            thread_id=m.thread_id,
            author_id=m.author_id,
            author_role=m.author_role,
            content=m.content,
            created_at=m.created_at.isoformat(),
        )
