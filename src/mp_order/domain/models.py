"""Domain models for mp_order — pure dataclasses, no business logic."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class ShippingAddress:
    name: str
    line1: str
    city: str
    postal_code: str
    country: str
    line2: str | None = None
    state: str | None = None
    phone: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "name": self.name,
            "line1": self.line1,
            "line2": self.line2,
            "city": self.city,
            "state": self.state,
            "postalCode": self.postal_code,
            "country": self.country,
            "phone": self.phone,
        }


@dataclass
class CheckoutItem:
    product_id: str
    quantity: int


@dataclass
class LockedProduct:
    """Product row as read under SELECT ... FOR UPDATE during checkout."""

    id: str
    name: str
    price: int
    stock: int
    is_active: bool


@dataclass
class OrderTotals:
    subtotal: int
    tax: int
    shipping: int
    total: int


@dataclass
class SellerContact:
    id: str
    name: str | None
    email: str | None
    phone: str | None


@dataclass
class OrderItem:
    id: str
    product_id: str
    quantity: int
    price: int  # paise at purchase
    product_name: str | None = None
    product_slug: str | None = None
    image_url: str | None = None
    seller: SellerContact | None = None


@dataclass
class Order:
    id: str
    order_number: str
    buyer_id: str
    status: str
    payment_status: str
    total_amount: int
    tax_amount: int
    shipping_cost: int
    shipping_address: dict
    estimated_delivery: datetime | None
    delivered_at: datetime | None
    created_at: datetime
    updated_at: datetime
    items: list[OrderItem] = field(default_factory=list)

    @property
    def subtotal(self) -> int:
        return self.total_amount - self.tax_amount - self.shipping_cost


@dataclass
class TimelineStep:
    key: str
    label: str
    at: datetime
    is_completed: bool = False


@dataclass
class MessageThread:
    id: str
    kind: str
    title: str | None
    order_id: str | None
    target: str | None
    participants: list[dict]
    created_at: datetime
    updated_at: datetime


@dataclass
class Message:
    id: str
    thread_id: str
    author_id: str
    author_role: str
    content: str
    created_at: datetime
