"""Checkout rules: cart normalization, address validation and pricing.

Everything here is pure; the service applies it inside the locking
transaction.
"""

import uuid
from collections.abc import Mapping, Sequence
from typing import Any

from src.mp_common.datetime_utils import now_ms
from src.mp_common.errors import InsufficientStockError, ProductNotFoundError, ValidationError
from src.mp_common.money import calculate_shipping, calculate_tax
from src.mp_order.domain.models import CheckoutItem, LockedProduct, OrderTotals, ShippingAddress

_REQUIRED_ADDRESS_FIELDS = ("name", "line1", "city", "postalCode", "country")
_OPTIONAL_ADDRESS_FIELDS = ("line2", "state", "phone")


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float) and value.is_integer() and value > 0:
        return int(value)
    return None


def normalize_items(raw: Any) -> list[CheckoutItem]:
    """Keep entries with a productId string and a positive integer quantity.

    Repeated products are merged so stock is checked against the combined
    quantity. Raises ValidationError when nothing usable remains.
    """
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items must be a non-empty array")

    merged: dict[str, int] = {}
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        product_id = entry.get("productId")
        quantity = _positive_int(entry.get("quantity"))
        if not isinstance(product_id, str) or not product_id.strip() or quantity is None:
            continue
        key = product_id.strip()
        merged[key] = merged.get(key, 0) + quantity

    if not merged:
        raise ValidationError("No valid items")
    return [CheckoutItem(product_id=pid, quantity=qty) for pid, qty in merged.items()]


def validate_shipping_address(raw: Any) -> ShippingAddress:
    if not isinstance(raw, Mapping):
        raise ValidationError("Invalid shippingAddress")
    for key in _REQUIRED_ADDRESS_FIELDS:
        value = raw.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Invalid shippingAddress: {key} is required")

    optional: dict[str, str | None] = {}
    for key in _OPTIONAL_ADDRESS_FIELDS:
        value = raw.get(key)
        optional[key] = None if value is None else str(value).strip()

    return ShippingAddress(
        name=raw["name"].strip(),
        line1=raw["line1"].strip(),
        line2=optional["line2"],
        city=raw["city"].strip(),
        state=optional["state"],
        postal_code=raw["postalCode"].strip(),
        country=raw["country"].strip(),
        phone=optional["phone"],
    )


def check_availability(
    items: Sequence[CheckoutItem], products: Mapping[str, LockedProduct]
) -> None:
    """404 for a missing or inactive product, 409 naming the first short one."""
    for item in items:
        product = products.get(item.product_id)
        if product is None or not product.is_active:
            raise ProductNotFoundError(item.product_id)
    for item in items:
        if products[item.product_id].stock < item.quantity:
            raise InsufficientStockError(item.product_id)


def compute_totals(
    items: Sequence[CheckoutItem], products: Mapping[str, LockedProduct]
) -> OrderTotals:
    subtotal = sum(products[i.product_id].price * i.quantity for i in items)
    tax = calculate_tax(subtotal)
    shipping = calculate_shipping(subtotal)
    return OrderTotals(subtotal=subtotal, tax=tax, shipping=shipping, total=subtotal + tax + shipping)


def generate_order_number() -> str:
    return f"ORD-{now_ms()}-{uuid.uuid4()}"
