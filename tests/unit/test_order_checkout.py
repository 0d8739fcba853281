"""Unit tests for checkout rules: cart normalization, address, stock and totals."""

import re

import pytest

from src.mp_common.errors import InsufficientStockError, ProductNotFoundError, ValidationError
from src.mp_order.domain.checkout import (
    check_availability,
    compute_totals,
    generate_order_number,
    normalize_items,
    validate_shipping_address,
)
from src.mp_order.domain.models import CheckoutItem, LockedProduct

ADDRESS = {
    "name": "Asha Rao",
    "line1": "12 MG Road",
    "city": "Bengaluru",
    "postalCode": "560001",
    "country": "IN",
}


def _product(pid: str, price: int = 100_00, stock: int = 10, active: bool = True) -> LockedProduct:
    return LockedProduct(id=pid, name=f"Item {pid}", price=price, stock=stock, is_active=active)


class TestNormalizeItems:
    def test_valid_items_kept(self) -> None:
        items = normalize_items([{"productId": "p1", "quantity": 2}])
        assert items == [CheckoutItem(product_id="p1", quantity=2)]

    @pytest.mark.parametrize("raw", [None, [], {}, "p1"])
    def test_non_list_or_empty_rejected(self, raw: object) -> None:
        with pytest.raises(ValidationError):
            normalize_items(raw)

    def test_invalid_entries_dropped(self) -> None:
        items = normalize_items([
            {"productId": "p1", "quantity": 0},
            {"productId": "p2", "quantity": -1},
            {"productId": "p3", "quantity": 1.5},
            {"productId": "p4", "quantity": True},
            {"productId": "", "quantity": 1},
            {"productId": 5, "quantity": 1},
            "junk",
            {"productId": "ok", "quantity": 3},
        ])
        assert items == [CheckoutItem(product_id="ok", quantity=3)]

    def test_whole_float_quantity_accepted(self) -> None:
        assert normalize_items([{"productId": "p1", "quantity": 2.0}])[0].quantity == 2

    def test_all_invalid_is_no_valid_items(self) -> None:
        with pytest.raises(ValidationError, match="No valid items"):
            normalize_items([{"productId": "p1", "quantity": 0}])

    def test_duplicates_merged(self) -> None:
        items = normalize_items([
            {"productId": "p1", "quantity": 2},
            {"productId": "p2", "quantity": 1},
            {"productId": " p1 ", "quantity": 3},
        ])
        assert items == [
            CheckoutItem(product_id="p1", quantity=5),
            CheckoutItem(product_id="p2", quantity=1),
        ]


class TestShippingAddress:
    def test_required_fields_trimmed(self) -> None:
        addr = validate_shipping_address({**ADDRESS, "city": "  Bengaluru "})
        assert addr.city == "Bengaluru"
        assert addr.line2 is None
        assert addr.to_dict()["postalCode"] == "560001"

    @pytest.mark.parametrize("missing", ["name", "line1", "city", "postalCode", "country"])
    def test_missing_required_field(self, missing: str) -> None:
        raw = {**ADDRESS, missing: "   "}
        with pytest.raises(ValidationError, match=missing):
            validate_shipping_address(raw)

    def test_not_an_object(self) -> None:
        with pytest.raises(ValidationError):
            validate_shipping_address(["nope"])

    def test_optional_fields_kept(self) -> None:
        addr = validate_shipping_address({**ADDRESS, "state": "KA", "phone": 9876543210})
        assert addr.state == "KA"
        assert addr.phone == "9876543210"


class TestAvailability:
    def test_all_in_stock(self) -> None:
        items = [CheckoutItem("p1", 2), CheckoutItem("p2", 10)]
        check_availability(items, {"p1": _product("p1"), "p2": _product("p2")})

    def test_missing_product(self) -> None:
        with pytest.raises(ProductNotFoundError):
            check_availability([CheckoutItem("ghost", 1)], {})

    def test_inactive_product_is_not_found(self) -> None:
        with pytest.raises(ProductNotFoundError):
            check_availability([CheckoutItem("p1", 1)], {"p1": _product("p1", active=False)})

    def test_first_short_item_named(self) -> None:
        items = [CheckoutItem("p1", 1), CheckoutItem("p2", 5), CheckoutItem("p3", 9)]
        products = {
            "p1": _product("p1"),
            "p2": _product("p2", stock=4),
            "p3": _product("p3", stock=1),
        }
        with pytest.raises(InsufficientStockError) as exc_info:
            check_availability(items, products)
        assert exc_info.value.product_id == "p2"
        assert exc_info.value.http_status == 409

    def test_missing_product_reported_before_stock(self) -> None:
        items = [CheckoutItem("p1", 99), CheckoutItem("ghost", 1)]
        with pytest.raises(ProductNotFoundError):
            check_availability(items, {"p1": _product("p1", stock=1)})


class TestTotals:
    def test_small_order_pays_shipping(self) -> None:
        totals = compute_totals([CheckoutItem("p1", 2)], {"p1": _product("p1", price=1000_00)})
        assert totals.subtotal == 2000_00
        assert totals.tax == 360_00
        assert totals.shipping == 150_00
        assert totals.total == 2000_00 + 360_00 + 150_00

    def test_large_order_ships_free(self) -> None:
        totals = compute_totals([CheckoutItem("p1", 6)], {"p1": _product("p1", price=1000_00)})
        assert totals.shipping == 0
        assert totals.total == totals.subtotal + totals.tax

    def test_exactly_threshold_pays_shipping(self) -> None:
        totals = compute_totals([CheckoutItem("p1", 5)], {"p1": _product("p1", price=1000_00)})
        assert totals.shipping == 150_00

    def test_tax_rounds_half_up(self) -> None:
        # 18% of 25 paise = 4.5 -> 5
        totals = compute_totals([CheckoutItem("p1", 1)], {"p1": _product("p1", price=25)})
        assert totals.tax == 5


def test_order_number_format_and_uniqueness() -> None:
    first, second = generate_order_number(), generate_order_number()
    assert re.fullmatch(r"ORD-\d{13}-[0-9a-f-]{36}", first)
    assert first != second
