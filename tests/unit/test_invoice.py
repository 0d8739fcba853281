"""Unit tests for invoice PDF rendering."""

import re
from datetime import UTC, datetime

from src.mp_order.application.invoice import invoice_filename, render_invoice
from src.mp_order.domain.models import Order, OrderItem


def _order(item_count: int = 2) -> Order:
    return Order(
        id="o1",
        order_number="ORD-1700000000000-abc",
        buyer_id="u1",
        status="PENDING",
        payment_status="pending",
        total_amount=2510_00,
        tax_amount=360_00,
        shipping_cost=150_00,
        shipping_address={
            "name": "Asha Rao",
            "line1": "12 MG Road",
            "line2": "Near Metro",
            "city": "Bengaluru",
            "state": "KA",
            "postalCode": "560001",
            "country": "IN",
        },
        estimated_delivery=None,
        delivered_at=None,
        created_at=datetime(2026, 4, 2, tzinfo=UTC),
        updated_at=datetime(2026, 4, 2, tzinfo=UTC),
        items=[
            OrderItem(id=f"i{n}", product_id=f"p{n}", quantity=1, price=1000_00,
                      product_name=f"MCB {n}")
            for n in range(item_count)
        ],
    )


def test_filename() -> None:
    assert invoice_filename(_order()) == "invoice-ORD-1700000000000-abc.pdf"


def test_renders_pdf() -> None:
    pdf = render_invoice(_order())
    assert pdf.startswith(b"%PDF")
    assert pdf.rstrip().endswith(b"%%EOF")


def test_long_order_spans_pages() -> None:
    pdf = render_invoice(_order(80))
    counts = [int(n) for n in re.findall(rb"/Count (\d+)", pdf)]
    assert max(counts) > 1


def test_missing_address_fields_tolerated() -> None:
    order = _order()
    order.shipping_address = {}
    order.items[0].product_name = None
    assert render_invoice(order).startswith(b"%PDF")
