"""Invoice PDF rendering with reportlab.

The standard Helvetica font has no rupee glyph, so amounts print as "Rs.".
"""

import io

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from src.mp_common.money import paise_to_display
from src.mp_order.domain.models import Order

_MARGIN = 15 * mm
_LINE = 6 * mm


def _amount(paise: int) -> str:
    return paise_to_display(paise).replace("₹", "Rs. ")


def invoice_filename(order: Order) -> str:
    return f"invoice-{order.order_number}.pdf"


def render_invoice(order: Order) -> bytes:
    buf = io.BytesIO()
    pdf = canvas.Canvas(buf, pagesize=A4)
    pdf.setTitle(f"Invoice {order.order_number}")
    width, height = A4
    y = height - _MARGIN

    def line(text: str, size: int = 11, bold: bool = False, x: float = _MARGIN) -> None:
        nonlocal y
        if y < _MARGIN + _LINE:
            pdf.showPage()
            y = height - _MARGIN
        pdf.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        pdf.drawString(x, y, text)
        y -= _LINE

    pdf.setFont("Helvetica-Bold", 18)
    pdf.drawRightString(width - _MARGIN, y, "Invoice")
    y -= 2 * _LINE

    line(f"Order: {order.order_number}")
    line(f"Date: {order.created_at.date().isoformat()}")
    y -= _LINE / 2

    addr = order.shipping_address or {}
    line("Bill To:", bold=True)
    line(str(addr.get("name") or ""))
    line(str(addr.get("line1") or ""))
    if addr.get("line2"):
        line(str(addr["line2"]))
    line(f"{addr.get('city') or ''} {addr.get('postalCode') or ''}".strip())
    if addr.get("state"):
        line(str(addr["state"]))
    line(str(addr.get("country") or ""))
    y -= _LINE / 2

    line("Items", bold=True)
    for item in order.items:
        name = item.product_name or item.product_id
        line(f"{name}  x{item.quantity}  -  {_amount(item.price)}")
    y -= _LINE / 2

    line(f"Subtotal: {_amount(order.subtotal)}")
    line(f"Tax (GST): {_amount(order.tax_amount)}")
    line(f"Shipping: {_amount(order.shipping_cost)}")
    line(f"Total: {_amount(order.total_amount)}", bold=True)

    pdf.showPage()
    pdf.save()
    return buf.getvalue()
