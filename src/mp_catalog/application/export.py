"""CSV export of the admin product table (RFC 4180 quoting, CRLF rows)."""

import csv
import io
from collections.abc import Iterable

from src.mp_catalog.application.schemas import account_label
from src.mp_catalog.domain.models import AdminProductRow

EXPORT_FILENAME = "products-export.csv"

CSV_HEADER = [
    "ID",
    "Name",
    "SKU",
    "Category",
    "Uploader",
    "Account",
    "Status",
    "Stock",
    "Price",
    "Created",
]


def _rupees(paise: int) -> str:
    rupees, frac = divmod(paise, 100)
    return f"{rupees}.{frac:02d}"


def export_row(row: AdminProductRow) -> list[str]:
    p = row.product
    return [
        p.id,
        p.name,
        p.sku or "",
        p.category_name or "",
        row.uploader_name or row.uploader_email or "",
        account_label(row.is_enterprise),
        "Active" if p.is_active else "Inactive",
        str(p.stock),
        _rupees(p.price),
        p.created_at.isoformat(),
    ]


def products_to_csv(rows: Iterable[AdminProductRow]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(CSV_HEADER)
    for row in rows:
        writer.writerow(export_row(row))
    return buf.getvalue()
