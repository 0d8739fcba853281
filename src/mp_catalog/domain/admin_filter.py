"""Admin product filter: parsing query parameters into a typed filter.

The SQL side lives in infrastructure/query_builder.py; this module is pure so
the parsing rules can be tested without a database.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from urllib.parse import urlencode

from src.mp_common.datetime_utils import parse_date
from src.mp_common.enums import AccountType

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
EXPORT_ROW_LIMIT = 5000


@dataclass
class AdminProductFilter:
    q: str | None = None
    uploader_id: str | None = None
    account_type: AccountType | None = None
    is_active: bool | None = None
    category_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def to_query_params(self) -> dict[str, str]:
        """Filter fields as query parameters (pagination excluded)."""
        params: dict[str, str] = {}
        if self.q:
            params["q"] = self.q
        if self.uploader_id:
            params["uploaderId"] = self.uploader_id
        if self.account_type is not None:
            params["accountType"] = self.account_type.value
        if self.is_active is not None:
            params["isActive"] = "true" if self.is_active else "false"
        if self.category_id:
            params["categoryId"] = self.category_id
        if self.date_from is not None:
            params["dateFrom"] = self.date_from.date().isoformat()
        if self.date_to is not None:
            params["dateTo"] = self.date_to.date().isoformat()
        return params

    def export_url(self, base: str = "/api/admin/products/export") -> str:
        query = urlencode(self.to_query_params())
        return f"{base}?{query}" if query else base


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_int(value: str | None, default: int) -> int:
    try:
        return int(value) if value else default
    except ValueError:
        return default


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


def _parse_date_to(value: str | None) -> datetime | None:
    """Inclusive upper bound: a bare date extends to 23:59:59.999."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    if value is not None and len(value.strip()) == 10:  # YYYY-MM-DD
        return datetime.combine(parsed.date(), time.max, parsed.tzinfo) - timedelta(
            microseconds=999
        )
    return parsed


def parse_admin_filter(params: Mapping[str, str]) -> AdminProductFilter:
    """Build a filter from raw query parameters; unknown values are ignored."""
    account_raw = (_clean(params.get("accountType")) or "").lower()
    try:
        account_type: AccountType | None = AccountType(account_raw)
    except ValueError:
        account_type = None

    page = max(1, _parse_int(params.get("page"), 1))
    limit = _parse_int(params.get("limit"), DEFAULT_PAGE_SIZE)
    limit = min(MAX_PAGE_SIZE, max(1, limit))

    return AdminProductFilter(
        q=_clean(params.get("q")),
        uploader_id=_clean(params.get("uploaderId")),
        account_type=account_type,
        is_active=_parse_bool(params.get("isActive")),
        category_id=_clean(params.get("categoryId")),
        date_from=parse_date(_clean(params.get("dateFrom"))),
        date_to=_parse_date_to(_clean(params.get("dateTo"))),
        page=page,
        limit=limit,
    )


def total_pages(total: int, limit: int) -> int:
    return max(1, -(-total // limit))
