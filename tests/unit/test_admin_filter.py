"""Unit tests for admin product filter parsing and its SQL conditions."""

from datetime import UTC, datetime

from sqlalchemy import and_
from sqlalchemy.dialects import postgresql

from src.mp_catalog.domain.admin_filter import (
    AdminProductFilter,
    parse_admin_filter,
    total_pages,
)
from src.mp_catalog.domain.models import ProductQuery
from src.mp_catalog.infrastructure.query_builder import (
    admin_product_select,
    build_admin_product_conditions,
    build_public_product_conditions,
    keyword_search_conditions,
)
from src.mp_common.enums import AccountType

UPLOADER = "0b6f4c1e-9d2a-4e6b-8f3c-1a2b3c4d5e6f"


def _sql(conditions: list) -> str:
    return str(and_(*conditions).compile(dialect=postgresql.dialect()))


class TestParseAdminFilter:
    def test_defaults(self) -> None:
        f = parse_admin_filter({})
        assert f == AdminProductFilter()
        assert (f.page, f.limit, f.offset) == (1, 20, 0)

    def test_full_parse(self) -> None:
        f = parse_admin_filter(
            {
                "q": "  inverter ",
                "uploaderId": UPLOADER,
                "accountType": "Enterprise",
                "isActive": "false",
                "dateFrom": "2026-01-01",
                "dateTo": "2026-01-31",
                "page": "3",
                "limit": "50",
            }
        )
        assert f.q == "inverter"
        assert f.account_type is AccountType.ENTERPRISE
        assert f.is_active is False
        assert f.date_from == datetime(2026, 1, 1, tzinfo=UTC)
        assert f.date_to == datetime(2026, 1, 31, 23, 59, 59, 999000, tzinfo=UTC)
        assert f.offset == 100

    def test_limit_clamped(self) -> None:
        assert parse_admin_filter({"limit": "1000"}).limit == 100
        assert parse_admin_filter({"limit": "0"}).limit == 1
        assert parse_admin_filter({"limit": "abc"}).limit == 20
        assert parse_admin_filter({"page": "-4"}).page == 1

    def test_unknown_values_ignored(self) -> None:
        f = parse_admin_filter({"accountType": "vip", "isActive": "maybe", "dateFrom": "soon"})
        assert f.account_type is None
        assert f.is_active is None
        assert f.date_from is None

    def test_full_timestamp_date_to_kept(self) -> None:
        f = parse_admin_filter({"dateTo": "2026-01-31T10:00:00+00:00"})
        assert f.date_to == datetime(2026, 1, 31, 10, tzinfo=UTC)

    def test_export_url_carries_filters(self) -> None:
        f = parse_admin_filter({"q": "solar panel", "accountType": "individual", "page": "2"})
        assert f.export_url() == (
            "/api/admin/products/export?q=solar+panel&accountType=individual"
        )
        assert AdminProductFilter().export_url() == "/api/admin/products/export"


class TestTotalPages:
    def test_at_least_one(self) -> None:
        assert total_pages(0, 20) == 1

    def test_rounds_up(self) -> None:
        assert total_pages(41, 20) == 3
        assert total_pages(40, 20) == 2


class TestAdminConditions:
    def test_text_and_account_type_is_and_of_two_ors(self) -> None:
        f = AdminProductFilter(q="cable", account_type=AccountType.INDIVIDUAL)
        conditions = build_admin_product_conditions(f)
        assert len(conditions) == 2

        sql = _sql(conditions)
        assert sql.count("ILIKE") == 6
        assert ") AND (" in sql
        assert (
            "seller_profiles.is_enterprise IS false OR seller_profiles.user_id IS NULL" in sql
        )

    def test_text_search_is_case_insensitive(self) -> None:
        sql = _sql(build_admin_product_conditions(AdminProductFilter(q="Havells")))
        assert sql.count("ILIKE") == 6
        assert " LIKE " not in sql.replace(" ILIKE ", " ")

    def test_enterprise_is_single_condition(self) -> None:
        sql = _sql(build_admin_product_conditions(AdminProductFilter(account_type=AccountType.ENTERPRISE)))
        assert sql == "seller_profiles.is_enterprise IS true"

    def test_invalid_uuid_matches_nothing(self) -> None:
        sql = _sql(build_admin_product_conditions(AdminProductFilter(uploader_id="not-a-uuid")))
        assert sql == "false"

    def test_no_filters_no_conditions(self) -> None:
        assert build_admin_product_conditions(AdminProductFilter()) == []

    def test_select_outer_joins_seller_profiles(self) -> None:
        sql = str(admin_product_select(AdminProductFilter()).compile(dialect=postgresql.dialect()))
        assert "LEFT OUTER JOIN seller_profiles" in sql
        assert "WHERE" not in sql


class TestPublicConditions:
    def test_always_active_only(self) -> None:
        sql = _sql(build_public_product_conditions(ProductQuery()))
        assert sql == "products.is_active IS true"

    def test_like_wildcards_escaped(self) -> None:
        conditions = build_public_product_conditions(ProductQuery(brand="50%_off"))
        params = and_(*conditions).compile(dialect=postgresql.dialect()).params
        assert "%50\\%\\_off%" in params.values()


class TestKeywordSearch:
    def test_active_products_on_four_columns(self) -> None:
        sql = _sql(keyword_search_conditions("inverter"))
        assert sql.startswith("products.is_active IS true AND (")
        assert sql.count("ILIKE") == 4
        for column in ("name", "description", "brand", "model"):
            assert f"products.{column} ILIKE" in sql
        assert "products.sku" not in sql
