"""SQLAlchemy expression builders for catalog listings.

Filters compose as a flat AND; the text search and the "individual" account
type are each an OR group, so a request with both becomes
(name OR description OR ...) AND (is_enterprise = false OR no profile).
"""

import uuid

from sqlalchemy import ColumnElement, Select, and_, false, or_, select

from src.mp_catalog.domain.admin_filter import AdminProductFilter
from src.mp_catalog.domain.models import ProductQuery
from src.mp_catalog.infrastructure.db_models import CategoryORM, ProductORM, SellerProfileORM
from src.mp_common.enums import AccountType
from src.mp_gateway.user.db_models import UserModel

_SEARCH_COLUMNS = (
    ProductORM.name,
    ProductORM.description,
    ProductORM.sku,
    ProductORM.tags,
    ProductORM.brand,
    ProductORM.model,
)

_KEYWORD_COLUMNS = (
    ProductORM.name,
    ProductORM.description,
    ProductORM.brand,
    ProductORM.model,
)

PUBLIC_SORTS = {
    "newest": (ProductORM.created_at.desc(),),
    "price-low": (ProductORM.price.asc(), ProductORM.created_at.desc()),
    "price-high": (ProductORM.price.desc(), ProductORM.created_at.desc()),
    "rating": (ProductORM.rating.desc(), ProductORM.review_count.desc()),
    "popular": (ProductORM.sales_count.desc(), ProductORM.created_at.desc()),
}


def _uuid_or_none(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def text_search_condition(q: str) -> ColumnElement[bool]:
    """Case-insensitive substring match on any of the searchable columns."""
    pattern = f"%{_escape_like(q)}%"
    return or_(*(col.ilike(pattern, escape="\\") for col in _SEARCH_COLUMNS))


def keyword_search_conditions(query: str) -> list[ColumnElement[bool]]:
    """Active products whose name, description, brand or model contains `query`."""
    pattern = f"%{_escape_like(query)}%"
    return [
        ProductORM.is_active.is_(True),
        or_(*(col.ilike(pattern, escape="\\") for col in _KEYWORD_COLUMNS)),
    ]


def account_type_condition(account_type: AccountType) -> ColumnElement[bool]:
    if account_type is AccountType.ENTERPRISE:
        return SellerProfileORM.is_enterprise.is_(True)
    return or_(
        SellerProfileORM.is_enterprise.is_(False),
        SellerProfileORM.user_id.is_(None),
    )


def build_admin_product_conditions(f: AdminProductFilter) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []

    if f.q:
        conditions.append(text_search_condition(f.q))
    if f.account_type is not None:
        conditions.append(account_type_condition(f.account_type))
    if f.uploader_id:
        uploader = _uuid_or_none(f.uploader_id)
        conditions.append(ProductORM.seller_id == uploader if uploader else false())
    if f.category_id:
        category = _uuid_or_none(f.category_id)
        conditions.append(ProductORM.category_id == category if category else false())
    if f.is_active is not None:
        conditions.append(ProductORM.is_active.is_(f.is_active))
    if f.date_from is not None:
        conditions.append(ProductORM.created_at >= f.date_from)
    if f.date_to is not None:
        conditions.append(ProductORM.created_at <= f.date_to)

    return conditions


def admin_product_select(f: AdminProductFilter) -> Select:
    """Rows: (ProductORM, category name, category slug, uploader name, email, is_enterprise)."""
    stmt = (
        select(
            ProductORM,
            CategoryORM.name,
            CategoryORM.slug,
            UserModel.name,
            UserModel.email,
            SellerProfileORM.is_enterprise,
        )
        .join(CategoryORM, CategoryORM.id == ProductORM.category_id)
        .join(UserModel, UserModel.id == ProductORM.seller_id)
        .outerjoin(SellerProfileORM, SellerProfileORM.user_id == ProductORM.seller_id)
    )
    conditions = build_admin_product_conditions(f)
    if conditions:
        stmt = stmt.where(and_(*conditions))
    return stmt


def build_public_product_conditions(query: ProductQuery) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = [ProductORM.is_active.is_(True)]
    if query.category_slug:
        conditions.append(CategoryORM.slug == query.category_slug)
    if query.min_price is not None:
        conditions.append(ProductORM.price >= query.min_price)
    if query.max_price is not None:
        conditions.append(ProductORM.price <= query.max_price)
    if query.brand:
        conditions.append(ProductORM.brand.ilike(f"%{_escape_like(query.brand)}%", escape="\\"))
    if query.featured:
        conditions.append(ProductORM.is_featured.is_(True))
    if query.q:
        conditions.append(text_search_condition(query.q))
    return conditions
