"""Catalog repositories — concrete implementations of the domain Protocols.

Fixed-shape reads use raw text() SQL; listings with optional filters are
composed with the builders in query_builder.py.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL for None values.
"""

import json
import logging
import uuid
from typing import Any

from sqlalchemy import delete, func, or_, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_catalog.domain.admin_filter import AdminProductFilter
from src.mp_catalog.domain.models import (
    AdminProductRow,
    Category,
    Product,
    ProductQuery,
    Review,
    SellerDashboard,
    SellerProfile,
)
from src.mp_catalog.infrastructure.db_models import (
    CategoryORM,
    ProductORM,
    ReviewORM,
    SellerProfileORM,
)
from src.mp_catalog.infrastructure.query_builder import (
    PUBLIC_SORTS,
    admin_product_select,
    build_public_product_conditions,
    keyword_search_conditions,
)
from src.mp_gateway.user.db_models import UserModel

logger = logging.getLogger("mp.catalog")

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_LIST_CATEGORIES_SQL = text("""
    SELECT c.id, c.name, c.slug, c.description,
           COUNT(p.id) FILTER (WHERE p.is_active) AS product_count
    FROM categories c
    LEFT JOIN products p ON p.category_id = c.id
    GROUP BY c.id
    ORDER BY c.name ASC
""")

_GET_CATEGORY_SQL = text("""
    SELECT c.id, c.name, c.slug, c.description,
           COUNT(p.id) FILTER (WHERE p.is_active) AS product_count
    FROM categories c
    LEFT JOIN products p ON p.category_id = c.id
    WHERE c.slug = :slug
    GROUP BY c.id
""")

_GET_CATEGORY_BY_ID_SQL = text("""
    SELECT c.id, c.name, c.slug, c.description,
           COUNT(p.id) FILTER (WHERE p.is_active) AS product_count
    FROM categories c
    LEFT JOIN products p ON p.category_id = c.id
    WHERE c.id = :id
    GROUP BY c.id
""")

_RECOMPUTE_RATING_SQL = text("""
    UPDATE products
    SET rating = COALESCE(
            (SELECT ROUND(AVG(rating)::numeric, 2) FROM reviews
             WHERE product_id = :product_id AND is_visible), 0),
        review_count = (SELECT COUNT(*) FROM reviews
                        WHERE product_id = :product_id AND is_visible),
        updated_at = NOW()
    WHERE id = :product_id
""")

_SELLER_DASHBOARD_SQL = text("""
    SELECT
        (SELECT COUNT(*) FROM products WHERE seller_id = :seller_id) AS product_count,
        (SELECT COUNT(*) FROM products
         WHERE seller_id = :seller_id AND is_active) AS active_count,
        COUNT(DISTINCT oi.order_id) AS order_count,
        COALESCE(SUM(oi.quantity), 0) AS units_sold,
        COALESCE(SUM(oi.quantity * oi.price), 0) AS revenue
    FROM order_items oi
    JOIN products p ON p.id = oi.product_id
    JOIN orders o ON o.id = oi.order_id
    WHERE p.seller_id = :seller_id
      AND o.status NOT IN ('CANCELLED', 'RETURNED')
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _json_or(raw: str | None, default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Malformed JSON column value %r", raw[:80])
        return default


def _as_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def orm_to_product(
    row: ProductORM, category_name: str | None = None, category_slug: str | None = None
) -> Product:
    images = _json_or(row.image_urls, [])
    return Product(
        id=str(row.id),
        name=row.name,
        slug=row.slug,
        description=row.description,
        price=row.price,
        stock=row.stock,
        category_id=str(row.category_id),
        seller_id=str(row.seller_id),
        brand=row.brand,
        model=row.model,
        sku=row.sku,
        tags=row.tags,
        image_urls=images if isinstance(images, list) else [str(images)],
        specifications=_json_or(row.specifications, {}),
        is_active=row.is_active,
        is_featured=row.is_featured,
        rating=float(row.rating or 0),
        review_count=row.review_count,
        sales_count=row.sales_count,
        created_at=row.created_at,
        updated_at=row.updated_at,
        category_name=category_name,
        category_slug=category_slug,
    )


def _row_to_category(row: Any) -> Category:
    return Category(
        id=str(row.id),
        name=row.name,
        slug=row.slug,
        description=row.description,
        product_count=int(row.product_count or 0),
    )


def _orm_to_seller(row: SellerProfileORM) -> SellerProfile:
    return SellerProfile(
        user_id=str(row.user_id),
        business_name=row.business_name,
        slug=row.slug,
        is_enterprise=row.is_enterprise,
        gst_number=row.gst_number,
        city=row.city,
        state=row.state,
        created_at=row.created_at,
        is_active=row.is_active,
    )


def _orm_to_review(row: ReviewORM, author_name: str | None = None) -> Review:
    return Review(
        id=str(row.id),
        product_id=str(row.product_id),
        user_id=str(row.user_id),
        rating=row.rating,
        title=row.title,
        comment=row.comment,
        is_visible=row.is_visible,
        created_at=row.created_at,
        author_name=author_name,
    )


def _to_admin_row(row: Any) -> AdminProductRow:
    product_orm, cat_name, cat_slug, uploader_name, uploader_email, is_enterprise = row
    return AdminProductRow(
        product=orm_to_product(product_orm, cat_name, cat_slug),
        uploader_name=uploader_name,
        uploader_email=uploader_email,
        is_enterprise=is_enterprise,
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class ProductRepository:
    async def list_products(
        self, db: AsyncSession, query: ProductQuery
    ) -> tuple[list[Product], int]:
        conditions = build_public_product_conditions(query)
        base = (
            select(ProductORM, CategoryORM.name, CategoryORM.slug)
            .join(CategoryORM, CategoryORM.id == ProductORM.category_id)
            .where(*conditions)
        )
        count_stmt = (
            select(func.count(ProductORM.id))
            .join(CategoryORM, CategoryORM.id == ProductORM.category_id)
            .where(*conditions)
        )
        total = (await db.execute(count_stmt)).scalar_one()

        order_by = PUBLIC_SORTS.get(query.sort, PUBLIC_SORTS["newest"])
        stmt = (
            base.order_by(*order_by, ProductORM.id)
            .limit(query.limit)
            .offset((query.page - 1) * query.limit)
        )
        rows = (await db.execute(stmt)).all()
        return [orm_to_product(p, name, slug) for p, name, slug in rows], total

    async def search(self, db: AsyncSession, query: str, limit: int) -> list[Product]:
        stmt = (
            select(ProductORM, CategoryORM.name, CategoryORM.slug)
            .join(CategoryORM, CategoryORM.id == ProductORM.category_id)
            .where(*keyword_search_conditions(query))
            .order_by(ProductORM.sales_count.desc(), ProductORM.created_at.desc(), ProductORM.id)
            .limit(limit)
        )
        rows = (await db.execute(stmt)).all()
        return [orm_to_product(p, name, slug) for p, name, slug in rows]

    async def _get(self, db: AsyncSession, condition: Any) -> Product | None:
        stmt = (
            select(ProductORM, CategoryORM.name, CategoryORM.slug)
            .join(CategoryORM, CategoryORM.id == ProductORM.category_id)
            .where(condition)
        )
        row = (await db.execute(stmt)).first()
        return orm_to_product(*row) if row else None

    async def get_by_slug_or_id(self, db: AsyncSession, key: str) -> Product | None:
        product_id = _as_uuid(key)
        if product_id is not None:
            return await self._get(db, or_(ProductORM.id == product_id, ProductORM.slug == key))
        return await self._get(db, ProductORM.slug == key)

    async def get_by_id(self, db: AsyncSession, product_id: str) -> Product | None:
        pid = _as_uuid(product_id)
        if pid is None:
            return None
        return await self._get(db, ProductORM.id == pid)

    async def slugs_like(self, db: AsyncSession, base: str) -> list[str]:
        stmt = select(ProductORM.slug).where(
            or_(ProductORM.slug == base, ProductORM.slug.startswith(f"{base}-", autoescape=True))
        )
        return list((await db.execute(stmt)).scalars().all())

    async def insert(self, db: AsyncSession, fields: dict[str, Any]) -> Product:
        row = ProductORM(
            name=fields["name"],
            slug=fields["slug"],
            description=fields["description"],
            price=fields["price"],
            stock=fields.get("stock", 0),
            category_id=uuid.UUID(fields["category_id"]),
            seller_id=uuid.UUID(fields["seller_id"]),
            brand=fields.get("brand"),
            model=fields.get("model"),
            sku=fields.get("sku"),
            tags=fields.get("tags"),
            image_urls=json.dumps(fields["image_urls"]),
            specifications=json.dumps(fields.get("specifications") or {}),
            is_active=True,
            is_featured=False,
            rating=0.0,
            review_count=0,
            sales_count=0,
        )
        db.add(row)
        await db.flush()
        await db.refresh(row)
        return orm_to_product(row)

    async def list_by_seller(
        self, db: AsyncSession, seller_id: str, active_only: bool
    ) -> list[Product]:
        sid = _as_uuid(seller_id)
        if sid is None:
            return []
        stmt = (
            select(ProductORM, CategoryORM.name, CategoryORM.slug)
            .join(CategoryORM, CategoryORM.id == ProductORM.category_id)
            .where(ProductORM.seller_id == sid)
            .order_by(ProductORM.created_at.desc())
        )
        if active_only:
            stmt = stmt.where(ProductORM.is_active.is_(True))
        rows = (await db.execute(stmt)).all()
        return [orm_to_product(p, name, slug) for p, name, slug in rows]

    async def admin_list(
        self, db: AsyncSession, f: AdminProductFilter
    ) -> tuple[list[AdminProductRow], int]:
        stmt = admin_product_select(f)
        total = (
            await db.execute(select(func.count()).select_from(stmt.subquery()))
        ).scalar_one()
        page_stmt = (
            stmt.order_by(ProductORM.created_at.desc(), ProductORM.id)
            .limit(f.limit)
            .offset(f.offset)
        )
        rows = (await db.execute(page_stmt)).all()
        return [_to_admin_row(r) for r in rows], total

    async def admin_export(
        self, db: AsyncSession, f: AdminProductFilter, limit: int
    ) -> list[AdminProductRow]:
        stmt = admin_product_select(f).order_by(ProductORM.created_at.desc()).limit(limit)
        rows = (await db.execute(stmt)).all()
        return [_to_admin_row(r) for r in rows]

    async def set_flags(
        self,
        db: AsyncSession,
        product_id: str,
        is_active: bool | None,
        is_featured: bool | None,
    ) -> Product | None:
        pid = _as_uuid(product_id)
        if pid is None:
            return None
        values: dict[str, Any] = {"updated_at": func.now()}
        if is_active is not None:
            values["is_active"] = is_active
        if is_featured is not None:
            values["is_featured"] = is_featured
        result = await db.execute(
            update(ProductORM).where(ProductORM.id == pid).values(**values)
        )
        if result.rowcount == 0:  # type: ignore[attr-defined]
            return None
        return await self.get_by_id(db, product_id)


class CategoryRepository:
    async def list_with_counts(self, db: AsyncSession) -> list[Category]:
        result = await db.execute(_LIST_CATEGORIES_SQL)
        return [_row_to_category(row) for row in result.fetchall()]

    async def get_by_slug(self, db: AsyncSession, slug: str) -> Category | None:
        result = await db.execute(_GET_CATEGORY_SQL, {"slug": slug})
        row = result.fetchone()
        return _row_to_category(row) if row else None

    async def exists(self, db: AsyncSession, category_id: str) -> bool:
        cid = _as_uuid(category_id)
        if cid is None:
            return False
        result = await db.execute(select(CategoryORM.id).where(CategoryORM.id == cid))
        return result.scalar_one_or_none() is not None

    async def get_by_id(self, db: AsyncSession, category_id: str) -> Category | None:
        cid = _as_uuid(category_id)
        if cid is None:
            return None
        row = (await db.execute(_GET_CATEGORY_BY_ID_SQL, {"id": cid})).fetchone()
        return _row_to_category(row) if row else None

    async def slugs_like(self, db: AsyncSession, base: str) -> list[str]:
        stmt = select(CategoryORM.slug).where(
            or_(CategoryORM.slug == base, CategoryORM.slug.startswith(f"{base}-", autoescape=True))
        )
        return list((await db.execute(stmt)).scalars().all())

    async def insert(
        self, db: AsyncSession, name: str, slug: str, description: str | None
    ) -> Category:
        row = CategoryORM(name=name, slug=slug, description=description)
        db.add(row)
        await db.flush()
        await db.refresh(row)
        return Category(
            id=str(row.id), name=row.name, slug=row.slug, description=row.description
        )

    async def update(
        self, db: AsyncSession, category_id: str, values: dict[str, Any]
    ) -> Category | None:
        cid = _as_uuid(category_id)
        if cid is None:
            return None
        result = await db.execute(
            update(CategoryORM).where(CategoryORM.id == cid).values(**values)
        )
        if result.rowcount == 0:  # type: ignore[attr-defined]
            return None
        return await self.get_by_id(db, category_id)

    async def has_products(self, db: AsyncSession, category_id: str) -> bool:
        stmt = select(ProductORM.id).where(ProductORM.category_id == uuid.UUID(category_id))
        return (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None

    async def delete(self, db: AsyncSession, category_id: str) -> bool:
        cid = _as_uuid(category_id)
        if cid is None:
            return False
        result = await db.execute(delete(CategoryORM).where(CategoryORM.id == cid))
        return bool(result.rowcount)  # type: ignore[attr-defined]


class ReviewRepository:
    async def list_for_product(
        self, db: AsyncSession, product_id: str, visible_only: bool
    ) -> list[Review]:
        pid = _as_uuid(product_id)
        if pid is None:
            return []
        stmt = (
            select(ReviewORM, UserModel.name)
            .join(UserModel, UserModel.id == ReviewORM.user_id)
            .where(ReviewORM.product_id == pid)
            .order_by(ReviewORM.created_at.desc())
        )
        if visible_only:
            stmt = stmt.where(ReviewORM.is_visible.is_(True))
        rows = (await db.execute(stmt)).all()
        return [_orm_to_review(r, name) for r, name in rows]

    async def exists(self, db: AsyncSession, product_id: str, user_id: str) -> bool:
        stmt = select(ReviewORM.id).where(
            ReviewORM.product_id == uuid.UUID(product_id),
            ReviewORM.user_id == uuid.UUID(user_id),
        )
        return (await db.execute(stmt)).scalar_one_or_none() is not None

    async def insert(
        self,
        db: AsyncSession,
        product_id: str,
        user_id: str,
        rating: int,
        title: str | None,
        comment: str,
    ) -> Review:
        row = ReviewORM(
            product_id=uuid.UUID(product_id),
            user_id=uuid.UUID(user_id),
            rating=rating,
            title=title,
            comment=comment,
            is_visible=True,
        )
        db.add(row)
        await db.flush()
        await db.refresh(row)
        return _orm_to_review(row)

    async def recompute_product_rating(self, db: AsyncSession, product_id: str) -> None:
        await db.execute(_RECOMPUTE_RATING_SQL, {"product_id": uuid.UUID(product_id)})

    async def list_all(
        self, db: AsyncSession, visible: bool | None, limit: int, offset: int
    ) -> tuple[list[Review], int]:
        stmt = select(ReviewORM, UserModel.name).join(UserModel, UserModel.id == ReviewORM.user_id)
        count_stmt = select(func.count(ReviewORM.id))
        if visible is not None:
            stmt = stmt.where(ReviewORM.is_visible.is_(visible))
            count_stmt = count_stmt.where(ReviewORM.is_visible.is_(visible))
        total = (await db.execute(count_stmt)).scalar_one()
        rows = (
            await db.execute(
                stmt.order_by(ReviewORM.created_at.desc()).limit(limit).offset(offset)
            )
        ).all()
        return [_orm_to_review(r, name) for r, name in rows], total

    async def set_visibility(
        self, db: AsyncSession, review_id: str, is_visible: bool
    ) -> Review | None:
        rid = _as_uuid(review_id)
        if rid is None:
            return None
        row = (
            await db.execute(select(ReviewORM).where(ReviewORM.id == rid))
        ).scalar_one_or_none()
        if row is None:
            return None
        row.is_visible = is_visible
        await db.flush()
        return _orm_to_review(row)


class SellerRepository:
    async def get_by_user(self, db: AsyncSession, user_id: str) -> SellerProfile | None:
        uid = _as_uuid(user_id)
        if uid is None:
            return None
        row = (
            await db.execute(select(SellerProfileORM).where(SellerProfileORM.user_id == uid))
        ).scalar_one_or_none()
        return _orm_to_seller(row) if row else None

    async def get_by_slug(self, db: AsyncSession, slug: str) -> SellerProfile | None:
        row = (
            await db.execute(select(SellerProfileORM).where(SellerProfileORM.slug == slug))
        ).scalar_one_or_none()
        return _orm_to_seller(row) if row else None

    async def slugs_like(self, db: AsyncSession, base: str) -> list[str]:
        stmt = select(SellerProfileORM.slug).where(
            or_(
                SellerProfileORM.slug == base,
                SellerProfileORM.slug.startswith(f"{base}-", autoescape=True),
            )
        )
        return list((await db.execute(stmt)).scalars().all())

    async def insert(self, db: AsyncSession, fields: dict[str, Any]) -> SellerProfile:
        row = SellerProfileORM(
            user_id=uuid.UUID(fields["user_id"]),
            business_name=fields["business_name"],
            slug=fields["slug"],
            is_enterprise=fields.get("is_enterprise", False),
            gst_number=fields.get("gst_number"),
            city=fields.get("city"),
            state=fields.get("state"),
            is_active=True,
        )
        db.add(row)
        await db.flush()
        await db.refresh(row)
        return _orm_to_seller(row)

    async def set_active(
        self, db: AsyncSession, user_id: str, is_active: bool
    ) -> SellerProfile | None:
        uid = _as_uuid(user_id)
        if uid is None:
            return None
        row = (
            await db.execute(select(SellerProfileORM).where(SellerProfileORM.user_id == uid))
        ).scalar_one_or_none()
        if row is None:
            return None
        row.is_active = is_active
        await db.flush()
        return _orm_to_seller(row)

    async def dashboard(self, db: AsyncSession, seller_id: str) -> SellerDashboard:
        row = (
            await db.execute(_SELLER_DASHBOARD_SQL, {"seller_id": uuid.UUID(seller_id)})
        ).fetchone()
        return SellerDashboard(
            product_count=int(row.product_count),  # type: ignore[union-attr]
            active_count=int(row.active_count),  # type: ignore[union-attr]
            order_count=int(row.order_count),  # type: ignore[union-attr]
            units_sold=int(row.units_sold),  # type: ignore[union-attr]
            revenue=int(row.revenue),  # type: ignore[union-attr]
        )
