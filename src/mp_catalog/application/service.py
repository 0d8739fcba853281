"""Catalog application services.

Read paths delegate straight to the repositories. Write paths own their
transaction: commit on success, rollback and re-raise on any error.
The caller (router) passes the db session.
"""

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_catalog.application.export import products_to_csv
from src.mp_catalog.application.schemas import (
    AdminCategoryCreate,
    AdminCategoryPatch,
    AdminProductItem,
    AdminProductListResponse,
    CategoryOut,
    CreateProductRequest,
    CreateReviewRequest,
    ProductListResponse,
    ProductOut,
    ProductSearchResponse,
    ReviewListResponse,
    ReviewOut,
    SellerDashboardOut,
    SellerProfileOut,
    SellerPublicProfile,
    SellerSignupRequest,
)
from src.mp_catalog.domain.admin_filter import (
    EXPORT_ROW_LIMIT,
    AdminProductFilter,
    total_pages,
)
from src.mp_catalog.domain.models import ProductQuery
from src.mp_catalog.domain.repository import (
    CategoryRepositoryProtocol,
    ProductRepositoryProtocol,
    ReviewRepositoryProtocol,
    SellerRepositoryProtocol,
)
from src.mp_catalog.domain.rules import next_free_slug, slugify
from src.mp_catalog.infrastructure.persistence import (
    CategoryRepository,
    ProductRepository,
    ReviewRepository,
    SellerRepository,
)
from src.mp_common.datetime_utils import now_ms
from src.mp_common.errors import (
    CategoryInUseError,
    CategoryNotFoundError,
    DuplicateReviewError,
    ProductNotFoundError,
    ReviewNotFoundError,
    SellerNotFoundError,
    SellerProfileExistsError,
    ValidationError,
)
from src.mp_common.money import rupees_to_paise

logger = logging.getLogger("mp.catalog")

MAX_PAGE_SIZE = 100
SEARCH_RESULT_LIMIT = 50
_SLUG_RETRIES = 3


class CatalogService:
    def __init__(
        self,
        products: ProductRepositoryProtocol | None = None,
        categories: CategoryRepositoryProtocol | None = None,
        reviews: ReviewRepositoryProtocol | None = None,
    ) -> None:
        self._products: ProductRepositoryProtocol = products or ProductRepository()
        self._categories: CategoryRepositoryProtocol = categories or CategoryRepository()
        self._reviews: ReviewRepositoryProtocol = reviews or ReviewRepository()

    # -- products -----------------------------------------------------------

    async def list_products(self, db: AsyncSession, query: ProductQuery) -> ProductListResponse:
        query.page = max(1, query.page)
        query.limit = min(MAX_PAGE_SIZE, max(1, query.limit))
        items, total = await self._products.list_products(db, query)
        return ProductListResponse(
            items=[ProductOut.from_domain(p) for p in items],
            total=total,
            page=query.page,
            limit=query.limit,
            total_pages=total_pages(total, query.limit),
        )

    async def search(self, db: AsyncSession, query: str | None) -> ProductSearchResponse:
        term = (query or "").strip()
        if not term:
            raise ValidationError("Missing query")
        products = await self._products.search(db, term, SEARCH_RESULT_LIMIT)
        return ProductSearchResponse(
            query=term,
            items=[ProductOut.from_domain(p) for p in products],
            total=len(products),
        )

    async def get_product(self, db: AsyncSession, slug_or_id: str) -> ProductOut:
        product = await self._products.get_by_slug_or_id(db, slug_or_id)
        if product is None or not product.is_active:
            raise ProductNotFoundError(slug_or_id)
        return ProductOut.from_domain(product)

    async def create_product(
        self, db: AsyncSession, seller_id: str, req: CreateProductRequest
    ) -> ProductOut:
        """Insert a product under a free slug.

        Slugs already taken are preloaded; a unique violation from a
        concurrent insert moves on to the next suffix.
        """
        try:
            if not await self._categories.exists(db, req.category_id):
                raise CategoryNotFoundError(req.category_id)

            base = slugify(req.name) or f"product-{now_ms()}"
            slug, suffix = next_free_slug(base, await self._products.slugs_like(db, base))
            fields = {
                "name": req.name,
                "description": req.description,
                "price": rupees_to_paise(req.price),
                "stock": req.stock,
                "category_id": req.category_id,
                "seller_id": seller_id,
                "brand": req.brand,
                "model": req.model,
                "sku": req.sku,
                "tags": req.tags,
                "image_urls": req.image_urls,
                "specifications": req.specifications,
            }

            product = None
            for _ in range(_SLUG_RETRIES):
                try:
                    async with db.begin_nested():
                        product = await self._products.insert(db, {**fields, "slug": slug})
                    break
                except IntegrityError:
                    logger.info("Slug collision slug=%s, retrying", slug)
                    slug = f"{base}-{suffix}"
                    suffix += 1
            if product is None:
                product = await self._products.insert(
                    db, {**fields, "slug": f"{base}-{now_ms()}"}
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Product created id=%s slug=%s seller=%s", product.id, product.slug, seller_id)
        return ProductOut.from_domain(product)

    # -- categories ---------------------------------------------------------

    async def list_categories(self, db: AsyncSession) -> list[CategoryOut]:
        return [CategoryOut.from_domain(c) for c in await self._categories.list_with_counts(db)]

    async def get_category(self, db: AsyncSession, slug: str) -> CategoryOut:
        category = await self._categories.get_by_slug(db, slug)
        if category is None:
            raise CategoryNotFoundError(slug)
        return CategoryOut.from_domain(category)

    # -- reviews ------------------------------------------------------------

    async def list_reviews(self, db: AsyncSession, product_id: str) -> ReviewListResponse:
        product = await self._products.get_by_slug_or_id(db, product_id)
        if product is None or not product.is_active:
            raise ProductNotFoundError(product_id)
        reviews = await self._reviews.list_for_product(db, product.id, visible_only=True)
        return ReviewListResponse(
            items=[ReviewOut.from_domain(r) for r in reviews], total=len(reviews)
        )

    async def create_review(
        self, db: AsyncSession, product_id: str, user_id: str, req: CreateReviewRequest
    ) -> ReviewOut:
        try:
            product = await self._products.get_by_slug_or_id(db, product_id)
            if product is None or not product.is_active:
                raise ProductNotFoundError(product_id)
            if await self._reviews.exists(db, product.id, user_id):
                raise DuplicateReviewError()
            try:
                async with db.begin_nested():
                    review = await self._reviews.insert(
                        db, product.id, user_id, req.rating, req.title, req.comment
                    )
            except IntegrityError:
                raise DuplicateReviewError() from None
            await self._reviews.recompute_product_rating(db, product.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ReviewOut.from_domain(review)


class SellerService:
    def __init__(
        self,
        sellers: SellerRepositoryProtocol | None = None,
        products: ProductRepositoryProtocol | None = None,
    ) -> None:
        self._sellers: SellerRepositoryProtocol = sellers or SellerRepository()
        self._products: ProductRepositoryProtocol = products or ProductRepository()

    async def signup(
        self, db: AsyncSession, user_id: str, req: SellerSignupRequest
    ) -> SellerProfileOut:
        try:
            if await self._sellers.get_by_user(db, user_id) is not None:
                raise SellerProfileExistsError()
            base = slugify(req.business_name) or f"seller-{now_ms()}"
            slug, _ = next_free_slug(base, await self._sellers.slugs_like(db, base))
            profile = await self._sellers.insert(
                db,
                {
                    "user_id": user_id,
                    "business_name": req.business_name.strip(),
                    "slug": slug,
                    "is_enterprise": req.is_enterprise,
                    "gst_number": req.gst_number,
                    "city": req.city,
                    "state": req.state,
                },
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise SellerProfileExistsError() from None
        except Exception:
            await db.rollback()
            raise
        logger.info("Seller profile created user=%s slug=%s", user_id, profile.slug)
        return SellerProfileOut.from_domain(profile)

    async def public_profile(self, db: AsyncSession, slug: str) -> SellerPublicProfile:
        profile = await self._sellers.get_by_slug(db, slug)
        if profile is None or not profile.is_active:
            raise SellerNotFoundError(slug)
        products = await self._products.list_by_seller(db, profile.user_id, active_only=True)
        return SellerPublicProfile(
            profile=SellerProfileOut.from_domain(profile),
            products=[ProductOut.from_domain(p) for p in products],
        )

    async def my_products(self, db: AsyncSession, seller_id: str) -> list[ProductOut]:
        products = await self._products.list_by_seller(db, seller_id, active_only=False)
        return [ProductOut.from_domain(p) for p in products]

    async def dashboard(self, db: AsyncSession, seller_id: str) -> SellerDashboardOut:
        return SellerDashboardOut.from_domain(await self._sellers.dashboard(db, seller_id))


class AdminCatalogService:
    def __init__(
        self,
        products: ProductRepositoryProtocol | None = None,
        reviews: ReviewRepositoryProtocol | None = None,
        categories: CategoryRepositoryProtocol | None = None,
        sellers: SellerRepositoryProtocol | None = None,
    ) -> None:
        self._products: ProductRepositoryProtocol = products or ProductRepository()
        self._reviews: ReviewRepositoryProtocol = reviews or ReviewRepository()
        self._categories: CategoryRepositoryProtocol = categories or CategoryRepository()
        self._sellers: SellerRepositoryProtocol = sellers or SellerRepository()

    async def list_products(
        self, db: AsyncSession, f: AdminProductFilter
    ) -> AdminProductListResponse:
        rows, total = await self._products.admin_list(db, f)
        return AdminProductListResponse(
            items=[AdminProductItem.from_domain(r) for r in rows],
            total=total,
            page=f.page,
            limit=f.limit,
            total_pages=total_pages(total, f.limit),
            export_url=f.export_url(),
        )

    async def export_csv(self, db: AsyncSession, f: AdminProductFilter) -> str:
        rows = await self._products.admin_export(db, f, EXPORT_ROW_LIMIT)
        logger.info("Admin product export rows=%d", len(rows))
        return products_to_csv(rows)

    async def update_product(
        self,
        db: AsyncSession,
        product_id: str,
        is_active: bool | None,
        is_featured: bool | None,
    ) -> ProductOut:
        try:
            product = await self._products.set_flags(db, product_id, is_active, is_featured)
            if product is None:
                raise ProductNotFoundError(product_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Admin updated product id=%s is_active=%s is_featured=%s",
            product_id,
            is_active,
            is_featured,
        )
        return ProductOut.from_domain(product)

    async def list_reviews(
        self, db: AsyncSession, visible: bool | None, page: int, limit: int
    ) -> ReviewListResponse:
        page = max(1, page)
        limit = min(MAX_PAGE_SIZE, max(1, limit))
        reviews, total = await self._reviews.list_all(db, visible, limit, (page - 1) * limit)
        return ReviewListResponse(items=[ReviewOut.from_domain(r) for r in reviews], total=total)

    async def moderate_review(
        self, db: AsyncSession, review_id: str, is_visible: bool
    ) -> ReviewOut:
        try:
            review = await self._reviews.set_visibility(db, review_id, is_visible)
            if review is None:
                raise ReviewNotFoundError(review_id)
            await self._reviews.recompute_product_rating(db, review.product_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin set review id=%s visible=%s", review_id, is_visible)
        return ReviewOut.from_domain(review)

    # -- categories ---------------------------------------------------------

    async def _free_category_slug(
        self, db: AsyncSession, raw: str, current: str | None = None
    ) -> str:
        base = slugify(raw)
        if not base:
            raise ValidationError("slug: must contain letters or digits")
        taken = [s for s in await self._categories.slugs_like(db, base) if s != current]
        slug, _ = next_free_slug(base, taken)
        return slug

    async def create_category(self, db: AsyncSession, req: AdminCategoryCreate) -> CategoryOut:
        """Slug comes from `slug` when given, else the name; taken slugs get a suffix."""
        try:
            slug = await self._free_category_slug(db, req.slug or req.name)
            category = await self._categories.insert(db, req.name, slug, req.description)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin created category id=%s slug=%s", category.id, category.slug)
        return CategoryOut.from_domain(category)

    async def update_category(
        self, db: AsyncSession, category_id: str, req: AdminCategoryPatch
    ) -> CategoryOut:
        values: dict[str, Any] = req.changes()
        if not values and req.slug is None:
            raise ValidationError("Provide name, slug and/or description")
        try:
            current = await self._categories.get_by_id(db, category_id)
            if current is None:
                raise CategoryNotFoundError(category_id)
            if req.slug is not None:
                values["slug"] = await self._free_category_slug(db, req.slug, current.slug)
            category = await self._categories.update(db, category_id, values)
            if category is None:
                raise CategoryNotFoundError(category_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin updated category id=%s fields=%s", category_id, sorted(values))
        return CategoryOut.from_domain(category)

    async def delete_category(self, db: AsyncSession, category_id: str) -> None:
        try:
            if await self._categories.get_by_id(db, category_id) is None:
                raise CategoryNotFoundError(category_id)
            if await self._categories.has_products(db, category_id):
                raise CategoryInUseError(category_id)
            await self._categories.delete(db, category_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin deleted category id=%s", category_id)

    # -- sellers ------------------------------------------------------------

    async def set_seller_active(
        self, db: AsyncSession, user_id: str, is_active: bool
    ) -> SellerProfileOut:
        try:
            profile = await self._sellers.set_active(db, user_id, is_active)
            if profile is None:
                raise SellerNotFoundError(user_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin set seller user=%s is_active=%s", user_id, is_active)
        return SellerProfileOut.from_domain(profile)
