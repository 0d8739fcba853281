"""Unit tests for catalog, seller and admin catalog services (mocked repositories)."""

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.mp_catalog.application.schemas import (
    AdminCategoryCreate,
    AdminCategoryPatch,
    CreateProductRequest,
    CreateReviewRequest,
    SellerSignupRequest,
)
from src.mp_catalog.application.service import (
    SEARCH_RESULT_LIMIT,
    AdminCatalogService,
    CatalogService,
    SellerService,
)
from src.mp_catalog.domain.admin_filter import EXPORT_ROW_LIMIT, AdminProductFilter
from src.mp_catalog.domain.models import (
    AdminProductRow,
    Category,
    Product,
    ProductQuery,
    Review,
    SellerProfile,
)
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

NOW = datetime(2026, 5, 1, tzinfo=UTC)
SELLER_ID = str(uuid.uuid4())
CATEGORY_ID = str(uuid.uuid4())


def _product(**overrides: object) -> Product:
    fields: dict[str, object] = {
        "id": str(uuid.uuid4()),
        "name": "Exide 150Ah Battery",
        "slug": "exide-150ah-battery",
        "description": "Tubular battery",
        "price": 14999_00,
        "stock": 5,
        "category_id": CATEGORY_ID,
        "seller_id": SELLER_ID,
        "brand": "Exide",
        "model": None,
        "sku": None,
        "tags": None,
        "image_urls": ["/img/exide.png"],
        "specifications": {},
        "is_active": True,
        "is_featured": False,
        "rating": 0.0,
        "review_count": 0,
        "sales_count": 0,
        "created_at": NOW,
        "updated_at": NOW,
    }
    fields.update(overrides)
    return Product(**fields)  # type: ignore[arg-type]


def _review(product_id: str) -> Review:
    return Review(
        id=str(uuid.uuid4()),
        product_id=product_id,
        user_id=str(uuid.uuid4()),
        rating=4,
        title=None,
        comment="Works well",
        is_visible=True,
        created_at=NOW,
    )


def _integrity_error() -> IntegrityError:
    return IntegrityError("INSERT", {}, Exception("duplicate key"))


@pytest.fixture
def db() -> MagicMock:
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def products() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def categories() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def reviews() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def catalog(products: AsyncMock, categories: AsyncMock, reviews: AsyncMock) -> CatalogService:
    return CatalogService(products=products, categories=categories, reviews=reviews)


def _create_request() -> CreateProductRequest:
    return CreateProductRequest.model_validate(
        {
            "name": "Exide 150Ah Battery",
            "description": "Tubular battery",
            "price": 14999,
            "imageUrls": "/img/exide.png",
            "categoryId": CATEGORY_ID,
        }
    )


class TestListAndGet:
    async def test_limit_clamped_and_pages_computed(
        self, catalog: CatalogService, products: AsyncMock, db: MagicMock
    ) -> None:
        products.list_products.return_value = ([_product()], 250)
        result = await catalog.list_products(db, ProductQuery(limit=500, page=0))
        query = products.list_products.await_args.args[1]
        assert (query.limit, query.page) == (100, 1)
        assert result.total_pages == 3
        assert result.items[0].price_display == "₹14,999.00"

    async def test_inactive_product_is_not_found(
        self, catalog: CatalogService, products: AsyncMock, db: MagicMock
    ) -> None:
        products.get_by_slug_or_id.return_value = _product(is_active=False)
        with pytest.raises(ProductNotFoundError):
            await catalog.get_product(db, "exide-150ah-battery")

    async def test_missing_category(
        self, catalog: CatalogService, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.get_by_slug.return_value = None
        with pytest.raises(CategoryNotFoundError):
            await catalog.get_category(db, "nope")

    async def test_categories_with_counts(
        self, catalog: CatalogService, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.list_with_counts.return_value = [
            Category(id=CATEGORY_ID, name="Batteries", slug="batteries", description=None, product_count=3)
        ]
        (out,) = await catalog.list_categories(db)
        assert out.product_count == 3


class TestCreateProduct:
    async def test_picks_next_free_slug_and_stores_paise(
        self, catalog: CatalogService, products: AsyncMock, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.exists.return_value = True
        products.slugs_like.return_value = ["exide-150ah-battery"]
        products.insert.side_effect = lambda _db, fields: _product(
            slug=fields["slug"], price=fields["price"]
        )

        out = await catalog.create_product(db, SELLER_ID, _create_request())

        fields = products.insert.await_args.args[1]
        assert fields["slug"] == "exide-150ah-battery-1"
        assert fields["price"] == 14999_00
        assert fields["image_urls"] == ["/img/exide.png"]
        assert out.slug == "exide-150ah-battery-1"
        db.commit.assert_awaited_once()

    async def test_unique_violation_retries_with_next_suffix(
        self, catalog: CatalogService, products: AsyncMock, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.exists.return_value = True
        products.slugs_like.return_value = []
        products.insert.side_effect = [_integrity_error(), _product(slug="exide-150ah-battery-1")]

        out = await catalog.create_product(db, SELLER_ID, _create_request())

        slugs = [c.args[1]["slug"] for c in products.insert.await_args_list]
        assert slugs == ["exide-150ah-battery", "exide-150ah-battery-1"]
        assert out.slug == "exide-150ah-battery-1"

    async def test_falls_back_to_timestamp_slug_after_retries(
        self, catalog: CatalogService, products: AsyncMock, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.exists.return_value = True
        products.slugs_like.return_value = []
        products.insert.side_effect = [_integrity_error()] * 3 + [_product()]

        await catalog.create_product(db, SELLER_ID, _create_request())

        last_slug = products.insert.await_args_list[-1].args[1]["slug"]
        assert last_slug.startswith("exide-150ah-battery-")
        assert last_slug.rsplit("-", 1)[1].isdigit()
        assert len(last_slug.rsplit("-", 1)[1]) >= 13

    async def test_unknown_category_rolls_back(
        self, catalog: CatalogService, categories: AsyncMock, products: AsyncMock, db: MagicMock
    ) -> None:
        categories.exists.return_value = False
        with pytest.raises(CategoryNotFoundError):
            await catalog.create_product(db, SELLER_ID, _create_request())
        products.insert.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()


class TestReviews:
    async def test_creates_review_and_recomputes_rating(
        self, catalog: CatalogService, products: AsyncMock, reviews: AsyncMock, db: MagicMock
    ) -> None:
        product = _product()
        products.get_by_slug_or_id.return_value = product
        reviews.exists.return_value = False
        reviews.insert.return_value = _review(product.id)

        out = await catalog.create_review(
            db, product.slug, "u-1", CreateReviewRequest(rating=4, comment="Works well")
        )

        assert out.rating == 4
        reviews.recompute_product_rating.assert_awaited_once_with(db, product.id)
        db.commit.assert_awaited_once()

    async def test_duplicate_review_rejected(
        self, catalog: CatalogService, products: AsyncMock, reviews: AsyncMock, db: MagicMock
    ) -> None:
        products.get_by_slug_or_id.return_value = _product()
        reviews.exists.return_value = True
        with pytest.raises(DuplicateReviewError):
            await catalog.create_review(
                db, "x", "u-1", CreateReviewRequest(rating=5, comment="again")
            )
        db.rollback.assert_awaited_once()

    async def test_concurrent_duplicate_maps_to_conflict(
        self, catalog: CatalogService, products: AsyncMock, reviews: AsyncMock, db: MagicMock
    ) -> None:
        products.get_by_slug_or_id.return_value = _product()
        reviews.exists.return_value = False
        reviews.insert.side_effect = _integrity_error()
        with pytest.raises(DuplicateReviewError):
            await catalog.create_review(
                db, "x", "u-1", CreateReviewRequest(rating=5, comment="race")
            )
        reviews.recompute_product_rating.assert_not_awaited()

    async def test_list_only_visible(
        self, catalog: CatalogService, products: AsyncMock, reviews: AsyncMock, db: MagicMock
    ) -> None:
        product = _product()
        products.get_by_slug_or_id.return_value = product
        reviews.list_for_product.return_value = [_review(product.id)]
        result = await catalog.list_reviews(db, product.slug)
        reviews.list_for_product.assert_awaited_once_with(db, product.id, visible_only=True)
        assert result.total == 1


class TestSellerService:
    async def test_signup_twice_conflicts(self, db: MagicMock) -> None:
        sellers = AsyncMock()
        sellers.get_by_user.return_value = MagicMock()
        service = SellerService(sellers=sellers, products=AsyncMock())
        with pytest.raises(SellerProfileExistsError):
            await service.signup(
                db, SELLER_ID, SellerSignupRequest(businessName="Shakti Electricals")
            )

    async def test_signup_slug_from_business_name(self, db: MagicMock) -> None:
        sellers = AsyncMock()
        sellers.get_by_user.return_value = None
        sellers.slugs_like.return_value = ["shakti-electricals"]
        sellers.insert.side_effect = lambda _db, fields: SellerProfile(
            user_id=fields["user_id"],
            business_name=fields["business_name"],
            slug=fields["slug"],
            is_enterprise=fields["is_enterprise"],
            gst_number=None,
            city=None,
            state=None,
            created_at=NOW,
        )
        service = SellerService(sellers=sellers, products=AsyncMock())

        out = await service.signup(
            db,
            SELLER_ID,
            SellerSignupRequest(businessName=" Shakti Electricals ", isEnterprise=True),
        )

        assert out.slug == "shakti-electricals-1"
        assert out.is_enterprise is True
        db.commit.assert_awaited_once()

    async def test_unknown_public_profile(self, db: MagicMock) -> None:
        sellers = AsyncMock()
        sellers.get_by_slug.return_value = None
        with pytest.raises(SellerNotFoundError):
            await SellerService(sellers=sellers, products=AsyncMock()).public_profile(db, "x")


class TestAdminCatalogService:
    async def test_list_includes_export_url(self, db: MagicMock) -> None:
        products = AsyncMock()
        row = AdminProductRow(_product(), "Asha", "asha@example.in", None)
        products.admin_list.return_value = ([row], 1)
        f = AdminProductFilter(q="exide")

        result = await AdminCatalogService(products=products, reviews=AsyncMock()).list_products(
            db, f
        )

        assert result.export_url == "/api/admin/products/export?q=exide"
        assert result.total_pages == 1
        assert result.items[0].account_type == "individual"

    async def test_export_is_capped(self, db: MagicMock) -> None:
        products = AsyncMock()
        products.admin_export.return_value = []
        f = AdminProductFilter()
        csv_text = await AdminCatalogService(products=products, reviews=AsyncMock()).export_csv(
            db, f
        )
        products.admin_export.assert_awaited_once_with(db, f, EXPORT_ROW_LIMIT)
        assert csv_text.startswith("ID,Name,SKU")

    async def test_update_missing_product(self, db: MagicMock) -> None:
        products = AsyncMock()
        products.set_flags.return_value = None
        service = AdminCatalogService(products=products, reviews=AsyncMock())
        with pytest.raises(ProductNotFoundError):
            await service.update_product(db, "missing", False, None)
        db.rollback.assert_awaited_once()

    async def test_hiding_review_recomputes_rating(self, db: MagicMock) -> None:
        reviews = AsyncMock()
        review = _review("p-1")
        reviews.set_visibility.return_value = review
        service = AdminCatalogService(products=AsyncMock(), reviews=reviews)

        await service.moderate_review(db, review.id, False)

        reviews.recompute_product_rating.assert_awaited_once_with(db, "p-1")
        db.commit.assert_awaited_once()

    async def test_unknown_review(self, db: MagicMock) -> None:
        reviews = AsyncMock()
        reviews.set_visibility.return_value = None
        service = AdminCatalogService(products=AsyncMock(), reviews=reviews)
        with pytest.raises(ReviewNotFoundError):
            await service.moderate_review(db, "r-1", True)


class TestSearch:
    async def test_blank_query_rejected(
        self, catalog: CatalogService, products: AsyncMock, db: MagicMock
    ) -> None:
        with pytest.raises(ValidationError):
            await catalog.search(db, "   ")
        products.search.assert_not_awaited()

    async def test_trimmed_query_and_result_cap(
        self, catalog: CatalogService, products: AsyncMock, db: MagicMock
    ) -> None:
        products.search.return_value = [_product()]
        result = await catalog.search(db, "  exide ")
        products.search.assert_awaited_once_with(db, "exide", SEARCH_RESULT_LIMIT)
        assert result.query == "exide"
        assert result.total == 1
        assert result.items[0].slug == "exide-150ah-battery"


def _category(**overrides: object) -> Category:
    fields: dict[str, object] = {
        "id": CATEGORY_ID,
        "name": "Batteries",
        "slug": "batteries",
        "description": None,
        "product_count": 0,
    }
    fields.update(overrides)
    return Category(**fields)  # type: ignore[arg-type]


class TestAdminCategories:
    @pytest.fixture
    def service(self, categories: AsyncMock) -> AdminCatalogService:
        return AdminCatalogService(
            products=AsyncMock(), reviews=AsyncMock(), categories=categories, sellers=AsyncMock()
        )

    async def test_create_slugifies_name_and_avoids_taken_slugs(
        self, service: AdminCatalogService, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.slugs_like.return_value = ["solar-inverters"]
        categories.insert.side_effect = lambda _db, name, slug, description: _category(
            name=name, slug=slug, description=description
        )

        out = await service.create_category(
            db, AdminCategoryCreate(name=" Solar Inverters ", description="  ")
        )

        categories.slugs_like.assert_awaited_once_with(db, "solar-inverters")
        assert out.slug == "solar-inverters-1"
        assert out.name == "Solar Inverters"
        assert out.description is None
        db.commit.assert_awaited_once()

    async def test_create_prefers_explicit_slug(
        self, service: AdminCatalogService, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.slugs_like.return_value = []
        categories.insert.side_effect = lambda _db, name, slug, description: _category(slug=slug)
        out = await service.create_category(
            db, AdminCategoryCreate(name="Cables", slug="Wires & Cables")
        )
        assert out.slug == "wires-cables"

    async def test_create_rejects_unsluggable_name(
        self, service: AdminCatalogService, categories: AsyncMock, db: MagicMock
    ) -> None:
        with pytest.raises(ValidationError):
            await service.create_category(db, AdminCategoryCreate(name="!!!"))
        categories.insert.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_update_keeps_own_slug(
        self, service: AdminCatalogService, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.get_by_id.return_value = _category()
        categories.slugs_like.return_value = ["batteries"]
        categories.update.return_value = _category(name="Batteries & UPS")

        await service.update_category(
            db, CATEGORY_ID, AdminCategoryPatch(name="Batteries & UPS", slug="batteries")
        )

        categories.update.assert_awaited_once_with(
            db, CATEGORY_ID, {"name": "Batteries & UPS", "slug": "batteries"}
        )

    async def test_update_blank_description_clears_it(
        self, service: AdminCatalogService, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.get_by_id.return_value = _category(description="Old")
        categories.update.return_value = _category()
        await service.update_category(db, CATEGORY_ID, AdminCategoryPatch(description=""))
        categories.update.assert_awaited_once_with(db, CATEGORY_ID, {"description": None})

    async def test_update_without_fields_rejected(
        self, service: AdminCatalogService, categories: AsyncMock, db: MagicMock
    ) -> None:
        with pytest.raises(ValidationError):
            await service.update_category(db, CATEGORY_ID, AdminCategoryPatch())
        categories.get_by_id.assert_not_awaited()

    async def test_update_missing_category(
        self, service: AdminCatalogService, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.get_by_id.return_value = None
        with pytest.raises(CategoryNotFoundError):
            await service.update_category(db, "nope", AdminCategoryPatch(name="X"))
        db.rollback.assert_awaited_once()

    async def test_delete_in_use_conflicts(
        self, service: AdminCatalogService, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.get_by_id.return_value = _category()
        categories.has_products.return_value = True
        with pytest.raises(CategoryInUseError):
            await service.delete_category(db, CATEGORY_ID)
        categories.delete.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_delete_unused(
        self, service: AdminCatalogService, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.get_by_id.return_value = _category()
        categories.has_products.return_value = False
        await service.delete_category(db, CATEGORY_ID)
        categories.delete.assert_awaited_once_with(db, CATEGORY_ID)
        db.commit.assert_awaited_once()

    async def test_delete_missing(
        self, service: AdminCatalogService, categories: AsyncMock, db: MagicMock
    ) -> None:
        categories.get_by_id.return_value = None
        with pytest.raises(CategoryNotFoundError):
            await service.delete_category(db, "nope")


def _seller(is_active: bool = True) -> SellerProfile:
    return SellerProfile(
        user_id=SELLER_ID,
        business_name="Shakti Electricals",
        slug="shakti-electricals",
        is_enterprise=False,
        gst_number=None,
        city=None,
        state=None,
        created_at=NOW,
        is_active=is_active,
    )


class TestSellerActivation:
    async def test_deactivate(self, db: MagicMock) -> None:
        sellers = AsyncMock()
        sellers.set_active.return_value = _seller(is_active=False)
        service = AdminCatalogService(products=AsyncMock(), reviews=AsyncMock(), sellers=sellers)

        out = await service.set_seller_active(db, SELLER_ID, False)

        sellers.set_active.assert_awaited_once_with(db, SELLER_ID, False)
        assert out.is_active is False
        db.commit.assert_awaited_once()

    async def test_unknown_seller(self, db: MagicMock) -> None:
        sellers = AsyncMock()
        sellers.set_active.return_value = None
        service = AdminCatalogService(products=AsyncMock(), reviews=AsyncMock(), sellers=sellers)
        with pytest.raises(SellerNotFoundError):
            await service.set_seller_active(db, "nobody", True)
        db.rollback.assert_awaited_once()

    async def test_inactive_public_profile_hidden(self, db: MagicMock) -> None:
        sellers = AsyncMock()
        sellers.get_by_slug.return_value = _seller(is_active=False)
        products = AsyncMock()
        with pytest.raises(SellerNotFoundError):
            await SellerService(sellers=sellers, products=products).public_profile(
                db, "shakti-electricals"
            )
        products.list_by_seller.assert_not_awaited()
