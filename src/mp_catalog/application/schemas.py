"""Pydantic schemas for mp_catalog.

Request bodies accept the storefront's camelCase keys; responses are
snake_case and wrapped in ApiResponse at the router layer. Prices leave the
API as int paise plus a display string.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.mp_catalog.domain.models import (
    AdminProductRow,
    Category,
    Product,
    Review,
    SellerDashboard,
    SellerProfile,
)
from src.mp_catalog.domain.rules import normalize_image_urls
from src.mp_common.money import paise_to_display


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateProductRequest(_CamelModel):
    name: str = Field(..., max_length=200)
    description: str
    price: float = Field(..., gt=0, description="Rupees")
    image_urls: list[str] = Field(..., alias="imageUrls")
    category_id: str = Field(..., alias="categoryId", min_length=1)
    stock: int = Field(0, ge=0)
    brand: str | None = Field(None, max_length=100)
    model: str | None = Field(None, max_length=100)
    sku: str | None = Field(None, max_length=64)
    tags: str | None = None
    specifications: dict[str, Any] | None = None

    @field_validator("name", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("image_urls", mode="before")
    @classmethod
    def valid_image_urls(cls, v: Any) -> list[str]:
        urls = normalize_image_urls(v)
        if urls is None:
            raise ValueError("imageUrls must contain valid URLs")
        return urls


class CreateReviewRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    title: str | None = Field(None, max_length=200)
    comment: str = Field(..., min_length=1, max_length=2000)

    @field_validator("comment")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("comment must not be empty")
        return v


class SellerSignupRequest(_CamelModel):
    business_name: str = Field(..., alias="businessName", min_length=2, max_length=200)
    is_enterprise: bool = Field(False, alias="isEnterprise")
    gst_number: str | None = Field(
        None, alias="gstNumber", pattern=r"^\d{2}[A-Z]{5}\d{4}[A-Z][1-9A-Z]Z[0-9A-Z]$"
    )
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)


class AdminProductPatch(_CamelModel):
    is_active: bool | None = Field(None, alias="isActive")
    is_featured: bool | None = Field(None, alias="isFeatured")


class AdminReviewPatch(_CamelModel):
    is_visible: bool = Field(..., alias="isVisible")


class AdminActivePatch(_CamelModel):
    is_active: bool = Field(..., alias="isActive")


class AdminCategoryCreate(BaseModel):
    name: str = Field(..., max_length=128)
    slug: str | None = Field(None, max_length=160)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name required")
        return v

    @field_validator("slug", "description")
    @classmethod
    def blank_is_none(cls, v: str | None) -> str | None:
        return (v or "").strip() or None


class AdminCategoryPatch(BaseModel):
    """Omitted or blank name/slug are left alone; a blank description clears it."""

    name: str | None = Field(None, max_length=128)
    slug: str | None = Field(None, max_length=160)
    description: str | None = None

    @field_validator("name", "slug", "description")
    @classmethod
    def blank_is_none(cls, v: str | None) -> str | None:
        return (v or "").strip() or None

    def changes(self) -> dict[str, str | None]:
        values: dict[str, str | None] = {}
        if self.name is not None:
            values["name"] = self.name
        if "description" in self.model_fields_set:
            values["description"] = self.description
        return values


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class CategoryOut(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None
    product_count: int

    @classmethod
    def from_domain(cls, c: Category) -> "CategoryOut":
        return cls(
            id=c.id,
            name=c.name,
            slug=c.slug,
            description=c.description,
            product_count=c.product_count,
        )


class ProductOut(BaseModel):
    id: str
    name: str
    slug: str
    description: str
    price: int
    price_display: str
    stock: int
    category_id: str
    category_name: str | None
    category_slug: str | None
    seller_id: str
    brand: str | None
    model: str | None
    sku: str | None
    tags: str | None
    images: list[str]
    image_url: str | None
    specifications: dict[str, Any]
    is_active: bool
    is_featured: bool
    rating: float
    review_count: int
    sales_count: int
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, p: Product) -> "ProductOut":
        return cls(
            id=p.id,
            name=p.name,
            slug=p.slug,
            description=p.description,
            price=p.price,
            price_display=paise_to_display(p.price),
            stock=p.stock,
            category_id=p.category_id,
            category_name=p.category_name,
            category_slug=p.category_slug,
            seller_id=p.seller_id,
            brand=p.brand,
            model=p.model,
            sku=p.sku,
            tags=p.tags,
            images=p.image_urls,
            image_url=p.image_urls[0] if p.image_urls else None,
            specifications=p.specifications,
            is_active=p.is_active,
            is_featured=p.is_featured,
            rating=p.rating,
            review_count=p.review_count,
            sales_count=p.sales_count,
            created_at=p.created_at.isoformat(),
            updated_at=p.updated_at.isoformat(),
        )


class ProductListResponse(BaseModel):
    items: list[ProductOut]
    total: int
    page: int
    limit: int
    total_pages: int


class ProductSearchResponse(BaseModel):
    query: str
    items: list[ProductOut]
    total: int


class ReviewOut(BaseModel):
    id: str
    product_id: str
    user_id: str
    author_name: str | None
    rating: int
    title: str | None
    comment: str
    is_visible: bool
    created_at: str

    @classmethod
    def from_domain(cls, r: Review) -> "ReviewOut":
        return cls(
            id=r.id,
            product_id=r.product_id,
            user_id=r.user_id,
            author_name=r.author_name,
            rating=r.rating,
            title=r.title,
            comment=r.comment,
            is_visible=r.is_visible,
            created_at=r.created_at.isoformat(),
        )


class ReviewListResponse(BaseModel):
    items: list[ReviewOut]
    total: int


class SellerProfileOut(BaseModel):
    user_id: str
    business_name: str
    slug: str
    is_enterprise: bool
    gst_number: str | None
    city: str | None
    state: str | None
    is_active: bool
    created_at: str

    @classmethod
    def from_domain(cls, s: SellerProfile) -> "SellerProfileOut":
        return cls(
            user_id=s.user_id,
            business_name=s.business_name,
            slug=s.slug,
            is_enterprise=s.is_enterprise,
            gst_number=s.gst_number,
            city=s.city,
            state=s.state,
            is_active=s.is_active,
            created_at=s.created_at.isoformat(),
        )


class SellerPublicProfile(BaseModel):
    profile: SellerProfileOut
    products: list[ProductOut]


class SellerDashboardOut(BaseModel):
    product_count: int
    active_count: int
    order_count: int
    units_sold: int
    revenue: int
    revenue_display: str

    @classmethod
    def from_domain(cls, d: SellerDashboard) -> "SellerDashboardOut":
        return cls(
            product_count=d.product_count,
            active_count=d.active_count,
            order_count=d.order_count,
            units_sold=d.units_sold,
            revenue=d.revenue,
            revenue_display=paise_to_display(d.revenue),
        )


def account_label(is_enterprise: bool | None) -> str:
    return "Enterprise" if is_enterprise else "Individual"


class AdminProductItem(BaseModel):
    id: str
    name: str
    slug: str
    sku: str | None
    category_name: str | None
    uploader_id: str
    uploader_name: str | None
    uploader_email: str | None
    account_type: str
    is_active: bool
    is_featured: bool
    stock: int
    price: int
    price_display: str
    created_at: str

    @classmethod
    def from_domain(cls, row: AdminProductRow) -> "AdminProductItem":
        p = row.product
        return cls(
            id=p.id,
            name=p.name,
            slug=p.slug,
            sku=p.sku,
            category_name=p.category_name,
            uploader_id=p.seller_id,
            uploader_name=row.uploader_name,
            uploader_email=row.uploader_email,
            account_type=account_label(row.is_enterprise).lower(),
            is_active=p.is_active,
            is_featured=p.is_featured,
            stock=p.stock,
            price=p.price,
            price_display=paise_to_display(p.price),
            created_at=p.created_at.isoformat(),
        )


class AdminProductListResponse(BaseModel):
    items: list[AdminProductItem]
    total: int
    page: int
    limit: int
    total_pages: int
    export_url: str
