"""Domain models for mp_catalog — pure dataclasses, no I/O."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class Category:
    id: str
    name: str
    slug: str
    description: str | None
    product_count: int = 0


@dataclass
class SellerProfile:
    user_id: str
    business_name: str
    slug: str
    is_enterprise: bool
    gst_number: str | None
    city: str | None
    state: str | None
    created_at: datetime
    is_active: bool = True


@dataclass
class Product:
    id: str
    name: str
    slug: str
    description: str
    price: int  # paise
    stock: int
    category_id: str
    seller_id: str
    brand: str | None
    model: str | None
    sku: str | None
    tags: str | None
    image_urls: list[str]
    specifications: dict[str, Any]
    is_active: bool
    is_featured: bool
    rating: float
    review_count: int
    sales_count: int
    created_at: datetime
    updated_at: datetime
    category_name: str | None = None
    category_slug: str | None = None


@dataclass
class Review:
    id: str
    product_id: str
    user_id: str
    rating: int
    title: str | None
    comment: str
    is_visible: bool
    created_at: datetime
    author_name: str | None = None


@dataclass
class AdminProductRow:
    """A product as the moderation table and CSV export see it."""

    product: Product
    uploader_name: str | None
    uploader_email: str | None
    is_enterprise: bool | None  # None = uploader has no seller profile


@dataclass
class ProductQuery:
    """Public storefront listing parameters (prices in paise)."""

    category_slug: str | None = None
    min_price: int | None = None
    max_price: int | None = None
    brand: str | None = None
    featured: bool = False
    q: str | None = None
    sort: str = "newest"
    page: int = 1
    limit: int = 20


@dataclass
class SellerDashboard:
    product_count: int
    active_count: int
    order_count: int
    units_sold: int
    revenue: int  # paise

