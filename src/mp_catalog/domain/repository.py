"""Repository Protocols — dependency inversion for testability.

Unit tests inject mocks that conform to these Protocols.
infrastructure/persistence.py provides the real implementations.
"""

from typing import Any, Protocol

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


class ProductRepositoryProtocol(Protocol):
    async def list_products(
        self, db: AsyncSession, query: ProductQuery
    ) -> tuple[list[Product], int]: ...

    async def search(self, db: AsyncSession, query: str, limit: int) -> list[Product]: ...

    async def get_by_slug_or_id(self, db: AsyncSession, key: str) -> Product | None: ...

    async def get_by_id(self, db: AsyncSession, product_id: str) -> Product | None: ...

    async def slugs_like(self, db: AsyncSession, base: str) -> list[str]: ...

    async def insert(self, db: AsyncSession, fields: dict[str, Any]) -> Product: ...

    async def list_by_seller(
        self, db: AsyncSession, seller_id: str, active_only: bool
    ) -> list[Product]: ...

    async def admin_list(
        self, db: AsyncSession, f: AdminProductFilter
    ) -> tuple[list[AdminProductRow], int]: ...

    async def admin_export(
        self, db: AsyncSession, f: AdminProductFilter, limit: int
    ) -> list[AdminProductRow]: ...

    async def set_flags(
        self,
        db: AsyncSession,
        product_id: str,
        is_active: bool | None,
        is_featured: bool | None,
    ) -> Product | None: ...


class CategoryRepositoryProtocol(Protocol):
    async def list_with_counts(self, db: AsyncSession) -> list[Category]: ...

    async def get_by_slug(self, db: AsyncSession, slug: str) -> Category | None: ...

    async def exists(self, db: AsyncSession, category_id: str) -> bool: ...

    async def get_by_id(self, db: AsyncSession, category_id: str) -> Category | None: ...

    async def slugs_like(self, db: AsyncSession, base: str) -> list[str]: ...

    async def insert(
        self, db: AsyncSession, name: str, slug: str, description: str | None
    ) -> Category: ...

    async def update(
        self, db: AsyncSession, category_id: str, values: dict[str, Any]
    ) -> Category | None: ...

    async def has_products(self, db: AsyncSession, category_id: str) -> bool: ...

    async def delete(self, db: AsyncSession, category_id: str) -> bool: ...


class ReviewRepositoryProtocol(Protocol):
    async def list_for_product(
        self, db: AsyncSession, product_id: str, visible_only: bool
    ) -> list[Review]: ...

    async def exists(self, db: AsyncSession, product_id: str, user_id: str) -> bool: ...

    async def insert(
        self,
        db: AsyncSession,
        product_id: str,
        user_id: str,
        rating: int,
        title: str | None,
        comment: str,
    ) -> Review: ...

    async def recompute_product_rating(self, db: AsyncSession, product_id: str) -> None: ...

    async def list_all(
        self, db: AsyncSession, visible: bool | None, limit: int, offset: int
    ) -> tuple[list[Review], int]: ...

    async def set_visibility(
        self, db: AsyncSession, review_id: str, is_visible: bool
    ) -> Review | None: ...


class SellerRepositoryProtocol(Protocol):
    async def get_by_user(self, db: AsyncSession, user_id: str) -> SellerProfile | None: ...

    async def get_by_slug(self, db: AsyncSession, slug: str) -> SellerProfile | None: ...

    async def slugs_like(self, db: AsyncSession, base: str) -> list[str]: ...

    async def insert(self, db: AsyncSession, fields: dict[str, Any]) -> SellerProfile: ...

    async def set_active(
        self, db: AsyncSession, user_id: str, is_active: bool
    ) -> SellerProfile | None: ...

    async def dashboard(self, db: AsyncSession, seller_id: str) -> SellerDashboard: ...
