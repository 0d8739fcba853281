"""mp_catalog storefront endpoints.

GET  /products                    — filtered, sorted, paginated listing (cached)
POST /products                    — seller creates a product
GET  /products/{slug}             — product by slug or id (cached)
GET  /products/{slug}/reviews     — visible reviews, newest first
POST /products/{slug}/reviews     — one review per user per product
GET  /search?query=               — active products matching name, description, brand or model
GET  /categories                  — categories with active product counts (cached)
GET  /categories/{slug}
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_catalog.application.schemas import CreateProductRequest, CreateReviewRequest
from src.mp_catalog.application.service import CatalogService
from src.mp_catalog.domain.models import ProductQuery
from src.mp_catalog.infrastructure.db_models import SellerProfileORM
from src.mp_common.database import get_db_session
from src.mp_common.money import rupees_to_paise
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import get_current_user, require_seller
from src.mp_gateway.middleware.cache import api_cache
from src.mp_gateway.user.db_models import UserModel

router = APIRouter(tags=["catalog"])

_service = CatalogService()


def invalidate_catalog_cache() -> None:
    api_cache.invalidate("/api/products")
    api_cache.invalidate("/api/categories")


@router.get("/products")
async def list_products(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    category: str | None = Query(None, description="Category slug"),
    min_price: float | None = Query(None, alias="minPrice", ge=0, description="Rupees"),
    max_price: float | None = Query(None, alias="maxPrice", ge=0, description="Rupees"),
    brand: str | None = Query(None),
    featured: bool = Query(False),
    q: str | None = Query(None, max_length=200),
    sort: str = Query("newest"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
) -> ApiResponse:
    query = ProductQuery(
        category_slug=category or None,
        min_price=rupees_to_paise(min_price) if min_price is not None else None,
        max_price=rupees_to_paise(max_price) if max_price is not None else None,
        brand=brand or None,
        featured=featured,
        q=(q or "").strip() or None,
        sort=sort,
        page=page,
        limit=limit,
    )
    result = await _service.list_products(db, query)
    return success_response(result.model_dump(), request)


@router.get("/search")
async def search_products(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    query: str | None = Query(None, max_length=200),
) -> ApiResponse:
    result = await _service.search(db, query)
    return success_response(result.model_dump(), request)


@router.post("/products", status_code=status.HTTP_201_CREATED)
async def create_product(
    request: Request,
    body: CreateProductRequest,
    seller: Annotated[SellerProfileORM, Depends(require_seller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_product(db, str(seller.user_id), body)
    invalidate_catalog_cache()
    resp = success_response(result.model_dump(), request)
    resp.message = "Product created"
    return resp


@router.get("/products/{slug}")
async def get_product(
    slug: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_product(db, slug)
    return success_response(result.model_dump(), request)


@router.get("/products/{slug}/reviews")
async def list_reviews(
    slug: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.list_reviews(db, slug)
    return success_response(result.model_dump(), request)


@router.post("/products/{slug}/reviews", status_code=status.HTTP_201_CREATED)
async def create_review(
    slug: str,
    request: Request,
    body: CreateReviewRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_review(db, slug, str(current_user.id), body)
    api_cache.invalidate("/api/products")
    resp = success_response(result.model_dump(), request)
    resp.message = "Review submitted"
    return resp


@router.get("/categories")
async def list_categories(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.list_categories(db)
    return success_response([c.model_dump() for c in result], request)


@router.get("/categories/{slug}")
async def get_category(
    slug: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_category(db, slug)
    return success_response(result.model_dump(), request)
