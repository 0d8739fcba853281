"""Admin moderation endpoints (admin_session cookie required).

GET    /admin/products            — filtered moderation table
GET    /admin/products/export     — same filters as CSV
PATCH  /admin/products/{id}       — toggle isActive / isFeatured
GET    /admin/reviews             — reviews, optionally by visibility
PATCH  /admin/reviews/{id}        — show / hide a review
POST   /admin/categories          — create a category (slug from slug or name)
PATCH  /admin/categories/{id}     — rename, re-slug or re-describe
DELETE /admin/categories/{id}     — delete an unused category
PATCH  /admin/sellers/{userId}    — activate / deactivate a seller profile
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_catalog.api.router import invalidate_catalog_cache
from src.mp_catalog.application.export import EXPORT_FILENAME
from src.mp_catalog.application.schemas import (
    AdminActivePatch,
    AdminCategoryCreate,
    AdminCategoryPatch,
    AdminProductPatch,
    AdminReviewPatch,
)
from src.mp_catalog.application.service import AdminCatalogService
from src.mp_catalog.domain.admin_filter import parse_admin_filter
from src.mp_common.database import get_db_session
from src.mp_common.errors import ValidationError
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.admin.session import AdminSession
from src.mp_gateway.auth.dependencies import require_admin
from src.mp_gateway.middleware.cache import api_cache

router = APIRouter(prefix="/admin", tags=["admin"])

_service = AdminCatalogService()


@router.get("/products")
async def list_products(
    request: Request,
    admin: Annotated[AdminSession, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    f = parse_admin_filter(request.query_params)
    result = await _service.list_products(db, f)
    return success_response(result.model_dump(), request)


@router.get("/products/export")
async def export_products(
    request: Request,
    admin: Annotated[AdminSession, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> Response:
    f = parse_admin_filter(request.query_params)
    body = await _service.export_csv(db, f)
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"',
            "Cache-Control": "no-store",
        },
    )


@router.patch("/products/{product_id}")
async def update_product(
    product_id: str,
    request: Request,
    body: AdminProductPatch,
    admin: Annotated[AdminSession, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    if body.is_active is None and body.is_featured is None:
        raise ValidationError("Provide isActive and/or isFeatured")
    result = await _service.update_product(db, product_id, body.is_active, body.is_featured)
    invalidate_catalog_cache()
    return success_response(result.model_dump(), request)


@router.get("/reviews")
async def list_reviews(
    request: Request,
    admin: Annotated[AdminSession, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    visible: bool | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    result = await _service.list_reviews(db, visible, page, limit)
    return success_response(result.model_dump(), request)


@router.patch("/reviews/{review_id}")
async def moderate_review(
    review_id: str,
    request: Request,
    body: AdminReviewPatch,
    admin: Annotated[AdminSession, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.moderate_review(db, review_id, body.is_visible)
    api_cache.invalidate("/api/products")
    return success_response(result.model_dump(), request)


@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def create_category(
    request: Request,
    body: AdminCategoryCreate,
    admin: Annotated[AdminSession, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_category(db, body)
    invalidate_catalog_cache()
    resp = success_response(result.model_dump(), request)
    resp.message = "Category created"
    return resp


@router.patch("/categories/{category_id}")
async def update_category(
    category_id: str,
    request: Request,
    body: AdminCategoryPatch,
    admin: Annotated[AdminSession, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update_category(db, category_id, body)
    invalidate_catalog_cache()
    return success_response(result.model_dump(), request)


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: str,
    request: Request,
    admin: Annotated[AdminSession, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    await _service.delete_category(db, category_id)
    invalidate_catalog_cache()
    return success_response({"deleted": True, "id": category_id}, request)


@router.patch("/sellers/{user_id}")
async def set_seller_active(
    user_id: str,
    request: Request,
    body: AdminActivePatch,
    admin: Annotated[AdminSession, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.set_seller_active(db, user_id, body.is_active)
    return success_response(result.model_dump(), request)
