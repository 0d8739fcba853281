"""Seller onboarding and seller self-service.

POST /sellers/signup      — create the caller's seller profile
GET  /sellers/{slug}      — public profile with active products
GET  /sell/products       — caller's own products, active or not
GET  /sell/dashboard      — product/order/revenue summary
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_catalog.application.schemas import SellerSignupRequest
from src.mp_catalog.application.service import SellerService
from src.mp_catalog.infrastructure.db_models import SellerProfileORM
from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import get_current_user, require_seller
from src.mp_gateway.user.db_models import UserModel

router = APIRouter(tags=["sellers"])

_service = SellerService()


@router.post("/sellers/signup", status_code=status.HTTP_201_CREATED)
async def seller_signup(
    request: Request,
    body: SellerSignupRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.signup(db, str(current_user.id), body)
    resp = success_response(result.model_dump(), request)
    resp.message = "Seller profile created"
    return resp


@router.get("/sellers/{slug}")
async def seller_profile(
    slug: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.public_profile(db, slug)
    return success_response(result.model_dump(), request)


@router.get("/sell/products")
async def my_products(
    request: Request,
    seller: Annotated[SellerProfileORM, Depends(require_seller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.my_products(db, str(seller.user_id))
    return success_response([p.model_dump() for p in result], request)


@router.get("/sell/dashboard")
async def dashboard(
    request: Request,
    seller: Annotated[SellerProfileORM, Depends(require_seller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.dashboard(db, str(seller.user_id))
    return success_response(result.model_dump(), request)
