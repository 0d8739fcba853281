"""Account and token endpoints.

POST /auth/signup    — create a buyer account (201)
POST /auth/login     — email + password -> access/refresh token pair
POST /auth/refresh   — refresh token -> new access token
GET  /auth/me        — current user, with seller profile slug if any
GET  /csrf-token     — issue the double-submit token and cookie
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_gateway.middleware.csrf import csrf_protection
from src.mp_gateway.user.db_models import UserModel
from src.mp_gateway.user.schemas import (
    CsrfTokenResponse,
    LoginRequest,
    RefreshRequest,
    SignupRequest,
)
from src.mp_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
csrf_router = APIRouter(tags=["csrf"])
_service = UserService()


def _envelope(data: BaseModel, request: Request, message: str = "success") -> ApiResponse:
    resp = success_response(data.model_dump(), request)
    resp.message = message
    return resp


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    request: Request,
    body: SignupRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    async with db.begin():
        user = await _service.signup(db, body)
    return _envelope(user, request, "Account created")


@router.post("/login")
async def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    tokens = await _service.login(db, body.email, body.password)
    return _envelope(tokens, request, "Login successful")


@router.post("/refresh")
async def refresh(request: Request, body: RefreshRequest) -> ApiResponse:
    token = await _service.refresh(body.refresh_token)
    return _envelope(token, request, "Token refreshed")


@router.get("/me")
async def me(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return _envelope(await _service.me(db, current_user), request)


@csrf_router.get("/csrf-token")
async def issue_csrf_token(request: Request) -> JSONResponse:
    token = csrf_protection.generate_token()
    data = CsrfTokenResponse(csrf_token=token, header_name=csrf_protection.config.header_name)
    response = JSONResponse(content=_envelope(data, request).model_dump())
    response.set_cookie(value=token, **csrf_protection.cookie_kwargs())
    response.headers["Cache-Control"] = "no-store"
    return response
