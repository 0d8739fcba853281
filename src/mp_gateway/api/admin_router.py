"""Admin session endpoints (login, logout, session validation) and the admin
user activation toggle.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.admin.session import (
    ADMIN_COOKIE_NAME,
    AdminSession,
    admin_sessions,
    authenticate_admin,
)
from src.mp_gateway.auth.dependencies import require_admin
from src.mp_gateway.user.schemas import AdminUserPatch
from src.mp_gateway.user.service import UserService

router = APIRouter(prefix="/admin", tags=["admin"])
_users = UserService()


class AdminLoginRequest(BaseModel):
    username: str
    password: str


@router.post("/login", summary="Admin login")
async def admin_login(request: Request, body: AdminLoginRequest) -> JSONResponse:
    authenticate_admin(body.username, body.password)
    ttl = settings.ADMIN_SESSION_TTL_SECONDS
    token, session = admin_sessions.issue(ttl)

    resp = success_response(
        {"expires_at": session.expires_at.isoformat()}, request
    )
    resp.message = "Login successful"
    response = JSONResponse(content=resp.model_dump())
    response.set_cookie(
        key=ADMIN_COOKIE_NAME,
        value=token,
        max_age=ttl,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )
    return response


@router.post("/logout", summary="Admin logout")
async def admin_logout(request: Request) -> JSONResponse:
    token = request.cookies.get(ADMIN_COOKIE_NAME)
    if token:
        session = admin_sessions.verify(token)
        if session is not None:
            admin_sessions.revoke(session.jti)

    resp = success_response({"logged_out": True}, request)
    response = JSONResponse(content=resp.model_dump())
    response.delete_cookie(ADMIN_COOKIE_NAME, path="/")
    return response


@router.get("/session/validate", summary="Check the admin session")
async def validate_session(request: Request) -> JSONResponse:
    token = request.cookies.get(ADMIN_COOKIE_NAME)
    session = admin_sessions.verify(token) if token else None
    data = {
        "valid": session is not None,
        "expires_at": session.expires_at.isoformat() if session else None,
    }
    resp = success_response(data, request)
    return JSONResponse(content=resp.model_dump(), headers={"Cache-Control": "no-store"})


@router.patch("/users/{user_id}", summary="Enable or disable a user account")
async def set_user_active(
    user_id: str,
    request: Request,
    body: AdminUserPatch,
    admin: Annotated[AdminSession, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    async with db.begin():
        user = await _users.set_active(db, user_id, body.is_active)
    return success_response(user.model_dump(), request)
