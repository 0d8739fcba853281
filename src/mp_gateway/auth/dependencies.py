"""FastAPI dependencies: get_current_user, require_seller, require_admin.

Usage in any protected router:
    from src.mp_gateway.auth.dependencies import get_current_user

    @router.get("/protected")
    async def protected(user: UserModel = Depends(get_current_user)):
        ...
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_catalog.infrastructure.db_models import SellerProfileORM
from src.mp_common.database import get_db_session
from src.mp_common.errors import (
    AccountDisabledError,
    AdminAuthRequiredError,
    InvalidCredentialsError,
    SellerDisabledError,
    SellerProfileRequiredError,
)
from src.mp_gateway.admin.session import ADMIN_COOKIE_NAME, AdminSession, admin_sessions
from src.mp_gateway.auth.jwt_handler import decode_token
from src.mp_gateway.user.db_models import UserModel

# tokenUrl tells Swagger UI where to get a token (used for the "Authorize" button)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Extract and validate the JWT Bearer token, return the UserModel.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    Raises HTTP 403 (AccountDisabledError) if the user account is disabled.
    """
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id: str | None = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION

    if not user.is_active:
        raise AccountDisabledError()

    return user


async def require_seller(
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SellerProfileORM:
    """Return the caller's seller profile.

    403 if they never signed up to sell, or an admin deactivated the profile.
    """
    result = await db.execute(
        select(SellerProfileORM).where(SellerProfileORM.user_id == current_user.id)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        raise SellerProfileRequiredError()
    if not profile.is_active:
        raise SellerDisabledError()
    return profile


async def require_admin(request: Request) -> AdminSession:
    """Validate the admin_session cookie against the in-process session store."""
    token = request.cookies.get(ADMIN_COOKIE_NAME)
    if not token:
        raise AdminAuthRequiredError()
    session = admin_sessions.verify(token)
    if session is None:
        raise AdminAuthRequiredError()
    return session
