"""Buyer accounts: signup, credential login, token refresh, profile lookup and
admin activation.

Signup and the admin activation toggle run inside the router's
`async with db.begin()` block; the other operations only read.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_catalog.infrastructure.db_models import SellerProfileORM
from src.mp_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    UserNotFoundError,
)
from src.mp_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.mp_gateway.auth.password import hash_password, verify_password
from src.mp_gateway.user.db_models import UserModel
from src.mp_gateway.user.schemas import (
    AccessToken,
    AdminUserOut,
    MeResponse,
    SignupRequest,
    SignupResponse,
    TokenPair,
    UserInfo,
)

logger = logging.getLogger("mp.auth")


def _expires_in() -> int:
    return settings.JWT_EXPIRE_MINUTES * 60


class UserService:
    async def _by_email(self, db: AsyncSession, email: str) -> UserModel | None:
        result = await db.execute(select(UserModel).where(UserModel.email == email))
        return result.scalar_one_or_none()

    async def signup(self, db: AsyncSession, body: SignupRequest) -> SignupResponse:
        # users.email UNIQUE still guards concurrent signups.
        if await self._by_email(db, body.email) is not None:
            raise EmailExistsError()

        user = UserModel(
            email=body.email,
            name=body.name,
            phone=body.phone,
            password_hash=hash_password(body.password),
            is_active=True,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        logger.info("User signed up id=%s", user.id)
        return SignupResponse(
            user_id=str(user.id),
            email=user.email,
            name=user.name,
            created_at=user.created_at.isoformat(),
        )

    async def login(self, db: AsyncSession, email: str, password: str) -> TokenPair:
        """Unknown email and wrong password fail identically."""
        user = await self._by_email(db, email.strip().lower())
        if user is None or not verify_password(password.strip(), user.password_hash):
            raise InvalidCredentialsError()
        if not user.is_active:
            raise AccountDisabledError()

        subject = str(user.id)
        return TokenPair(
            access_token=create_access_token(subject),
            refresh_token=create_refresh_token(subject),
            expires_in=_expires_in(),
            user=UserInfo(user_id=subject, email=user.email, name=user.name),
        )

    async def refresh(self, refresh_token: str) -> AccessToken:
        payload = decode_token(refresh_token, expected_type="refresh")
        return AccessToken(
            access_token=create_access_token(str(payload["sub"])),
            expires_in=_expires_in(),
        )

    async def me(self, db: AsyncSession, user: UserModel) -> MeResponse:
        result = await db.execute(
            select(SellerProfileORM.slug).where(SellerProfileORM.user_id == user.id)
        )
        seller_slug = result.scalar_one_or_none()
        return MeResponse(
            user_id=str(user.id),
            email=user.email,
            name=user.name,
            phone=user.phone,
            is_seller=seller_slug is not None,
            seller_slug=seller_slug,
        )

    async def set_active(self, db: AsyncSession, user_id: str, is_active: bool) -> AdminUserOut:
        """Admin toggle; a disabled account can neither log in nor use its tokens."""
        try:
            uid = uuid.UUID(user_id)
        except ValueError:
            raise UserNotFoundError(user_id) from None
        result = await db.execute(select(UserModel).where(UserModel.id == uid))
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(user_id)
        user.is_active = is_active
        await db.flush()
        logger.info("Admin set user id=%s is_active=%s", user_id, is_active)
        return AdminUserOut(
            user_id=str(user.id), email=user.email, name=user.name, is_active=user.is_active
        )
