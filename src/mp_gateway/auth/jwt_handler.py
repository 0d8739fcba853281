"""Bearer tokens for buyer/seller accounts.

HS256 over JWT_SECRET. Every token carries a `type` claim ("access" or
"refresh") and decode_token only accepts the type it was asked for. Admin
sessions use their own secret in mp_gateway.admin.session.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.mp_common.errors import AppError, InvalidCredentialsError, InvalidRefreshTokenError

_LIFETIMES: dict[str, timedelta] = {
    "access": timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
    "refresh": timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS),
}


def _issue(user_id: str, token_type: str) -> str:
    issued = datetime.now(UTC)
    claims = {
        "sub": user_id,
        "type": token_type,
        "iat": issued,
        "exp": issued + _LIFETIMES[token_type],
    }
    return str(jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM))


def create_access_token(user_id: str) -> str:
    return _issue(user_id, "access")


def create_refresh_token(user_id: str) -> str:
    return _issue(user_id, "refresh")


def _rejection(expected_type: str) -> AppError:
    if expected_type == "refresh":
        return InvalidRefreshTokenError()
    return InvalidCredentialsError()


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Return the verified claims.

    Bad signature, expiry or a type mismatch raise InvalidCredentialsError
    for access tokens and InvalidRefreshTokenError for refresh tokens.
    """
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise _rejection(expected_type) from None
    if claims.get("type") != expected_type:
        raise _rejection(expected_type)
    return claims
