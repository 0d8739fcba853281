"""Admin portal sessions.

The admin signs in with the single operator account configured in the
environment (ADMIN_USERNAME + bcrypt ADMIN_PASSWORD_HASH). A successful login
issues an HS256 JWT signed with ADMIN_SESSION_SECRET and carried in the
HttpOnly `admin_session` cookie. The token's `jti` must also be present in
the in-process session store, so logout revokes a token before it expires.

Admin writes are CSRF-checked like every other unsafe request: the global
double-submit cookie middleware covers /api/admin/* except login.
"""

import base64
import hmac
import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.mp_common.errors import AdminConfigError, InvalidCredentialsError
from src.mp_gateway.auth.password import verify_password

logger = logging.getLogger("mp.admin")

ADMIN_COOKIE_NAME = "admin_session"
_ALGORITHM = "HS256"


@dataclass
class AdminSession:
    jti: str
    expires_at: datetime
    last_activity: datetime = field(default_factory=lambda: datetime.now(UTC))

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at


def _load_password_hash() -> str:
    """Read the bcrypt hash, tolerating base64 encoding and wrapping quotes.

    `$` in bcrypt hashes is often mangled by env-file expansion, so operators
    may store the hash base64-encoded instead.
    """
    raw = settings.ADMIN_PASSWORD_HASH.strip()
    if raw.startswith("'") and raw.endswith("'"):
        raw = raw[1:-1]
    if raw and not raw.startswith("$2"):
        try:
            raw = base64.b64decode(raw).decode("utf-8")
        except ValueError:
            return ""
    return raw


def authenticate_admin(username: str, password: str) -> None:
    """Check operator credentials; raises on mismatch or missing config."""
    expected_user = settings.ADMIN_USERNAME.strip()
    password_hash = _load_password_hash()
    if not expected_user or not password_hash or not settings.ADMIN_SESSION_SECRET:
        logger.error(
            "Missing admin env config. Required: ADMIN_USERNAME, "
            "ADMIN_PASSWORD_HASH, ADMIN_SESSION_SECRET"
        )
        raise AdminConfigError()

    user_ok = hmac.compare_digest(
        username.strip().lower().encode(), expected_user.lower().encode()
    )
    password_ok = verify_password(password.strip(), password_hash)
    if not (user_ok and password_ok):
        logger.warning("Admin login rejected for %r", username)
        raise InvalidCredentialsError()


class AdminSessionStore:
    """jti -> AdminSession map; swap for Redis when running several workers."""

    def __init__(self, secret: str | None = None) -> None:
        self._secret = secret
        self._sessions: dict[str, AdminSession] = {}

    @property
    def secret(self) -> str:
        return self._secret if self._secret is not None else settings.ADMIN_SESSION_SECRET

    def issue(self, ttl_seconds: int) -> tuple[str, AdminSession]:
        """Create a session and return (signed token, session).

        Expired sessions are pruned first so the map stays bounded.
        """
        self.cleanup()
        now = datetime.now(UTC)
        session = AdminSession(
            jti=str(uuid.uuid4()),
            expires_at=now + timedelta(seconds=ttl_seconds),
        )
        token = jwt.encode(
            {"sub": "admin", "iat": now, "exp": session.expires_at, "jti": session.jti},
            self.secret,
            algorithm=_ALGORITHM,
        )
        self._sessions[session.jti] = session
        logger.info("Admin session created jti=%s ttl=%ds", session.jti, ttl_seconds)
        return str(token), session

    def verify(self, token: str) -> AdminSession | None:
        """Return the live session for a token, or None."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[_ALGORITHM])
        except JWTError:
            return None
        if payload.get("sub") != "admin":
            return None
        jti = payload.get("jti")
        session = self._sessions.get(jti) if jti else None
        if session is None:
            logger.warning("Admin session not found jti=%s", jti)
            return None
        now = datetime.now(UTC)
        if session.is_expired(now):
            del self._sessions[session.jti]
            logger.warning("Admin session expired jti=%s", session.jti)
            return None
        session.last_activity = now
        return session

    def revoke(self, jti: str) -> None:
        if self._sessions.pop(jti, None) is not None:
            logger.info("Admin session removed jti=%s", jti)

    def cleanup(self) -> int:
        now = datetime.now(UTC)
        expired = [jti for jti, s in self._sessions.items() if s.is_expired(now)]
        for jti in expired:
            del self._sessions[jti]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


admin_sessions = AdminSessionStore()
