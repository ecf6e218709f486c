"""Signed, purpose-scoped tokens.

Every token the service hands out is an HS256 JWT over ``{userId, purpose}``.
The purpose claim keeps the token classes apart: a password-reset token is
rejected where a refresh token is expected and vice versa. Lifetimes are
policy and live on :class:`TokenPurpose`, not in configuration.
"""

import enum
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from marketplace.config import get_settings
from marketplace.errors import InvalidTokenError

logger = logging.getLogger("marketplace.tokens")


class TokenPurpose(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFICATION = "email_verification"

    @property
    def ttl(self) -> timedelta:
        return _TOKEN_TTLS[self]


_TOKEN_TTLS = {
    TokenPurpose.ACCESS: timedelta(minutes=15),
    TokenPurpose.REFRESH: timedelta(days=7),
    TokenPurpose.PASSWORD_RESET: timedelta(hours=1),
    TokenPurpose.EMAIL_VERIFICATION: timedelta(hours=24),
}


@dataclass(frozen=True)
class TokenPayload:
    """Verified claims of a token."""

    user_id: int
    purpose: TokenPurpose
    expires_at: datetime


class TokenService:
    """Issues and verifies signed tokens with a single shared secret."""

    def __init__(self, secret_key: str, algorithm: str = "HS256") -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self.secret_key = secret_key
        self.algorithm = algorithm

    def issue(self, purpose: TokenPurpose, user_id: int, ttl: timedelta | None = None) -> str:
        """Create a token binding ``user_id`` for ``purpose``, valid for ``ttl`` (default: the purpose TTL)."""
        now = datetime.now(timezone.utc)
        claims = {
            "userId": user_id,
            "purpose": purpose.value,
            "iat": now,
            "exp": now + (ttl if ttl is not None else purpose.ttl),
            "jti": secrets.token_urlsafe(8),
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str | None, purpose: TokenPurpose) -> TokenPayload:
        """Check signature, expiry and purpose. Raises InvalidTokenError on any failure."""
        if not token:
            raise InvalidTokenError()

        try:
            claims = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require_exp": True},
            )
        except JWTError as e:
            logger.debug("Token rejected: %s", e)
            raise InvalidTokenError() from None

        user_id = claims.get("userId")
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise InvalidTokenError()
        if claims.get("purpose") != purpose.value:
            raise InvalidTokenError()

        return TokenPayload(
            user_id=user_id,
            purpose=purpose,
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )


_token_service: TokenService | None = None


def get_token_service() -> TokenService:
    """Get singleton token service instance."""
    global _token_service
    if _token_service is None:
        settings = get_settings()
        _token_service = TokenService(settings.JWT_SECRET, settings.JWT_ALGORITHM)
    return _token_service
