"""Bearer token issuance and validation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
import structlog
from jwt import ExpiredSignatureError
from jwt import InvalidTokenError as PyJWTInvalidTokenError

logger = structlog.get_logger(__name__)

TOKEN_ISSUER = "tubely-access"
TOKEN_ALGORITHM = "HS256"


def _utcnow() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(tz=timezone.utc)


class AuthError(Exception):
    """Base class for auth failures."""


class InvalidTokenError(AuthError):
    """Raised when token cannot be decoded."""


class TokenExpiredError(AuthError):
    """Raised when token is expired."""


@dataclass(slots=True)
class TokenService:
    """Issue and verify HS256 access tokens whose subject is a user id."""

    signing_key: str
    token_ttl: timedelta = timedelta(hours=24)

    def issue_token(self, user_id: str) -> str:
        now = _utcnow()
        claims = {
            "iss": TOKEN_ISSUER,
            "sub": user_id,
            "iat": int(now.timestamp()),
            "exp": int((now + self.token_ttl).timestamp()),
        }
        return jwt.encode(claims, self.signing_key, algorithm=TOKEN_ALGORITHM)

    def validate_token(self, token: str) -> str:
        """Return the user id carried by ``token``."""
        try:
            claims = jwt.decode(
                token,
                self.signing_key,
                algorithms=[TOKEN_ALGORITHM],
                issuer=TOKEN_ISSUER,
                options={"require": ["exp", "sub", "iss"]},
            )
        except ExpiredSignatureError as exc:
            logger.info("auth.token.expired")
            raise TokenExpiredError("token expired") from exc
        except PyJWTInvalidTokenError as exc:
            logger.warning("auth.token.invalid", reason=str(exc))
            raise InvalidTokenError("invalid token") from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidTokenError("token has no subject")
        return subject
