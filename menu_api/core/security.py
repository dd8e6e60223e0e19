"""
Password hashing and bearer token handling.

Tokens are HS256-signed JWTs carrying the user's id, email and role with a
fixed lifetime. Verification is stateless: a token stays valid until it
expires, whatever happens to the account afterwards.
"""

import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Any, Optional

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError
from passlib.context import CryptContext

from menu_api.core.config import get_settings
from menu_api.core.exceptions import ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)


class TokenExpiredError(UnauthorizedError):
    default_message = "Token expired. Please login again."


class TokenMalformedError(ForbiddenError):
    default_message = "Invalid token"


class TokenNotYetValidError(ForbiddenError):
    default_message = "Token not active yet"


@dataclass(frozen=True)
class TokenClaims:
    """Identity decoded from a verified token."""
    user_id: str
    email: str
    role: str
    issued_at: int
    expires_at: int


class TokenService:
    """
    Issues and verifies signed, time-limited bearer tokens.

    Example:
        >>> service = TokenService(secret="s3cret")
        >>> token = service.issue({"id": "65f0...", "email": "a@b.io", "role": "user"})
        >>> service.verify(token).role
        'user'
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expire_days: int = 7,
        leeway_seconds: int = 0,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.lifetime = timedelta(days=expire_days)
        self.leeway_seconds = leeway_seconds

    def issue(self, user: dict[str, Any], now: Optional[float] = None) -> str:
        """Sign a token for a user document (needs id, email, role)."""
        issued_at = int(now if now is not None else time.time())
        payload = {
            "userId": str(user["id"]),
            "email": user["email"],
            "role": user["role"],
            "iat": issued_at,
            "exp": issued_at + int(self.lifetime.total_seconds()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str, now: Optional[float] = None) -> TokenClaims:
        """
        Decode and check a token.

        Raises:
            TokenExpiredError: The expiry has passed
            TokenNotYetValidError: Issued-at lies in the future
            TokenMalformedError: Bad signature, structure or claims
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"leeway": self.leeway_seconds},
            )
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            logger.debug(f"Token rejected: {e}")
            raise TokenMalformedError()

        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not isinstance(issued_at, int) or not isinstance(expires_at, int):
            raise TokenMalformedError()

        current = now if now is not None else time.time()
        if expires_at + self.leeway_seconds <= current:
            raise TokenExpiredError()
        if issued_at > current + self.leeway_seconds:
            raise TokenNotYetValidError()

        try:
            return TokenClaims(
                user_id=str(payload["userId"]),
                email=payload["email"],
                role=payload["role"],
                issued_at=issued_at,
                expires_at=expires_at,
            )
        except KeyError:
            raise TokenMalformedError()


@lru_cache()
def get_token_service() -> TokenService:
    """Token service configured from settings (cached)."""
    settings = get_settings()
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expire_days=settings.jwt_expire_days,
        leeway_seconds=settings.jwt_leeway_seconds,
    )


# =============================================================================
# PASSWORDS
# =============================================================================

@lru_cache()
def get_password_context() -> CryptContext:
    """bcrypt context using the configured cost factor."""
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=get_settings().bcrypt_rounds,
    )


def hash_password(password: str) -> str:
    """Irreversibly hash a password."""
    return get_password_context().hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against its stored hash."""
    try:
        return get_password_context().verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognized or corrupt hash
        logger.warning("Stored password hash could not be parsed")
        return False
