"""
Request dependencies for authentication and role checks.

Usage on a route:
    dependencies=[Depends(authenticate), Depends(authorize("admin"))]

FastAPI resolves route dependencies in declaration order, so authorize()
always sees the identity attached by authenticate().
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from menu_api.core.exceptions import ForbiddenError, UnauthorizedError
from menu_api.core.security import TokenClaims, get_token_service

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="Token from /api/v1/auth/login")


async def authenticate(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenClaims:
    """
    Verify the bearer token and attach its claims to request.state.user.

    Raises:
        UnauthorizedError: No bearer token, or the token has expired
        ForbiddenError: The token is malformed or not yet valid
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Access denied. No token provided")

    claims = get_token_service().verify(credentials.credentials)
    request.state.user = claims
    return claims


def authorize(*roles: str) -> Callable:
    """Dependency factory allowing only the given roles through."""

    async def check_role(request: Request) -> TokenClaims:
        claims: Optional[TokenClaims] = getattr(request.state, "user", None)
        if claims is None:
            raise UnauthorizedError("Access denied. Please authenticate first.")
        if claims.role not in roles:
            logger.info(f"Role {claims.role} denied for {request.method} {request.url.path}")
            raise ForbiddenError("Access denied. Insufficient permissions.")
        return claims

    return check_role


async def current_user(request: Request) -> TokenClaims:
    """Claims of the authenticated caller (after authenticate has run)."""
    claims: Optional[TokenClaims] = getattr(request.state, "user", None)
    if claims is None:
        raise UnauthorizedError("Access denied. Please authenticate first.")
    return claims
