"""
Request guards and request logging.

Order on the way in (outermost first, see main.py):
    CORS → rate limit → body guard → request log → route
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from menu_api.core.config import get_settings
from menu_api.core.exceptions import InvalidInputError, PayloadTooLargeError
from menu_api.core.rate_limit import client_identifier

logger = logging.getLogger(__name__)

BODY_METHODS = ("POST", "PUT", "PATCH")


async def read_capped_body(request: Request, max_bytes: int) -> bool:
    """
    Buffer a body sent without Content-Length, stopping once it passes
    max_bytes. The buffered body is replayed to the route.

    Returns:
        False if the body is over the limit
    """
    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > max_bytes:
            return False
        chunks.append(chunk)
    request._body = b"".join(chunks)
    return True


class BodyGuardMiddleware(BaseHTTPMiddleware):
    """
    Require JSON on bodied methods and cap the body size, declared or streamed.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method in BODY_METHODS:
            content_type = request.headers.get("content-type", "")
            if content_type.split(";")[0].strip().lower() != "application/json":
                error = InvalidInputError("Content-Type must be application/json")
                return JSONResponse(status_code=error.status_code, content=error.to_dict())

            max_bytes = get_settings().max_body_bytes
            content_length = request.headers.get("content-length")
            if content_length and content_length.isdigit():
                within_limit = int(content_length) <= max_bytes
            else:
                within_limit = await read_capped_body(request, max_bytes)

            if not within_limit:
                logger.warning(f"Rejected oversized body on {request.method} {request.url.path}")
                error = PayloadTooLargeError()
                return JSONResponse(status_code=error.status_code, content=error.to_dict())

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request line with the caller's address."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        logger.info(f"{request.method} {request.url.path} - IP: {client_identifier(request)}")
        return await call_next(request)
