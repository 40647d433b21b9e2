# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request throttling with slowapi.

Sign-in and activation endpoints are reachable before the caller holds a
token and the activation ones call the external validation service, so
they are keyed by client address and share a tighter limit than the
default one.

Example:
    @router.post("/claim")
    @limiter.limit(activation_limit, key_func=get_ip_only)
    async def claim(request: Request, ...):
        ...
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.core.config import get_settings

logger = logging.getLogger(__name__)


def get_client_identifier(request: Request) -> str:
    """Key requests by principal when authenticated, by address otherwise."""
    user = getattr(request.state, "user", None)
    if user:
        return f"user:{user.id}"
    return f"ip:{get_remote_address(request)}"


def get_ip_only(request: Request) -> str:
    """Key requests by client address alone."""
    return get_remote_address(request)


def activation_limit() -> str:
    """Limit string for the sign-in and activation endpoints."""
    return f"{get_settings().rate_limit.activation_per_minute}/minute"


_rate_limit_settings = get_settings().rate_limit
limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{_rate_limit_settings.requests_per_minute}/minute"],
    storage_uri=_rate_limit_settings.storage_uri,
)


async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    """Answer a throttled request with 429 and a Retry-After hint.

    Args:
        request: The throttled request.
        exc: Error raised by slowapi, carrying the exceeded limit.

    Returns:
        JSON error response.
    """
    logger.warning(
        "Rate limit %s exceeded by %s on %s",
        exc.detail,
        get_client_identifier(request),
        request.url.path,
    )
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests. Please try again later."},
        headers={"Retry-After": "60"},
    )
