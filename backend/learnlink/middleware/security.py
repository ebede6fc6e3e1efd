"""Security middleware."""

from collections.abc import Awaitable, Callable

from fastapi import Request
from fastapi.responses import Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from learnlink.config.settings import get_settings


# In-memory limiter keyed by client address; RATE_LIMIT_ENABLED=false turns it off (tests)
limiter = Limiter(key_func=get_remote_address, enabled=get_settings().RATE_LIMIT_ENABLED)


class SimpleSecurityMiddleware(BaseHTTPMiddleware):
    """Adds the standard hardening headers to every response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Handle request with security headers."""
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


# Rate limiting decorators
api_rate_limit = limiter.limit("100/minute")  # Reads and authoring
progress_rate_limit = limiter.limit("60/minute")  # Progress overlay mutations
social_rate_limit = limiter.limit("30/minute")  # Posts, likes, comments, follows


def create_rate_limit_dependency(
    name: str,
    limit_decorator: Callable[[Callable], Callable],
) -> Callable[[Request], Awaitable[None]]:
    """Turn a limiter decorator into a router-level dependency.

    slowapi keys limits by function name, so each dependency gets its own.
    """

    async def rate_limited_dependency(request: Request) -> None:
        """Apply rate limiting to protect router endpoints."""

    rate_limited_dependency.__name__ = f"{name}_rate_limit"
    rate_limited_dependency.__qualname__ = rate_limited_dependency.__name__
    return limit_decorator(rate_limited_dependency)


learning_plans_rate_limit = create_rate_limit_dependency("learning_plans", api_rate_limit)
progress_route_limit = create_rate_limit_dependency("progress", progress_rate_limit)
posts_rate_limit = create_rate_limit_dependency("posts", social_rate_limit)
follows_rate_limit = create_rate_limit_dependency("follows", social_rate_limit)
notifications_rate_limit = create_rate_limit_dependency("notifications", api_rate_limit)
