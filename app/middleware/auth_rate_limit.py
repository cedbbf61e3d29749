from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import AUTH_RATE_LIMIT, AUTH_RATE_WINDOW_SECONDS
from app.core.rate_limiter import InMemoryRateLimiterService, RateLimiterService

logger = logging.getLogger(__name__)

RATE_LIMITED_PATHS = frozenset({"/api/auth/login", "/api/auth/register"})
RATE_LIMIT_MESSAGE = "Too many authentication attempts. Please try again later."


class AuthRateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        *,
        rate_limiter: RateLimiterService | None = None,
        paths: frozenset[str] = RATE_LIMITED_PATHS,
    ) -> None:
        super().__init__(app)
        self._rate_limiter = rate_limiter or InMemoryRateLimiterService(
            limit=AUTH_RATE_LIMIT,
            window_seconds=AUTH_RATE_WINDOW_SECONDS,
        )
        self._paths = paths

    async def dispatch(self, request: Request, call_next):
        if request.method != "POST" or request.url.path.rstrip("/") not in self._paths:
            return await call_next(request)

        client_ip = client_ip_from_request(request)
        decision = self._rate_limiter.check(client_ip)
        if not decision.allowed:
            logger.warning(
                "Auth rate limit exceeded",
                extra={"client_ip": client_ip, "endpoint": request.url.path},
            )
            return JSONResponse(
                status_code=429,
                content={"detail": RATE_LIMIT_MESSAGE, "retry_after": decision.retry_after_seconds},
                headers={
                    "Retry-After": str(decision.retry_after_seconds),
                    "X-RateLimit-Limit": str(decision.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response


def client_ip_from_request(request: Request) -> str:
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    if forwarded_for.strip():
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP", "").strip()
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
