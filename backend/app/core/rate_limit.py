"""
Rate Limiting

Endpoint-level rate limiting backed by Redis. The unsubscribe endpoint is
public and token-authenticated, so it is limited per client IP to slow down
token guessing.

Rate limiting fails open: if Redis is unreachable the request proceeds.
Unsubscribing must keep working when the cache is down.
"""

from collections.abc import Awaitable, Callable

from fastapi import HTTPException, Request, status

from app.core.config import settings
from app.core.logging import get_logger
from app.db.redis import RedisRateLimiter, get_redis

logger = get_logger(__name__)


def get_client_ip(request: Request) -> str:
    """
    Get client IP address, handling proxies.

    Forwarding headers are client-controlled unless a proxy we run rewrites
    them, so they are only read when TRUSTED_PROXY_COUNT is set. Each trusted
    proxy appends one hop to X-Forwarded-For; the client is the hop added by
    the outermost one, counted from the right.
    """
    trusted = settings.TRUSTED_PROXY_COUNT
    if trusted > 0:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
            if hops:
                return hops[-trusted] if len(hops) >= trusted else hops[0]

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


# ========================================
# Endpoint-Specific Rate Limiting
# ========================================

async def check_rate_limit(
    request: Request,
    max_requests: int = 10,
    window_seconds: int = 60,
    key_prefix: str = "endpoint"
) -> None:
    """
    Check rate limit for specific endpoint.

    Args:
        request: FastAPI request object
        max_requests: Maximum requests allowed
        window_seconds: Time window in seconds
        key_prefix: Prefix for rate limit key

    Raises:
        HTTPException: If rate limit exceeded
    """
    try:
        redis = await get_redis()
        rate_limiter = RedisRateLimiter(redis)

        rate_key = f"{key_prefix}:ip:{get_client_ip(request)}"

        is_allowed, current_count = await rate_limiter.is_allowed(
            rate_key,
            max_requests,
            window_seconds
        )

        if not is_allowed:
            logger.warning(
                "rate_limit_exceeded",
                key=rate_key,
                count=current_count,
                limit=max_requests,
                window_seconds=window_seconds,
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later.",
                headers={
                    "X-RateLimit-Limit": str(max_requests),
                    "X-RateLimit-Remaining": "0",
                    "Retry-After": str(window_seconds)
                }
            )

    except HTTPException:
        raise
    except Exception as e:
        logger.error("rate_limit_check_failed", error=str(e))
        # Allow request if rate limiting fails


def rate_limit(
    max_requests: int,
    window_seconds: int = 60,
    key_prefix: str = "endpoint",
) -> Callable[[Request], Awaitable[None]]:
    """
    Build a route dependency enforcing a per-IP limit.

    Does nothing when RATE_LIMIT_ENABLED is false (tests, local runs
    without Redis).

    Example:
        @router.post("/unsubscribe", dependencies=[Depends(rate_limit(20, key_prefix="unsubscribe"))])
        async def unsubscribe(...):
            ...
    """
    async def _dependency(request: Request) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        await check_rate_limit(
            request,
            max_requests=max_requests,
            window_seconds=window_seconds,
            key_prefix=key_prefix,
        )

    return _dependency
