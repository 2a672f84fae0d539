"""
Rate Limiter - Protection contre les abus.

Utilise Redis pour un rate limiting distribué (sliding window).
Limites par endpoint:
- track-click: 20/minute par IP

Si Redis est indisponible, la requête passe (fail open): le tracking
ne doit jamais bloquer la navigation.
"""
import time
from typing import Optional

import redis
from fastapi import Request

from app.core.config import REDIS_URL
from app.core.exceptions import RateLimitError
from app.core.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_IP = "unknown"

_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """Get or create Redis connection."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1,
        )
    return _redis_client


def check_rate_limit(
    key: str,
    max_requests: int,
    window_seconds: int,
) -> tuple[bool, int]:
    """
    Check if rate limit is exceeded using sliding window.

    Args:
        key: Unique key for this limit (e.g., "click:192.168.1.1")
        max_requests: Maximum requests allowed in window
        window_seconds: Time window in seconds

    Returns:
        Tuple of (is_allowed, remaining_requests)
    """
    redis_client = get_redis()
    now = time.time()
    window_start = now - window_seconds

    redis_key = f"ratelimit:{key}"

    pipe = redis_client.pipeline()
    pipe.zremrangebyscore(redis_key, 0, window_start)
    pipe.zcard(redis_key)
    pipe.zadd(redis_key, {str(now): now})
    pipe.expire(redis_key, window_seconds + 1)

    results = pipe.execute()
    current_count = results[1]

    remaining = max(0, max_requests - current_count - 1)
    is_allowed = current_count < max_requests

    return is_allowed, remaining


def get_client_ip(request: Request) -> str:
    """
    Best-effort client IP from proxy headers.

    Order: cf-connecting-ip, first hop of x-forwarded-for, x-real-ip.
    Returns the "unknown" sentinel when none is present.
    """
    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip.strip()

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return UNKNOWN_IP


# =============================================================================
# Rate Limit Configurations
# =============================================================================

RATE_LIMITS = {
    "track_click": {"max": 20, "window": 60},   # 20/min per IP
}


def rate_limit_track_click(request: Request) -> None:
    """Rate limit for the click-tracking endpoint."""
    client_ip = get_client_ip(request)
    config = RATE_LIMITS["track_click"]

    try:
        allowed, _ = check_rate_limit(
            key=f"click:{client_ip}",
            max_requests=config["max"],
            window_seconds=config["window"],
        )
    except redis.RedisError as e:
        logger.best_effort_failed("Rate limit check", e, ip=client_ip)
        return

    if not allowed:
        logger.warning(
            "Rate limit exceeded on track-click",
            ip=client_ip,
            path="/track-click",
        )
        raise RateLimitError(retry_after=config["window"])
