"""
Rate limiting configuration and utilities.
"""
import math
import time
import os

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

# Named limits (fixed window)
API_DEFAULT = "60/minute"
AUTH_STRICT = "5/15 minutes"
ADMIN = "30/minute"
CNPJ_LOOKUP = "10/minute"


def get_client_ip(request: Request) -> str:
    """
    Client IP behind proxies: first X-Forwarded-For entry, then X-Real-IP,
    then the socket address.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return get_remote_address(request) or "unknown"


def get_rate_limit_key(request: Request) -> str:
    """
    Custom key function for rate limiting.

    Requests are bucketed by IP; authenticated requests also carry the last
    16 characters of their bearer token so users behind one NAT do not share
    a window.

    Returns:
        str: Unique identifier for rate limiting
    """
    ip = get_client_ip(request)
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
        if token:
            return f"{ip}:{token[-16:]}"
    return ip


# Get Redis URL from environment
redis_url = os.getenv("REDIS_URL", "memory://")
rate_limit_enabled = os.getenv("RATE_LIMIT_ENABLED", "true").lower() not in ("0", "false", "no")

# If Redis URL is not configured, use in-memory storage (for local dev)
if redis_url == "memory://":
    print("\n" + "="*60)
    print(" [RATE LIMIT] [WARNING] Redis URL not configured")
    print("   Using in-memory storage (counters are per process)")
    print("   Set REDIS_URL environment variable to use Redis")
    print("="*60 + "\n")

# Initialize limiter
limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[API_DEFAULT],
    storage_uri=redis_url,
    strategy="fixed-window",
    headers_enabled=True,
    enabled=rate_limit_enabled,
)

print(f"[RATE LIMIT] Limiter initialized with storage: {redis_url} (enabled={rate_limit_enabled})")


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Answer 429 with the seconds left in the current window.

    Retry-After and X-RateLimit-* headers are added by the limiter.
    """
    retry_after = 60
    window = getattr(request.state, "view_rate_limit", None)
    if window is not None:
        reset_at, _remaining = request.app.state.limiter.limiter.get_window_stats(window[0], *window[1])
        retry_after = max(1, math.ceil(reset_at - time.time()))

    print(f"[RATE LIMIT] Limit exceeded for {get_client_ip(request)} on {request.url.path}: {exc.detail}")

    response = JSONResponse(
        status_code=429,
        content={
            "message": "Too many requests. Please try again later.",
            "retry_after": retry_after,
        },
    )
    if window is not None:
        response = request.app.state.limiter._inject_headers(response, window)
    return response
