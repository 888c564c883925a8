# Fixed-window request limits backed by Redis counters.
# Opt-in via REDIS_ENABLED; any Redis problem lets the request through.
import logging
import os
from typing import Callable, Literal, Optional

from fastapi import HTTPException, Request, status

logger = logging.getLogger("keyat.rate_limit")

Scope = Literal["login", "signup", "write", "upload"]

# scope -> (env var holding the per-window cap, default cap)
_SCOPE_LIMITS: dict[str, tuple[str, int]] = {
    "login": ("RATE_LIMIT_LOGIN_PER_WINDOW", 10),
    "signup": ("RATE_LIMIT_SIGNUP_PER_WINDOW", 5),
    "write": ("RATE_LIMIT_WRITE_PER_WINDOW", 30),
    "upload": ("RATE_LIMIT_UPLOAD_PER_WINDOW", 10),
}

_client = None
_connect_attempted = False


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _truthy(val: Optional[str]) -> bool:
    return (val or "").strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def redis_enabled() -> bool:
    return _truthy(os.getenv("REDIS_ENABLED", "false"))


def get_redis():
    """
    Shared Redis client, or None when disabled or unreachable.

    The connection is attempted once per process; after a failure the
    limiter stays disabled instead of paying a timeout on every request.
    """
    global _client, _connect_attempted
    if not redis_enabled():
        return None
    if _client is not None or _connect_attempted:
        return _client

    _connect_attempted = True
    url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    try:
        import redis

        client = redis.Redis.from_url(
            url,
            socket_timeout=0.25,
            socket_connect_timeout=0.25,
            retry_on_timeout=False,
        )
        client.ping()
    except Exception as exc:
        logger.warning("Redis unavailable, rate limiting disabled: %s", exc)
        return None
    _client = client
    logger.info("Connected to Redis at %s", url)
    return _client


def window_seconds() -> int:
    return _env_int("RATE_LIMIT_WINDOW_SECONDS", 60)


def limit_for(scope: Scope) -> int:
    env_name, default = _SCOPE_LIMITS[scope]
    return _env_int(env_name, default)


def client_ip(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(scope: Scope) -> Callable[[Request], None]:
    """
    Build a dependency that caps requests per client IP and scope.

    Counter key: rl:keyat:{scope}:{ip}, expiring after the window. The first
    hit in a window sets the TTL; hits beyond the cap get a 429 carrying
    `retry_after` (seconds until the window resets).
    """
    window = window_seconds()
    limit = limit_for(scope)

    def _dependency(request: Request) -> None:
        r = get_redis()
        if r is None:
            return

        ip = client_ip(request)
        key = f"rl:keyat:{scope}:{ip}"
        try:
            hits = r.incr(key)
            if hits == 1:
                r.expire(key, window)
            if hits <= limit:
                return
            ttl = r.ttl(key)
        except Exception as exc:
            logger.warning("Rate limit check skipped (scope=%s, ip=%s): %s", scope, ip, exc)
            return

        retry_after = ttl if isinstance(ttl, int) and ttl > 0 else window
        logger.info("rate_limit.rejected", extra={"scope": scope, "ip": ip, "limit": limit})
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "rate_limited",
                "scope": scope,
                "limit": limit,
                "window_seconds": window,
                "retry_after": retry_after,
            },
        )

    return _dependency
