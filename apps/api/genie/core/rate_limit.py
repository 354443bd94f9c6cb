"""Rate limiting configuration for the API."""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from genie.core.config import settings

DEFAULT_LIMITS = (
    [f"{settings.RATE_LIMIT_API}/minute"] if settings.RATE_LIMIT_API > 0 else []
)
AUTH_LIMIT = f"{settings.RATE_LIMIT_AUTH}/minute"


def _resolve_storage_uri() -> str:
    """Use Redis when configured and reachable, otherwise in-memory storage."""
    storage_uri = settings.RATE_LIMIT_STORAGE_URL
    if not storage_uri.startswith("redis"):
        return storage_uri
    try:
        import redis

        # Test connection upfront
        r = redis.from_url(storage_uri, socket_connect_timeout=1)
        r.ping()
        return storage_uri
    except Exception as e:
        logging.warning(f"Redis unavailable for rate limiting, using in-memory: {e}")
        return "memory://"


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_resolve_storage_uri() if settings.RATE_LIMIT_ENABLED else "memory://",
    default_limits=DEFAULT_LIMITS,
    enabled=settings.RATE_LIMIT_ENABLED,
)
