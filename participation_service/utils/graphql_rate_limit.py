# participation_service/utils/graphql_rate_limit.py
"""
Rate limiting for anonymous GraphQL mutations.

The REST routes use slowapi; strawberry resolvers are not Starlette
endpoints, so the public RSVP mutations count calls here instead, keyed by
client address (there is no user id to key on).
"""

import functools
import inspect
import logging
import time
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from fastapi import HTTPException

from participation_service.core.config import settings

logger = logging.getLogger(__name__)

# In-memory storage for rate limits (operation:client -> (request_count, window_start))
_rate_limit_store: Dict[str, Tuple[int, float]] = {}
_store_lock = Lock()


def _client_address(info) -> Optional[str]:
    request = getattr(info.context, "request", None) if info and info.context else None
    if request is None or request.client is None:
        return None
    return request.client.host


def _prune_expired(operation_name: str, current_time: float, period_seconds: int) -> None:
    # Caller holds _store_lock
    prefix = f"{operation_name}:"
    expired = [
        key for key, (_, window_start) in _rate_limit_store.items()
        if key.startswith(prefix) and current_time - window_start >= period_seconds
    ]
    for key in expired:
        del _rate_limit_store[key]


def reset_rate_limits() -> None:
    with _store_lock:
        _rate_limit_store.clear()


def rate_limit(max_calls: int, period_seconds: int):
    """
    Decorator to rate limit GraphQL mutations per client address.

    Example:
        @rate_limit(max_calls=5, period_seconds=3600)  # 5 calls per hour
        def rsvp_public(self, input, info):
            ...

    Raises:
        HTTPException: When rate limit is exceeded
    """
    def _check_rate_limit(operation_name: str, kwargs):
        if not settings.RATE_LIMIT_ENABLED:
            return
        client = _client_address(kwargs.get("info"))
        if not client:
            return

        current_time = time.time()
        key = f"{operation_name}:{client}"

        with _store_lock:
            _prune_expired(operation_name, current_time, period_seconds)
            count, window_start = _rate_limit_store.get(key, (0, current_time))
            if current_time - window_start >= period_seconds:
                count, window_start = 0, current_time

            if count >= max_calls:
                reset_time = int(window_start + period_seconds - current_time)
                logger.warning(
                    f"Rate limit exceeded for {client} on {operation_name}. "
                    f"Limit: {max_calls}/{period_seconds}s"
                )
                raise HTTPException(
                    status_code=429,
                    detail=f"Rate limit exceeded. Try again in {reset_time} seconds."
                )
            _rate_limit_store[key] = (count + 1, window_start)

    def decorator(func: Callable):
        operation_name = func.__name__

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                _check_rate_limit(operation_name, kwargs)
                return await func(*args, **kwargs)
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            _check_rate_limit(operation_name, kwargs)
            return func(*args, **kwargs)
        return wrapper

    return decorator
