# participation_service/db/redis.py
import redis

from participation_service.core.config import settings


def get_redis_client():
    """
    Creates and returns a new Redis client instance.
    The client connects lazily, on its first command.
    """
    return redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=1,
        socket_timeout=1,
    )


# A single, shared instance that can be imported by other modules.
redis_client = get_redis_client()
