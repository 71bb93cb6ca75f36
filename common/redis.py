import functools

from django.conf import settings

from redis import Redis


@functools.cache
def get_redis_connection() -> Redis | None:
    """
    Returns a shared Redis connection, or None when `REDIS_URL` is not configured.
    """
    if not settings.REDIS_URL:
        return None
    return Redis.from_url(settings.REDIS_URL)
