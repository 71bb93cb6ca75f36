import functools

from django.conf import settings

from pyrate_limiter import Duration, InMemoryBucket, Limiter, Rate, RedisBucket

from common.redis import get_redis_connection


@functools.cache
def get_provider_limiter(bucket_key: str) -> Limiter:
    """
    Build (once per bucket key) the limiter guarding outgoing calendar provider calls.
    Uses a Redis bucket shared across workers when Redis is configured.
    """
    rates = [Rate(settings.CALENDAR_PROVIDER_REQUESTS_PER_MINUTE, Duration.MINUTE)]
    redis_connection = get_redis_connection()
    if redis_connection is not None:
        bucket = RedisBucket.init(rates, redis=redis_connection, bucket_key=bucket_key)
    else:
        bucket = InMemoryBucket(rates)

    return Limiter(
        bucket,
        raise_when_fail=False,
        max_delay=1000,  # Allow a maximum delay of 1 second per call
    )
