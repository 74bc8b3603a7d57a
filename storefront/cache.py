import redis

from storefront.config import settings

# decode_responses so cached tokens and snapshots come back as str
redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)


def get_cache() -> redis.Redis:
    return redis_client
