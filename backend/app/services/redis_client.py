import redis

from app.core.config import get_settings


def get_redis_client() -> redis.Redis | None:
    redis_url = get_settings().redis_url
    if not redis_url:
        return None
    try:
        return redis.Redis.from_url(redis_url, decode_responses=True, socket_connect_timeout=0.5)
    except redis.RedisError:
        return None
