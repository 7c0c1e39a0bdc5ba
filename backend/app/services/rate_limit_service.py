from dataclasses import dataclass
import threading
import time

import redis

from app.services.redis_client import get_redis_client


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int


class RateLimitService:
    """Fixed-window counters, kept in Redis when available and in memory otherwise."""

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        self._redis = redis_client
        self._memory_counters: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()

    def check(self, key: str, *, limit: int, window_seconds: int) -> RateLimitDecision:
        safe_limit = max(1, int(limit))
        safe_window = max(1, int(window_seconds))
        decision = self._check_redis(key, safe_limit, safe_window)
        if decision:
            return decision
        return self._check_memory(key, safe_limit, safe_window)

    def reset(self) -> None:
        with self._lock:
            self._memory_counters.clear()

    def _check_redis(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision | None:
        if self._redis is None:
            return None
        try:
            bucket = int(time.time() // window_seconds)
            redis_key = f"blockhunt:ratelimit:{key}:{bucket}"
            pipe = self._redis.pipeline()
            pipe.incr(redis_key, 1)
            pipe.expire(redis_key, window_seconds + 1)
            count_value, _ = pipe.execute()
        except redis.RedisError:
            return None
        count = int(count_value)
        allowed = count <= limit
        return RateLimitDecision(
            allowed=allowed,
            limit=limit,
            remaining=max(0, limit - count),
            retry_after_seconds=0 if allowed else window_seconds,
        )

    def _check_memory(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        now_epoch = time.time()
        with self._lock:
            stale_keys = [
                bucket_key
                for bucket_key, (_, reset_epoch) in self._memory_counters.items()
                if now_epoch > reset_epoch + 1
            ]
            for stale_key in stale_keys:
                self._memory_counters.pop(stale_key, None)

            bucket = int(now_epoch // window_seconds)
            bucket_key = f"{key}:{bucket}"
            current_count, reset_epoch = self._memory_counters.get(
                bucket_key,
                (0, (bucket + 1) * window_seconds),
            )
            next_count = current_count + 1
            self._memory_counters[bucket_key] = (next_count, reset_epoch)

            allowed = next_count <= limit
            return RateLimitDecision(
                allowed=allowed,
                limit=limit,
                remaining=max(0, limit - next_count),
                retry_after_seconds=0 if allowed else max(1, int(reset_epoch - now_epoch)),
            )


rate_limit_service = RateLimitService(get_redis_client())
