"""Redis-backed failed-login throttle shared across processes."""

from __future__ import annotations

import time
from typing import Final

from redis import Redis
from redis.exceptions import ResponseError


class RedisLoginThrottle:
    """Distributed failed-login window implemented with Redis sorted sets."""

    _RECORD_SCRIPT: Final[str] = """
    local key = KEYS[1]
    local counter_key = key .. ':seq'
    local window_ms = tonumber(ARGV[1])
    local now_ms = tonumber(ARGV[2])

    redis.call('ZREMRANGEBYSCORE', key, 0, now_ms - window_ms)
    local seq = redis.call('INCR', counter_key)
    redis.call('PEXPIRE', counter_key, window_ms)
    redis.call('ZADD', key, now_ms, tostring(now_ms) .. ':' .. tostring(seq))
    redis.call('PEXPIRE', key, window_ms)
    return redis.call('ZCARD', key)
    """

    def __init__(
        self,
        client: Redis,
        *,
        max_failures: int,
        window_seconds: int,
        key_prefix: str = "login-failures",
    ) -> None:
        """Initialise the Redis client, window configuration, and Lua script cache."""
        self._client = client
        self._max_failures = max_failures
        self._window_ms = window_seconds * 1000
        self._key_prefix = key_prefix
        self._script = client.register_script(self._RECORD_SCRIPT)

    def allow(self, key: str) -> bool:
        """Return ``True`` when ``key`` has fewer recent failures than the limit."""
        redis_key = self._key(key)
        now_ms = int(time.time() * 1000)
        self._client.zremrangebyscore(redis_key, 0, now_ms - self._window_ms)
        return int(self._client.zcard(redis_key)) < self._max_failures

    def record_failure(self, key: str) -> None:
        now_ms = int(time.time() * 1000)
        redis_key = self._key(key)
        try:
            self._script(keys=[redis_key], args=[self._window_ms, now_ms])
        except ResponseError as exc:
            message = str(exc).lower()
            if "unknown command" in message and "eval" in message:
                self._record_fallback(redis_key, now_ms)
                return
            raise

    def reset(self, key: str) -> None:
        redis_key = self._key(key)
        self._client.delete(redis_key, f"{redis_key}:seq")

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}"

    def _record_fallback(self, redis_key: str, now_ms: int) -> None:
        """Fallback pure-Python implementation used when Lua is unavailable."""
        self._client.zremrangebyscore(redis_key, 0, now_ms - self._window_ms)
        seq = self._client.incr(f"{redis_key}:seq")
        self._client.pexpire(f"{redis_key}:seq", self._window_ms)
        self._client.zadd(redis_key, {f"{now_ms}:{seq}": now_ms})
        self._client.pexpire(redis_key, self._window_ms)
