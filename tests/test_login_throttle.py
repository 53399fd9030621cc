"""Tests for the in-memory and Redis-backed failed-login throttles."""

from __future__ import annotations

import time

import fakeredis
import pytest

from registry.security.login_throttle import LoginThrottle
from registry.security.redis_login_throttle import RedisLoginThrottle


@pytest.fixture()
def redis_client() -> fakeredis.FakeStrictRedis:
    client = fakeredis.FakeStrictRedis()
    client.flushall()
    return client


@pytest.fixture(params=["memory", "redis"])
def throttle_factory(request, redis_client):
    def build(max_failures: int, window_seconds: int):
        if request.param == "memory":
            return LoginThrottle(max_failures=max_failures, window_seconds=window_seconds)
        return RedisLoginThrottle(
            redis_client, max_failures=max_failures, window_seconds=window_seconds, key_prefix="test"
        )

    return build


def test_allows_until_failure_limit(throttle_factory):
    throttle = throttle_factory(max_failures=2, window_seconds=60)
    key = "login:alice"

    assert throttle.allow(key)
    throttle.record_failure(key)
    assert throttle.allow(key)
    throttle.record_failure(key)
    assert not throttle.allow(key)
    assert throttle.allow("login:bob")


def test_reset_clears_failures(throttle_factory):
    throttle = throttle_factory(max_failures=1, window_seconds=60)
    key = "login:alice"

    throttle.record_failure(key)
    assert not throttle.allow(key)
    throttle.reset(key)
    assert throttle.allow(key)


def test_failures_expire(throttle_factory):
    throttle = throttle_factory(max_failures=1, window_seconds=1)
    key = "login:alice"

    throttle.record_failure(key)
    assert not throttle.allow(key)
    time.sleep(1.1)
    assert throttle.allow(key)


def test_memory_throttle_forgets_keys_without_failures(monkeypatch):
    throttle = LoginThrottle(max_failures=1, window_seconds=60)

    for name in ("alice", "bob", "carol"):
        assert throttle.allow(f"login:{name}")
    assert throttle._failures == {}

    now = time.time()
    throttle.record_failure("login:alice")
    monkeypatch.setattr(time, "time", lambda: now + 120)
    assert throttle.allow("login:alice")
    assert throttle._failures == {}
