from __future__ import annotations

import os
from functools import lru_cache

import redis

DEFAULT_TIMEOUT_SECONDS = 1.0
CLIENT_NAME = "rsl-backend"


def _redis_url() -> str:
    url = os.getenv("REDIS_URL")
    if not url:
        raise RuntimeError("REDIS_URL is not set")
    return url


def redis_timeout_seconds() -> float:
    raw = os.getenv("REDIS_TIMEOUT_SECONDS")
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS
    return value if value > 0 else DEFAULT_TIMEOUT_SECONDS


@lru_cache(maxsize=8)
def _build_client(redis_url: str, timeout_seconds: float) -> redis.Redis:
    return redis.Redis.from_url(
        redis_url,
        socket_connect_timeout=timeout_seconds,
        socket_timeout=timeout_seconds,
        client_name=CLIENT_NAME,
    )


def get_redis_client(timeout_seconds: float | None = None) -> redis.Redis:
    return _build_client(_redis_url(), timeout_seconds or redis_timeout_seconds())


def ping_redis(timeout_seconds: float | None = None) -> bool:
    try:
        return bool(get_redis_client(timeout_seconds).ping())
    except (RuntimeError, redis.RedisError):
        return False
