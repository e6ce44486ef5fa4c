"""Redis-backed key-value store, used when ``REDIS_URL`` is configured."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import redis

from scheduledesk.errors import Unavailable
from scheduledesk.store.base import KeyValueStore

logger = logging.getLogger(__name__)


def create_redis_client(url: str, timeout_seconds: float) -> redis.Redis:
    """Build a client that returns ``str`` and gives up after ``timeout_seconds``."""
    return redis.Redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=timeout_seconds,
        socket_connect_timeout=timeout_seconds,
    )


class RedisKeyValueStore(KeyValueStore):
    """Key-value primitives on a Redis client.

    Writes inside ``atomic()`` are queued on a ``MULTI``/``EXEC`` pipeline and
    applied together on exit. Reads always go straight to the server.
    """

    def __init__(self, client: redis.Redis):
        self._client = client
        self._pipe: Optional[redis.client.Pipeline] = None

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except redis.RedisError as exc:
            logger.error("Redis failure: %s", exc)
            raise Unavailable() from exc

    @property
    def _writer(self):
        return self._pipe if self._pipe is not None else self._client

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if self._pipe is not None:
            yield
            return
        self._pipe = self._client.pipeline(transaction=True)
        try:
            yield
            with self._guard():
                self._pipe.execute()
        finally:
            self._pipe.reset()
            self._pipe = None

    # --- strings ---
    def get(self, key: str) -> Optional[str]:
        with self._guard():
            return self._client.get(key)

    def get_many(self, keys: list[str]) -> list[Optional[str]]:
        if not keys:
            return []
        with self._guard():
            return self._client.mget(keys)

    def set(self, key: str, value: str) -> None:
        with self._guard():
            self._writer.set(key, value)

    def delete(self, *keys: str) -> None:
        if not keys:
            return
        with self._guard():
            self._writer.delete(*keys)

    # --- lists ---
    def list_append(self, key: str, *values: str) -> None:
        if not values:
            return
        with self._guard():
            self._writer.rpush(key, *values)

    def list_range(self, key: str) -> list[str]:
        with self._guard():
            return self._client.lrange(key, 0, -1)

    def list_remove(self, key: str, value: str) -> None:
        with self._guard():
            self._writer.lrem(key, 0, value)

    def list_contains(self, key: str, value: str) -> bool:
        with self._guard():
            return self._client.lpos(key, value) is not None

    # --- sets ---
    def set_add(self, key: str, member: str) -> None:
        with self._guard():
            self._writer.sadd(key, member)

    def set_remove(self, key: str, member: str) -> None:
        with self._guard():
            self._writer.srem(key, member)

    def set_members(self, key: str) -> set[str]:
        with self._guard():
            return set(self._client.smembers(key))

    def set_contains(self, key: str, member: str) -> bool:
        with self._guard():
            return bool(self._client.sismember(key, member))
