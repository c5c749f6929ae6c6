"""
Key-value store strategies used by the response cache and rate limiter.

The store is chosen once at startup: :class:`RedisStore` when a Redis
endpoint is configured, :class:`NullStore` otherwise.  Callers check
``store.enabled`` to decide between the cached path and direct compute
instead of testing for a missing client on every call.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

import redis

from core.exceptions import StoreUnavailable
from core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """The handful of string commands the gateway relies on.

    ``incr`` must be atomic and ``set(..., ex=...)`` / ``pexpire`` must
    hand expiry to the store; no locking happens on this side.
    """

    name: str
    enabled: bool

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str, ex: Optional[int] = None) -> None: ...

    def delete(self, key: str) -> None: ...

    def incr(self, key: str) -> int: ...

    def pexpire(self, key: str, millis: int) -> None: ...

    def ping(self) -> bool: ...


class NullStore:
    """Store used when no endpoint is configured; nothing is ever kept."""

    name = 'disabled'
    enabled = False

    def get(self, key):
        return None

    def set(self, key, value, ex=None):
        return None

    def delete(self, key):
        return None

    def incr(self, key):
        return 0

    def pexpire(self, key, millis):
        return None

    def ping(self):
        return False


class RedisStore:
    """Redis backed store.  Client errors surface as :class:`StoreUnavailable`."""

    name = 'redis'
    enabled = True

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str, *, password: Optional[str] = None, socket_timeout: float = 3.0) -> 'RedisStore':
        client = redis.Redis.from_url(
            url,
            password=password,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=True,
        )
        return cls(client)

    def get(self, key):
        try:
            value = self.client.get(key)
        except redis.RedisError as e:
            raise StoreUnavailable('get', e) from e
        if isinstance(value, bytes):
            value = value.decode('utf-8')
        return value

    def set(self, key, value, ex=None):
        try:
            self.client.set(key, value, ex=ex)
        except redis.RedisError as e:
            raise StoreUnavailable('set', e) from e

    def delete(self, key):
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            raise StoreUnavailable('delete', e) from e

    def incr(self, key):
        try:
            return int(self.client.incr(key))
        except redis.RedisError as e:
            raise StoreUnavailable('incr', e) from e

    def pexpire(self, key, millis):
        try:
            self.client.pexpire(key, millis)
        except redis.RedisError as e:
            raise StoreUnavailable('pexpire', e) from e

    def ping(self):
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False


def build_store(url: str, *, password: Optional[str] = None, socket_timeout: float = 3.0) -> KeyValueStore:
    """Resolve the store strategy from configuration."""
    if not url:
        logger.info('kv_store_disabled', reason='REDIS_URL not set')
        return NullStore()
    logger.info('kv_store_configured', backend='redis')
    return RedisStore.from_url(url, password=password, socket_timeout=socket_timeout)
