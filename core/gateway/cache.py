"""
Versioned read-through cache for JSON responses.

Entries live under ``cache:{namespace}:v{version}:{key}``.  Each namespace
has an integer counter at ``cachever:{namespace}``; bumping it makes every
existing entry of the namespace unreachable, and the orphans disappear
when their TTL runs out.  This avoids scanning the store for a prefix.

Two concurrent misses on the same key both run the producer and both
write; the last write wins.  Producers at the call sites are plain reads,
so that only costs a duplicate query.
"""
from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from django.core.serializers.json import DjangoJSONEncoder

from core.exceptions import StoreUnavailable
from core.logging import get_logger

from .stores import KeyValueStore

logger = get_logger(__name__)

T = TypeVar('T')


class CacheStatus(str, enum.Enum):
    HIT = 'HIT'
    MISS = 'MISS'
    BYPASS = 'BYPASS'


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    value: T
    cache: CacheStatus

    def headers(self) -> dict[str, str]:
        return {'x-cache': self.cache.value}


def version_key(namespace: str) -> str:
    return f'cachever:{namespace}'


def entry_key(namespace: str, version: int, key: str) -> str:
    return f'cache:{namespace}:v{version}:{key}'


class ResponseCache:
    """Get-or-compute over a :class:`KeyValueStore`.

    With ``fail_open`` a :class:`StoreUnavailable` raised mid-call is
    logged and the value is computed directly (status ``BYPASS``);
    otherwise the error propagates to the caller.
    """

    def __init__(self, store: KeyValueStore, *, fail_open: bool = False):
        self.store = store
        self.fail_open = fail_open

    def current_version(self, namespace: str) -> int:
        vkey = version_key(namespace)
        existing = self.store.get(vkey)
        if existing is None:
            self.store.set(vkey, '1')
            return 1
        try:
            parsed = int(existing)
        except (TypeError, ValueError):
            return 1
        return parsed if parsed > 0 else 1

    def bump_version(self, namespace: str) -> None:
        if not self.store.enabled:
            return
        try:
            version = self.store.incr(version_key(namespace))
        except StoreUnavailable as e:
            if not self.fail_open:
                raise
            logger.warning('cache_bump_skipped', namespace=namespace, operation=e.operation)
            return
        logger.debug('cache_version_bumped', namespace=namespace, version=version)

    def cached_json(self, namespace: str, key: str, ttl_seconds: int, producer: Callable[[], T]) -> CacheResult[T]:
        if not namespace or not key:
            raise ValueError('namespace and key must be non-empty')
        if ttl_seconds <= 0:
            raise ValueError('ttl_seconds must be positive')

        if not self.store.enabled:
            return CacheResult(producer(), CacheStatus.BYPASS)

        try:
            full_key = entry_key(namespace, self.current_version(namespace), key)
            cached = self.store.get(full_key)
        except StoreUnavailable as e:
            return self._fallback(namespace, e, producer)

        if cached:
            try:
                return CacheResult(json.loads(cached), CacheStatus.HIT)
            except ValueError:
                logger.warning('cache_corrupt_entry', namespace=namespace, key=full_key)
                try:
                    self.store.delete(full_key)
                except StoreUnavailable as e:
                    return self._fallback(namespace, e, producer)

        value = producer()
        try:
            self.store.set(full_key, json.dumps(value, cls=DjangoJSONEncoder), ex=ttl_seconds)
        except StoreUnavailable as e:
            if not self.fail_open:
                raise
            logger.warning('cache_store_fallback', namespace=namespace, operation=e.operation)
            return CacheResult(value, CacheStatus.BYPASS)
        return CacheResult(value, CacheStatus.MISS)

    def _fallback(self, namespace: str, error: StoreUnavailable, producer: Callable[[], T]) -> CacheResult[T]:
        if not self.fail_open:
            raise error
        logger.warning('cache_store_fallback', namespace=namespace, operation=error.operation)
        return CacheResult(producer(), CacheStatus.BYPASS)
