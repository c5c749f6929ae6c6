from __future__ import annotations

import time
from typing import Callable, Optional, TypeVar

from django.db import transaction

from core.exceptions import StoreUnavailable
from core.logging import get_logger

from .cache import CacheResult, ResponseCache
from .ratelimit import BYPASS, RateLimitResult, SlidingWindowLimiter, get_request_ip
from .stores import KeyValueStore, build_store

logger = get_logger(__name__)

T = TypeVar('T')

FAILURE_POLICIES = ('raise', 'bypass')


class GatewayContext:
    """Process-wide cache and rate limit state.

    Built once when the ``core`` app is ready and reached from views via
    :func:`core.gateway.get_gateway`.  Holds the selected store, the
    response cache and the limiter instances, which are keyed by
    ``prefix|limit|window`` so each combination is constructed once.
    """

    def __init__(self, store: KeyValueStore, *, rate_limit_enabled: bool = False,
                 failure_policy: str = 'raise', clock: Callable[[], float] = time.time):
        if failure_policy not in FAILURE_POLICIES:
            raise ValueError(f'unknown store failure policy: {failure_policy}')
        self.store = store
        self.rate_limit_enabled = rate_limit_enabled
        self.failure_policy = failure_policy
        self.clock = clock
        self.cache = ResponseCache(store, fail_open=self.fail_open)
        self._limiters: dict[str, SlidingWindowLimiter] = {}

    @classmethod
    def from_settings(cls, settings) -> 'GatewayContext':
        store = build_store(
            settings.REDIS_URL,
            password=settings.REDIS_PASSWORD,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )
        return cls(
            store,
            rate_limit_enabled=settings.RATE_LIMIT_ENABLED,
            failure_policy=settings.CACHE_STORE_FAILURE_POLICY,
        )

    @property
    def fail_open(self) -> bool:
        return self.failure_policy == 'bypass'

    # ------------------------------------------------------------------
    # Response cache
    # ------------------------------------------------------------------
    def cached_json(self, namespace: str, key: str, ttl_seconds: int, producer: Callable[[], T]) -> CacheResult[T]:
        return self.cache.cached_json(namespace, key, ttl_seconds, producer)

    def bump_cache_version(self, *namespaces: str) -> None:
        for namespace in namespaces:
            self.cache.bump_version(namespace)

    def bump_on_commit(self, *namespaces: str) -> None:
        """Bump once the surrounding transaction commits.

        A bump issued before COMMIT lets a concurrent reader cache the
        pre-write rows under the new version.  Under the ``raise`` policy a
        store failure here surfaces as 503 after the write has landed.
        """
        transaction.on_commit(lambda: self.bump_cache_version(*namespaces))

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------
    def limiter_for(self, prefix: str, limit: int, window: str) -> SlidingWindowLimiter:
        key = f'{prefix}|{limit}|{window}'
        limiter = self._limiters.get(key)
        if limiter is None:
            limiter = SlidingWindowLimiter(self.store, prefix=prefix, limit=limit, window=window, clock=self.clock)
            self._limiters[key] = limiter
        return limiter

    def check_rate_limit(self, request, *, prefix: str, limit: int = 60, window: str = '1 m',
                         identifier: Optional[str] = None) -> RateLimitResult:
        if not self.rate_limit_enabled or not self.store.enabled:
            return BYPASS
        identifier = identifier or get_request_ip(request)
        limiter = self.limiter_for(prefix, limit, window)
        try:
            result = limiter.limit(identifier)
        except StoreUnavailable as e:
            if not self.fail_open:
                raise
            logger.warning('rate_limit_store_fallback', prefix=prefix, operation=e.operation)
            return BYPASS
        if not result.ok:
            logger.warning('rate_limit_denied', prefix=prefix, identifier=identifier, limit=result.limit, reset=result.reset)
        return result
