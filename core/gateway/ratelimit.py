"""
Sliding-window request limiter backed by the key-value store.

Each identifier gets one counter per fixed window
(``rl:{prefix}:{identifier}:{window_index}``).  A request is admitted when
the current window's count plus the previous window's count, weighted by
how much of the previous window still overlaps the trailing interval,
stays below the limit.  Counters expire after two windows.

The check and the increment are separate store commands, so requests in
flight at the same moment can overshoot the limit by their number.
"""
from __future__ import annotations

import math
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional

from core.exceptions import InvalidDuration
from core.logging import get_logger

from .stores import KeyValueStore

logger = get_logger(__name__)

_DURATION_RE = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)\s*$')
_UNIT_MS = {
    'ms': 1,
    's': 1000,
    'm': 60 * 1000,
    'h': 60 * 60 * 1000,
    'd': 24 * 60 * 60 * 1000,
}


def parse_duration(window: str) -> int:
    """Convert ``'10 s'``, ``'1 m'``, ``'500ms'`` ... into milliseconds."""
    match = _DURATION_RE.match(window or '')
    if not match:
        raise InvalidDuration(f'invalid rate limit window: {window!r}')
    millis = int(float(match.group(1)) * _UNIT_MS[match.group(2)])
    if millis <= 0:
        raise InvalidDuration(f'rate limit window must be positive: {window!r}')
    return millis


def get_request_ip(request) -> str:
    """Client address from proxy headers, else ``'unknown'``."""
    forwarded = request.headers.get('x-forwarded-for')
    if forwarded:
        return forwarded.split(',')[0].strip() or 'unknown'
    real_ip = request.headers.get('x-real-ip')
    if real_ip:
        return real_ip
    return 'unknown'


@dataclass(frozen=True)
class RateLimitResult:
    ok: bool
    limit: int = 0
    remaining: int = 0
    reset: int = 0
    bypass: bool = False

    def headers(self) -> dict[str, str]:
        if self.bypass:
            return {}
        return {
            'x-ratelimit-limit': str(self.limit),
            'x-ratelimit-remaining': str(self.remaining),
            'x-ratelimit-reset': str(self.reset),
        }


BYPASS = RateLimitResult(ok=True, bypass=True)


class SlidingWindowLimiter:

    def __init__(self, store: KeyValueStore, *, prefix: str, limit: int, window: str,
                 clock: Callable[[], float] = time.time):
        if limit <= 0:
            raise ValueError('limit must be a positive integer')
        self.store = store
        self.prefix = prefix
        self.key_prefix = f'rl:{prefix}'
        self.max_requests = limit
        self.window = window
        self.window_ms = parse_duration(window)
        self.clock = clock

    def limit(self, identifier: str) -> RateLimitResult:
        now_ms = int(self.clock() * 1000)
        current_window = now_ms // self.window_ms
        current_key = f'{self.key_prefix}:{identifier}:{current_window}'
        previous_key = f'{self.key_prefix}:{identifier}:{current_window - 1}'
        reset = (current_window + 1) * self.window_ms

        current = _as_count(self.store.get(current_key))
        previous = _as_count(self.store.get(previous_key))
        elapsed = (now_ms % self.window_ms) / self.window_ms
        previous_weighted = math.floor((1 - elapsed) * previous)

        if previous_weighted + current >= self.max_requests:
            return RateLimitResult(ok=False, limit=self.max_requests, remaining=0, reset=reset)

        new_value = self.store.incr(current_key)
        if new_value == 1:
            self.store.pexpire(current_key, self.window_ms * 2 + 1000)
        remaining = max(0, self.max_requests - (new_value + previous_weighted))
        return RateLimitResult(ok=True, limit=self.max_requests, remaining=remaining, reset=reset)


def _as_count(raw: Optional[str]) -> int:
    try:
        return int(raw) if raw is not None else 0
    except (TypeError, ValueError):
        return 0
