"""
Lenient query string parsing for list endpoints.

Unlike body serializers these never reject a request: numbers outside
their range are clamped, unparseable numbers fall back to a default and
unknown enum values are ignored.
"""
from __future__ import annotations

import re
from typing import Iterable, Optional
from urllib.parse import quote

_LEADING_INT = re.compile(r'^\s*([-+]?\d+)')


def clamp_int(value: Optional[str], fallback: int, *, minimum: Optional[int] = None,
              maximum: Optional[int] = None) -> int:
    match = _LEADING_INT.match(value or '')
    num = int(match.group(1)) if match else fallback
    if minimum is not None:
        num = max(num, minimum)
    if maximum is not None:
        num = min(num, maximum)
    return num


def pick(value: Optional[str], allowed: Iterable[str], default: Optional[str] = None) -> Optional[str]:
    v = (value or '').strip()
    return v if v in allowed else default


def pick_dir(value: Optional[str]) -> str:
    return 'asc' if (value or '').strip().lower() == 'asc' else 'desc'


def encode(value: Optional[str]) -> str:
    """Percent-encode free text for use inside a cache key."""
    return quote(value or '', safe="-_.!~*'()")
