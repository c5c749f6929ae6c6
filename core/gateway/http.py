"""
Glue between the gateway and DRF function views.

``rate_limited`` runs the sliding-window check before the view body for
the listed methods, answers 429 when the window is exhausted and
otherwise copies the ``x-ratelimit-*`` headers onto the view's response.  ``cached_response``
turns a :class:`CacheResult` into a response carrying ``x-cache``.
"""
from __future__ import annotations

import functools

from rest_framework.response import Response

from . import get_gateway
from .cache import CacheResult


def rate_limited(prefix: str, *, limit: int = 60, window: str = '1 m', methods=('GET',)):
    def decorator(view):
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            if request.method not in methods:
                return view(request, *args, **kwargs)
            result = get_gateway().check_rate_limit(request, prefix=prefix, limit=limit, window=window)
            if not result.ok:
                return Response(
                    {'ok': False, 'error': {'code': 'rate_limited', 'message': 'Too many requests'}},
                    status=429,
                    headers=result.headers(),
                )
            response = view(request, *args, **kwargs)
            for name, value in result.headers().items():
                response[name] = value
            return response
        return wrapper
    return decorator


def cached_response(result: CacheResult, status: int = 200) -> Response:
    return Response(result.value, status=status, headers=result.headers())
