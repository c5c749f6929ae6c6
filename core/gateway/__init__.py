"""Response cache and rate limiting over an optional key-value store."""
from django.apps import apps

from .cache import CacheResult, CacheStatus
from .context import GatewayContext
from .ratelimit import RateLimitResult

# Namespaces used by the API views; writes bump the ones they affect.
NAMESPACES = ('patients', 'visits', 'immunizations', 'dashboard')


def get_gateway() -> GatewayContext:
    return apps.get_app_config('core').gateway


__all__ = [
    'CacheResult',
    'CacheStatus',
    'GatewayContext',
    'NAMESPACES',
    'RateLimitResult',
    'get_gateway',
]
