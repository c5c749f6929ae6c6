from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response

from core.logging import get_logger

logger = get_logger(__name__)


class StoreUnavailable(Exception):
    """The key-value store could not be reached or rejected a command."""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f'key-value store unavailable during {operation}: {cause}')


class InvalidDuration(ValueError):
    """A rate limit window string such as ``'1 m'`` could not be parsed."""


def api_exception_handler(exc, context):
    if isinstance(exc, StoreUnavailable):
        logger.error('store_unavailable', operation=exc.operation, error=str(exc.cause))
        return Response({'ok': False, 'error': {'code': 'store_unavailable', 'message': 'Layanan cache tidak tersedia'}}, status=503)
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled_api_error', view=context.get('view').__class__.__name__ if context.get('view') else None)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = str(resp.data)
    return Response({'ok': False, 'error': {'code': 'api_error', 'message': detail}}, status=resp.status_code, headers=_passthrough_headers(resp))


def _passthrough_headers(resp):
    # keep Retry-After / WWW-Authenticate set by DRF
    return {k: v for k, v in resp.items() if k.lower() in {'retry-after', 'www-authenticate'}}
