from core.logging import bind_request_context, clear_request_context, get_logger

logger = get_logger(__name__)


class RequestContextMiddleware:
    """Bind a request id to the log context and echo it as ``X-Request-ID``."""
    HEADER = 'HTTP_X_REQUEST_ID'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = bind_request_context((request.META.get(self.HEADER) or '').strip()[:64] or None)
        try:
            response = self.get_response(request)
            response['X-Request-ID'] = request_id
            if response.status_code >= 500:
                logger.error('request_failed', path=request.path, method=request.method, status=response.status_code)
            return response
        finally:
            clear_request_context()
