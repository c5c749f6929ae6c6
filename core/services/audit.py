from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.validators import validate_ipv46_address

from core.gateway.ratelimit import get_request_ip
from core.logging import get_logger
from core.models import AuditEvent

User = get_user_model()
logger = get_logger(__name__)


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None, object_id: Any = None,
               detail: Optional[Dict[str, Any]] = None, request=None, status: str = 'success') -> AuditEvent:
    ip = None
    if request is not None:
        ip = request.META.get('REMOTE_ADDR')
        forwarded = get_request_ip(request)
        if forwarded != 'unknown':
            ip = forwarded
        try:
            validate_ipv46_address(ip or '')
        except ValidationError:
            ip = None
    event = AuditEvent.objects.create(
        user=user if getattr(user, 'pk', None) else None,
        action=action,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
        ip=ip or None,
        status=status,
    )
    logger.info('audit', action=action, object_type=object_type, object_id=event.object_id, status=status)
    return event
