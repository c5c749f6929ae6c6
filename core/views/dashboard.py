"""
Staff dashboard endpoint.

Summary counts, the nutrition distribution of infants and toddlers,
monthly visit trends and the latest visits.  The payload is cached per
user for a short time in the ``dashboard`` namespace; any patient, visit
or immunization write bumps that namespace.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from core.gateway import get_gateway
from core.gateway.http import cached_response, rate_limited
from core.serializers.query import clamp_int
from core.services.dashboard import build_dashboard

from ..permissions import IsStaffRole


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
@rate_limited('api_dashboard_get', limit=120, window='1 m')
def dashboard(request):
    months = clamp_int(request.query_params.get('months'), 6, minimum=1, maximum=24)
    recent_limit = clamp_int(request.query_params.get('recentLimit'), 5, minimum=1, maximum=20)
    user_id = request.user.id if request.user else 'anon'
    cache_key = f'months={months}:recent={recent_limit}:user={user_id}'

    result = get_gateway().cached_json(
        'dashboard', cache_key, 15,
        lambda: build_dashboard(months=months, recent_limit=recent_limit),
    )
    return cached_response(result)
