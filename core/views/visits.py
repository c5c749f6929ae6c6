"""
Measurement visit endpoints.

The list and the single visit are served from the ``visits`` cache
namespace.  Writes also bump ``patients`` and ``dashboard`` because both
summarise visit data.
"""
from __future__ import annotations

import math

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.gateway import get_gateway
from core.gateway.http import cached_response, rate_limited
from core.models import Patient, Visit
from core.serializers.query import clamp_int, encode, pick, pick_dir
from core.serializers.visit import VisitDetailSerializer, VisitSerializer
from core.services.audit import log_action
from core.services.visits import assess_visit, filter_visits

from ..permissions import AdminCanDelete, IsStaffRole

AFFECTED_NAMESPACES = ('visits', 'patients', 'dashboard')
VISIT_TYPE_FILTERS = ['all'] + [key for key, _label in Patient.TYPE_CHOICES]


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
@rate_limited('api_visits_get', limit=240, window='1 m')
def visits(request):
    if request.method == 'POST':
        s = VisitSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        with transaction.atomic():
            visit = s.save(created_by=request.user)
            get_gateway().bump_on_commit(*AFFECTED_NAMESPACES)
        log_action(user=request.user, action='visit_create', object_type='visit', object_id=visit.id, request=request)
        return Response({'ok': True, 'data': VisitSerializer(visit).data}, status=status.HTTP_201_CREATED)

    qp = request.query_params
    page = clamp_int(qp.get('page'), 1, minimum=1, maximum=10_000)
    limit = clamp_int(qp.get('limit'), 10, minimum=1, maximum=100)
    q = (qp.get('q') or '').strip()
    patient_type = pick(qp.get('type'), VISIT_TYPE_FILTERS, 'all')
    sort = pick(qp.get('sort'), ('visit_date', 'created_at'), 'visit_date')
    direction = pick_dir(qp.get('dir'))

    cache_key = f'page={page}:limit={limit}:q={encode(q)}:type={encode(patient_type)}:sort={sort}:dir={direction}'

    def produce():
        qs = filter_visits(q=q, patient_type=patient_type, sort=sort, direction=direction)
        total = qs.count()
        start = (page - 1) * limit
        return {
            'data': VisitDetailSerializer(qs[start:start + limit], many=True).data,
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': math.ceil(total / limit) if total > 0 else 0,
        }

    return cached_response(get_gateway().cached_json('visits', cache_key, 30, produce))


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaffRole, AdminCanDelete])
@rate_limited('api_visits_id_get', limit=240, window='1 m')
def visit_detail(request, pk):
    if request.method == 'GET':
        def produce():
            visit = Visit.objects.select_related('patient', 'created_by').filter(pk=pk).first()
            if visit is None:
                raise NotFound('Kunjungan tidak ditemukan')
            data = VisitDetailSerializer(visit).data
            data['assessment'] = assess_visit(visit)
            return {'data': data}

        return cached_response(get_gateway().cached_json('visits', f'id={pk}', 60, produce))

    visit = get_object_or_404(Visit, pk=pk)
    if request.method == 'PUT':
        s = VisitSerializer(visit, data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        with transaction.atomic():
            visit = s.save()
            get_gateway().bump_on_commit(*AFFECTED_NAMESPACES)
        log_action(user=request.user, action='visit_update', object_type='visit', object_id=visit.id, request=request)
        return Response({'ok': True, 'data': VisitSerializer(visit).data})

    with transaction.atomic():
        visit.delete()
        get_gateway().bump_on_commit(*AFFECTED_NAMESPACES)
    log_action(user=request.user, action='visit_delete', object_type='visit', object_id=pk, request=request)
    return Response({'ok': True})
