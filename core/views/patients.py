"""
Patient register endpoints.

Listing is rate limited and served from the ``patients`` response cache
namespace.  Every write bumps the namespaces whose cached payloads embed
patient data once the write has committed.
"""
from __future__ import annotations

import math

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.gateway import get_gateway
from core.gateway.http import cached_response, rate_limited
from core.models import Patient
from core.serializers.immunization import ImmunizationSerializer
from core.serializers.patient import PatientBatchSerializer, PatientSerializer
from core.serializers.query import clamp_int, encode, pick, pick_dir
from core.serializers.visit import VisitSerializer
from core.services.audit import log_action
from core.services.patients import create_patients_batch, filter_patients, format_age
from core.services.visits import assess_visit

from ..permissions import AdminCanDelete, IsStaffRole

PATIENT_TYPES = [key for key, _label in Patient.TYPE_CHOICES]


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
@rate_limited('api_patients_get', limit=240, window='1 m')
def patients(request):
    if request.method == 'POST':
        return _create_patient(request)

    qp = request.query_params
    page = clamp_int(qp.get('page'), 1, minimum=1, maximum=100_000)
    limit = clamp_int(qp.get('limit'), 10, minimum=1, maximum=200)
    q = (qp.get('q') or '').strip()
    patient_type = pick(qp.get('type'), PATIENT_TYPES)
    gender = pick(qp.get('gender'), ('L', 'P'))
    sort = pick(qp.get('sort'), ('full_name', 'created_at'), 'created_at')
    direction = pick_dir(qp.get('dir'))

    cache_key = (
        f'page={page}:limit={limit}:q={encode(q)}:type={encode(patient_type)}'
        f':gender={encode(gender)}:sort={sort}:dir={direction}'
    )

    def produce():
        qs = filter_patients(q=q, patient_type=patient_type, gender=gender, sort=sort, direction=direction)
        total = qs.count()
        start = (page - 1) * limit
        return {
            'data': PatientSerializer(qs[start:start + limit], many=True).data,
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': math.ceil(total / limit) if total > 0 else 0,
        }

    return cached_response(get_gateway().cached_json('patients', cache_key, 30, produce))


def _create_patient(request):
    s = PatientSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    with transaction.atomic():
        patient = s.save(created_by=request.user)
        get_gateway().bump_on_commit('patients', 'immunizations', 'dashboard')
    log_action(user=request.user, action='patient_create', object_type='patient', object_id=patient.id, request=request)
    return Response({'ok': True, 'data': PatientSerializer(patient).data}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def patients_batch(request):
    """Import many patients at once (spreadsheet upload); all rows or none."""
    s = PatientBatchSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    with transaction.atomic():
        created = create_patients_batch(s.validated_data['patients'], created_by=request.user)
        get_gateway().bump_on_commit('patients', 'immunizations', 'dashboard')
    log_action(user=request.user, action='patient_import', object_type='patient',
               detail={'count': len(created)}, request=request)
    return Response({
        'ok': True,
        'message': f'{len(created)} pasien berhasil diimpor',
        'data': PatientSerializer(created, many=True).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaffRole, AdminCanDelete])
def patient_detail(request, pk):
    patient = get_object_or_404(Patient, pk=pk)

    if request.method == 'GET':
        visits = list(patient.visits.select_related('patient').order_by('-visit_date', '-created_at'))
        data = PatientSerializer(patient).data
        data['age'] = format_age(patient.date_of_birth)
        data['visits'] = VisitSerializer(visits, many=True).data
        data['immunizations'] = ImmunizationSerializer(
            patient.immunizations.order_by('-vaccine_date', '-id'), many=True
        ).data
        data['pregnancies'] = [
            {
                'id': p.id,
                'pregnancy_order': p.pregnancy_order,
                'last_menstrual_period': p.last_menstrual_period.isoformat(),
                'estimated_due_date': p.estimated_due_date.isoformat() if p.estimated_due_date else None,
                'status': p.status,
            }
            for p in patient.pregnancies.order_by('-pregnancy_order')
        ]
        data['assessment'] = assess_visit(visits[0]) if visits else None
        return Response({'ok': True, 'data': data})

    if request.method == 'PUT':
        s = PatientSerializer(patient, data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        with transaction.atomic():
            patient = s.save()
            get_gateway().bump_on_commit('patients', 'visits', 'immunizations', 'dashboard')
        log_action(user=request.user, action='patient_update', object_type='patient', object_id=patient.id,
                   detail={'fields': sorted(s.validated_data)}, request=request)
        return Response({'ok': True, 'data': PatientSerializer(patient).data})

    patient_id = patient.id
    with transaction.atomic():
        patient.delete()
        get_gateway().bump_on_commit('patients', 'visits', 'immunizations', 'dashboard')
    log_action(user=request.user, action='patient_delete', object_type='patient', object_id=patient_id, request=request)
    return Response({'ok': True})
