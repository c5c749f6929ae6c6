"""
Immunization records, tracking and coverage.

``GET /api/immunizations`` answers one of three questions depending on
the query string: a patient's history (``patient_id``), per-child
progress against the schedule (``type=tracking``) or per-vaccine coverage
(``type=coverage``).
"""
from __future__ import annotations

import uuid

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.gateway import get_gateway
from core.gateway.http import cached_response
from core.models import Immunization
from core.serializers.immunization import REQUIRED_MESSAGE, ImmunizationSerializer
from core.services import immunizations as service
from core.services.audit import log_action

from ..permissions import AdminCanDelete, IsStaffRole


@api_view(['GET', 'POST', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaffRole, AdminCanDelete])
def immunizations(request):
    handler = {
        'GET': _read,
        'POST': _create,
        'PUT': _update,
        'DELETE': _delete,
    }[request.method]
    return handler(request)


def _read(request):
    patient_id = request.query_params.get('patient_id')
    if patient_id:
        try:
            patient_id = uuid.UUID(patient_id)
        except ValueError:
            raise ValidationError({'patient_id': 'ID pasien tidak valid'})
        return Response({'data': ImmunizationSerializer(service.patient_history(patient_id), many=True).data})
    report = request.query_params.get('type')
    producers = {'tracking': service.tracking, 'coverage': service.coverage}
    if report in producers:
        return cached_response(get_gateway().cached_json('immunizations', f'type={report}', 60, producers[report]))
    raise ValidationError({'type': 'Parameter type tidak valid (tracking atau coverage)'})


def _create(request):
    s = ImmunizationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    with transaction.atomic():
        imm = s.save(created_by=request.user)
        get_gateway().bump_on_commit('immunizations', 'dashboard')
    log_action(user=request.user, action='immunization_create', object_type='immunization', object_id=imm.id, request=request)
    return Response({'success': True, 'data': ImmunizationSerializer(imm).data}, status=status.HTTP_201_CREATED)


def _update(request):
    imm_id = request.data.get('id')
    if not imm_id:
        raise ValidationError({'id': 'id, ' + REQUIRED_MESSAGE})
    imm = get_object_or_404(Immunization, pk=_record_id(imm_id))
    s = ImmunizationSerializer(imm, data=request.data)
    s.is_valid(raise_exception=True)
    with transaction.atomic():
        imm = s.save()
        get_gateway().bump_on_commit('immunizations', 'dashboard')
    log_action(user=request.user, action='immunization_update', object_type='immunization', object_id=imm.id, request=request)
    return Response({'success': True, 'data': ImmunizationSerializer(imm).data})


def _delete(request):
    imm_id = request.query_params.get('id')
    if not imm_id:
        raise ValidationError({'id': 'id wajib diisi'})
    imm = get_object_or_404(Immunization, pk=_record_id(imm_id))
    with transaction.atomic():
        imm.delete()
        get_gateway().bump_on_commit('immunizations', 'dashboard')
    log_action(user=request.user, action='immunization_delete', object_type='immunization', object_id=imm_id, request=request)
    return Response({'success': True, 'message': 'Data imunisasi berhasil dihapus'})


def _record_id(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError({'id': 'id tidak valid'})
