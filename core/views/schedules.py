"""
Public posyandu schedules and announcements.

Reads are open to the community site; writes need a staff account and
deletions an admin.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.models import Announcement, Schedule
from core.serializers.query import clamp_int
from core.serializers.schedule import AnnouncementSerializer, ScheduleSerializer
from core.services.audit import log_action

from ..permissions import AdminCanDelete, StaffOrReadOnly


@api_view(['GET', 'POST'])
@permission_classes([StaffOrReadOnly])
def schedules(request):
    if request.method == 'POST':
        s = ScheduleSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        schedule = s.save(created_by=request.user)
        log_action(user=request.user, action='schedule_create', object_type='schedule', object_id=schedule.id, request=request)
        return Response({'ok': True, 'data': ScheduleSerializer(schedule).data}, status=status.HTTP_201_CREATED)

    qs = Schedule.objects.order_by('date', 'id')
    if (request.query_params.get('upcoming') or '').lower() == 'true':
        qs = qs.filter(date__gte=timezone.localdate())
    limit = request.query_params.get('limit')
    if limit:
        qs = qs[:clamp_int(limit, 10, minimum=1, maximum=100)]
    return Response({'ok': True, 'data': ScheduleSerializer(qs, many=True).data})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([StaffOrReadOnly, AdminCanDelete])
def schedule_detail(request, pk):
    schedule = get_object_or_404(Schedule, pk=pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': ScheduleSerializer(schedule).data})
    if request.method == 'PUT':
        s = ScheduleSerializer(schedule, data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        schedule = s.save()
        log_action(user=request.user, action='schedule_update', object_type='schedule', object_id=schedule.id, request=request)
        return Response({'ok': True, 'data': ScheduleSerializer(schedule).data})
    schedule.delete()
    log_action(user=request.user, action='schedule_delete', object_type='schedule', object_id=pk, request=request)
    return Response({'ok': True})


@api_view(['GET', 'POST'])
@permission_classes([StaffOrReadOnly])
def announcements(request):
    if request.method == 'POST':
        s = AnnouncementSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        item = s.save(created_by=request.user)
        log_action(user=request.user, action='announcement_create', object_type='announcement', object_id=item.id, request=request)
        return Response({'ok': True, 'data': AnnouncementSerializer(item).data}, status=status.HTTP_201_CREATED)
    qs = Announcement.objects.filter(published=True).order_by('-created_at', '-id')
    return Response({'ok': True, 'data': AnnouncementSerializer(qs, many=True).data})
