"""
Aggregates for the staff dashboard.

Everything returned here is JSON-native (strings, numbers, lists, dicts)
because the payload is stored in the response cache as is.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from django.db.models import Count
from django.db.models.functions import TruncMonth
from django.utils import timezone

from core.models import Immunization, Patient, Visit
from core.services import clinical
from core.services.patients import DEFAULT_BADGE_CLASS, TYPE_BADGE_CLASSES, patient_type_label

PATIENT_TYPES = [key for key, _label in Patient.TYPE_CHOICES]

NUTRITION_STATUSES = [
    ('Gizi Baik', '#10b981'),
    ('Gizi Kurang', '#f59e0b'),
    ('Gizi Buruk', '#ef4444'),
    ('Stunting', '#6366f1'),
]


def _month_start(d: date, offset: int = 0) -> date:
    index = d.year * 12 + (d.month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


def summary(today: date) -> dict:
    this_month = _month_start(today)
    next_month = _month_start(today, 1)
    return {
        'totalPatients': Patient.objects.count(),
        'visitsThisMonth': Visit.objects.filter(visit_date__gte=this_month, visit_date__lt=next_month).count(),
        'immunizationsPending': Immunization.objects.filter(
            next_schedule__isnull=False, next_schedule__lte=today
        ).count(),
        'balitaGiziBuruk': 0,
    }


def nutrition_status(visit: Visit) -> Optional[str]:
    """Dashboard category of a child's measurement, or None if it has no weight."""
    if not visit.weight:
        return None
    patient = visit.patient
    age = clinical.age_in_months(patient.date_of_birth, visit.visit_date)
    if visit.height:
        hfa = clinical.height_for_age(visit.height, age, patient.gender)
        if hfa.status != clinical.HeightForAge.NORMAL:
            return 'Stunting'
    return clinical.weight_for_age(visit.weight, age, patient.gender).label


def nutrition() -> list[dict]:
    counts = {status: 0 for status, _color in NUTRITION_STATUSES}
    seen = set()
    visits = (
        Visit.objects.select_related('patient')
        .filter(patient__patient_type__in=('bayi', 'balita'), weight__isnull=False)
        .order_by('patient_id', '-visit_date', '-created_at')
    )
    for visit in visits:
        if visit.patient_id in seen:
            continue
        seen.add(visit.patient_id)
        status = nutrition_status(visit)
        if status in counts:
            counts[status] += 1
    total = sum(counts.values())
    return [
        {
            'status': status,
            'count': counts[status],
            'percentage': (counts[status] / total * 100) if total else 0,
            'color': color,
        }
        for status, color in NUTRITION_STATUSES
    ]


def visit_trends(today: date, months: int) -> list[dict]:
    months = max(1, months)
    start = _month_start(today, -(months - 1))
    end = _month_start(today, 1)
    buckets = {}
    for i in range(months):
        d = _month_start(start, i)
        buckets[d.strftime('%Y-%m')] = {'month': d.strftime('%b'), **{t: 0 for t in PATIENT_TYPES}, 'total': 0}

    rows = (
        Visit.objects.filter(visit_date__gte=start, visit_date__lt=end)
        .annotate(month=TruncMonth('visit_date'))
        .values('month', 'patient__patient_type')
        .annotate(total=Count('id'))
    )
    for row in rows:
        bucket = buckets.get(row['month'].strftime('%Y-%m'))
        patient_type = row['patient__patient_type']
        if bucket is None or patient_type not in PATIENT_TYPES:
            continue
        bucket[patient_type] += row['total']
        bucket['total'] += row['total']
    return list(buckets.values())


def recent_visits(limit: int) -> list[dict]:
    rows = []
    for visit in Visit.objects.select_related('patient', 'created_by').order_by('-visit_date', '-created_at')[:limit]:
        patient_type = visit.patient.patient_type or 'balita'
        officer = visit.created_by
        rows.append({
            'name': visit.patient.full_name or '-',
            'type': patient_type_label(patient_type),
            'date': visit.visit_date.strftime('%d %b %Y') if visit.visit_date else '-',
            'officer': (officer.get_full_name() or officer.username) if officer else '-',
            'typeColor': TYPE_BADGE_CLASSES.get(patient_type, DEFAULT_BADGE_CLASS),
        })
    return rows


def build_dashboard(*, months: int, recent_limit: int, today: Optional[date] = None) -> dict:
    today = today or timezone.localdate()
    nutrition_rows = nutrition()
    data_summary = summary(today)
    data_summary['balitaGiziBuruk'] = next(
        (row['count'] for row in nutrition_rows if row['status'] == 'Gizi Buruk'), 0
    )
    return {
        'summary': data_summary,
        'nutrition': nutrition_rows,
        'visitTrends': visit_trends(today, months),
        'recentVisits': recent_visits(recent_limit),
    }
