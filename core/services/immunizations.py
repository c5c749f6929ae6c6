"""
Immunization tracking and coverage reports for infants and toddlers.

Tracking compares each child's records against the complete national
schedule.  Coverage counts, per basic vaccine, how many records exist
relative to the number of children, and how many children hold every
basic vaccine (IDL, imunisasi dasar lengkap) against the UCI target.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Optional

from django.utils import timezone

from core.models import Immunization, Patient
from core.services.clinical import age_in_months

CHILD_TYPES = ('bayi', 'balita')

COMPLETE_SCHEDULE = [
    'Hepatitis B (HB0)',
    'BCG',
    'Polio 1',
    'DPT-HB-Hib 1',
    'Polio 2',
    'DPT-HB-Hib 2',
    'Polio 3',
    'DPT-HB-Hib 3',
    'Polio 4',
    'IPV',
    'Campak/MR',
    'DPT-HB-Hib Booster',
    'Campak/MR Booster',
]

# (short name, full name, target age in months)
BASIC_VACCINES = [
    ('HB0', 'Hepatitis B (HB0)', 0),
    ('BCG', 'BCG', 1),
    ('Polio 1', 'Polio 1', 1),
    ('DPT-HB-Hib 1', 'DPT-HB-Hib 1', 2),
    ('Polio 2', 'Polio 2', 2),
    ('DPT-HB-Hib 2', 'DPT-HB-Hib 2', 3),
    ('Polio 3', 'Polio 3', 3),
    ('DPT-HB-Hib 3', 'DPT-HB-Hib 3', 4),
    ('Polio 4', 'Polio 4', 4),
    ('IPV', 'IPV', 4),
    ('Campak/MR', 'Campak/MR', 9),
]

UCI_TARGET = 95


def patient_history(patient_id) -> list[Immunization]:
    return list(Immunization.objects.filter(patient_id=patient_id).order_by('-vaccine_date', '-id'))


def tracking(today: Optional[date] = None) -> dict:
    today = today or timezone.localdate()
    patients = Patient.objects.filter(patient_type__in=CHILD_TYPES).order_by('-created_at')
    records = defaultdict(list)
    for imm in Immunization.objects.filter(patient__patient_type__in=CHILD_TYPES).order_by('-vaccine_date', '-id'):
        records[imm.patient_id].append(imm)

    total = len(COMPLETE_SCHEDULE)
    rows = []
    for patient in patients:
        history = records.get(patient.id, [])
        given = {imm.vaccine_name for imm in history}
        completed = sum(1 for vaccine in COMPLETE_SCHEDULE if vaccine in given)
        next_vaccine = next((v for v in COMPLETE_SCHEDULE if v not in given), None)
        next_due = history[0].next_schedule if history else None
        if completed == total:
            status = 'complete'
        elif next_due and next_due < today:
            status = 'overdue'
        else:
            status = 'on_track'
        rows.append({
            'id': str(patient.id),
            'patient_id': str(patient.id),
            'patient_name': patient.full_name,
            'patient_type': patient.patient_type,
            'date_of_birth': patient.date_of_birth.isoformat(),
            'age_months': age_in_months(patient.date_of_birth, today),
            'completed': completed,
            'total': total,
            'nextDue': next_due.isoformat() if next_due else None,
            'nextVaccine': next_vaccine,
            'status': status,
        })

    summary = {
        'complete': sum(1 for r in rows if r['status'] == 'complete'),
        'on_track': sum(1 for r in rows if r['status'] == 'on_track'),
        'overdue': sum(1 for r in rows if r['status'] == 'overdue'),
        'total': len(rows),
    }
    return {'data': rows, 'summary': summary}


def _pct(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole > 0 else 0


def coverage() -> dict:
    child_ids = list(Patient.objects.filter(patient_type__in=CHILD_TYPES).values_list('id', flat=True))
    target = len(child_ids)

    counts: dict[str, int] = defaultdict(int)
    for name in Immunization.objects.values_list('vaccine_name', flat=True):
        counts[name] += 1

    per_vaccine = []
    for short, full, _age in BASIC_VACCINES:
        actual = counts[short] + (counts[full] if full != short else 0)
        per_vaccine.append({
            'vaccine': short,
            'target': target,
            'actual': actual,
            'percentage': _pct(actual, target),
        })

    held = defaultdict(set)
    for patient_id, name in Immunization.objects.filter(patient_id__in=child_ids).values_list('patient_id', 'vaccine_name'):
        held[patient_id].add(name)
    complete = sum(
        1 for pid in child_ids
        if all(short in held[pid] or full in held[pid] for short, full, _age in BASIC_VACCINES)
    )

    return {
        'coverage': per_vaccine,
        'overall': {
            'percentage': _pct(complete, target),
            'complete': complete,
            'total': target,
            'target': UCI_TARGET,
        },
    }
