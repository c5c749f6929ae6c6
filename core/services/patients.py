from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from django.db import transaction
from django.db.models import Q

from core.models import Patient
from core.services.clinical import format_age

__all__ = [
    'PATIENT_TYPE_LABELS',
    'TYPE_BADGE_CLASSES',
    'create_patients_batch',
    'filter_patients',
    'format_age',
    'format_gender',
    'mask_nik',
    'parse_gender',
    'parse_nik',
    'patient_type_from_label',
    'patient_type_label',
]

PATIENT_TYPE_LABELS = dict(Patient.TYPE_CHOICES)

_LABEL_TO_TYPE = {label: key for key, label in Patient.TYPE_CHOICES}
_LABEL_TO_TYPE['Bumil'] = 'ibu_hamil'

# CSS classes the admin UI uses for each patient type badge
TYPE_BADGE_CLASSES = {
    'bayi': 'text-blue-600 bg-blue-50',
    'balita': 'text-teal-600 bg-teal-50',
    'ibu_hamil': 'text-orange-600 bg-orange-50',
    'remaja_dewasa': 'text-purple-600 bg-purple-50',
    'lansia': 'text-amber-700 bg-amber-50',
}
DEFAULT_BADGE_CLASS = 'text-gray-700 bg-gray-50'


def patient_type_label(patient_type: str) -> str:
    return PATIENT_TYPE_LABELS.get(patient_type, patient_type)


def patient_type_from_label(label: str) -> str:
    """Reverse of :func:`patient_type_label`; unknown labels map to ``balita``."""
    return _LABEL_TO_TYPE.get((label or '').strip(), 'balita')


def format_gender(gender: str) -> str:
    return 'Laki-laki' if gender == 'L' else 'Perempuan'


def parse_gender(value: Any) -> str:
    """Accept ``L``/``P`` or spreadsheet text such as ``Laki-laki``; '' if unknown."""
    raw = str(value or '').strip()
    if raw in ('L', 'P'):
        return raw
    lowered = raw.lower()
    if lowered.startswith('laki'):
        return 'L'
    if lowered.startswith('perempua'):
        return 'P'
    return ''


def mask_nik(nik: Optional[str]) -> str:
    if not nik:
        return '-'
    return f'***{nik[-4:]}'


def parse_nik(value: Any) -> str:
    """Normalise a NIK read from a spreadsheet cell.

    Numeric cells arrive as int or float (possibly in scientific
    notation); they are rendered without a fractional part.
    """
    if value is None or value == '':
        return ''
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        return f'{Decimal(str(value)):f}'.split('.')[0]
    return str(value).strip()


def filter_patients(*, q: str = '', patient_type: Optional[str] = None, gender: Optional[str] = None,
                    sort: str = 'created_at', direction: str = 'desc'):
    qs = Patient.objects.all()
    if q:
        qs = qs.filter(Q(full_name__icontains=q) | Q(nik__icontains=q) | Q(phone__icontains=q))
    if patient_type:
        qs = qs.filter(patient_type=patient_type)
    if gender:
        qs = qs.filter(gender=gender)
    order = sort if direction == 'asc' else f'-{sort}'
    return qs.order_by(order, 'id')


def create_patients_batch(rows: list[dict], *, created_by=None) -> list[Patient]:
    """Insert every row or none of them."""
    with transaction.atomic():
        return [Patient.objects.create(created_by=created_by, **row) for row in rows]
