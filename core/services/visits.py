from __future__ import annotations

from typing import Optional

from core.models import Visit
from core.services import clinical


def filter_visits(*, q: str = '', patient_type: Optional[str] = None, sort: str = 'visit_date',
                  direction: str = 'desc'):
    qs = Visit.objects.select_related('patient', 'created_by')
    if q:
        qs = qs.filter(patient__full_name__icontains=q)
    if patient_type and patient_type != 'all':
        qs = qs.filter(patient__patient_type=patient_type)
    order = sort if direction == 'asc' else f'-{sort}'
    return qs.order_by(order, '-id')


def assess_visit(visit: Visit) -> dict:
    """Clinical indicators for one visit, using the patient's age on the visit date."""
    patient = visit.patient
    lmp = None
    if patient.patient_type == 'ibu_hamil':
        pregnancy = patient.pregnancies.filter(status='ongoing').order_by('-pregnancy_order').first()
        lmp = pregnancy.last_menstrual_period if pregnancy else None
    return clinical.assess(
        gender=patient.gender,
        age_months=clinical.age_in_months(patient.date_of_birth, visit.visit_date),
        weight=visit.weight,
        height=visit.height,
        arm_circumference=visit.arm_circumference,
        waist_circumference=visit.waist_circumference,
        blood_pressure=visit.blood_pressure,
        last_menstrual_period=lmp,
        now=visit.visit_date,
    )
