"""
Integration tests for the posyandu backend API.

These tests exercise the register and measurement endpoints end to end:
patient CRUD and import, visits with their clinical assessment,
immunization tracking, the dashboard and the public schedule pages.
The default settings run without a key-value store, so responses carry
``x-cache: BYPASS`` unless a test installs an in-memory gateway.

To run the tests:

```
pytest -q core/tests
```
"""
from datetime import date, timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from core.models import Announcement, AuditEvent, Immunization, Patient, Pregnancy, Schedule, Visit
from core.services.immunizations import COMPLETE_SCHEDULE

pytestmark = pytest.mark.django_db

PATIENT = {
    'full_name': 'Budi Santoso',
    'nik': '3201010000000001',
    'date_of_birth': '2023-01-15',
    'gender': 'L',
    'patient_type': 'balita',
    'phone': '081234567890',
    'parent_name': 'Dewi Lestari',
}


@pytest.fixture
def patient(kader_user):
    return Patient.objects.create(
        full_name='Aisyah Putri', nik='3201010000000009',
        date_of_birth=timezone.localdate() - timedelta(days=700),
        gender='P', patient_type='balita', created_by=kader_user,
    )


@pytest.fixture
def visit(patient, kader_user):
    return Visit.objects.create(
        patient=patient, visit_date=timezone.localdate(), weight=11.0, height=85.0,
        arm_circumference=14.5, notes='Pemeriksaan rutin bulanan', created_by=kader_user,
    )


# ---------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------
def test_create_and_list_patients(kader_client, kader_user):
    r = kader_client.post(reverse('patients'), PATIENT, format='json')
    assert r.status_code == 201
    assert r.data['data']['full_name'] == 'Budi Santoso'
    assert r.data['data']['created_by'] == kader_user.id

    r = kader_client.get(reverse('patients'))
    assert r.status_code == 200
    assert r['x-cache'] == 'BYPASS'
    assert r.data['total'] == 1
    assert r.data['totalPages'] == 1
    assert r.data['data'][0]['nik'] == '3201010000000001'
    assert AuditEvent.objects.filter(action='patient_create', user=kader_user).exists()


def test_patient_validation_messages(kader_client):
    payload = {**PATIENT, 'full_name': 'B1', 'nik': '123', 'phone': '12345'}
    r = kader_client.post(reverse('patients'), payload, format='json')
    assert r.status_code == 400
    errors = r.data['error']['message']
    assert errors['full_name'] == ['Nama lengkap minimal 3 karakter']
    assert errors['nik'] == ['NIK harus 16 digit angka']
    assert 'phone' in errors


def test_blank_nik_is_stored_as_null(kader_client):
    r = kader_client.post(reverse('patients'), {**PATIENT, 'nik': ''}, format='json')
    assert r.status_code == 201
    assert Patient.objects.get().nik is None


def test_list_filters_and_sorting(kader_client, kader_user):
    for name, ptype, gender in [('Citra Ayu', 'bayi', 'P'), ('Andi Wijaya', 'lansia', 'L'), ('Bima Sakti', 'bayi', 'L')]:
        Patient.objects.create(full_name=name, date_of_birth=date(2020, 1, 1), gender=gender,
                               patient_type=ptype, created_by=kader_user)

    r = kader_client.get(reverse('patients'), {'type': 'bayi', 'sort': 'full_name', 'dir': 'asc'})
    assert [p['full_name'] for p in r.data['data']] == ['Bima Sakti', 'Citra Ayu']

    r = kader_client.get(reverse('patients'), {'q': 'andi'})
    assert r.data['total'] == 1

    r = kader_client.get(reverse('patients'), {'gender': 'L', 'limit': '1', 'page': '2'})
    assert r.data['total'] == 2
    assert r.data['totalPages'] == 2
    assert len(r.data['data']) == 1


def test_patient_detail_includes_history_and_assessment(kader_client, patient, visit):
    Immunization.objects.create(patient=patient, vaccine_name='BCG', vaccine_date=date(2023, 7, 1))
    r = kader_client.get(reverse('patient_detail', args=[patient.id]))
    assert r.status_code == 200
    data = r.data['data']
    assert len(data['visits']) == 1
    assert data['immunizations'][0]['vaccine_name'] == 'BCG'
    assert data['pregnancies'] == []
    assert set(data['assessment']) >= {'weightForAge', 'heightForAge', 'armCircumference'}
    assert 'tahun' in data['age'] or 'bulan' in data['age']


def test_update_patient(kader_client, patient):
    r = kader_client.put(reverse('patient_detail', args=[patient.id]), {'address': 'RT 01 / RW 02'}, format='json')
    assert r.status_code == 200
    patient.refresh_from_db()
    assert patient.address == 'RT 01 / RW 02'


def test_batch_import(kader_client):
    rows = [
        {'full_name': 'Rina Wati', 'nik': 3201010000000101, 'date_of_birth': '1995-03-01',
         'gender': 'Perempuan', 'patient_type': 'ibu_hamil'},
        {'full_name': 'Joko Susilo', 'nik': '3201010000000102', 'date_of_birth': '1958-08-17',
         'gender': 'Laki-laki', 'patient_type': 'lansia'},
    ]
    r = kader_client.post(reverse('patients_batch'), {'patients': rows}, format='json')
    assert r.status_code == 201
    assert r.data['message'] == '2 pasien berhasil diimpor'
    assert set(Patient.objects.values_list('gender', flat=True)) == {'L', 'P'}


@pytest.mark.parametrize('patient_type', [None, '', '   '])
def test_batch_import_requires_patient_type(kader_client, patient_type):
    row = {'full_name': 'Rina Wati', 'nik': '3201010000000101', 'date_of_birth': '1995-03-01', 'gender': 'P'}
    if patient_type is not None:
        row['patient_type'] = patient_type
    r = kader_client.post(reverse('patients_batch'), {'patients': [row]}, format='json')
    assert r.status_code == 400
    assert r.data['error']['message']['patients'][0]['patient_type'] == ['Tipe pasien wajib dipilih']
    assert Patient.objects.count() == 0


def test_batch_import_maps_type_labels(kader_client):
    row = {'full_name': 'Rina Wati', 'nik': '3201010000000101', 'date_of_birth': '1995-03-01',
           'gender': 'P', 'patient_type': 'Bumil'}
    r = kader_client.post(reverse('patients_batch'), {'patients': [row]}, format='json')
    assert r.status_code == 201
    assert Patient.objects.get().patient_type == 'ibu_hamil'


def test_batch_import_is_all_or_nothing(kader_client):
    rows = [
        {'full_name': 'Rina Wati', 'nik': '3201010000000101', 'date_of_birth': '1995-03-01',
         'gender': 'P', 'patient_type': 'ibu_hamil'},
        {'full_name': 'Rina Dua', 'nik': '3201010000000101', 'date_of_birth': '1995-03-01',
         'gender': 'P', 'patient_type': 'ibu_hamil'},
    ]
    r = kader_client.post(reverse('patients_batch'), {'patients': rows}, format='json')
    assert r.status_code == 400
    assert Patient.objects.count() == 0

    r = kader_client.post(reverse('patients_batch'), {'patients': []}, format='json')
    assert r.status_code == 400


def test_patient_list_is_cached_until_a_write(kader_client, use_gateway, django_capture_on_commit_callbacks):
    use_gateway()
    with django_capture_on_commit_callbacks(execute=True):
        kader_client.post(reverse('patients'), PATIENT, format='json')

    first = kader_client.get(reverse('patients'))
    second = kader_client.get(reverse('patients'))
    assert (first['x-cache'], second['x-cache']) == ('MISS', 'HIT')
    assert second.data['total'] == 1
    assert second['x-ratelimit-limit'] == '240'

    with django_capture_on_commit_callbacks(execute=True):
        kader_client.post(reverse('patients'), {**PATIENT, 'nik': '3201010000000002'}, format='json')
    third = kader_client.get(reverse('patients'))
    assert third['x-cache'] == 'MISS'
    assert third.data['total'] == 2


def test_write_bumps_cache_version_after_commit(kader_client, use_gateway, store, django_capture_on_commit_callbacks):
    use_gateway()
    assert kader_client.get(reverse('patients')).data['total'] == 0

    with django_capture_on_commit_callbacks() as callbacks:
        r = kader_client.post(reverse('patients'), PATIENT, format='json')
    assert r.status_code == 201
    assert store.data['cachever:patients'] == '1'

    # until the callbacks run, readers keep the entry for the old version
    assert kader_client.get(reverse('patients'))['x-cache'] == 'HIT'

    for callback in callbacks:
        callback()
    assert store.data['cachever:patients'] == '2'
    r = kader_client.get(reverse('patients'))
    assert r['x-cache'] == 'MISS'
    assert r.data['total'] == 1


def test_different_queries_use_different_entries(kader_client, use_gateway):
    use_gateway()
    assert kader_client.get(reverse('patients'), {'q': 'budi'})['x-cache'] == 'MISS'
    assert kader_client.get(reverse('patients'), {'q': 'siti'})['x-cache'] == 'MISS'
    assert kader_client.get(reverse('patients'), {'q': 'budi'})['x-cache'] == 'HIT'


# ---------------------------------------------------------------------
# Visits
# ---------------------------------------------------------------------
def test_create_visit(kader_client, patient):
    payload = {
        'patient_id': str(patient.id),
        'visit_date': timezone.localdate().isoformat(),
        'weight': 11.2,
        'height': 86,
        'blood_pressure': '',
        'notes': 'Anak sehat dan aktif',
    }
    r = kader_client.post(reverse('visits'), payload, format='json')
    assert r.status_code == 201
    assert Visit.objects.filter(patient=patient).count() == 1


@pytest.mark.parametrize('field, value, message', [
    ('visit_date', 'future', 'Tanggal kunjungan tidak boleh di masa depan'),
    ('weight', 0, 'Berat badan harus lebih dari 0'),
    ('height', 301, 'Tinggi badan maksimal 300 cm'),
    ('blood_pressure', '120-80', 'Format tekanan darah harus xxx/xx (contoh: 120/80)'),
    ('notes', 'singkat', 'Catatan pemeriksaan minimal 10 karakter'),
])
def test_visit_validation(kader_client, patient, field, value, message):
    if value == 'future':
        value = (timezone.localdate() + timedelta(days=1)).isoformat()
    payload = {'patient_id': str(patient.id), 'visit_date': timezone.localdate().isoformat(), field: value}
    r = kader_client.post(reverse('visits'), payload, format='json')
    assert r.status_code == 400
    assert r.data['error']['message'][field] == [message]


def test_visit_list_embeds_patient_and_officer(kader_client, visit):
    r = kader_client.get(reverse('visits'), {'type': 'balita'})
    assert r.status_code == 200
    row = r.data['data'][0]
    assert row['patient']['full_name'] == 'Aisyah Putri'
    assert row['profile']['username'] == 'kader1'

    r = kader_client.get(reverse('visits'), {'type': 'lansia'})
    assert r.data['total'] == 0


def test_visit_detail_cached_with_assessment(kader_client, visit, use_gateway, django_capture_on_commit_callbacks):
    use_gateway()
    url = reverse('visit_detail', args=[visit.id])
    first = kader_client.get(url)
    second = kader_client.get(url)
    assert first.status_code == 200
    assert (first['x-cache'], second['x-cache']) == ('MISS', 'HIT')
    assert second.data['data']['assessment']['weightForAge']['badge'] in {'good', 'warning', 'danger'}

    with django_capture_on_commit_callbacks(execute=True):
        r = kader_client.put(url, {'weight': 11.5}, format='json')
    assert r.status_code == 200
    assert kader_client.get(url)['x-cache'] == 'MISS'


def test_visit_detail_not_found(kader_client):
    r = kader_client.get(reverse('visit_detail', args=[999]))
    assert r.status_code == 404
    assert r.data['error']['message'] == 'Kunjungan tidak ditemukan'


def test_pregnant_patient_visit_reports_pregnancy(kader_client, kader_user):
    mother = Patient.objects.create(full_name='Dian Permata', date_of_birth=date(1996, 4, 2), gender='P',
                                    patient_type='ibu_hamil', created_by=kader_user)
    lmp = timezone.localdate() - timedelta(weeks=20)
    Pregnancy.objects.create(patient=mother, last_menstrual_period=lmp)
    v = Visit.objects.create(patient=mother, visit_date=timezone.localdate(), weight=60, height=158,
                             blood_pressure='120/80', created_by=kader_user)

    r = kader_client.get(reverse('visit_detail', args=[v.id]))
    assessment = r.data['data']['assessment']
    assert assessment['pregnancy']['gestationalWeeks'] == 20
    assert assessment['pregnancy']['trimester'] == 2
    assert assessment['bloodPressure']['status'] == 'prehypertension'
    assert 'bmi' in assessment


# ---------------------------------------------------------------------
# Immunizations
# ---------------------------------------------------------------------
def test_immunization_requires_report_type(kader_client):
    assert kader_client.get(reverse('immunizations')).status_code == 400
    assert kader_client.get(reverse('immunizations'), {'type': 'other'}).status_code == 400
    assert kader_client.get(reverse('immunizations'), {'patient_id': 'not-a-uuid'}).status_code == 400


def test_immunization_crud(kader_client, admin_client, patient):
    payload = {'patient_id': str(patient.id), 'vaccine_name': 'BCG', 'vaccine_date': '2023-07-01',
               'next_schedule': '2023-08-01'}
    r = kader_client.post(reverse('immunizations'), payload, format='json')
    assert r.status_code == 201
    assert r.data['success'] is True
    imm_id = r.data['data']['id']

    r = kader_client.get(reverse('immunizations'), {'patient_id': str(patient.id)})
    assert [row['vaccine_name'] for row in r.data['data']] == ['BCG']

    r = kader_client.put(reverse('immunizations'), {**payload, 'id': imm_id, 'notes': 'Tanpa keluhan'}, format='json')
    assert r.status_code == 200
    assert Immunization.objects.get(pk=imm_id).notes == 'Tanpa keluhan'

    assert kader_client.delete(f"{reverse('immunizations')}?id={imm_id}").status_code == 403
    r = admin_client.delete(f"{reverse('immunizations')}?id={imm_id}")
    assert r.status_code == 200
    assert not Immunization.objects.exists()


def test_immunization_validation(kader_client, patient):
    r = kader_client.post(reverse('immunizations'), {'patient_id': str(patient.id)}, format='json')
    assert r.status_code == 400
    payload = {'patient_id': str(patient.id), 'vaccine_name': 'BCG', 'vaccine_date': '2023-07-01',
               'next_schedule': '2023-06-01'}
    assert kader_client.post(reverse('immunizations'), payload, format='json').status_code == 400
    assert kader_client.put(reverse('immunizations'), {'id': 'abc'}, format='json').status_code == 400
    assert kader_client.put(reverse('immunizations'), {'vaccine_name': 'BCG'}, format='json').status_code == 400


def test_immunization_tracking(kader_client, kader_user, patient):
    complete = Patient.objects.create(full_name='Lengkap Sekali', date_of_birth=date(2022, 1, 1), gender='L',
                                      patient_type='balita', created_by=kader_user)
    for i, vaccine in enumerate(COMPLETE_SCHEDULE):
        Immunization.objects.create(patient=complete, vaccine_name=vaccine, vaccine_date=date(2022, 1, 1) + timedelta(days=30 * i))
    Immunization.objects.create(patient=patient, vaccine_name='BCG', vaccine_date=date(2023, 7, 1),
                                next_schedule=date(2023, 8, 1))
    Patient.objects.create(full_name='Belum Ada', date_of_birth=date(2024, 1, 1), gender='P',
                           patient_type='bayi', created_by=kader_user)

    r = kader_client.get(reverse('immunizations'), {'type': 'tracking'})
    assert r.status_code == 200
    by_name = {row['patient_name']: row for row in r.data['data']}
    assert by_name['Lengkap Sekali']['status'] == 'complete'
    assert by_name['Lengkap Sekali']['completed'] == len(COMPLETE_SCHEDULE)
    assert by_name['Aisyah Putri']['status'] == 'overdue'
    assert by_name['Aisyah Putri']['nextVaccine'] == 'Hepatitis B (HB0)'
    assert by_name['Belum Ada']['status'] == 'on_track'
    assert r.data['summary'] == {'complete': 1, 'on_track': 1, 'overdue': 1, 'total': 3}


def test_immunization_coverage(kader_client, patient):
    Immunization.objects.create(patient=patient, vaccine_name='BCG', vaccine_date=date(2023, 7, 1))
    Immunization.objects.create(patient=patient, vaccine_name='HB0', vaccine_date=date(2023, 6, 1))
    r = kader_client.get(reverse('immunizations'), {'type': 'coverage'})
    rows = {row['vaccine']: row for row in r.data['coverage']}
    assert rows['BCG'] == {'vaccine': 'BCG', 'target': 1, 'actual': 1, 'percentage': 100.0}
    assert rows['HB0']['actual'] == 1
    assert rows['IPV']['actual'] == 0
    assert r.data['overall'] == {'percentage': 0, 'complete': 0, 'total': 1, 'target': 95}


def test_immunization_reports_cached_until_a_write(kader_client, patient, use_gateway,
                                                   django_capture_on_commit_callbacks):
    use_gateway()
    first = kader_client.get(reverse('immunizations'), {'type': 'coverage'})
    second = kader_client.get(reverse('immunizations'), {'type': 'coverage'})
    assert (first['x-cache'], second['x-cache']) == ('MISS', 'HIT')
    assert kader_client.get(reverse('immunizations'), {'type': 'tracking'})['x-cache'] == 'MISS'

    payload = {'patient_id': str(patient.id), 'vaccine_name': 'BCG', 'vaccine_date': '2023-07-01'}
    with django_capture_on_commit_callbacks(execute=True):
        assert kader_client.post(reverse('immunizations'), payload, format='json').status_code == 201

    r = kader_client.get(reverse('immunizations'), {'type': 'coverage'})
    assert r['x-cache'] == 'MISS'
    assert {row['vaccine']: row['actual'] for row in r.data['coverage']}['BCG'] == 1
    r = kader_client.get(reverse('immunizations'), {'type': 'tracking'})
    assert r['x-cache'] == 'MISS'
    assert r.data['data'][0]['completed'] == 1


# ---------------------------------------------------------------------
# Dashboard & clinical assessment
# ---------------------------------------------------------------------
def test_dashboard(kader_client, visit, use_gateway):
    use_gateway()
    r = kader_client.get(reverse('dashboard'), {'months': '3', 'recentLimit': '2'})
    assert r.status_code == 200
    assert r['x-cache'] == 'MISS'
    assert r['x-ratelimit-limit'] == '120'
    assert r.data['summary']['totalPatients'] == 1
    assert r.data['summary']['visitsThisMonth'] == 1
    assert len(r.data['visitTrends']) == 3
    assert r.data['visitTrends'][-1]['balita'] == 1
    assert [row['status'] for row in r.data['nutrition']] == ['Gizi Baik', 'Gizi Kurang', 'Gizi Buruk', 'Stunting']
    assert sum(row['count'] for row in r.data['nutrition']) == 1
    assert r.data['recentVisits'][0]['name'] == 'Aisyah Putri'
    assert r.data['recentVisits'][0]['type'] == 'Balita'

    assert kader_client.get(reverse('dashboard'), {'months': '3', 'recentLimit': '2'})['x-cache'] == 'HIT'


def test_clinical_assess_endpoint(kader_client):
    payload = {'gender': 'P', 'age_months': 24, 'weight': 11.5, 'height': 85.1, 'blood_pressure': ''}
    r = kader_client.post(reverse('clinical_assess'), payload, format='json')
    assert r.status_code == 200
    assert r.data['ageMonths'] == 24
    assert r.data['data']['heightForAge']['status'] == 'normal'


def test_clinical_assess_needs_age(kader_client):
    r = kader_client.post(reverse('clinical_assess'), {'gender': 'L', 'weight': 10}, format='json')
    assert r.status_code == 400


# ---------------------------------------------------------------------
# Public pages
# ---------------------------------------------------------------------
def test_schedules_public_read_staff_write(kader_client, admin_client):
    anon = APIClient()
    payload = {
        'title': 'Posyandu Melati',
        'date': (timezone.localdate() + timedelta(days=7)).isoformat(),
        'location': 'Balai Desa',
        'requirements': ['Buku KIA', ' '],
        'tags': ['balita'],
    }
    assert anon.post(reverse('schedules'), payload, format='json').status_code in (401, 403)
    r = kader_client.post(reverse('schedules'), payload, format='json')
    assert r.status_code == 201
    assert r.data['data']['requirements'] == ['Buku KIA']
    assert r.data['data']['price'] == 'GRATIS'

    Schedule.objects.create(title='Lalu', date=timezone.localdate() - timedelta(days=7), location='Balai Desa')
    r = anon.get(reverse('schedules'), {'upcoming': 'true'})
    assert r.status_code == 200
    assert [s['title'] for s in r.data['data']] == ['Posyandu Melati']
    assert len(anon.get(reverse('schedules')).data['data']) == 2

    schedule_id = Schedule.objects.get(title='Lalu').id
    assert kader_client.delete(reverse('schedule_detail', args=[schedule_id])).status_code == 403
    assert admin_client.delete(reverse('schedule_detail', args=[schedule_id])).status_code == 200


def test_schedule_rejects_non_list_tags(kader_client):
    payload = {'title': 'X', 'date': '2030-01-01', 'location': 'Balai', 'tags': 'balita'}
    assert kader_client.post(reverse('schedules'), payload, format='json').status_code == 400


def test_announcements_only_published(kader_client):
    Announcement.objects.create(title='Draft', content='...', published=False)
    r = kader_client.post(reverse('announcements'), {'title': 'Vitamin A', 'content': 'Bulan vitamin A'}, format='json')
    assert r.status_code == 201
    r = APIClient().get(reverse('announcements'))
    assert [a['title'] for a in r.data['data']] == ['Vitamin A']


def test_healthz(use_gateway):
    client = APIClient()
    r = client.get(reverse('healthz'))
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True, 'store': {'mode': 'disabled'}}

    use_gateway()
    r = client.get(reverse('healthz'))
    assert r.json()['store'] == {'mode': 'memory', 'ping': True}
