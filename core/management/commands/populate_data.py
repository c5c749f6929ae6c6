"""
Management command to populate the database with demo posyandu data.
"""
from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password
from django.db import transaction
from django.utils import timezone
from datetime import timedelta
import random
from core.gateway import NAMESPACES, get_gateway
from core.models import (
    User, Patient, Visit, Immunization, Pregnancy, Schedule, Announcement
)
from core.services.immunizations import COMPLETE_SCHEDULE


class Command(BaseCommand):
    help = 'Populate database with demo posyandu data'

    def add_arguments(self, parser):
        parser.add_argument('--seed', type=int, default=42)

    @transaction.atomic
    def handle(self, *args, **options):
        random.seed(options['seed'])
        self.today = timezone.localdate()
        self.stdout.write('Membuat data contoh...')

        staff = self.create_staff()
        patients = self.create_patients(staff[1])
        self.create_visits(patients, staff[1])
        self.create_immunizations(patients, staff[1])
        self.create_pregnancies(patients)
        self.create_schedules(staff[0])
        self.create_announcements(staff[0])

        get_gateway().bump_on_commit(*NAMESPACES)
        self.stdout.write(self.style.SUCCESS('Data contoh selesai dibuat!'))

    def create_staff(self):
        staff = []
        staff_data = [
            {'username': 'admin1', 'role': 'admin', 'first_name': 'Admin', 'last_name': 'Posyandu'},
            {'username': 'kader1', 'role': 'kader', 'first_name': 'Siti', 'last_name': 'Aminah'},
        ]
        for data in staff_data:
            user, _ = User.objects.get_or_create(
                username=data['username'],
                defaults={**data, 'password': make_password('posyandu123')},
            )
            staff.append(user)
            self.stdout.write(f'Petugas: {user.username} ({user.role})')
        return staff

    def create_patients(self, kader):
        patients_data = [
            ('Aisyah Putri', 'P', 'bayi', 7 * 30, 'Rina Wati'),
            ('Budi Santoso', 'L', 'balita', 26 * 30, 'Dewi Lestari'),
            ('Citra Ayu', 'P', 'balita', 44 * 30, 'Sri Wahyuni'),
            ('Dian Permata', 'P', 'ibu_hamil', 27 * 365, ''),
            ('Eko Prasetyo', 'L', 'remaja_dewasa', 35 * 365, ''),
            ('Fatimah', 'P', 'lansia', 66 * 365, ''),
        ]
        patients = []
        for i, (name, gender, ptype, age_days, parent) in enumerate(patients_data, start=1):
            patient, _ = Patient.objects.get_or_create(
                nik=f'32010100000000{i:02d}',
                defaults={
                    'full_name': name,
                    'gender': gender,
                    'patient_type': ptype,
                    'date_of_birth': self.today - timedelta(days=age_days),
                    'parent_name': parent,
                    'address': f'RT 0{i} / RW 02, Desa Sukamaju',
                    'created_by': kader,
                },
            )
            patients.append(patient)
            self.stdout.write(f'Pasien: {patient.full_name} ({patient.get_patient_type_display()})')
        return patients

    def create_visits(self, patients, kader):
        for patient in patients:
            if patient.visits.exists():
                continue
            for months_ago in range(5, -1, -1):
                visit_date = self.today - timedelta(days=30 * months_ago)
                if visit_date < patient.date_of_birth:
                    continue
                Visit.objects.create(
                    patient=patient,
                    visit_date=visit_date,
                    created_by=kader,
                    notes='Pemeriksaan rutin bulanan',
                    **self._measurement(patient, visit_date),
                )
        self.stdout.write(f'Kunjungan: {Visit.objects.count()}')

    def _measurement(self, patient, visit_date):
        age_months = max(0, (visit_date - patient.date_of_birth).days // 30)
        if patient.patient_type in ('bayi', 'balita'):
            return {
                'weight': round(3.3 + 0.45 * min(age_months, 12) + 0.2 * max(0, age_months - 12) + random.uniform(-0.6, 0.6), 1),
                'height': round(50 + 2.0 * min(age_months, 12) + 0.8 * max(0, age_months - 12) + random.uniform(-2, 2), 1),
                'head_circumference': round(35 + 0.8 * min(age_months, 12) + random.uniform(-1, 1), 1),
                'arm_circumference': round(random.uniform(12.5, 15.5), 1),
            }
        return {
            'weight': round(random.uniform(48, 72), 1),
            'height': round(random.uniform(150, 170), 1),
            'arm_circumference': round(random.uniform(22, 29), 1),
            'waist_circumference': round(random.uniform(70, 95), 1),
            'blood_pressure': random.choice(['110/70', '120/80', '130/85', '145/92']),
        }

    def create_immunizations(self, patients, kader):
        for patient in patients:
            if patient.patient_type not in ('bayi', 'balita') or patient.immunizations.exists():
                continue
            age_months = (self.today - patient.date_of_birth).days // 30
            given = COMPLETE_SCHEDULE[:min(len(COMPLETE_SCHEDULE), age_months // 2 + 2)]
            for i, vaccine in enumerate(given):
                vaccine_date = patient.date_of_birth + timedelta(days=30 * i)
                Immunization.objects.create(
                    patient=patient,
                    vaccine_name=vaccine,
                    vaccine_date=vaccine_date,
                    next_schedule=vaccine_date + timedelta(days=30),
                    created_by=kader,
                )
        self.stdout.write(f'Imunisasi: {Immunization.objects.count()}')

    def create_pregnancies(self, patients):
        for patient in patients:
            if patient.patient_type != 'ibu_hamil' or patient.pregnancies.exists():
                continue
            Pregnancy.objects.create(
                patient=patient,
                pregnancy_order=1,
                last_menstrual_period=self.today - timedelta(weeks=20),
            )
        self.stdout.write(f'Kehamilan: {Pregnancy.objects.count()}')

    def create_schedules(self, admin):
        if Schedule.objects.exists():
            return
        for weeks in (1, 5):
            Schedule.objects.create(
                title='Posyandu Balita Melati',
                subtitle='Penimbangan dan imunisasi rutin',
                date=self.today + timedelta(weeks=weeks),
                time='08:00 - 12:00',
                duration='4 jam',
                location='Balai Desa Sukamaju',
                coordinator='Siti Aminah',
                contacts=[{'name': 'Siti Aminah', 'phone': '081234567890'}],
                requirements=['Buku KIA', 'Kartu Menuju Sehat'],
                tags=['balita', 'imunisasi'],
                created_by=admin,
            )
        self.stdout.write(f'Jadwal: {Schedule.objects.count()}')

    def create_announcements(self, admin):
        if Announcement.objects.exists():
            return
        Announcement.objects.create(
            title='Bulan Vitamin A',
            content='Pemberian kapsul vitamin A untuk balita usia 6-59 bulan.',
            type='event',
            created_by=admin,
        )
        self.stdout.write(f'Pengumuman: {Announcement.objects.count()}')
