"""
Database models for the posyandu backend.

A posyandu (integrated health post) keeps a register of community members
(infants, toddlers, pregnant women, adolescents/adults and the elderly),
their monthly measurement visits, immunizations and pregnancies.  Staff
accounts are either administrators or kader (health cadre volunteers).
Public schedules and announcements are published to the community site.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Staff account.

    ``admin`` users manage everything including deletions; ``kader``
    volunteers record patients, visits and immunizations.
    """
    ROLE_ADMIN = 'admin'
    ROLE_KADER = 'kader'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_KADER, 'Kader'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_KADER)
    phone = models.CharField(max_length=20, blank=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    GENDER_CHOICES = [
        ('L', 'Laki-laki'),
        ('P', 'Perempuan'),
    ]
    TYPE_CHOICES = [
        ('bayi', 'Bayi'),
        ('balita', 'Balita'),
        ('ibu_hamil', 'Ibu Hamil'),
        ('remaja_dewasa', 'Remaja/Dewasa'),
        ('lansia', 'Lansia'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    full_name = models.CharField(max_length=100)
    # NIK: 16 digit national identity number; infants may not have one yet
    nik = models.CharField(max_length=16, blank=True, null=True, unique=True)
    date_of_birth = models.DateField()
    gender = models.CharField(max_length=1, choices=GENDER_CHOICES)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    patient_type = models.CharField(max_length=20, choices=TYPE_CHOICES, db_index=True)
    parent_name = models.CharField(max_length=100, blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='patients_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient_type', 'created_at']),
            models.Index(fields=['full_name']),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} ({self.patient_type})"


class Visit(models.Model):
    """One posyandu measurement visit."""
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='visits')
    visit_date = models.DateField(db_index=True)
    weight = models.FloatField(null=True, blank=True)  # kg
    height = models.FloatField(null=True, blank=True)  # cm
    head_circumference = models.FloatField(null=True, blank=True)
    arm_circumference = models.FloatField(null=True, blank=True)
    waist_circumference = models.FloatField(null=True, blank=True)
    blood_pressure = models.CharField(max_length=7, blank=True)  # "120/80"
    notes = models.TextField(blank=True)
    complaints = models.TextField(blank=True)
    recommendations = models.TextField(blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='visits_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'visit_date']),
        ]

    def __str__(self) -> str:
        return f"Visit {self.patient_id} @ {self.visit_date}"


class Immunization(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='immunizations')
    vaccine_name = models.CharField(max_length=100)
    vaccine_date = models.DateField()
    next_schedule = models.DateField(null=True, blank=True, db_index=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='immunizations_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'vaccine_date']),
        ]

    def __str__(self) -> str:
        return f"{self.vaccine_name} for {self.patient_id}"


class Pregnancy(models.Model):
    STATUS_CHOICES = [
        ('ongoing', 'Berlangsung'),
        ('completed', 'Selesai'),
        ('miscarriage', 'Keguguran'),
    ]
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='pregnancies')
    pregnancy_order = models.PositiveSmallIntegerField(default=1)
    last_menstrual_period = models.DateField()
    estimated_due_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default='ongoing')
    created_at = models.DateTimeField(auto_now_add=True)

    def save(self, *args, **kwargs):
        if self.last_menstrual_period and not self.estimated_due_date:
            from core.services.clinical import estimated_delivery_date
            self.estimated_due_date = estimated_delivery_date(self.last_menstrual_period)
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"Pregnancy #{self.pregnancy_order} of {self.patient_id}"


class Schedule(models.Model):
    """A public posyandu event shown on the community site."""
    title = models.CharField(max_length=200)
    subtitle = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    date = models.DateField(db_index=True)
    time = models.CharField(max_length=50, blank=True)  # "08:00 - 12:00"
    duration = models.CharField(max_length=50, blank=True)
    location = models.CharField(max_length=200)
    full_address = models.TextField(blank=True)
    map_link = models.URLField(blank=True)
    capacity = models.CharField(max_length=100, blank=True)
    price = models.CharField(max_length=50, default='GRATIS')
    price_note = models.CharField(max_length=200, blank=True)
    coordinator = models.CharField(max_length=100, blank=True)
    contacts = models.JSONField(default=list, blank=True)
    requirements = models.JSONField(default=list, blank=True)
    important_note = models.TextField(blank=True)
    tags = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='schedules_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.title} ({self.date})"


class Announcement(models.Model):
    TYPE_CHOICES = [
        ('info', 'Info'),
        ('schedule', 'Jadwal'),
        ('event', 'Kegiatan'),
    ]
    title = models.CharField(max_length=200)
    content = models.TextField()
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='info')
    published = models.BooleanField(default=True, db_index=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='announcements_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.title[:30]


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    # UUIDs for patients, integers for everything else
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    ip = models.GenericIPAddressField(blank=True, null=True)
    status = models.CharField(max_length=16, default='success')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
