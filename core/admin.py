"""
Django admin registrations for the core models.

Superusers can inspect and correct posyandu records via ``/admin/``.
"""

from django.contrib import admin

from .models import (
    Announcement,
    AuditEvent,
    Immunization,
    Patient,
    Pregnancy,
    Schedule,
    User,
    Visit,
)
from .services.patients import format_gender, mask_nik


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'phone', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name', 'phone')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'masked_nik', 'gender_label', 'patient_type', 'date_of_birth', 'created_at')
    list_filter = ('patient_type', 'gender')
    search_fields = ('full_name', 'nik', 'phone', 'parent_name')

    @admin.display(description='NIK')
    def masked_nik(self, obj):
        return mask_nik(obj.nik)

    @admin.display(description='Jenis kelamin', ordering='gender')
    def gender_label(self, obj):
        return format_gender(obj.gender)


@admin.register(Visit)
class VisitAdmin(admin.ModelAdmin):
    list_display = ('patient', 'visit_date', 'weight', 'height', 'blood_pressure', 'created_by')
    list_filter = ('visit_date',)
    search_fields = ('patient__full_name',)


@admin.register(Immunization)
class ImmunizationAdmin(admin.ModelAdmin):
    list_display = ('patient', 'vaccine_name', 'vaccine_date', 'next_schedule')
    list_filter = ('vaccine_name',)
    search_fields = ('patient__full_name', 'vaccine_name')


@admin.register(Pregnancy)
class PregnancyAdmin(admin.ModelAdmin):
    list_display = ('patient', 'pregnancy_order', 'last_menstrual_period', 'estimated_due_date', 'status')
    list_filter = ('status',)


@admin.register(Schedule)
class ScheduleAdmin(admin.ModelAdmin):
    list_display = ('title', 'date', 'time', 'location', 'coordinator')
    search_fields = ('title', 'location')


@admin.register(Announcement)
class AnnouncementAdmin(admin.ModelAdmin):
    list_display = ('title', 'type', 'published', 'created_at')
    list_filter = ('type', 'published')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'status', 'created_at')
    list_filter = ('action', 'status')
