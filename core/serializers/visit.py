import re

import bleach
from django.utils import timezone
from rest_framework import serializers

from core.models import Patient, Visit
from core.serializers.auth import StaffProfileSerializer
from core.serializers.patient import PatientSerializer

BLOOD_PRESSURE_RE = re.compile(r'^\d{2,3}/\d{2,3}$')


def _range_check(v, maximum, message_positive, message_max):
    if v is None:
        return v
    if v <= 0:
        raise serializers.ValidationError(message_positive)
    if v > maximum:
        raise serializers.ValidationError(message_max)
    return v


class VisitSerializer(serializers.ModelSerializer):
    patient_id = serializers.PrimaryKeyRelatedField(
        source='patient',
        queryset=Patient.objects.all(),
        error_messages={'does_not_exist': 'Pilih pasien terlebih dahulu', 'required': 'Pilih pasien terlebih dahulu'},
    )

    class Meta:
        model = Visit
        fields = [
            'id', 'patient_id', 'visit_date', 'weight', 'height', 'head_circumference',
            'arm_circumference', 'waist_circumference', 'blood_pressure', 'notes',
            'complaints', 'recommendations', 'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_by', 'created_at', 'updated_at']
        extra_kwargs = {
            'visit_date': {'error_messages': {'required': 'Tanggal kunjungan wajib diisi'}},
        }

    def validate_visit_date(self, v):
        if v > timezone.localdate():
            raise serializers.ValidationError('Tanggal kunjungan tidak boleh di masa depan')
        return v

    def validate_weight(self, v):
        return _range_check(v, 500, 'Berat badan harus lebih dari 0', 'Berat badan maksimal 500 kg')

    def validate_height(self, v):
        return _range_check(v, 300, 'Tinggi badan harus lebih dari 0', 'Tinggi badan maksimal 300 cm')

    def validate_head_circumference(self, v):
        return _range_check(v, 100, 'Lingkar kepala harus lebih dari 0', 'Lingkar kepala maksimal 100 cm')

    def validate_arm_circumference(self, v):
        return _range_check(v, 100, 'Lingkar lengan harus lebih dari 0', 'Lingkar lengan maksimal 100 cm')

    def validate_waist_circumference(self, v):
        return _range_check(v, 300, 'Lingkar perut harus lebih dari 0', 'Lingkar perut maksimal 300 cm')

    def validate_blood_pressure(self, v):
        v = (v or '').strip()
        if v and not BLOOD_PRESSURE_RE.match(v):
            raise serializers.ValidationError('Format tekanan darah harus xxx/xx (contoh: 120/80)')
        return v

    def validate_notes(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if v and len(v) < 10:
            raise serializers.ValidationError('Catatan pemeriksaan minimal 10 karakter')
        return v

    def validate_complaints(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def validate_recommendations(self, v):
        return bleach.clean((v or '').strip(), strip=True)


class VisitDetailSerializer(VisitSerializer):
    """Visit with its patient and the recording officer embedded."""
    patient = PatientSerializer(read_only=True)
    profile = StaffProfileSerializer(source='created_by', read_only=True)

    class Meta(VisitSerializer.Meta):
        fields = VisitSerializer.Meta.fields + ['patient', 'profile']
