import bleach
from rest_framework import serializers

from core.models import Immunization, Patient

REQUIRED_MESSAGE = 'patient_id, vaccine_name, dan vaccine_date wajib diisi'


class ImmunizationSerializer(serializers.ModelSerializer):
    patient_id = serializers.PrimaryKeyRelatedField(
        source='patient',
        queryset=Patient.objects.all(),
        error_messages={'required': REQUIRED_MESSAGE, 'does_not_exist': 'Pasien tidak ditemukan'},
    )

    class Meta:
        model = Immunization
        fields = ['id', 'patient_id', 'vaccine_name', 'vaccine_date', 'next_schedule', 'notes', 'created_by', 'created_at']
        read_only_fields = ['id', 'created_by', 'created_at']
        extra_kwargs = {
            'vaccine_name': {'error_messages': {'required': REQUIRED_MESSAGE, 'blank': REQUIRED_MESSAGE}},
            'vaccine_date': {'error_messages': {'required': REQUIRED_MESSAGE}},
        }

    def validate_vaccine_name(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def validate_notes(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def validate(self, attrs):
        next_schedule = attrs.get('next_schedule')
        vaccine_date = attrs.get('vaccine_date') or getattr(self.instance, 'vaccine_date', None)
        if next_schedule and vaccine_date and next_schedule < vaccine_date:
            raise serializers.ValidationError({'next_schedule': 'Jadwal berikutnya tidak boleh sebelum tanggal imunisasi'})
        return attrs
