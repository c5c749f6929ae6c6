from rest_framework import serializers

from core.serializers.visit import BLOOD_PRESSURE_RE
from core.services.clinical import age_in_months


class AssessmentRequestSerializer(serializers.Serializer):
    date_of_birth = serializers.DateField(required=False)
    age_months = serializers.IntegerField(required=False, min_value=0, max_value=1500)
    gender = serializers.ChoiceField(choices=['L', 'P'])
    weight = serializers.FloatField(required=False, allow_null=True, min_value=0.1, max_value=500)
    height = serializers.FloatField(required=False, allow_null=True, min_value=1, max_value=300)
    arm_circumference = serializers.FloatField(required=False, allow_null=True, min_value=1, max_value=100)
    waist_circumference = serializers.FloatField(required=False, allow_null=True, min_value=1, max_value=300)
    blood_pressure = serializers.CharField(required=False, allow_blank=True)
    last_menstrual_period = serializers.DateField(required=False, allow_null=True)

    def validate_blood_pressure(self, v):
        v = (v or '').strip()
        if v and not BLOOD_PRESSURE_RE.match(v):
            raise serializers.ValidationError('Format tekanan darah harus xxx/xx (contoh: 120/80)')
        return v

    def validate(self, attrs):
        if attrs.get('age_months') is None:
            if not attrs.get('date_of_birth'):
                raise serializers.ValidationError('date_of_birth atau age_months wajib diisi')
            attrs['age_months'] = age_in_months(attrs['date_of_birth'])
        attrs.pop('date_of_birth', None)
        return attrs
