import re

import bleach
from rest_framework import serializers

from core.models import Patient
from core.services.patients import PATIENT_TYPE_LABELS, parse_gender, parse_nik, patient_type_from_label

NAME_RE = re.compile(r'^[a-zA-Z\s]+$')
NIK_RE = re.compile(r'^\d{16}$')
PHONE_RE = re.compile(r'^(\+62|62|0)[0-9]{9,12}$')


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class PatientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Patient
        fields = [
            'id', 'full_name', 'nik', 'date_of_birth', 'gender', 'address', 'phone',
            'patient_type', 'parent_name', 'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_by', 'created_at', 'updated_at']
        extra_kwargs = {
            'nik': {'required': False, 'allow_null': True, 'allow_blank': True},
            'gender': {'error_messages': {'invalid_choice': 'Jenis kelamin wajib dipilih', 'required': 'Jenis kelamin wajib dipilih'}},
            'patient_type': {'error_messages': {'invalid_choice': 'Tipe pasien wajib dipilih', 'required': 'Tipe pasien wajib dipilih', 'blank': 'Tipe pasien wajib dipilih'}},
            'date_of_birth': {'error_messages': {'required': 'Tanggal lahir wajib diisi'}},
        }

    def validate_full_name(self, v):
        v = _clean(v)
        if len(v) < 3:
            raise serializers.ValidationError('Nama lengkap minimal 3 karakter')
        if len(v) > 100:
            raise serializers.ValidationError('Nama lengkap maksimal 100 karakter')
        if not NAME_RE.match(v):
            raise serializers.ValidationError('Nama hanya boleh mengandung huruf dan spasi')
        return v

    def validate_nik(self, v):
        v = (v or '').strip()
        if not v:
            return None
        if not NIK_RE.match(v):
            raise serializers.ValidationError('NIK harus 16 digit angka')
        return v

    def validate_phone(self, v):
        v = _clean(v)
        if v and not PHONE_RE.match(v):
            raise serializers.ValidationError('Format nomor telepon tidak valid (contoh: 081234567890)')
        return v

    def validate_address(self, v):
        v = _clean(v)
        if len(v) > 500:
            raise serializers.ValidationError('Alamat maksimal 500 karakter')
        return v

    def validate_parent_name(self, v):
        v = _clean(v)
        if len(v) > 100:
            raise serializers.ValidationError('Nama orang tua maksimal 100 karakter')
        return v


class PatientImportRowSerializer(PatientSerializer):
    """One spreadsheet row.

    NIK is mandatory, gender may be spelled out and the patient type may be
    given by its display label (``Ibu Hamil``, ``Bumil``).
    """

    class Meta(PatientSerializer.Meta):
        extra_kwargs = {
            **PatientSerializer.Meta.extra_kwargs,
            'nik': {'required': True, 'allow_null': False, 'allow_blank': False},
        }

    def to_internal_value(self, data):
        if isinstance(data, dict):
            data = dict(data)
            data['nik'] = parse_nik(data.get('nik'))
            data['gender'] = parse_gender(data.get('gender')) or data.get('gender')
            label = data.get('patient_type')
            if isinstance(label, str) and label.strip() and label not in PATIENT_TYPE_LABELS:
                data['patient_type'] = patient_type_from_label(label)
        return super().to_internal_value(data)

    def validate_nik(self, v):
        v = super().validate_nik(v)
        if not v:
            raise serializers.ValidationError('NIK harus 16 digit angka')
        return v


class PatientBatchSerializer(serializers.Serializer):
    patients = PatientImportRowSerializer(
        many=True,
        allow_empty=False,
        error_messages={'empty': 'Data pasien tidak valid', 'not_a_list': 'Data pasien tidak valid'},
    )

    def validate_patients(self, rows):
        niks = [row['nik'] for row in rows]
        if len(niks) != len(set(niks)):
            raise serializers.ValidationError('NIK ganda dalam data impor')
        return rows
