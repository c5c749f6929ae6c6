from rest_framework import serializers

from core.models import User


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField()

    def validate_username(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('Nama pengguna wajib diisi')
        return v

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Kata sandi wajib diisi')
        return v


class StaffProfileSerializer(serializers.ModelSerializer):
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'full_name', 'role']

    def get_full_name(self, obj):
        return obj.get_full_name() or obj.username
