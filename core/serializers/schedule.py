import bleach
from rest_framework import serializers

from core.models import Announcement, Schedule


class ScheduleSerializer(serializers.ModelSerializer):
    class Meta:
        model = Schedule
        fields = [
            'id', 'title', 'subtitle', 'description', 'date', 'time', 'duration', 'location',
            'full_address', 'map_link', 'capacity', 'price', 'price_note', 'coordinator',
            'contacts', 'requirements', 'important_note', 'tags', 'created_by',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_by', 'created_at', 'updated_at']

    def validate_title(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def _string_list(self, v):
        if not isinstance(v, list) or not all(isinstance(item, str) for item in v):
            raise serializers.ValidationError('Harus berupa daftar teks')
        return [bleach.clean(item.strip(), strip=True) for item in v if item.strip()]

    def validate_requirements(self, v):
        return self._string_list(v)

    def validate_tags(self, v):
        return self._string_list(v)

    def validate_contacts(self, v):
        if not isinstance(v, list):
            raise serializers.ValidationError('Harus berupa daftar kontak')
        return v


class AnnouncementSerializer(serializers.ModelSerializer):
    class Meta:
        model = Announcement
        fields = ['id', 'title', 'content', 'type', 'published', 'created_by', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_by', 'created_at', 'updated_at']

    def validate_title(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def validate_content(self, v):
        return bleach.clean((v or '').strip(), strip=True)
