"""
Serializers for the Banner API

Request validation only; the registry re-checks the same rules so the
service can be called directly (management commands, admin).
"""

from django.conf import settings
from rest_framework import serializers

from . import registry
from .exceptions import InvalidArgument


class StrictBooleanField(serializers.Field):
    """Only a JSON true/false is accepted ("true", 1 and friends are rejected)"""

    default_error_messages = {
        'invalid': 'Must be a boolean (true or false).',
    }

    def to_internal_value(self, data):
        if not isinstance(data, bool):
            self.fail('invalid')
        return data

    def to_representation(self, value):
        return bool(value)


class StrictIntegerField(serializers.Field):
    """A JSON integer; booleans and strings are rejected"""

    default_error_messages = {
        'invalid': 'Must be an integer.',
    }

    def to_internal_value(self, data):
        if isinstance(data, bool) or not isinstance(data, int):
            self.fail('invalid')
        return data

    def to_representation(self, value):
        return int(value)


class BannerUpdateSerializer(serializers.Serializer):
    """PUT /api/config/banners - toggle, reschedule or reprioritise one banner"""

    file = serializers.CharField(
        required=True,
        trim_whitespace=False,
        help_text="Banner URL (the banner's id)"
    )
    active = StrictBooleanField(required=True)
    day = serializers.CharField(
        required=False,
        allow_null=True,
        allow_blank=True,
        help_text='"random" or a weekday name (monday ... sunday)'
    )
    priority = StrictIntegerField(
        required=False,
        allow_null=True,
        help_text="Lower numbers are shown first (default 999)"
    )

    def validate_file(self, value):
        if not value.strip():
            raise serializers.ValidationError('"file" (banner URL) must be provided')
        return value

    def validate_day(self, value):
        if value in (None, ''):
            return None
        try:
            return registry.normalize_day(value)
        except InvalidArgument as e:
            raise serializers.ValidationError(e.message)


class BannerDeleteSerializer(serializers.Serializer):
    """DELETE /api/banners/delete"""

    fileUrl = serializers.CharField(required=True, trim_whitespace=False)
    publicId = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def validate_fileUrl(self, value):
        if not value.strip():
            raise serializers.ValidationError('Banner URL is required for deletion')
        return value


class BannerUploadSerializer(serializers.Serializer):
    """POST /api/banners/upload (multipart, field 'bannerFile')"""

    bannerFile = serializers.FileField(
        required=True,
        allow_empty_file=False,
        error_messages={'required': 'No file uploaded.'}
    )

    def validate_bannerFile(self, value):
        content_type = getattr(value, 'content_type', '') or ''
        if content_type and not content_type.startswith('image/'):
            raise serializers.ValidationError(f'Unsupported file type: {content_type}')
        if value.size > settings.BANNER_MAX_UPLOAD_BYTES:
            raise serializers.ValidationError(
                f'File too large ({value.size} bytes, max {settings.BANNER_MAX_UPLOAD_BYTES})'
            )
        return value


def first_error(errors):
    """Flatten DRF serializer errors into one readable message"""
    if isinstance(errors, dict):
        for field, messages in errors.items():
            message = first_error(messages)
            if field == 'non_field_errors':
                return message
            return f"{field}: {message}"
    if isinstance(errors, (list, tuple)) and errors:
        return first_error(errors[0])
    return str(errors)
