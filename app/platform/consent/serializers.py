"""
Consent Audit Serializers
"""

from rest_framework import serializers

from app.core.constants import ConsentSource

from .models import ConsentLog
from .recorder import DEFAULT_VERSION_HASH, VERSION_HASH_MAX_LENGTH, is_valid_consent_id


class ConsentSubmissionSerializer(serializers.Serializer):
    """Inbound consent decision from the browser runtime"""

    consent_id = serializers.CharField(
        required=True,
        trim_whitespace=False,
        help_text="64 lowercase hex characters generated by the browser"
    )

    categories = serializers.ListField(
        child=serializers.JSONField(),
        required=True,
        allow_empty=True,
        help_text="Accepted category names; unknown names are dropped"
    )

    version_hash = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=VERSION_HASH_MAX_LENGTH,
        default=DEFAULT_VERSION_HASH,
    )

    source = serializers.ChoiceField(
        choices=ConsentSource.choices,
        required=False,
        default=ConsentSource.ACCEPT,
    )

    def validate_consent_id(self, value):
        if not is_valid_consent_id(value):
            raise serializers.ValidationError("Invalid consent identifier.")
        return value


class ConsentLogSerializer(serializers.ModelSerializer):
    """Read-only listing row; the hash is truncated for display"""

    consent_hash = serializers.SerializerMethodField()
    version_hash = serializers.SerializerMethodField()

    class Meta:
        model = ConsentLog
        fields = [
            "id",
            "created_at",
            "consent_hash",
            "categories",
            "version_hash",
            "source",
        ]
        read_only_fields = fields

    def get_consent_hash(self, obj) -> str:
        return f"{obj.consent_hash[:16]}..."

    def get_version_hash(self, obj) -> str:
        if len(obj.version_hash) > 16:
            return f"{obj.version_hash[:16]}..."
        return obj.version_hash


class ConsentStatsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    retention_months = serializers.IntegerField()


class SweepRequestSerializer(serializers.Serializer):
    retention_months = serializers.IntegerField(required=False, min_value=1, max_value=120)
