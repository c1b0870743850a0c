from rest_framework import serializers

from audit.models import AuditLogEntry


class AuditLogEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLogEntry
        fields = (
            "id",
            "company_id",
            "actor_user_id",
            "actor_username",
            "action",
            "entity_type",
            "entity_id",
            "previous_values",
            "new_values",
            "ip_address",
            "user_agent",
            "correlation_id",
            "request_method",
            "request_path",
            "occurred_at",
            "chain_id",
            "prev_hash",
            "entry_hash",
        )


class ChainVerificationSerializer(serializers.Serializer):
    chain_id = serializers.CharField()
    ok = serializers.BooleanField()
    checked = serializers.IntegerField()
    broken_entry_id = serializers.IntegerField(allow_null=True)
