from decimal import Decimal

from rest_framework import serializers

from commission.models import CommissionRule


class CommissionRuleSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionRule
        fields = (
            "id",
            "insurer_id",
            "insurance_type_id",
            "rate_percentage",
            "effective_from",
            "effective_to",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "created_at", "updated_at")

    def validate(self, attrs):
        attrs = super().validate(attrs)
        instance = self.instance
        effective_from = attrs.get("effective_from", getattr(instance, "effective_from", None))
        effective_to = attrs.get("effective_to", getattr(instance, "effective_to", None))
        if effective_from and effective_to and effective_to < effective_from:
            raise serializers.ValidationError(
                {"effective_to": "effective_to must be on or after effective_from."}
            )
        return attrs


class RateQuerySerializer(serializers.Serializer):
    insurer_id = serializers.IntegerField(min_value=1)
    insurance_type_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    on_date = serializers.DateField(required=False, allow_null=True)
    base_amount = serializers.DecimalField(
        max_digits=14,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        allow_null=True,
    )
    override_rate = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal("0.00"),
        max_value=Decimal("100.00"),
        required=False,
        allow_null=True,
    )
