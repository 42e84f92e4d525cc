from rest_framework import serializers

from app.services.bucketing import PERIODS
from app.services.fee_schedule import PURPOSES


class QuoteRequestSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=4)
    currency = serializers.CharField(max_length=3)
    country_code = serializers.CharField(max_length=2, required=False, allow_null=True, allow_blank=True)
    purpose = serializers.ChoiceField(choices=PURPOSES, required=False, default="personal")
    payment_provider = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    creator_id = serializers.CharField(required=False, max_length=64)


class MinimumQuerySerializer(serializers.Serializer):
    currency = serializers.CharField(max_length=3, required=False)
    amount_cents = serializers.IntegerField(required=False, min_value=0)
    country_code = serializers.CharField(max_length=2, required=False)
    subscriber_count = serializers.IntegerField(required=False, min_value=1)
    payment_provider = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get("currency") and not attrs.get("country_code"):
            raise serializers.ValidationError("currency or country_code required")
        return attrs


class PeriodQuerySerializer(serializers.Serializer):
    period = serializers.ChoiceField(choices=PERIODS, required=False, default="all")


class TopCreatorsQuerySerializer(PeriodQuerySerializer):
    limit = serializers.IntegerField(required=False, default=20, min_value=1, max_value=100)


class DaysQuerySerializer(serializers.Serializer):
    days = serializers.IntegerField(required=False, default=30, min_value=1, max_value=366)


class MonthsQuerySerializer(serializers.Serializer):
    months = serializers.IntegerField(required=False, default=12, min_value=1, max_value=60)
