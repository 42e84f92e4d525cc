from django.db import models
from django.utils import timezone

from app.services.aggregator import normalize_payment, provider_from_row
from app.services.fee_schedule import FeeScheduleInput, get_fee_schedule
from app.services.reporting import build_reporting_snapshot
from app.services.split_calculator import record_refund


class Payment(models.Model):
    STATUS_CHOICES = [
        ("pending", "pending"),
        ("succeeded", "succeeded"),
        ("failed", "failed"),
        ("refunded", "refunded"),
        ("disputed", "disputed"),
        ("dispute_lost", "dispute_lost"),
    ]
    TYPE_CHOICES = [
        ("recurring", "recurring"),
        ("one_time", "one_time"),
        ("payout", "payout"),
    ]

    currency = models.CharField(max_length=3)
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default="pending")
    type = models.CharField(max_length=32, choices=TYPE_CHOICES, default="recurring")

    # null on rows written before the split columns existed
    gross_cents = models.BigIntegerField(null=True, blank=True)
    fee_cents = models.BigIntegerField(null=True, blank=True)
    net_cents = models.BigIntegerField(null=True, blank=True)
    amount_cents = models.BigIntegerField()
    subscriber_fee_cents = models.BigIntegerField(null=True, blank=True)
    creator_fee_cents = models.BigIntegerField(null=True, blank=True)
    refunded_cents = models.BigIntegerField(default=0)

    reporting_currency = models.CharField(max_length=3, null=True, blank=True)
    reporting_gross_cents = models.BigIntegerField(null=True, blank=True)
    reporting_fee_cents = models.BigIntegerField(null=True, blank=True)
    reporting_net_cents = models.BigIntegerField(null=True, blank=True)
    reporting_exchange_rate = models.DecimalField(max_digits=20, decimal_places=8, null=True, blank=True)
    reporting_rate_source = models.CharField(max_length=16, null=True, blank=True)
    reporting_is_estimated = models.BooleanField(default=False)

    creator_id = models.CharField(max_length=64, db_index=True)
    subscriber_id = models.CharField(max_length=64, null=True, blank=True)
    subscription_id = models.CharField(max_length=64, null=True, blank=True)

    stripe_payment_intent_id = models.CharField(max_length=128, null=True, blank=True)
    paystack_transaction_ref = models.CharField(max_length=128, null=True, blank=True)
    paystack_transfer_code = models.CharField(max_length=128, null=True, blank=True)

    occurred_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-occurred_at"]
        indexes = [
            models.Index(fields=["status", "type", "occurred_at"]),
            models.Index(fields=["currency", "occurred_at"]),
        ]

    def __str__(self):
        return f"{self.pk}:{self.currency}:{self.status}"

    @property
    def provider(self) -> str:
        return provider_from_row(
            {
                "stripe_payment_intent_id": self.stripe_payment_intent_id,
                "paystack_transaction_ref": self.paystack_transaction_ref,
                "paystack_transfer_code": self.paystack_transfer_code,
            }
        )

    def as_record(self):
        return normalize_payment(
            {
                "id": self.pk,
                "currency": self.currency,
                "status": self.status,
                "type": self.type,
                "occurred_at": self.occurred_at,
                "creator_id": self.creator_id,
                "provider": self.provider,
                "gross_cents": self.gross_cents,
                "fee_cents": self.fee_cents,
                "net_cents": self.net_cents,
                "amount_cents": self.amount_cents,
                "reporting_currency": self.reporting_currency,
                "reporting_gross_cents": self.reporting_gross_cents,
                "reporting_fee_cents": self.reporting_fee_cents,
                "reporting_net_cents": self.reporting_net_cents,
                "reporting_is_estimated": self.reporting_is_estimated,
            }
        )

    def snapshot_reporting(self, *, live_rate=None, provider_rate=None, fallback_rate=None):
        """Fill the USD reporting fields once, at charge time."""
        snapshot = build_reporting_snapshot(
            self.gross_cents if self.gross_cents is not None else self.amount_cents,
            self.fee_cents,
            self.net_cents,
            self.currency,
            live_rate=live_rate,
            provider_rate=provider_rate,
            fallback_rate=fallback_rate,
        )
        for name, value in snapshot.as_model_fields().items():
            setattr(self, name, value)
        return snapshot

    def mark_refunded(self, refund_cents: int):
        gross = self.gross_cents if self.gross_cents is not None else self.amount_cents
        outcome = record_refund(gross, self.refunded_cents, refund_cents)
        # gross/fee/net stay as charged
        self.refunded_cents = outcome.refunded_cents
        self.status = "refunded"
        self.save(update_fields=["refunded_cents", "status"])
        return outcome


class Profile(models.Model):
    PRICING_CHOICES = [("single", "single"), ("tiers", "tiers")]
    PURPOSE_CHOICES = [("personal", "personal"), ("service", "service")]
    # absorb and pass_to_subscriber are kept for old rows; new profiles use split
    FEE_MODE_CHOICES = [
        ("split", "split"),
        ("absorb", "absorb"),
        ("pass_to_subscriber", "pass_to_subscriber"),
    ]
    PROVIDER_CHOICES = [("stripe", "stripe"), ("paystack", "paystack")]

    creator_id = models.CharField(max_length=64, unique=True)
    currency = models.CharField(max_length=3, default="USD")
    pricing_model = models.CharField(max_length=16, choices=PRICING_CHOICES, default="single")
    single_amount = models.BigIntegerField(null=True, blank=True)
    tiers = models.JSONField(default=list, blank=True)
    country_code = models.CharField(max_length=2, null=True, blank=True)
    purpose = models.CharField(max_length=16, choices=PURPOSE_CHOICES, default="personal")
    fee_mode = models.CharField(max_length=32, choices=FEE_MODE_CHOICES, default="split")
    payment_provider = models.CharField(max_length=16, choices=PROVIDER_CHOICES, default="stripe")
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return self.creator_id

    def fee_schedule(self, config=None):
        inp = FeeScheduleInput(purpose=self.purpose, country_code=self.country_code, currency=self.currency)
        if config is None:
            return get_fee_schedule(inp)
        return get_fee_schedule(inp, config)


class Subscription(models.Model):
    INTERVAL_CHOICES = [("month", "month"), ("one_time", "one_time")]
    STATUS_CHOICES = [
        ("active", "active"),
        ("past_due", "past_due"),
        ("canceled", "canceled"),
        ("pending", "pending"),
        ("paused", "paused"),
    ]

    creator_id = models.CharField(max_length=64, db_index=True)
    subscriber_id = models.CharField(max_length=64)
    amount = models.BigIntegerField()
    currency = models.CharField(max_length=3)
    interval = models.CharField(max_length=16, choices=INTERVAL_CHOICES, default="month")
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default="pending")
    cancel_at_period_end = models.BooleanField(default=False)
    stripe_subscription_id = models.CharField(max_length=128, null=True, blank=True)
    paystack_subscription_code = models.CharField(max_length=128, null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"{self.subscriber_id}->{self.creator_id}:{self.status}"
