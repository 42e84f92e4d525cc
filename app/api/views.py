import logging
from datetime import timedelta

from django.conf import settings
from django.core.cache import cache
from django.db.models import Count
from django.utils import timezone as dj_timezone
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from app.models import Payment, Profile
from app.services.aggregator import (
    REVENUE_STATUSES,
    REVENUE_TYPES,
    aggregate_by_provider,
    aggregate_gross_only,
    aggregate_payment_stats_by_currency,
    aggregate_reporting_totals,
    aggregate_top_creators,
)
from app.services.bucketing import (
    bucket_daily,
    bucket_monthly,
    last_n_days,
    last_n_months,
    period_start,
    previous_month,
    start_of_day_utc,
)
from app.services.currency import display_amount_to_cents, ensure_minimum_amount, validate_minimum_amount
from app.services.currency_table import get_currency, normalize_currency_code
from app.services.exceptions import PaymentValidationError
from app.services.fee_schedule import (
    FeeScheduleConfig,
    FeeScheduleInput,
    get_dynamic_minimum,
    get_fee_schedule,
    provider_for_currency,
)
from app.services.payment_validator import validate_quote_request_data
from app.services.split_calculator import calculate_fee_preview

from .serializers import (
    DaysQuerySerializer,
    MinimumQuerySerializer,
    MonthsQuerySerializer,
    PeriodQuerySerializer,
    QuoteRequestSerializer,
    TopCreatorsQuerySerializer,
)

logger = logging.getLogger(__name__)

REFUND_STATUSES = ("refunded", "disputed", "dispute_lost")


def _business_timezone() -> str:
    return getattr(settings, "BUSINESS_TIMEZONE", "UTC")


def _live_ttl() -> int:
    return getattr(settings, "REVENUE_CACHE_TTL_LIVE", 60)


def _history_ttl() -> int:
    return getattr(settings, "REVENUE_CACHE_TTL_HISTORY", 600)


def _row_cap() -> int:
    return getattr(settings, "REVENUE_MAX_ROWS", 50000)


def _fetch_rows(since=None, until=None, statuses=REVENUE_STATUSES, currency=None):
    """Newest rows first, at most ``REVENUE_MAX_ROWS``. Returns ``(rows, truncated)``."""
    qs = Payment.objects.filter(status__in=statuses, type__in=REVENUE_TYPES)
    if since is not None:
        qs = qs.filter(occurred_at__gte=since)
    if until is not None:
        qs = qs.filter(occurred_at__lt=until)
    if currency:
        qs = qs.filter(currency=currency)

    cap = _row_cap()
    rows = list(qs.order_by("-occurred_at")[: cap + 1])
    truncated = len(rows) > cap
    if truncated:
        logger.warning("revenue query hit the row cap of %d; results are truncated", cap)
        rows = rows[:cap]
    return rows, truncated


def _error_response(exc: PaymentValidationError) -> Response:
    return Response(exc.as_response_body(), status=exc.status_code)


class QuoteView(APIView):
    def post(self, request):
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        profile = None
        if serializer.validated_data.get("creator_id"):
            profile = Profile.objects.filter(creator_id=serializer.validated_data["creator_id"]).first()
            if profile is None:
                return Response({"detail": "creator not found"}, status=status.HTTP_404_NOT_FOUND)

        try:
            data = validate_quote_request_data(dict(serializer.validated_data))
            currency = data["currency"]
            if profile is not None and normalize_currency_code(profile.currency) != currency:
                return Response({"detail": "currency does not match the creator's currency"}, status=status.HTTP_400_BAD_REQUEST)

            provider = data.get("payment_provider") or (profile.payment_provider if profile is not None else None)
            provider = (provider or provider_for_currency(currency)).lower()
            config = FeeScheduleConfig.from_settings()

            amount_cents = display_amount_to_cents(data["amount"], currency)
            minimum = ensure_minimum_amount(amount_cents, currency, provider, config)
            if profile is not None:
                schedule = profile.fee_schedule(config)
            else:
                schedule = get_fee_schedule(
                    FeeScheduleInput(
                        purpose=data.get("purpose") or "personal",
                        country_code=data.get("country_code") or None,
                        currency=currency,
                    ),
                    config,
                )
            preview = calculate_fee_preview(
                base_cents=amount_cents, currency=currency, schedule=schedule, provider=provider
            )
        except PaymentValidationError as e:
            return _error_response(e)

        return Response(
            {
                "amount_cents": amount_cents,
                "provider": provider,
                "minimum": minimum.as_dict(),
                "fee_schedule": schedule.as_dict(),
                "preview": preview,
            }
        )


class MinimumView(APIView):
    def get(self, request):
        serializer = MinimumQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        config = FeeScheduleConfig.from_settings()

        result = {}
        try:
            if data.get("currency"):
                check = validate_minimum_amount(
                    data.get("amount_cents", 0),
                    data["currency"],
                    data.get("payment_provider") or None,
                    config,
                )
                result["currency_minimum"] = check.as_dict()
                if "amount_cents" not in data:
                    result["currency_minimum"].pop("valid")
            if data.get("country_code"):
                dynamic = get_dynamic_minimum(data["country_code"], data.get("subscriber_count"), config)
                result["country_minimum"] = dynamic.as_dict()
        except PaymentValidationError as e:
            return _error_response(e)
        return Response(result)


class RevenueOverviewView(APIView):
    def get(self, request):
        tz = _business_timezone()

        def compute():
            now = dj_timezone.now()
            last_first, last_last = previous_month(tz, now)
            truncated = []

            def summary(**filters):
                rows, hit_cap = _fetch_rows(**filters)
                truncated.append(hit_cap)
                return aggregate_payment_stats_by_currency(rows).as_dict()

            status_counts = Payment.objects.values("status").annotate(count=Count("id")).order_by("status")
            data = {
                "timezone": tz,
                "all_time": summary(),
                "this_month": summary(since=period_start("month", tz, now)),
                "last_month": summary(
                    since=start_of_day_utc(last_first, tz),
                    until=start_of_day_utc(last_last + timedelta(days=1), tz),
                ),
                "today": summary(since=period_start("today", tz, now)),
                "payments_by_status": {row["status"]: row["count"] for row in status_counts},
                "generated_at": now.isoformat(),
            }
            data["truncated"] = any(truncated)
            data["row_cap"] = _row_cap()
            return data

        try:
            data = cache.get_or_set(f"revenue:overview:{tz}", compute, _live_ttl())
        except PaymentValidationError as e:
            return _error_response(e)
        return Response(data)


class _PeriodRevenueView(APIView):
    """Base for admin views that aggregate payment rows over a named period."""

    cache_prefix = None
    query_serializer = PeriodQuerySerializer

    def build(self, rows, params):
        raise NotImplementedError

    def get(self, request):
        serializer = self.query_serializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data
        tz = _business_timezone()
        key = ":".join(["revenue", self.cache_prefix, tz] + [f"{k}={params[k]}" for k in sorted(params)])

        def compute():
            rows, truncated = self.fetch(period_start(params["period"], tz))
            return {
                "period": params["period"],
                "timezone": tz,
                **self.build(rows, params),
                "truncated": truncated,
                "row_cap": _row_cap(),
            }

        try:
            data = cache.get_or_set(key, compute, _live_ttl())
        except PaymentValidationError as e:
            return _error_response(e)
        return Response(data)

    def fetch(self, since):
        return _fetch_rows(since=since)


class RevenueByCurrencyView(_PeriodRevenueView):
    cache_prefix = "by-currency"

    def build(self, rows, params):
        return aggregate_payment_stats_by_currency(rows).as_dict()


class RevenueByProviderView(_PeriodRevenueView):
    cache_prefix = "by-provider"

    def build(self, rows, params):
        return {"providers": {name: s.as_dict() for name, s in aggregate_by_provider(rows).items()}}


class TopCreatorsView(_PeriodRevenueView):
    cache_prefix = "top-creators"
    query_serializer = TopCreatorsQuerySerializer

    def build(self, rows, params):
        return {"creators": [c.as_dict() for c in aggregate_top_creators(rows, limit=params["limit"])]}


class RefundsView(_PeriodRevenueView):
    cache_prefix = "refunds"

    def fetch(self, since):
        return _fetch_rows(since=since, statuses=REFUND_STATUSES)

    def build(self, rows, params):
        by_status = {s: [] for s in REFUND_STATUSES}
        for row in rows:
            by_status[row.status].append(row)
        return {name: aggregate_gross_only(group).as_dict() for name, group in by_status.items()}


class ReportingRollupView(_PeriodRevenueView):
    cache_prefix = "reporting"

    def build(self, rows, params):
        return aggregate_reporting_totals(rows).as_dict()


class RevenueDailyView(APIView):
    def get(self, request):
        serializer = DaysQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        days = serializer.validated_data["days"]
        currency = request.query_params.get("currency")
        tz = _business_timezone()

        def compute():
            first, last = last_n_days(days, tz)
            code = get_currency(currency).code if currency else None
            rows, truncated = _fetch_rows(since=start_of_day_utc(first, tz), currency=code)
            return {
                "timezone": tz,
                "currency": code,
                "days": [b.as_dict() for b in bucket_daily(rows, first, last, tz)],
                "truncated": truncated,
                "row_cap": _row_cap(),
            }

        try:
            data = cache.get_or_set(f"revenue:daily:{tz}:{days}:{currency or ''}", compute, _history_ttl())
        except PaymentValidationError as e:
            return _error_response(e)
        return Response(data)


class RevenueMonthlyView(APIView):
    def get(self, request):
        serializer = MonthsQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        months = serializer.validated_data["months"]
        currency = request.query_params.get("currency")
        tz = _business_timezone()

        def compute():
            first, last = last_n_months(months, tz)
            code = get_currency(currency).code if currency else None
            rows, truncated = _fetch_rows(since=start_of_day_utc(first, tz), currency=code)
            return {
                "timezone": tz,
                "currency": code,
                "months": [b.as_dict() for b in bucket_monthly(rows, first, last, tz)],
                "truncated": truncated,
                "row_cap": _row_cap(),
            }

        try:
            data = cache.get_or_set(f"revenue:monthly:{tz}:{months}:{currency or ''}", compute, _history_ttl())
        except PaymentValidationError as e:
            return _error_response(e)
        return Response(data)
