from datetime import datetime, timezone

from django.test import SimpleTestCase

from app.services.aggregator import (
    LegacyPayment,
    StructuredPayment,
    aggregate_by_currency,
    aggregate_by_provider,
    aggregate_gross_only,
    aggregate_payment_stats,
    aggregate_payment_stats_by_currency,
    aggregate_reporting_totals,
    aggregate_top_creators,
    normalize_payment,
    to_volume_contribution,
)


def row(id, currency="USD", gross=None, fee=None, net=None, amount=0, **extra):
    data = {
        "id": id,
        "currency": currency,
        "gross_cents": gross,
        "fee_cents": fee,
        "net_cents": net,
        "amount_cents": amount,
        "occurred_at": datetime(2024, 1, 1, 12, tzinfo=timezone.utc),
    }
    data.update(extra)
    return data


class NormalizeTests(SimpleTestCase):
    def test_null_gross_is_legacy(self):
        record = normalize_payment(row(1, gross=None, amount=500))
        self.assertIsInstance(record, LegacyPayment)
        self.assertEqual(to_volume_contribution(record), 500)

    def test_structured_row_ignores_amount(self):
        record = normalize_payment(row(2, gross=1000, fee=90, net=910, amount=777))
        self.assertIsInstance(record, StructuredPayment)
        self.assertEqual(to_volume_contribution(record), 1000)

    def test_provider_from_correlation_fields(self):
        self.assertEqual(normalize_payment(row(3, stripe_payment_intent_id="pi_1")).meta.provider, "stripe")
        self.assertEqual(normalize_payment(row(4, paystack_transaction_ref="ref")).meta.provider, "paystack")
        self.assertEqual(normalize_payment(row(5)).meta.provider, "unknown")

    def test_iso_timestamps_are_parsed(self):
        record = normalize_payment(row(6, occurred_at="2024-01-01T23:30:00Z"))
        self.assertEqual(record.occurred_at, datetime(2024, 1, 1, 23, 30, tzinfo=timezone.utc))


class AggregateByCurrencyTests(SimpleTestCase):
    def test_legacy_and_structured_are_not_double_counted(self):
        result = aggregate_by_currency([
            row(1, gross=1000, fee=90, net=910, amount=1000),
            row(2, gross=None, amount=500),
        ])
        stats = result["USD"]
        self.assertEqual(stats.total_volume_cents, 1500)
        self.assertEqual(stats.platform_fee_cents, 90)
        self.assertEqual(stats.creator_payouts_cents, 910)
        self.assertEqual(stats.payment_count, 2)
        self.assertEqual(stats.legacy_count, 1)

    def test_currencies_are_kept_apart(self):
        result = aggregate_by_currency([row(1, gross=1000, fee=90, net=910), row(2, "NGN", gross=500000, fee=52500, net=447500)])
        self.assertEqual(set(result), {"USD", "NGN"})
        self.assertEqual(result["NGN"].total_volume_cents, 500000)

    def test_multi_currency_flag(self):
        summary = aggregate_payment_stats_by_currency([
            row(1, "USD", gross=1000, fee=90, net=910),
            row(2, "NGN", gross=500000, fee=52500, net=447500),
        ])
        self.assertTrue(summary.is_multi_currency)
        self.assertEqual(set(summary.currencies), {"USD", "NGN"})
        self.assertEqual(summary.payment_count, 2)
        self.assertTrue(summary.as_dict()["is_multi_currency"])

    def test_single_currency_is_not_flagged(self):
        summary = aggregate_payment_stats_by_currency([row(1, gross=1000, fee=90, net=910)])
        self.assertFalse(summary.is_multi_currency)
        self.assertEqual(summary.total_volume_cents, 1000)

    def test_partial_row_counts_volume_and_warns(self):
        with self.assertLogs("app.services.aggregator", level="WARNING"):
            summary = aggregate_payment_stats_by_currency([
                row(1, gross=1000, fee=None, net=None),
                row(2, gross=2000, fee=180, net=1820),
            ])
        self.assertEqual(summary.total_volume_cents, 3000)
        self.assertEqual(summary.platform_fee_cents, 180)
        self.assertEqual(summary.creator_payouts_cents, 1820)
        self.assertEqual(summary.data_quality_warnings, 1)
        self.assertEqual(summary.warnings[0].payment_id, "1")

    def test_empty_input(self):
        self.assertEqual(aggregate_by_currency([]), {})
        summary = aggregate_payment_stats_by_currency([])
        self.assertEqual(summary.payment_count, 0)
        self.assertEqual(summary.currencies, [])

    def test_each_call_builds_fresh_results(self):
        rows = [row(1, gross=1000, fee=90, net=910)]
        first = aggregate_by_currency(rows)
        first["USD"].total_volume_cents = 0
        self.assertEqual(aggregate_by_currency(rows)["USD"].total_volume_cents, 1000)

    def test_single_group_stats(self):
        stats = aggregate_payment_stats([row(1, gross=1000, fee=90, net=910), row(2, amount=300)])
        self.assertEqual(stats.total_volume_cents, 1300)


class GroupingTests(SimpleTestCase):
    def test_by_provider(self):
        result = aggregate_by_provider([
            row(1, gross=1000, fee=90, net=910, stripe_payment_intent_id="pi_1"),
            row(2, "NGN", gross=500000, fee=52500, net=447500, paystack_transaction_ref="ref_1"),
            row(3, amount=400),
        ])
        self.assertEqual(sorted(result), ["paystack", "stripe", "unknown"])
        self.assertEqual(result["paystack"].by_currency["NGN"].total_volume_cents, 500000)
        self.assertEqual(result["unknown"].legacy_count, 1)

    def test_top_creators_grouped_by_currency(self):
        ranked = aggregate_top_creators([
            row(1, gross=1000, fee=90, net=910, creator_id="a"),
            row(2, gross=3000, fee=270, net=2730, creator_id="b"),
            row(3, gross=1500, fee=135, net=1365, creator_id="a"),
            row(4, "NGN", gross=500000, fee=52500, net=447500, creator_id="a"),
        ], limit=2)
        self.assertEqual(len(ranked), 2)
        self.assertEqual((ranked[0].creator_id, ranked[0].currency), ("a", "NGN"))
        self.assertEqual((ranked[1].creator_id, ranked[1].currency), ("b", "USD"))
        self.assertEqual(ranked[1].as_dict()["creator_earnings_cents"], 2730)

    def test_gross_only(self):
        totals = aggregate_gross_only([row(1, gross=1000, fee=90, net=910), row(2, amount=500), row(3, "NGN", gross=100)])
        self.assertEqual(totals.by_currency, {"USD": 1500, "NGN": 100})
        self.assertEqual(totals.count, 3)
        self.assertTrue(totals.is_multi_currency)


class ReportingTotalsTests(SimpleTestCase):
    def test_sums_snapshots_and_counts_estimates(self):
        totals = aggregate_reporting_totals([
            row(1, gross=1000, fee=90, net=910, reporting_currency="USD", reporting_gross_cents=1000,
                reporting_fee_cents=90, reporting_net_cents=910),
            row(2, "NGN", gross=160000, fee=16800, net=143200, reporting_currency="usd", reporting_gross_cents=100,
                reporting_fee_cents=11, reporting_net_cents=90, reporting_is_estimated=True),
            row(3, amount=500),
        ])
        self.assertEqual(totals.gross_cents, 1100)
        self.assertEqual(totals.fee_cents, 101)
        self.assertEqual(totals.net_cents, 1000)
        self.assertEqual(totals.payment_count, 2)
        self.assertEqual(totals.estimated_count, 1)
        self.assertEqual(totals.missing_snapshot_count, 1)
        self.assertTrue(totals.as_dict()["is_estimated"])
