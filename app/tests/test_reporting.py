from decimal import Decimal

from django.test import SimpleTestCase

from app.services.exceptions import MissingExchangeRate
from app.services.reporting import build_reporting_snapshot, convert_to_usd_cents


class ConvertTests(SimpleTestCase):
    def test_two_decimal_currency(self):
        self.assertEqual(convert_to_usd_cents(160000, "NGN", 1600), 100)

    def test_zero_decimal_currency(self):
        self.assertEqual(convert_to_usd_cents(500, "JPY", 150), 333)

    def test_missing_amount_stays_missing(self):
        self.assertIsNone(convert_to_usd_cents(None, "NGN", 1600))


class SnapshotTests(SimpleTestCase):
    def test_usd_is_native(self):
        snap = build_reporting_snapshot(1000, 90, 910, "usd")
        self.assertEqual(snap.reporting_gross_cents, 1000)
        self.assertEqual(snap.reporting_rate_source, "native")
        self.assertFalse(snap.reporting_is_estimated)

    def test_provider_rate_wins_over_live(self):
        snap = build_reporting_snapshot(160000, 16800, 143200, "NGN", live_rate=1500, provider_rate=1600)
        self.assertEqual(snap.reporting_rate_source, "provider")
        self.assertEqual(snap.reporting_exchange_rate, Decimal("1600"))
        self.assertEqual(snap.reporting_gross_cents, 100)
        self.assertEqual(snap.reporting_fee_cents, 11)
        self.assertEqual(snap.reporting_net_cents, 90)

    def test_live_rate(self):
        snap = build_reporting_snapshot(160000, None, None, "NGN", live_rate="1600")
        self.assertEqual(snap.reporting_rate_source, "live")
        self.assertIsNone(snap.reporting_fee_cents)
        self.assertFalse(snap.reporting_is_estimated)

    def test_fallback_is_estimated(self):
        snap = build_reporting_snapshot(160000, 16800, 143200, "NGN", live_rate=0, fallback_rate=1600)
        self.assertEqual(snap.reporting_rate_source, "fallback")
        self.assertTrue(snap.reporting_is_estimated)
        self.assertTrue(snap.as_model_fields()["reporting_is_estimated"])

    def test_no_rate_at_all(self):
        with self.assertRaises(MissingExchangeRate):
            build_reporting_snapshot(160000, 16800, 143200, "NGN")
