from decimal import Decimal

from django.test import SimpleTestCase

from app.services.exceptions import RefundExceedsGross, SplitCalculationError
from app.services.fee_schedule import FeeScheduleInput, get_fee_schedule
from app.services.split_calculator import (
    SplitFeeCalculator,
    calculate_fee_preview,
    estimate_provider_fee_cents,
    record_refund,
    split_payment,
)


class SplitPaymentTests(SimpleTestCase):
    def test_fee_plus_net_equals_gross(self):
        rates = (Decimal("9"), Decimal("10.5"), Decimal("4.5"), Decimal("5.25"))
        grosses = list(range(1, 5001)) + [9_999, 123_457, 999_999, 5_000_001, 10_000_000]
        for rate in rates:
            for gross in grosses:
                split = split_payment(gross, rate)
                self.assertEqual(split.fee_cents + split.net_cents, gross)

    def test_half_unit_rounds_up(self):
        # 10 * 5% = 0.5
        self.assertEqual(split_payment(10, 5).fee_cents, 1)
        # 1000 * 10.5% = 105, 1 * 9% = 0.09
        self.assertEqual(split_payment(1000, Decimal("10.5")).fee_cents, 105)
        self.assertEqual(split_payment(1, 9).fee_cents, 0)
        self.assertEqual(split_payment(1, 9).net_cents, 1)

    def test_zero_decimal_currency_amounts(self):
        split = split_payment(333, Decimal("4.5"))
        self.assertEqual(split.fee_cents, 15)
        self.assertEqual(split.net_cents, 318)

    def test_zero_gross(self):
        split = split_payment(0, 9)
        self.assertEqual((split.gross_cents, split.fee_cents, split.net_cents), (0, 0, 0))

    def test_bad_input(self):
        for gross in (-1, 1.5, "100", True):
            with self.assertRaises(SplitCalculationError):
                split_payment(gross, 9)
        for rate in (-1, 101):
            with self.assertRaises(SplitCalculationError):
                split_payment(100, rate)


class SplitFeeCalculatorTests(SimpleTestCase):
    def test_domestic_split(self):
        schedule = get_fee_schedule(FeeScheduleInput(country_code="US", currency="USD"))
        fee = SplitFeeCalculator().calculate(base_cents=10000, currency="USD", schedule=schedule)
        self.assertEqual(fee.subscriber_fee_cents, 450)
        self.assertEqual(fee.creator_fee_cents, 450)
        self.assertEqual(fee.gross_cents, 10450)
        self.assertEqual(fee.fee_cents, 900)
        self.assertEqual(fee.net_cents, 9550)
        split = fee.as_split()
        self.assertEqual(split.fee_cents + split.net_cents, split.gross_cents)

    def test_cross_border_split(self):
        schedule = get_fee_schedule(FeeScheduleInput(country_code="NG", currency="NGN"))
        fee = SplitFeeCalculator().calculate(base_cents=10000, currency="NGN", schedule=schedule)
        self.assertEqual((fee.gross_cents, fee.fee_cents, fee.net_cents), (10525, 1050, 9475))
        self.assertTrue(fee.is_cross_border)

    def test_preview_is_json_safe(self):
        schedule = get_fee_schedule(FeeScheduleInput(country_code="US", currency="USD"))
        preview = calculate_fee_preview(base_cents=2500, currency="usd", schedule=schedule)
        self.assertEqual(preview["currency"], "USD")
        self.assertEqual(preview["subscriber_pays_cents"], 2613)
        self.assertEqual(preview["creator_receives_cents"], 2387)
        self.assertEqual(preview["subscriber_pays_display"], "$26.13")
        self.assertEqual(preview["split_percent"], "4.5")
        # 76 variable + 55 fixed on the 2613 charge, out of a 226 service fee
        self.assertEqual(preview["estimated_provider_fee_cents"], 131)
        self.assertEqual(preview["estimated_margin_cents"], 95)

    def test_provider_estimate_uses_the_given_provider(self):
        self.assertEqual(estimate_provider_fee_cents(10000, "NGN", "paystack"), 15150)
        self.assertEqual(estimate_provider_fee_cents(2613, "USD"), 131)

    def test_empty_preview_has_no_provider_estimate(self):
        schedule = get_fee_schedule(FeeScheduleInput(country_code="US", currency="USD"))
        preview = calculate_fee_preview(base_cents=0, currency="USD", schedule=schedule)
        self.assertEqual(preview["estimated_provider_fee_cents"], 0)
        self.assertEqual(preview["estimated_margin_cents"], 0)


class RefundTests(SimpleTestCase):
    def test_partial_then_full(self):
        first = record_refund(1000, 0, 400)
        self.assertTrue(first.is_partial)
        self.assertEqual(first.remaining_cents, 600)
        second = record_refund(1000, first.refunded_cents, 600)
        self.assertFalse(second.is_partial)
        self.assertEqual(second.refunded_cents, 1000)

    def test_over_refund_is_rejected(self):
        with self.assertRaises(RefundExceedsGross):
            record_refund(1000, 400, 601)
        with self.assertRaises(RefundExceedsGross):
            record_refund(1000, 0, 0)
