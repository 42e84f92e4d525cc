from decimal import Decimal

from django.test import SimpleTestCase

from app.services.exceptions import InvalidAmount, InvalidCurrency, PaymentValidationError
from app.services.payment_validator import validate_quote_request_data


class QuoteValidationTests(SimpleTestCase):
    def test_normalizes_codes(self):
        data = validate_quote_request_data({"amount": Decimal("10"), "currency": "usd", "country_code": "us"})
        self.assertEqual(data["currency"], "USD")
        self.assertEqual(data["country_code"], "US")

    def test_rejects_unknown_currency(self):
        with self.assertRaises(InvalidCurrency):
            validate_quote_request_data({"amount": Decimal("10"), "currency": "XYZ"})

    def test_rejects_negative_amount(self):
        with self.assertRaises(InvalidAmount):
            validate_quote_request_data({"amount": Decimal("-1"), "currency": "USD"})

    def test_rejects_bad_country_purpose_and_provider(self):
        cases = [
            {"country_code": "U1"},
            {"purpose": "charity"},
            {"payment_provider": "adyen"},
        ]
        for extra in cases:
            payload = {"amount": Decimal("10"), "currency": "USD", **extra}
            with self.assertRaises(PaymentValidationError):
                validate_quote_request_data(payload)
