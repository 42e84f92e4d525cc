from django.test import override_settings
from rest_framework.test import APITestCase

from app.models import Profile, Subscription


class QuoteTests(APITestCase):
    base_url = "/api/v1/checkout/quote"

    def test_domestic_quote(self):
        payload = {"amount": "100.00", "currency": "USD", "country_code": "US"}
        r = self.client.post(self.base_url, payload, format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["amount_cents"], 10000)
        self.assertEqual(r.data["provider"], "stripe")
        self.assertTrue(r.data["minimum"]["valid"])
        self.assertEqual(r.data["preview"]["subscriber_pays_cents"], 10450)
        self.assertEqual(r.data["preview"]["creator_receives_cents"], 9550)
        self.assertEqual(r.data["fee_schedule"]["platform_fee_percent"], "9")

    def test_cross_border_quote(self):
        payload = {"amount": "5000", "currency": "ngn", "country_code": "NG", "purpose": "service"}
        r = self.client.post(self.base_url, payload, format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["provider"], "paystack")
        self.assertTrue(r.data["fee_schedule"]["is_cross_border"])
        self.assertEqual(r.data["preview"]["service_fee_cents"], 52500)

    def test_zero_decimal_quote(self):
        r = self.client.post(self.base_url, {"amount": "2000", "currency": "JPY"}, format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["amount_cents"], 2000)

    def test_below_minimum_returns_minimum_for_display(self):
        r = self.client.post(self.base_url, {"amount": "5.00", "currency": "USD"}, format="json")
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data["minimum_cents"], 1000)
        self.assertEqual(r.data["minimum_display"], "$10.00")

    def test_unknown_currency(self):
        r = self.client.post(self.base_url, {"amount": "50.00", "currency": "XYZ"}, format="json")
        self.assertEqual(r.status_code, 400)
        self.assertIn("XYZ", r.data["detail"])

    def test_negative_amount(self):
        r = self.client.post(self.base_url, {"amount": "-5.00", "currency": "USD"}, format="json")
        self.assertEqual(r.status_code, 400)

    def test_missing_fields(self):
        r = self.client.post(self.base_url, {"currency": "USD"}, format="json")
        self.assertEqual(r.status_code, 400)

    def test_creator_profile_drives_the_schedule(self):
        Profile.objects.create(
            creator_id="creator_ng", currency="NGN", country_code="NG", purpose="service", payment_provider="paystack"
        )
        payload = {"amount": "5000", "currency": "NGN", "creator_id": "creator_ng"}
        r = self.client.post(self.base_url, payload, format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["fee_schedule"]["country_code"], "NG")
        self.assertEqual(r.data["fee_schedule"]["purpose"], "service")
        self.assertEqual(r.data["fee_schedule"]["split_percent"], "5.25")

    def test_creator_currency_mismatch(self):
        Profile.objects.create(creator_id="creator_us", currency="USD", country_code="US")
        payload = {"amount": "5000", "currency": "NGN", "creator_id": "creator_us"}
        r = self.client.post(self.base_url, payload, format="json")
        self.assertEqual(r.status_code, 400)

    def test_unknown_creator(self):
        payload = {"amount": "50.00", "currency": "USD", "creator_id": "nobody"}
        r = self.client.post(self.base_url, payload, format="json")
        self.assertEqual(r.status_code, 404)

    def test_stripe_quote_is_checked_against_the_stripe_floor(self):
        payload = {"amount": "140.00", "currency": "ZAR", "payment_provider": "stripe"}
        r = self.client.post(self.base_url, payload, format="json")
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data["minimum_cents"], 16500)
        self.assertEqual(r.data["minimum_display"], "R165.00")

    def test_default_provider_floor_for_zar(self):
        r = self.client.post(self.base_url, {"amount": "140.00", "currency": "ZAR"}, format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["provider"], "paystack")
        self.assertEqual(r.data["minimum"]["minimum_cents"], 13200)

    def test_creator_provider_selects_the_floor(self):
        Profile.objects.create(creator_id="creator_za", currency="ZAR", country_code="ZA", payment_provider="stripe")
        payload = {"amount": "140.00", "currency": "ZAR", "creator_id": "creator_za"}
        r = self.client.post(self.base_url, payload, format="json")
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data["minimum_cents"], 16500)

    def test_request_provider_overrides_creator_provider(self):
        Profile.objects.create(creator_id="creator_za", currency="ZAR", country_code="ZA", payment_provider="stripe")
        payload = {"amount": "140.00", "currency": "ZAR", "creator_id": "creator_za", "payment_provider": "paystack"}
        r = self.client.post(self.base_url, payload, format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["provider"], "paystack")

    @override_settings(FEE_SCHEDULE={"platform_fee_percent": "6"})
    def test_minimum_follows_configured_platform_fee(self):
        r = self.client.post(self.base_url, {"amount": "10.00", "currency": "USD"}, format="json")
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data["minimum_cents"], 1800)

    def test_preview_carries_provider_estimate(self):
        payload = {"amount": "25.00", "currency": "USD", "country_code": "US"}
        r = self.client.post(self.base_url, payload, format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["preview"]["estimated_provider_fee_cents"], 131)
        self.assertEqual(r.data["preview"]["estimated_margin_cents"], 95)

    def test_subscription_record(self):
        sub = Subscription.objects.create(creator_id="creator_us", subscriber_id="fan_1", amount=1500, currency="USD", status="active")
        self.assertEqual(str(sub), "fan_1->creator_us:active")


class MinimumTests(APITestCase):
    base_url = "/api/v1/pricing/minimum"

    def test_currency_minimum(self):
        r = self.client.get(self.base_url, {"currency": "usd", "amount_cents": 999})
        self.assertEqual(r.status_code, 200)
        self.assertFalse(r.data["currency_minimum"]["valid"])
        self.assertEqual(r.data["currency_minimum"]["minimum_display"], "$10.00")

    def test_exactly_at_minimum(self):
        r = self.client.get(self.base_url, {"currency": "USD", "amount_cents": 1000})
        self.assertTrue(r.data["currency_minimum"]["valid"])

    def test_currency_minimum_for_provider(self):
        r = self.client.get(self.base_url, {"currency": "ZAR", "payment_provider": "stripe"})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["currency_minimum"]["provider"], "stripe")
        self.assertEqual(r.data["currency_minimum"]["minimum_cents"], 16500)
        self.assertNotIn("valid", r.data["currency_minimum"])

    def test_unsupported_provider_currency_pair(self):
        r = self.client.get(self.base_url, {"currency": "USD", "payment_provider": "paystack"})
        self.assertEqual(r.status_code, 400)

    @override_settings(FEE_SCHEDULE={"platform_fee_percent": "6"})
    def test_currency_minimum_uses_configured_fee(self):
        r = self.client.get(self.base_url, {"currency": "USD", "amount_cents": 1000})
        self.assertFalse(r.data["currency_minimum"]["valid"])
        self.assertEqual(r.data["currency_minimum"]["minimum_cents"], 1800)

    def test_country_minimum(self):
        r = self.client.get(self.base_url, {"country_code": "NG"})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["country_minimum"]["minimum_usd"], 45)
        self.assertTrue(r.data["country_minimum"]["floor_applied"])

    def test_unknown_country(self):
        r = self.client.get(self.base_url, {"country_code": "XX"})
        self.assertEqual(r.status_code, 400)

    def test_requires_currency_or_country(self):
        r = self.client.get(self.base_url)
        self.assertEqual(r.status_code, 400)
