from rest_framework import status

from .currency_table import is_known_currency, normalize_currency_code
from .exceptions import InvalidAmount, InvalidCurrency, PaymentValidationError
from .fee_schedule import PURPOSES, supported_providers


def validate_currency(data: dict) -> None:
    currency = data.get("currency")
    if not currency:
        raise PaymentValidationError("currency required", status.HTTP_400_BAD_REQUEST)
    if not is_known_currency(currency):
        raise InvalidCurrency(currency)


def validate_amount(data: dict) -> None:
    amount = data.get("amount")
    if amount is None:
        raise InvalidAmount("amount required")
    if amount < 0:
        raise InvalidAmount("amount must be >= 0")


def validate_purpose(purpose) -> None:
    if purpose and purpose not in PURPOSES:
        raise PaymentValidationError("unsupported purpose", status.HTTP_422_UNPROCESSABLE_ENTITY)


def validate_country_code(country_code) -> None:
    if country_code and (len(country_code) != 2 or not country_code.isalpha()):
        raise PaymentValidationError("country_code must be a 2-letter ISO code", status.HTTP_400_BAD_REQUEST)


def validate_payment_provider(provider) -> None:
    if provider and provider.lower() not in supported_providers():
        raise PaymentValidationError("unsupported payment_provider", status.HTTP_422_UNPROCESSABLE_ENTITY)


def validate_quote_request_data(data: dict) -> dict:
    """Run all validations for a quote payload. Raises PaymentValidationError on error.

    Returns the payload with currency and country code normalized to upper case.
    """
    validate_currency(data)
    validate_amount(data)
    validate_purpose(data.get("purpose"))
    validate_country_code(data.get("country_code"))
    validate_payment_provider(data.get("payment_provider"))

    cleaned = dict(data)
    cleaned["currency"] = normalize_currency_code(data["currency"])
    if data.get("country_code"):
        cleaned["country_code"] = data["country_code"].upper()
    return cleaned
