from dataclasses import dataclass

from rest_framework import status


class PaymentValidationError(Exception):
    """Input error recovered at the edge into a 4xx response."""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.status_code = status_code

    def as_response_body(self) -> dict:
        return {"detail": str(self)}


class InvalidCurrency(PaymentValidationError):
    def __init__(self, currency):
        super().__init__(f"unsupported currency: {currency}")
        self.currency = currency


class InvalidAmount(PaymentValidationError):
    pass


class BelowMinimumAmount(PaymentValidationError):
    def __init__(self, currency: str, minimum_cents: int, minimum_display: str):
        super().__init__(f"amount is below the minimum of {minimum_display}")
        self.currency = currency
        self.minimum_cents = minimum_cents
        self.minimum_display = minimum_display

    def as_response_body(self) -> dict:
        return {
            "detail": str(self),
            "currency": self.currency,
            "minimum_cents": self.minimum_cents,
            "minimum_display": self.minimum_display,
        }


class RefundExceedsGross(PaymentValidationError):
    pass


class UnsupportedCountry(PaymentValidationError):
    def __init__(self, country_code):
        super().__init__(f"unsupported country: {country_code}")
        self.country_code = country_code


class InvalidTimezone(PaymentValidationError):
    pass


class InvalidDateRange(PaymentValidationError):
    pass


class MissingExchangeRate(PaymentValidationError):
    pass


class SplitCalculationError(Exception):
    pass


class UnbalancedSplitInvariant(AssertionError):
    """fee + net != gross after a split. Indicates a bug, never recoverable."""


class NonViableFeeSchedule(Exception):
    """Platform fee rate does not exceed the provider's variable cost."""


@dataclass(frozen=True)
class DataQualityWarning:
    """Non-fatal finding about a payment row. Counted by aggregates, never raised."""

    payment_id: str
    reason: str
