"""Reporting-currency snapshot stored with each payment.

The snapshot re-expresses gross/fee/net in USD at the rate in effect when the
payment occurred. It is written once at charge time and never recomputed.
Which fallback rate to use when no live quote exists is a caller policy; it
is passed in, never derived here, and always flags the snapshot as estimated.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional

from .currency_table import get_currency
from .exceptions import MissingExchangeRate

REPORTING_CURRENCY = "USD"


@dataclass(frozen=True)
class ReportingSnapshotData:
    reporting_currency: str
    reporting_gross_cents: Optional[int]
    reporting_fee_cents: Optional[int]
    reporting_net_cents: Optional[int]
    reporting_exchange_rate: Decimal
    reporting_rate_source: str
    reporting_is_estimated: bool

    def as_model_fields(self) -> Dict:
        return {
            "reporting_currency": self.reporting_currency,
            "reporting_gross_cents": self.reporting_gross_cents,
            "reporting_fee_cents": self.reporting_fee_cents,
            "reporting_net_cents": self.reporting_net_cents,
            "reporting_exchange_rate": self.reporting_exchange_rate,
            "reporting_rate_source": self.reporting_rate_source,
            "reporting_is_estimated": self.reporting_is_estimated,
        }


def convert_to_usd_cents(minor: Optional[int], currency: str, rate) -> Optional[int]:
    if minor is None:
        return None
    info = get_currency(currency)
    # scale to a two-decimal amount first so JPY 500 at 150/USD is 333 cents
    scaled = Decimal(minor) * Decimal(100) / (Decimal(10) ** info.exponent)
    rate = Decimal(str(rate))
    if rate <= 0:
        raise MissingExchangeRate("exchange rate must be > 0")
    return int((scaled / rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_reporting_snapshot(
    gross_cents: Optional[int],
    fee_cents: Optional[int],
    net_cents: Optional[int],
    currency: str,
    *,
    live_rate=None,
    provider_rate=None,
    fallback_rate=None,
) -> ReportingSnapshotData:
    """Snapshot a payment in USD.

    Rate precedence: USD needs none; then the rate the provider settled at,
    then a live quote. Only ``fallback_rate`` marks the snapshot estimated.
    All rates are local units per 1 USD.
    """
    info = get_currency(currency)

    if info.code == REPORTING_CURRENCY:
        return ReportingSnapshotData(
            reporting_currency=REPORTING_CURRENCY,
            reporting_gross_cents=gross_cents,
            reporting_fee_cents=fee_cents,
            reporting_net_cents=net_cents,
            reporting_exchange_rate=Decimal("1"),
            reporting_rate_source="native",
            reporting_is_estimated=False,
        )

    for rate, source, estimated in (
        (provider_rate, "provider", False),
        (live_rate, "live", False),
        (fallback_rate, "fallback", True),
    ):
        if rate is None or Decimal(str(rate)) <= 0:
            continue
        return ReportingSnapshotData(
            reporting_currency=REPORTING_CURRENCY,
            reporting_gross_cents=convert_to_usd_cents(gross_cents, info.code, rate),
            reporting_fee_cents=convert_to_usd_cents(fee_cents, info.code, rate),
            reporting_net_cents=convert_to_usd_cents(net_cents, info.code, rate),
            reporting_exchange_rate=Decimal(str(rate)),
            reporting_rate_source=source,
            reporting_is_estimated=estimated,
        )

    raise MissingExchangeRate(f"no exchange rate available for {info.code}")
