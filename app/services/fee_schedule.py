"""Fee schedule: platform fee, split share, cross-border surcharge and the
minimum-amount formula.

Everything here is a pure function of an explicit input and a
``FeeScheduleConfig``; nothing is looked up from mutable module state.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields, replace
from decimal import ROUND_CEILING, Decimal
from typing import Dict, Optional

from .currency_table import CurrencyInfo, get_currency
from .exceptions import NonViableFeeSchedule, PaymentValidationError, UnsupportedCountry

PURPOSES = ("personal", "service")

# Payout countries whose creators are paid through a currency conversion.
CROSS_BORDER_COUNTRIES = frozenset({"NG", "GH", "KE", "ZA"})

# Connect costs the platform carries on every destination charge, in percent.
CONNECT_BILLING_PERCENT = Decimal("0.7")
CONNECT_PAYOUT_PERCENT = Decimal("0.25")
DESTINATION_PROCESSING_PERCENT = Decimal("3.5")
DESTINATION_PROCESSING_FIXED_USD_CENTS = 30

TRANSFER_PERCENT_BY_REGION = {
    "domestic": Decimal("0"),
    "sepa": Decimal("0.25"),
    "uk": Decimal("0.25"),
    "standard": Decimal("1"),
}


@dataclass(frozen=True)
class FeeScheduleConfig:
    platform_fee_percent: Decimal = Decimal("9")
    cross_border_surcharge_percent: Decimal = Decimal("1.5")
    # processing is absorbed by the platform fee
    processing_fee_percent: Decimal = Decimal("0")
    cross_border_floor_usd: int = 45
    floor_subscriber_count: int = 20
    minimum_rounding_usd: int = 5

    @classmethod
    def from_settings(cls) -> "FeeScheduleConfig":
        from django.conf import settings

        overrides = dict(getattr(settings, "FEE_SCHEDULE", None) or {})
        known = {f.name: f for f in fields(cls)}
        values = {}
        for name, value in overrides.items():
            if name not in known:
                raise ValueError(f"unknown FEE_SCHEDULE setting: {name}")
            values[name] = Decimal(str(value)) if known[name].type is Decimal else int(value)
        return replace(cls(), **values)


DEFAULT_FEE_CONFIG = FeeScheduleConfig()


@dataclass(frozen=True)
class FeeScheduleInput:
    purpose: str = "personal"
    country_code: Optional[str] = None
    currency: str = "USD"


@dataclass(frozen=True)
class FeeSchedule:
    purpose: str
    country_code: Optional[str]
    currency: str
    is_cross_border: bool
    platform_fee_percent: Decimal
    split_percent: Decimal
    processing_fee_percent: Decimal
    cross_border_surcharge_percent: Decimal

    def as_dict(self) -> Dict:
        return {
            "purpose": self.purpose,
            "country_code": self.country_code,
            "currency": self.currency,
            "is_cross_border": self.is_cross_border,
            "platform_fee_percent": f"{self.platform_fee_percent}",
            "split_percent": f"{self.split_percent}",
            "processing_fee_percent": f"{self.processing_fee_percent}",
            "cross_border_surcharge_percent": f"{self.cross_border_surcharge_percent}",
        }


def normalize_purpose(purpose: Optional[str]) -> str:
    # every purpose other than "service" is billed as personal
    return "service" if purpose == "service" else "personal"


def is_cross_border_country(country_code: Optional[str]) -> bool:
    if not country_code:
        return False
    return country_code.strip().upper() in CROSS_BORDER_COUNTRIES


def get_cross_border_surcharge_percent(inp: FeeScheduleInput, config: FeeScheduleConfig = DEFAULT_FEE_CONFIG) -> Decimal:
    if is_cross_border_country(inp.country_code):
        return config.cross_border_surcharge_percent
    return Decimal("0")


def get_platform_fee_percent(inp: FeeScheduleInput, config: FeeScheduleConfig = DEFAULT_FEE_CONFIG) -> Decimal:
    """Total platform fee: 9% domestic, 10.5% cross-border with the default config.

    Purpose does not change the rate; it is carried for reporting only.
    """
    return config.platform_fee_percent + get_cross_border_surcharge_percent(inp, config)


def get_split_percent(inp: FeeScheduleInput, config: FeeScheduleConfig = DEFAULT_FEE_CONFIG) -> Decimal:
    """Share paid by each side of the symmetric split (subscriber and creator)."""
    return get_platform_fee_percent(inp, config) / Decimal("2")


def get_processing_fee_percent(config: FeeScheduleConfig = DEFAULT_FEE_CONFIG) -> Decimal:
    return config.processing_fee_percent


def get_fee_schedule(inp: FeeScheduleInput, config: FeeScheduleConfig = DEFAULT_FEE_CONFIG) -> FeeSchedule:
    return FeeSchedule(
        purpose=normalize_purpose(inp.purpose),
        country_code=inp.country_code.strip().upper() if inp.country_code else None,
        currency=get_currency(inp.currency).code,
        is_cross_border=is_cross_border_country(inp.country_code),
        platform_fee_percent=get_platform_fee_percent(inp, config),
        split_percent=get_split_percent(inp, config),
        processing_fee_percent=get_processing_fee_percent(config),
        cross_border_surcharge_percent=get_cross_border_surcharge_percent(inp, config),
    )


@dataclass(frozen=True)
class ProviderCost:
    """Provider charges for one transaction, fixed parts in minor units of the currency."""

    provider: str
    variable_percent: Decimal
    processing_fixed_cents: int
    payout_fixed_cents: int

    @property
    def fixed_cents(self) -> int:
        return self.processing_fixed_cents + self.payout_fixed_cents


def usd_cents_to_local_minor(usd_cents, currency: CurrencyInfo) -> int:
    """Express a USD-cent amount in the currency's minor units, rounding up."""
    local = Decimal(usd_cents) * currency.usd_rate * (Decimal(10) ** currency.exponent) / Decimal(100)
    return int(local.to_integral_value(rounding=ROUND_CEILING))


class ProviderCostStrategy(ABC):
    """Pluggable provider pricing, registered by provider name."""

    @abstractmethod
    def supports(self, currency: CurrencyInfo) -> bool:
        pass

    @abstractmethod
    def costs(self, currency: CurrencyInfo) -> ProviderCost:
        pass


_provider_registry: Dict[str, ProviderCostStrategy] = {}


def register_provider_costs(name: str):
    def _decorator(cls):
        _provider_registry[name.lower()] = cls()
        return cls

    return _decorator


@register_provider_costs("stripe")
class StripeCostStrategy(ProviderCostStrategy):
    variable_percent = Decimal("2.9")
    processing_fixed_usd_cents = 30
    payout_fixed_usd_cents = 25

    def supports(self, currency: CurrencyInfo) -> bool:
        return True

    def costs(self, currency: CurrencyInfo) -> ProviderCost:
        return ProviderCost(
            provider="stripe",
            variable_percent=self.variable_percent,
            processing_fixed_cents=usd_cents_to_local_minor(self.processing_fixed_usd_cents, currency),
            payout_fixed_cents=usd_cents_to_local_minor(self.payout_fixed_usd_cents, currency),
        )


@register_provider_costs("paystack")
class PaystackCostStrategy(ProviderCostStrategy):
    # (variable %, processing fixed, transfer fixed) in local minor units
    local_costs = {
        "NGN": (Decimal("1.5"), 10000, 5000),
        "GHS": (Decimal("1.95"), 0, 100),
        "KES": (Decimal("1.5"), 5000, 2000),
        "ZAR": (Decimal("2.9"), 500, 300),
    }

    def supports(self, currency: CurrencyInfo) -> bool:
        return currency.code in self.local_costs

    def costs(self, currency: CurrencyInfo) -> ProviderCost:
        variable, processing_fixed, payout_fixed = self.local_costs[currency.code]
        return ProviderCost(
            provider="paystack",
            variable_percent=variable,
            processing_fixed_cents=processing_fixed,
            payout_fixed_cents=payout_fixed,
        )


def supported_providers():
    return list(_provider_registry.keys())


def provider_for_currency(currency) -> str:
    info = get_currency(currency)
    if _provider_registry["paystack"].supports(info):
        return "paystack"
    return "stripe"


def get_provider_cost(currency, provider: Optional[str] = None) -> ProviderCost:
    info = get_currency(currency)
    name = (provider or provider_for_currency(info.code)).lower()
    strategy = _provider_registry.get(name)
    if strategy is None:
        raise PaymentValidationError(f"unsupported payment provider: {provider}")
    if not strategy.supports(info):
        raise PaymentValidationError(f"{name} does not support {info.code}")
    return strategy.costs(info)


def minimum_amount_cents(
    processing_fixed_cents,
    payout_fixed_cents,
    platform_fee_percent: Decimal,
    variable_fee_percent: Decimal,
) -> int:
    """Smallest charge whose platform fee still covers the provider's fixed costs.

    minimum = (processing_fixed + payout_fixed) / (platform_rate - variable_rate)

    Rounded up to the next minor unit. A fee rate that does not exceed the
    provider's variable rate can never cover fixed costs and raises
    ``NonViableFeeSchedule``.
    """
    margin = (Decimal(platform_fee_percent) - Decimal(variable_fee_percent)) / Decimal(100)
    if margin <= 0:
        raise NonViableFeeSchedule(
            f"platform fee {platform_fee_percent}% does not exceed variable cost {variable_fee_percent}%"
        )
    fixed = Decimal(processing_fixed_cents) + Decimal(payout_fixed_cents)
    return int((fixed / margin).to_integral_value(rounding=ROUND_CEILING))


@dataclass(frozen=True)
class CountryFees:
    name: str
    currency: str
    payout_fixed_usd_cents: int
    monthly_account_usd_cents: int
    transfer_region: str = "standard"


_SEPA = "sepa"

COUNTRY_FEES: Dict[str, CountryFees] = {
    "US": CountryFees("United States", "USD", 25, 200, "domestic"),
    "CA": CountryFees("Canada", "CAD", 25, 200),
    "MX": CountryFees("Mexico", "MXN", 75, 150),
    "BR": CountryFees("Brazil", "BRL", 25, 150),
    "GB": CountryFees("United Kingdom", "GBP", 25, 250, "uk"),
    "GI": CountryFees("Gibraltar", "GBP", 25, 250, "uk"),
    "AT": CountryFees("Austria", "EUR", 25, 220, _SEPA),
    "BE": CountryFees("Belgium", "EUR", 25, 220, _SEPA),
    "HR": CountryFees("Croatia", "EUR", 25, 220, _SEPA),
    "CY": CountryFees("Cyprus", "EUR", 25, 220, _SEPA),
    "EE": CountryFees("Estonia", "EUR", 25, 220, _SEPA),
    "FI": CountryFees("Finland", "EUR", 25, 220, _SEPA),
    "FR": CountryFees("France", "EUR", 25, 220, _SEPA),
    "DE": CountryFees("Germany", "EUR", 25, 220, _SEPA),
    "GR": CountryFees("Greece", "EUR", 25, 220, _SEPA),
    "IE": CountryFees("Ireland", "EUR", 25, 220, _SEPA),
    "IT": CountryFees("Italy", "EUR", 25, 220, _SEPA),
    "LV": CountryFees("Latvia", "EUR", 25, 220, _SEPA),
    "LT": CountryFees("Lithuania", "EUR", 25, 220, _SEPA),
    "LU": CountryFees("Luxembourg", "EUR", 25, 220, _SEPA),
    "MT": CountryFees("Malta", "EUR", 25, 220, _SEPA),
    "NL": CountryFees("Netherlands", "EUR", 25, 220, _SEPA),
    "PT": CountryFees("Portugal", "EUR", 25, 220, _SEPA),
    "SK": CountryFees("Slovakia", "EUR", 25, 220, _SEPA),
    "SI": CountryFees("Slovenia", "EUR", 25, 220, _SEPA),
    "ES": CountryFees("Spain", "EUR", 25, 220, _SEPA),
    "NO": CountryFees("Norway", "NOK", 25, 220, _SEPA),
    "SE": CountryFees("Sweden", "SEK", 25, 220, _SEPA),
    "DK": CountryFees("Denmark", "DKK", 25, 220, _SEPA),
    "PL": CountryFees("Poland", "PLN", 50, 220, _SEPA),
    "CZ": CountryFees("Czech Republic", "CZK", 50, 220, _SEPA),
    "HU": CountryFees("Hungary", "HUF", 50, 220, _SEPA),
    "RO": CountryFees("Romania", "RON", 50, 220, _SEPA),
    "BG": CountryFees("Bulgaria", "BGN", 75, 220, _SEPA),
    "CH": CountryFees("Switzerland", "CHF", 25, 220, _SEPA),
    "LI": CountryFees("Liechtenstein", "CHF", 25, 220, _SEPA),
    "AU": CountryFees("Australia", "AUD", 25, 200),
    "NZ": CountryFees("New Zealand", "NZD", 25, 200),
    "JP": CountryFees("Japan", "JPY", 25, 200),
    "KR": CountryFees("South Korea", "KRW", 100, 200),
    "SG": CountryFees("Singapore", "SGD", 25, 200),
    "HK": CountryFees("Hong Kong", "HKD", 50, 200),
    "MY": CountryFees("Malaysia", "MYR", 75, 150),
    "TH": CountryFees("Thailand", "THB", 75, 150),
    "ID": CountryFees("Indonesia", "IDR", 75, 150),
    "PH": CountryFees("Philippines", "PHP", 100, 150),
    "IN": CountryFees("India", "INR", 75, 150),
    "AE": CountryFees("United Arab Emirates", "AED", 163, 200),
    "NG": CountryFees("Nigeria", "NGN", 67, 60),
    "GH": CountryFees("Ghana", "GHS", 67, 95),
    "KE": CountryFees("Kenya", "KES", 100, 185),
    "ZA": CountryFees("South Africa", "ZAR", 75, 190),
}


@dataclass(frozen=True)
class DynamicMinimum:
    country_code: str
    currency: str
    minimum_usd: int
    minimum_local: int
    minimum_local_cents: int
    subscriber_count: int
    percent_fees: Decimal
    fixed_usd_cents: Decimal
    net_margin_percent: Decimal
    platform_fee_percent: Decimal
    floor_applied: bool = False

    def as_dict(self) -> Dict:
        return {
            "country_code": self.country_code,
            "currency": self.currency,
            "minimum_usd": self.minimum_usd,
            "minimum_local": self.minimum_local,
            "minimum_local_cents": self.minimum_local_cents,
            "subscriber_count": self.subscriber_count,
            "percent_fees": f"{self.percent_fees}",
            "fixed_usd_cents": f"{self.fixed_usd_cents.quantize(Decimal('0.01'))}",
            "net_margin_percent": f"{self.net_margin_percent}",
            "platform_fee_percent": f"{self.platform_fee_percent}",
            "floor_applied": self.floor_applied,
        }


def get_country_fees(country_code: Optional[str]) -> CountryFees:
    code = (country_code or "").strip().upper()
    fees = COUNTRY_FEES.get(code)
    if fees is None:
        raise UnsupportedCountry(country_code)
    return fees


def country_percent_fees(fees: CountryFees) -> Decimal:
    return (
        DESTINATION_PROCESSING_PERCENT
        + CONNECT_BILLING_PERCENT
        + CONNECT_PAYOUT_PERCENT
        + TRANSFER_PERCENT_BY_REGION[fees.transfer_region]
    )


def _round_up_to(value: Decimal, step: int) -> int:
    return int((value / step).to_integral_value(rounding=ROUND_CEILING)) * step


def _local_minimum(minimum_usd: int, currency: CurrencyInfo) -> int:
    raw = Decimal(minimum_usd) * currency.usd_rate
    if currency.usd_rate >= 100:
        return _round_up_to(raw, 1000)
    if currency.usd_rate >= 10:
        return _round_up_to(raw, 100)
    return _round_up_to(raw, 5)


def get_dynamic_minimum(
    country_code: str,
    subscriber_count: Optional[int] = None,
    config: FeeScheduleConfig = DEFAULT_FEE_CONFIG,
) -> DynamicMinimum:
    """Minimum subscription price for a creator's country.

    Fixed costs per charge are the processing fixed fee, the payout fixed fee
    and the monthly account fee amortised over ``subscriber_count``
    subscribers. The result is rounded up to ``minimum_rounding_usd`` and
    cross-border countries never go below ``cross_border_floor_usd``.
    """
    fees = get_country_fees(country_code)
    code = country_code.strip().upper()
    subs = max(1, subscriber_count if subscriber_count is not None else config.floor_subscriber_count)

    account_fee_per_sub = Decimal(fees.monthly_account_usd_cents) / Decimal(subs)
    fixed_usd_cents = Decimal(DESTINATION_PROCESSING_FIXED_USD_CENTS + fees.payout_fixed_usd_cents) + account_fee_per_sub
    percent_fees = country_percent_fees(fees)
    platform_percent = get_platform_fee_percent(FeeScheduleInput(country_code=code, currency=fees.currency), config)

    minimum_cents = minimum_amount_cents(fixed_usd_cents, 0, platform_percent, percent_fees)
    minimum_usd = _round_up_to(Decimal(minimum_cents) / Decimal(100), config.minimum_rounding_usd)

    floor_applied = False
    if is_cross_border_country(code) and minimum_usd < config.cross_border_floor_usd:
        minimum_usd = config.cross_border_floor_usd
        floor_applied = True

    currency = get_currency(fees.currency)
    minimum_local = _local_minimum(minimum_usd, currency)
    return DynamicMinimum(
        country_code=code,
        currency=currency.code,
        minimum_usd=minimum_usd,
        minimum_local=minimum_local,
        minimum_local_cents=minimum_local * (10 ** currency.exponent),
        subscriber_count=subs,
        percent_fees=percent_fees,
        fixed_usd_cents=fixed_usd_cents,
        net_margin_percent=platform_percent - percent_fees,
        platform_fee_percent=platform_percent,
        floor_applied=floor_applied,
    )
