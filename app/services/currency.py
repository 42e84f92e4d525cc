from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal, InvalidOperation
from functools import lru_cache
from typing import Dict, Optional

from .currency_table import CURRENCIES, CurrencyInfo, get_currency
from .exceptions import BelowMinimumAmount, InvalidAmount
from .fee_schedule import (
    DEFAULT_FEE_CONFIG,
    FeeScheduleConfig,
    FeeScheduleInput,
    get_platform_fee_percent,
    get_provider_cost,
    minimum_amount_cents,
    provider_for_currency,
)


def is_zero_decimal_currency(currency) -> bool:
    return get_currency(currency).exponent == 0


def minor_unit_multiplier(currency) -> int:
    return 10 ** get_currency(currency).exponent


def _to_decimal(amount) -> Decimal:
    if isinstance(amount, bool):
        raise InvalidAmount("amount must be a number")
    if isinstance(amount, float):
        # go through str so 0.1 stays 0.1 and not its binary expansion
        amount = str(amount)
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount("amount must be a number")
    if not value.is_finite():
        raise InvalidAmount("amount must be a finite number")
    return value


def display_amount_to_cents(amount, currency) -> int:
    """Convert a human-entered amount into integer minor units.

    Zero-decimal currencies (JPY, KRW, ...) use a multiplier of 1, every other
    currency 100. Half cents round away from zero (ROUND_HALF_UP).
    """
    info = get_currency(currency)
    value = _to_decimal(amount)
    if value < 0:
        raise InvalidAmount("amount must be >= 0")
    try:
        cents = (value * (10 ** info.exponent)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmount("amount is too large")
    return int(cents)


def cents_to_display_amount(cents: int, currency) -> Decimal:
    info = get_currency(currency)
    if info.exponent == 0:
        return Decimal(int(cents))
    return (Decimal(int(cents)) / Decimal(100)).quantize(Decimal("0.01"))


def format_cents(cents: int, currency) -> str:
    """Human readable amount, e.g. ``$12.50``, ``¥500`` or ``₦1,000.00``."""
    info = get_currency(currency)
    amount = cents_to_display_amount(cents, info.code)
    sign = "-" if amount < 0 else ""
    if info.exponent == 0:
        body = f"{abs(amount):,.0f}"
    else:
        body = f"{abs(amount):,.2f}"
    prefix = info.symbol or f"{info.code} "
    return f"{sign}{prefix}{body}"


def _round_up_to_major_unit(cents: int, info: CurrencyInfo) -> int:
    step = 10 ** info.exponent
    return int((Decimal(cents) / step).to_integral_value(rounding=ROUND_CEILING)) * step


@lru_cache(maxsize=None)
def _currency_minimum(code: str, provider: str, config: FeeScheduleConfig) -> int:
    info = get_currency(code)
    cost = get_provider_cost(info.code, provider)
    # currency alone carries no country, so price against the domestic rate;
    # the lower rate gives the higher, safer floor
    platform_percent = get_platform_fee_percent(FeeScheduleInput(currency=info.code), config)
    raw = minimum_amount_cents(
        cost.processing_fixed_cents,
        cost.payout_fixed_cents,
        platform_percent,
        cost.variable_percent,
    )
    return _round_up_to_major_unit(raw, info)


def get_minimum_amount_cents(
    currency,
    provider: Optional[str] = None,
    config: FeeScheduleConfig = DEFAULT_FEE_CONFIG,
) -> int:
    """Floor for one charge, priced with ``provider``'s costs and ``config``'s rate.

    Without a provider the currency's default provider is used. Each
    (currency, provider, config) floor is computed once.
    """
    code = get_currency(currency).code
    name = (provider or provider_for_currency(code)).lower()
    return _currency_minimum(code, name, config)


# default-provider floors for every currency, checked at import
CURRENCY_MINIMUMS: Dict[str, int] = {code: get_minimum_amount_cents(code) for code in CURRENCIES}


@dataclass(frozen=True)
class MinimumCheck:
    valid: bool
    currency: str
    provider: str
    minimum_cents: int
    minimum_display: str

    def as_dict(self) -> Dict:
        return {
            "valid": self.valid,
            "currency": self.currency,
            "provider": self.provider,
            "minimum_cents": self.minimum_cents,
            "minimum_display": self.minimum_display,
        }


def validate_minimum_amount(
    amount_cents: int,
    currency,
    provider: Optional[str] = None,
    config: FeeScheduleConfig = DEFAULT_FEE_CONFIG,
) -> MinimumCheck:
    info = get_currency(currency)
    name = (provider or provider_for_currency(info.code)).lower()
    minimum = get_minimum_amount_cents(info.code, name, config)
    return MinimumCheck(
        valid=int(amount_cents) >= minimum,
        currency=info.code,
        provider=name,
        minimum_cents=minimum,
        minimum_display=format_cents(minimum, info.code),
    )


def ensure_minimum_amount(
    amount_cents: int,
    currency,
    provider: Optional[str] = None,
    config: FeeScheduleConfig = DEFAULT_FEE_CONFIG,
) -> MinimumCheck:
    """Like ``validate_minimum_amount`` but raises instead of returning ``valid=False``."""
    check = validate_minimum_amount(amount_cents, currency, provider, config)
    if not check.valid:
        raise BelowMinimumAmount(check.currency, check.minimum_cents, check.minimum_display)
    return check
