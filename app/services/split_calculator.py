from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional

from .currency import format_cents
from .currency_table import get_currency
from .exceptions import RefundExceedsGross, SplitCalculationError, UnbalancedSplitInvariant
from .fee_schedule import FeeSchedule, get_provider_cost


@dataclass(frozen=True)
class PaymentSplit:
    gross_cents: int
    fee_cents: int
    net_cents: int


def _check_balanced(gross_cents: int, fee_cents: int, net_cents: int) -> None:
    if fee_cents + net_cents != gross_cents:
        raise UnbalancedSplitInvariant(
            f"fee {fee_cents} + net {net_cents} != gross {gross_cents}"
        )


def split_payment(gross_cents: int, fee_rate_percent) -> PaymentSplit:
    """Split a charge into the platform fee and the creator's net.

    ``fee = round(gross * rate / 100)`` using ROUND_HALF_UP (a fee of exactly
    x.5 minor units rounds up), and ``net = gross - fee``. The net is never
    computed on its own, so ``fee + net == gross`` holds by construction; it
    is still checked and a mismatch raises ``UnbalancedSplitInvariant``.

    Zero-decimal currencies go through the same path: their minor unit is
    the whole unit.
    """
    if isinstance(gross_cents, bool) or not isinstance(gross_cents, int):
        raise SplitCalculationError("gross_cents must be an integer")
    if gross_cents < 0:
        raise SplitCalculationError("gross_cents must be >= 0")

    rate = Decimal(str(fee_rate_percent))
    if rate < 0 or rate > 100:
        raise SplitCalculationError("fee rate must be between 0 and 100")

    fee_cents = int((Decimal(gross_cents) * rate / Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    net_cents = gross_cents - fee_cents

    _check_balanced(gross_cents, fee_cents, net_cents)
    return PaymentSplit(gross_cents=gross_cents, fee_cents=fee_cents, net_cents=net_cents)


@dataclass(frozen=True)
class ServiceFee:
    """Split-model pricing of one charge.

    The subscriber pays ``base + subscriber_fee`` (gross), the creator is
    credited ``base - creator_fee`` (net) and the platform keeps both fees.
    """

    currency: str
    base_cents: int
    subscriber_fee_cents: int
    creator_fee_cents: int
    fee_cents: int
    gross_cents: int
    net_cents: int
    split_percent: Decimal
    platform_fee_percent: Decimal
    is_cross_border: bool

    def as_split(self) -> PaymentSplit:
        return PaymentSplit(gross_cents=self.gross_cents, fee_cents=self.fee_cents, net_cents=self.net_cents)


class SplitCalculatorInterface(ABC):
    @abstractmethod
    def calculate(self, *, base_cents: int, currency: str, schedule: FeeSchedule) -> ServiceFee:
        pass


class SplitFeeCalculator(SplitCalculatorInterface):
    """Prices a charge with the symmetric split model.

    Each side's share is ``split_payment(base, split_percent).fee_cents`` so
    both shares round exactly the way a single split does.
    """

    def calculate(self, *, base_cents: int, currency: str, schedule: FeeSchedule) -> ServiceFee:
        info = get_currency(currency)
        side = split_payment(base_cents, schedule.split_percent)

        subscriber_fee = side.fee_cents
        creator_fee = side.fee_cents
        gross = base_cents + subscriber_fee
        fee = subscriber_fee + creator_fee
        net = base_cents - creator_fee

        _check_balanced(gross, fee, net)
        return ServiceFee(
            currency=info.code,
            base_cents=base_cents,
            subscriber_fee_cents=subscriber_fee,
            creator_fee_cents=creator_fee,
            fee_cents=fee,
            gross_cents=gross,
            net_cents=net,
            split_percent=schedule.split_percent,
            platform_fee_percent=schedule.platform_fee_percent,
            is_cross_border=schedule.is_cross_border,
        )


def estimate_provider_fee_cents(gross_cents: int, currency: str, provider: Optional[str] = None) -> int:
    """Provider cost of one charge: the variable share of gross plus the fixed fees."""
    cost = get_provider_cost(currency, provider)
    return split_payment(gross_cents, cost.variable_percent).fee_cents + cost.fixed_cents


def calculate_fee_preview(
    *, base_cents: int, currency: str, schedule: FeeSchedule, provider: Optional[str] = None
) -> Dict:
    """What the subscriber and the creator each see before a charge, JSON-safe.

    Also carries the estimated provider cost of the charge and the margin the
    platform keeps after it.
    """
    fee = SplitFeeCalculator().calculate(base_cents=base_cents, currency=currency, schedule=schedule)
    provider_fee = estimate_provider_fee_cents(fee.gross_cents, fee.currency, provider) if fee.gross_cents else 0
    return {
        "currency": fee.currency,
        "base_cents": fee.base_cents,
        "subscriber_pays_cents": fee.gross_cents,
        "creator_receives_cents": fee.net_cents,
        "service_fee_cents": fee.fee_cents,
        "subscriber_fee_cents": fee.subscriber_fee_cents,
        "creator_fee_cents": fee.creator_fee_cents,
        "subscriber_pays_display": format_cents(fee.gross_cents, fee.currency),
        "creator_receives_display": format_cents(fee.net_cents, fee.currency),
        "split_percent": f"{fee.split_percent}",
        "platform_fee_percent": f"{fee.platform_fee_percent}",
        "is_cross_border": fee.is_cross_border,
        "estimated_provider_fee_cents": provider_fee,
        "estimated_margin_cents": fee.fee_cents - provider_fee,
    }


@dataclass(frozen=True)
class RefundOutcome:
    status: str
    refund_cents: int
    refunded_cents: int
    remaining_cents: int
    is_partial: bool


def record_refund(gross_cents: int, already_refunded_cents: int, refund_cents: int) -> RefundOutcome:
    """Validate a refund against the original charge.

    The original fee/net split is never re-run or altered: the provider fee
    was assessed on the original charge. Only the cumulative refunded amount
    changes.
    """
    if refund_cents <= 0:
        raise RefundExceedsGross("refund amount must be > 0")
    refunded = (already_refunded_cents or 0) + refund_cents
    if refunded > gross_cents:
        raise RefundExceedsGross(
            f"refund of {refund_cents} exceeds the refundable amount of {gross_cents - (already_refunded_cents or 0)}"
        )
    return RefundOutcome(
        status="refunded",
        refund_cents=refund_cents,
        refunded_cents=refunded,
        remaining_cents=gross_cents - refunded,
        is_partial=refunded < gross_cents,
    )
