"""Revenue aggregation over payment rows of two shapes.

Structured rows carry ``gross_cents``/``fee_cents``/``net_cents``. Legacy rows
predate those columns and only have ``amount_cents``, which is their gross.
Rows are normalized once into ``StructuredPayment`` or ``LegacyPayment`` and
every aggregate goes through ``to_volume_contribution`` and friends, so the
coalescing rule lives in one place:

* volume  = gross for structured rows, amount for legacy rows, never both
* fee/net = structured values only; legacy rows contribute zero

Structured rows with a gross but no fee or net are partially migrated. They
count toward volume, contribute nothing to fee/net and are reported as
``DataQualityWarning`` entries rather than raised.

All functions here are pure and build fresh output objects on every call.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple, Union

from django.utils.dateparse import parse_datetime

from .exceptions import DataQualityWarning

logger = logging.getLogger(__name__)

REVENUE_STATUSES = ("succeeded",)
REVENUE_TYPES = ("recurring", "one_time")


@dataclass(frozen=True)
class ReportingSnapshot:
    currency: str
    gross_cents: Optional[int]
    fee_cents: Optional[int]
    net_cents: Optional[int]
    is_estimated: bool = False


@dataclass(frozen=True)
class PaymentMeta:
    id: str
    currency: str
    status: str = "succeeded"
    type: str = "recurring"
    occurred_at: Optional[datetime] = None
    creator_id: Optional[str] = None
    provider: str = "unknown"
    reporting: Optional[ReportingSnapshot] = None


@dataclass(frozen=True)
class StructuredPayment:
    meta: PaymentMeta
    gross_cents: int
    fee_cents: Optional[int]
    net_cents: Optional[int]

    @property
    def is_partial(self) -> bool:
        return self.fee_cents is None or self.net_cents is None

    @property
    def currency(self) -> str:
        return self.meta.currency

    @property
    def occurred_at(self) -> Optional[datetime]:
        return self.meta.occurred_at


@dataclass(frozen=True)
class LegacyPayment:
    meta: PaymentMeta
    amount_cents: int

    @property
    def currency(self) -> str:
        return self.meta.currency

    @property
    def occurred_at(self) -> Optional[datetime]:
        return self.meta.occurred_at


PaymentRecord = Union[StructuredPayment, LegacyPayment]


def provider_from_row(row: Mapping) -> str:
    if row.get("stripe_payment_intent_id"):
        return "stripe"
    if row.get("paystack_transaction_ref") or row.get("paystack_transfer_code"):
        return "paystack"
    return "unknown"


def _parse_occurred_at(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    parsed = parse_datetime(str(value))
    if parsed is None:
        raise ValueError(f"invalid occurred_at: {value!r}")
    return parsed


def _reporting_from_row(row: Mapping) -> Optional[ReportingSnapshot]:
    currency = row.get("reporting_currency")
    if not currency:
        return None
    return ReportingSnapshot(
        currency=currency.upper(),
        gross_cents=row.get("reporting_gross_cents"),
        fee_cents=row.get("reporting_fee_cents"),
        net_cents=row.get("reporting_net_cents"),
        is_estimated=bool(row.get("reporting_is_estimated")),
    )


def normalize_payment(row: Mapping) -> PaymentRecord:
    """Turn a raw payment row into its tagged variant.

    A null ``gross_cents`` marks a legacy row; its ``amount_cents`` is the gross.
    """
    meta = PaymentMeta(
        id=str(row.get("id")),
        currency=(row.get("currency") or "").upper(),
        status=row.get("status") or "succeeded",
        type=row.get("type") or "recurring",
        occurred_at=_parse_occurred_at(row.get("occurred_at")),
        creator_id=row.get("creator_id"),
        provider=row.get("provider") or provider_from_row(row),
        reporting=_reporting_from_row(row),
    )
    if row.get("gross_cents") is None:
        return LegacyPayment(meta=meta, amount_cents=row.get("amount_cents") or 0)
    return StructuredPayment(
        meta=meta,
        gross_cents=row["gross_cents"],
        fee_cents=row.get("fee_cents"),
        net_cents=row.get("net_cents"),
    )


def coerce_record(row) -> PaymentRecord:
    if isinstance(row, (StructuredPayment, LegacyPayment)):
        return row
    if hasattr(row, "as_record"):
        return row.as_record()
    return normalize_payment(row)


def to_volume_contribution(record: PaymentRecord) -> int:
    if isinstance(record, StructuredPayment):
        return record.gross_cents
    return record.amount_cents


def to_fee_contribution(record: PaymentRecord) -> int:
    if isinstance(record, StructuredPayment) and not record.is_partial:
        return record.fee_cents
    return 0


def to_net_contribution(record: PaymentRecord) -> int:
    if isinstance(record, StructuredPayment) and not record.is_partial:
        return record.net_cents
    return 0


def data_quality_warning_for(record: PaymentRecord) -> Optional[DataQualityWarning]:
    if isinstance(record, StructuredPayment) and record.is_partial:
        return DataQualityWarning(payment_id=record.meta.id, reason="gross present but fee or net missing")
    return None


@dataclass
class PaymentStats:
    total_volume_cents: int = 0
    platform_fee_cents: int = 0
    creator_payouts_cents: int = 0
    payment_count: int = 0
    legacy_count: int = 0
    data_quality_warnings: int = 0

    def as_dict(self) -> Dict:
        return {
            "total_volume_cents": self.total_volume_cents,
            "platform_fee_cents": self.platform_fee_cents,
            "creator_payouts_cents": self.creator_payouts_cents,
            "payment_count": self.payment_count,
            "legacy_count": self.legacy_count,
            "data_quality_warnings": self.data_quality_warnings,
        }


def _stats_for(records: List[PaymentRecord]) -> Tuple[PaymentStats, List[DataQualityWarning]]:
    structured = [r for r in records if isinstance(r, StructuredPayment)]
    legacy = [r for r in records if isinstance(r, LegacyPayment)]
    warnings = [w for w in (data_quality_warning_for(r) for r in structured) if w is not None]

    stats = PaymentStats(
        total_volume_cents=sum(to_volume_contribution(r) for r in structured)
        + sum(to_volume_contribution(r) for r in legacy),
        platform_fee_cents=sum(to_fee_contribution(r) for r in structured),
        creator_payouts_cents=sum(to_net_contribution(r) for r in structured),
        payment_count=len(structured) + len(legacy),
        legacy_count=len(legacy),
        data_quality_warnings=len(warnings),
    )
    return stats, warnings


def _partition(records: Iterable[PaymentRecord], key: Callable[[PaymentRecord], Hashable]) -> Dict:
    partitions: Dict = {}
    for record in records:
        partitions.setdefault(key(record), []).append(record)
    return partitions


def _log_warnings(warnings: List[DataQualityWarning]) -> None:
    if warnings:
        logger.warning(
            "%d payment row(s) have gross but no fee/net; counted in volume only (first: %s)",
            len(warnings),
            warnings[0].payment_id,
        )


def aggregate_by_currency(rows: Iterable) -> Dict[str, PaymentStats]:
    """Per-currency totals over a mix of structured and legacy rows."""
    records = [coerce_record(r) for r in rows]
    result: Dict[str, PaymentStats] = {}
    all_warnings: List[DataQualityWarning] = []
    for currency, partition in _partition(records, lambda r: r.currency).items():
        stats, warnings = _stats_for(partition)
        result[currency] = stats
        all_warnings.extend(warnings)
    _log_warnings(all_warnings)
    return result


def aggregate_payment_stats(rows: Iterable) -> PaymentStats:
    """Totals of a single group. Callers must pass rows of one currency."""
    stats, warnings = _stats_for([coerce_record(r) for r in rows])
    _log_warnings(warnings)
    return stats


@dataclass
class RevenueSummary:
    """Per-currency stats and their sum.

    When ``is_multi_currency`` is true the summed totals mix units and must
    not be displayed as a single currency amount.
    """

    by_currency: Dict[str, PaymentStats] = field(default_factory=dict)
    total_volume_cents: int = 0
    platform_fee_cents: int = 0
    creator_payouts_cents: int = 0
    payment_count: int = 0
    legacy_count: int = 0
    data_quality_warnings: int = 0
    warnings: List[DataQualityWarning] = field(default_factory=list)

    @property
    def currencies(self) -> List[str]:
        return sorted(self.by_currency)

    @property
    def is_multi_currency(self) -> bool:
        return len(self.by_currency) > 1

    def as_dict(self) -> Dict:
        return {
            "by_currency": {c: s.as_dict() for c, s in sorted(self.by_currency.items())},
            "total_volume_cents": self.total_volume_cents,
            "platform_fee_cents": self.platform_fee_cents,
            "creator_payouts_cents": self.creator_payouts_cents,
            "payment_count": self.payment_count,
            "legacy_count": self.legacy_count,
            "data_quality_warnings": self.data_quality_warnings,
            "is_multi_currency": self.is_multi_currency,
            "currencies": self.currencies,
        }


def aggregate_payment_stats_by_currency(rows: Iterable) -> RevenueSummary:
    records = [coerce_record(r) for r in rows]
    summary = RevenueSummary()
    for currency, partition in _partition(records, lambda r: r.currency).items():
        stats, warnings = _stats_for(partition)
        summary.by_currency[currency] = stats
        summary.warnings.extend(warnings)
        summary.total_volume_cents += stats.total_volume_cents
        summary.platform_fee_cents += stats.platform_fee_cents
        summary.creator_payouts_cents += stats.creator_payouts_cents
        summary.payment_count += stats.payment_count
        summary.legacy_count += stats.legacy_count
    summary.data_quality_warnings = len(summary.warnings)
    _log_warnings(summary.warnings)
    return summary


def aggregate_by_provider(rows: Iterable) -> Dict[str, RevenueSummary]:
    records = [coerce_record(r) for r in rows]
    return {
        provider: aggregate_payment_stats_by_currency(partition)
        for provider, partition in sorted(_partition(records, lambda r: r.meta.provider).items())
    }


@dataclass
class CreatorRevenue:
    creator_id: Optional[str]
    currency: str
    stats: PaymentStats

    def as_dict(self) -> Dict:
        return {
            "creator_id": self.creator_id,
            "currency": self.currency,
            "total_volume_cents": self.stats.total_volume_cents,
            "platform_fee_cents": self.stats.platform_fee_cents,
            "creator_earnings_cents": self.stats.creator_payouts_cents,
            "payment_count": self.stats.payment_count,
        }


def aggregate_top_creators(rows: Iterable, limit: int = 20) -> List[CreatorRevenue]:
    """Creators ranked by volume. Grouped by (creator, currency) so volumes never mix units."""
    records = [coerce_record(r) for r in rows]
    ranked = []
    for (creator_id, currency), partition in _partition(records, lambda r: (r.meta.creator_id, r.currency)).items():
        stats, _ = _stats_for(partition)
        ranked.append(CreatorRevenue(creator_id=creator_id, currency=currency, stats=stats))
    ranked.sort(key=lambda c: (-c.stats.total_volume_cents, str(c.creator_id), c.currency))
    return ranked[:limit]


@dataclass
class GrossTotals:
    by_currency: Dict[str, int] = field(default_factory=dict)
    total_cents: int = 0
    count: int = 0

    @property
    def currencies(self) -> List[str]:
        return sorted(self.by_currency)

    @property
    def is_multi_currency(self) -> bool:
        return len(self.by_currency) > 1

    def as_dict(self) -> Dict:
        return {
            "by_currency": dict(sorted(self.by_currency.items())),
            "total_cents": self.total_cents,
            "count": self.count,
            "is_multi_currency": self.is_multi_currency,
            "currencies": self.currencies,
        }


def aggregate_gross_only(rows: Iterable) -> GrossTotals:
    """Volume and count only, e.g. for refunded or disputed rows."""
    totals = GrossTotals()
    for record in (coerce_record(r) for r in rows):
        volume = to_volume_contribution(record)
        totals.by_currency[record.currency] = totals.by_currency.get(record.currency, 0) + volume
        totals.total_cents += volume
        totals.count += 1
    return totals


@dataclass
class ReportingTotals:
    """Rollup in the reporting currency using the snapshot taken at charge time."""

    reporting_currency: str = "USD"
    gross_cents: int = 0
    fee_cents: int = 0
    net_cents: int = 0
    payment_count: int = 0
    estimated_count: int = 0
    missing_snapshot_count: int = 0

    @property
    def is_estimated(self) -> bool:
        return self.estimated_count > 0

    def as_dict(self) -> Dict:
        return {
            "reporting_currency": self.reporting_currency,
            "gross_cents": self.gross_cents,
            "fee_cents": self.fee_cents,
            "net_cents": self.net_cents,
            "payment_count": self.payment_count,
            "estimated_count": self.estimated_count,
            "missing_snapshot_count": self.missing_snapshot_count,
            "is_estimated": self.is_estimated,
        }


def aggregate_reporting_totals(rows: Iterable, reporting_currency: str = "USD") -> ReportingTotals:
    """Sum the stored reporting snapshot. Historical FX is never recomputed.

    Rows without a snapshot in ``reporting_currency`` (or without a reporting
    gross) are counted in ``missing_snapshot_count`` and left out of the sums.
    """
    totals = ReportingTotals(reporting_currency=reporting_currency)
    for record in (coerce_record(r) for r in rows):
        snapshot = record.meta.reporting
        if snapshot is None or snapshot.currency != reporting_currency or snapshot.gross_cents is None:
            totals.missing_snapshot_count += 1
            continue
        totals.gross_cents += snapshot.gross_cents
        totals.fee_cents += snapshot.fee_cents or 0
        totals.net_cents += snapshot.net_cents or 0
        totals.payment_count += 1
        if snapshot.is_estimated:
            totals.estimated_count += 1
    return totals
