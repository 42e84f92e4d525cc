"""Daily and monthly revenue series in a fixed business timezone.

A payment belongs to the calendar day of its ``occurred_at`` as seen in the
business timezone, not the UTC day. Series are gap-filled: every day (or
month) in the range gets an entry, zeros included. Ranges are walked by
calendar date, so DST changes cannot skip or repeat a day.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from datetime import timezone as dt_timezone
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .aggregator import coerce_record, to_fee_contribution, to_net_contribution, to_volume_contribution
from .exceptions import InvalidDateRange, InvalidTimezone, PaymentValidationError

PERIODS = ("today", "week", "month", "year", "all")


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        raise InvalidTimezone(f"unknown timezone: {name}")


def to_local_date(moment: datetime, zone: ZoneInfo) -> date:
    # naive timestamps are stored UTC
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt_timezone.utc)
    return moment.astimezone(zone).date()


def _range_date(value, zone: ZoneInfo) -> date:
    if isinstance(value, datetime):
        return to_local_date(value, zone)
    if isinstance(value, date):
        return value
    raise InvalidDateRange(f"expected a date, got {value!r}")


def iter_days(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def _next_month(year: int, month: int) -> Tuple[int, int]:
    return (year + 1, 1) if month == 12 else (year, month + 1)


def iter_months(start: date, end: date) -> Iterator[Tuple[int, int]]:
    current = (start.year, start.month)
    last = (end.year, end.month)
    while current <= last:
        yield current
        current = _next_month(*current)


@dataclass
class _Totals:
    volume_cents: int = 0
    fees_cents: int = 0
    payouts_cents: int = 0
    count: int = 0


@dataclass(frozen=True)
class DailyBucket:
    date: date
    volume_cents: int = 0
    fees_cents: int = 0
    payouts_cents: int = 0
    count: int = 0

    def as_dict(self) -> Dict:
        return {
            "date": self.date.isoformat(),
            "volume_cents": self.volume_cents,
            "fees_cents": self.fees_cents,
            "payouts_cents": self.payouts_cents,
            "count": self.count,
        }


@dataclass(frozen=True)
class MonthlyBucket:
    month: str
    volume_cents: int = 0
    fees_cents: int = 0
    payouts_cents: int = 0
    count: int = 0

    def as_dict(self) -> Dict:
        return {
            "month": self.month,
            "volume_cents": self.volume_cents,
            "fees_cents": self.fees_cents,
            "payouts_cents": self.payouts_cents,
            "count": self.count,
        }


def _accumulate(rows: Iterable, zone: ZoneInfo, key) -> Dict:
    totals: Dict = {}
    for record in (coerce_record(r) for r in rows):
        if record.occurred_at is None:
            continue
        bucket = totals.setdefault(key(to_local_date(record.occurred_at, zone)), _Totals())
        bucket.volume_cents += to_volume_contribution(record)
        bucket.fees_cents += to_fee_contribution(record)
        bucket.payouts_cents += to_net_contribution(record)
        bucket.count += 1
    return totals


def _resolve_range(start, end, timezone: str) -> Tuple[ZoneInfo, date, date]:
    zone = get_zone(timezone)
    first = _range_date(start, zone)
    last = _range_date(end, zone)
    if first > last:
        raise InvalidDateRange("start must not be after end")
    return zone, first, last


def bucket_daily(rows: Iterable, start, end, timezone: str = "UTC") -> List[DailyBucket]:
    """One bucket per calendar day from ``start`` to ``end`` inclusive.

    ``start``/``end`` may be dates or datetimes; datetimes are first converted
    to the business timezone. Rows outside the range are ignored.
    """
    zone, first, last = _resolve_range(start, end, timezone)
    totals = _accumulate(rows, zone, lambda d: d)
    buckets = []
    for day in iter_days(first, last):
        t = totals.get(day, _Totals())
        buckets.append(DailyBucket(day, t.volume_cents, t.fees_cents, t.payouts_cents, t.count))
    return buckets


def bucket_monthly(rows: Iterable, start, end, timezone: str = "UTC") -> List[MonthlyBucket]:
    zone, first, last = _resolve_range(start, end, timezone)
    totals = _accumulate(rows, zone, lambda d: (d.year, d.month))
    buckets = []
    for year, month in iter_months(first, last):
        t = totals.get((year, month), _Totals())
        buckets.append(MonthlyBucket(f"{year:04d}-{month:02d}", t.volume_cents, t.fees_cents, t.payouts_cents, t.count))
    return buckets


def local_now(timezone: str, now: Optional[datetime] = None) -> datetime:
    zone = get_zone(timezone)
    moment = now or datetime.now(dt_timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt_timezone.utc)
    return moment.astimezone(zone)


def local_today(timezone: str, now: Optional[datetime] = None) -> date:
    return local_now(timezone, now).date()


def start_of_day_utc(day: date, timezone: str) -> datetime:
    """UTC instant of local midnight, for database range filters."""
    return datetime.combine(day, time.min, tzinfo=get_zone(timezone)).astimezone(dt_timezone.utc)


def last_n_days(n: int, timezone: str, now: Optional[datetime] = None) -> Tuple[date, date]:
    if n < 1:
        raise InvalidDateRange("days must be >= 1")
    today = local_today(timezone, now)
    return today - timedelta(days=n - 1), today


def last_n_months(n: int, timezone: str, now: Optional[datetime] = None) -> Tuple[date, date]:
    if n < 1:
        raise InvalidDateRange("months must be >= 1")
    today = local_today(timezone, now)
    index = today.year * 12 + (today.month - 1) - (n - 1)
    return date(index // 12, index % 12 + 1, 1), today


def previous_month(timezone: str, now: Optional[datetime] = None) -> Tuple[date, date]:
    first_of_this_month = local_today(timezone, now).replace(day=1)
    last = first_of_this_month - timedelta(days=1)
    return last.replace(day=1), last


def period_start(period: str, timezone: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """UTC start of a named period, or None for ``all``."""
    today = local_today(timezone, now)
    if period == "today":
        first = today
    elif period == "week":
        # weeks start on Sunday
        first = today - timedelta(days=(today.weekday() + 1) % 7)
    elif period == "month":
        first = today.replace(day=1)
    elif period == "year":
        first = today.replace(month=1, day=1)
    elif period == "all":
        return None
    else:
        raise PaymentValidationError(f"unsupported period: {period}")
    return start_of_day_utc(first, timezone)
