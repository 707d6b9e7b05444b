"""
Period Aggregator - buckets cash-flow items into calendar periods.

Buckets are contiguous and cover [start_date, end_date], including partial
months/weeks at either end. Each bucket is keyed by its first day. Items
dated outside the queried range are dropped even if their bucket is shown.
"""
from collections import defaultdict
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from cashflow.core.dates import DateRange, add_months, iso_week_key, month_end, month_key, month_start, week_end, week_start
from cashflow.core.money import ZERO, money_sum
from cashflow.data.types import ActualEventSnapshot, Direction, Granularity, ScheduledEvent
from cashflow.forecast.events import expand_event
from cashflow.forecast.types import CashFlowItem, ForecastPeriod, ForecastSummary, ItemComponent


def period_bounds(day: date, granularity: Granularity) -> Tuple[date, date]:
    if granularity == Granularity.WEEK:
        return week_start(day), week_end(day)
    return month_start(day), month_end(day)


def period_key(start: date, granularity: Granularity) -> str:
    if granularity == Granularity.WEEK:
        return iso_week_key(start)
    return month_key(start)


def build_periods(window: DateRange, granularity: Granularity) -> List[Tuple[date, date]]:
    """Contiguous, non-overlapping (start, end) buckets covering ``window``."""
    buckets = []
    current, _ = period_bounds(window.start, granularity)
    while current <= window.end:
        start, end = period_bounds(current, granularity)
        buckets.append((start, end))
        if granularity == Granularity.WEEK:
            current = start + timedelta(days=7)
        else:
            current = add_months(start, 1)
    return buckets


def project_items(
    events: Iterable[ScheduledEvent],
    window: DateRange,
    default_release_days: int = 84,
) -> List[CashFlowItem]:
    """Expand events and keep the items falling inside ``window``, sorted."""
    items = []
    for event in events:
        for item in expand_event(event, window.end, default_release_days):
            if window.contains(item.date):
                items.append(item)
    items.sort(key=lambda i: (i.date, i.id))
    return items


def aggregate(
    events: Iterable[ScheduledEvent],
    start_date: date,
    end_date: date,
    granularity: Granularity = Granularity.MONTH,
    opening_balance: Decimal = ZERO,
    now: Optional[date] = None,
    default_release_days: int = 84,
) -> List[ForecastPeriod]:
    """
    Aggregate scheduled events into ordered forecast periods.

    Args:
        events: Scenario-adjusted scheduled events
        start_date: First day of the forecast (inclusive)
        end_date: Last day of the forecast (inclusive)
        granularity: Month or ISO-week buckets
        opening_balance: Balance before the first period
        now: Reference date for historical flags. Periods ending before it
            are historical. ``None`` marks every period as future.
        default_release_days: Retention release delay when a milestone and
            its project give none

    Returns:
        Periods sorted by start date with running balance

    Raises:
        InvalidRangeError: end_date is before start_date
    """
    window = DateRange(start_date, end_date)
    granularity = Granularity(granularity)
    items = project_items(events, window, default_release_days)

    by_bucket: Dict[date, List[CashFlowItem]] = defaultdict(list)
    for item in items:
        bucket_start, _ = period_bounds(item.date, granularity)
        by_bucket[bucket_start].append(item)

    periods = []
    balance = opening_balance
    for bucket_start, bucket_end in build_periods(window, granularity):
        bucket_items = by_bucket.get(bucket_start, [])
        income = money_sum(i.amount for i in bucket_items if i.direction == Direction.INCOME)
        outgo = money_sum(i.amount for i in bucket_items if i.direction == Direction.OUTGO)
        net = income - outgo
        balance = balance + net

        periods.append(ForecastPeriod(
            key=period_key(bucket_start, granularity),
            start_date=bucket_start,
            end_date=bucket_end,
            income=income,
            outgo=outgo,
            net=net,
            balance=balance,
            is_historical=now is not None and bucket_end < now,
            retention_held=money_sum(i.retention_held for i in bucket_items),
            retention_released=money_sum(
                i.amount for i in bucket_items if i.component == ItemComponent.RETENTION_RELEASE
            ),
            items=tuple(bucket_items),
        ))

    return periods


def attach_actuals(periods: Sequence[ForecastPeriod], actuals: Iterable[ActualEventSnapshot]) -> List[ForecastPeriod]:
    """
    Sum actual transactions into historical periods.

    Future periods keep ``actual_income``/``actual_outgo`` as ``None``.
    Historical periods with no transactions get zeros.
    """
    actuals = sorted(actuals, key=lambda a: (a.occurred_at, a.id))
    result = []
    for period in periods:
        if not period.is_historical:
            result.append(period)
            continue

        in_period = [a for a in actuals if period.start_date <= a.occurred_at <= period.end_date]
        result.append(replace(
            period,
            actual_income=money_sum(a.amount for a in in_period if a.direction == Direction.INCOME),
            actual_outgo=money_sum(a.amount for a in in_period if a.direction == Direction.OUTGO),
        ))
    return result


def summarize(periods: Sequence[ForecastPeriod]) -> ForecastSummary:
    """Totals, actual totals and balance low point across periods."""
    total_income = money_sum(p.income for p in periods)
    total_outgo = money_sum(p.outgo for p in periods)
    total_actual_income = money_sum(p.actual_income or ZERO for p in periods)
    total_actual_outgo = money_sum(p.actual_outgo or ZERO for p in periods)

    lowest = min(periods, key=lambda p: p.balance) if periods else None
    historical = sum(1 for p in periods if p.is_historical)

    return ForecastSummary(
        total_income=total_income,
        total_outgo=total_outgo,
        net_cashflow=total_income - total_outgo,
        total_actual_income=total_actual_income,
        total_actual_outgo=total_actual_outgo,
        total_actual_net=total_actual_income - total_actual_outgo,
        historical_periods_count=historical,
        future_periods_count=len(periods) - historical,
        lowest_balance=lowest.balance if lowest else ZERO,
        lowest_balance_date=lowest.start_date if lowest else None,
        negative_balance_periods=sum(1 for p in periods if p.balance < ZERO),
    )
