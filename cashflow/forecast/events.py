"""
Cash-flow item generation.

Turns (scenario-adjusted) scheduled events into dated cash movements:
- Milestones pay net of retention on their expected date; the retention is
  released later (explicit release date, or expected date + release days).
- Supplier claims and material orders pay once on their expected date.
- Overhead lines repeat by frequency from their start date, compounding
  inflation/escalation per elapsed calendar month.

These are pure functions - no database access.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterator, List, Optional

from cashflow.core.dates import add_months, months_between
from cashflow.core.money import ZERO, compound, quantize_cents
from cashflow.data.types import EventKind, Frequency, ScheduledEvent
from cashflow.forecast.types import CashFlowItem, ItemComponent

HUNDRED = Decimal("100")


def retention_for(event: ScheduledEvent) -> Decimal:
    """Amount withheld from a milestone payment, clamped to ``[0, amount]``."""
    if event.kind != EventKind.MILESTONE:
        return ZERO

    if event.retention_amount is not None:
        retention = event.retention_amount
    else:
        retention = event.amount * (event.retention_percentage or ZERO) / HUNDRED

    retention = quantize_cents(retention)
    if retention < ZERO:
        return ZERO
    return min(retention, event.amount)


def retention_release_date(event: ScheduledEvent, default_release_days: int) -> date:
    if event.retention_release_date is not None:
        return event.retention_release_date
    days = event.retention_release_days
    if days is None:
        days = default_release_days
    return event.expected_date + timedelta(days=days)


def _item_id(event: ScheduledEvent, component: ItemComponent, on: date) -> str:
    return f"{event.kind.value}_{event.id}_{component.value}_{on.isoformat()}"


def _compute_milestone_items(event: ScheduledEvent, default_release_days: int) -> List[CashFlowItem]:
    retention = retention_for(event)
    items = [
        CashFlowItem(
            id=_item_id(event, ItemComponent.PAYMENT, event.expected_date),
            source_kind=event.kind,
            source_id=event.id,
            direction=event.direction,
            amount=event.amount - retention,
            date=event.expected_date,
            component=ItemComponent.PAYMENT,
            project_id=event.project_id,
            description=event.name,
            retention_held=retention,
        )
    ]

    if retention > ZERO:
        release_on = retention_release_date(event, default_release_days)
        items.append(CashFlowItem(
            id=_item_id(event, ItemComponent.RETENTION_RELEASE, release_on),
            source_kind=event.kind,
            source_id=event.id,
            direction=event.direction,
            amount=retention,
            date=release_on,
            component=ItemComponent.RETENTION_RELEASE,
            project_id=event.project_id,
            description=f"{event.name} - Retention Release",
        ))

    return items


def _compute_single_payment(event: ScheduledEvent) -> List[CashFlowItem]:
    return [
        CashFlowItem(
            id=_item_id(event, ItemComponent.PAYMENT, event.expected_date),
            source_kind=event.kind,
            source_id=event.id,
            direction=event.direction,
            amount=event.amount,
            date=event.expected_date,
            component=ItemComponent.PAYMENT,
            project_id=event.project_id,
            description=event.name,
        )
    ]


def occurrence_dates(start: date, frequency: Frequency, until: date, end: Optional[date] = None) -> Iterator[date]:
    """
    Yield occurrence dates from ``start`` up to ``until`` (and the line's own
    ``end`` if set). Monthly/quarterly dates are computed from ``start`` each
    time so a 31st start does not drift after a short month.
    """
    last = until if end is None else min(until, end)
    if frequency == Frequency.ONCE:
        if start <= last:
            yield start
        return

    index = 0
    while True:
        if frequency == Frequency.WEEKLY:
            current = start + timedelta(weeks=index)
        elif frequency == Frequency.QUARTERLY:
            current = add_months(start, 3 * index)
        else:
            current = add_months(start, index)

        if current > last:
            return
        yield current
        index += 1


def _compute_overhead_items(event: ScheduledEvent, until: date) -> List[CashFlowItem]:
    rate = event.inflation_rate or event.escalation_rate or ZERO
    items = []

    for occurs_on in occurrence_dates(event.start_date, event.frequency, until, event.end_date):
        elapsed = months_between(event.start_date, occurs_on)
        items.append(CashFlowItem(
            id=_item_id(event, ItemComponent.OCCURRENCE, occurs_on),
            source_kind=event.kind,
            source_id=event.id,
            direction=event.direction,
            amount=compound(event.amount, rate, elapsed),
            date=occurs_on,
            component=ItemComponent.OCCURRENCE,
            project_id=event.project_id,
            description=f"{event.name} - {occurs_on.strftime('%b %Y')}",
        ))

    return items


def expand_event(event: ScheduledEvent, until: date, default_release_days: int = 84) -> List[CashFlowItem]:
    """All cash-flow items an event produces on or before ``until``."""
    if event.kind == EventKind.OVERHEAD:
        return _compute_overhead_items(event, until)
    if event.kind == EventKind.MILESTONE:
        return _compute_milestone_items(event, default_release_days)
    return _compute_single_payment(event)
