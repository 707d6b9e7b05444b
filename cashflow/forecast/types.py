"""Derived forecast structures. Recomputed on every request, never stored."""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from cashflow.core.money import ZERO
from cashflow.data.types import Direction, EventKind


class ItemComponent(str, Enum):
    """Which part of a scheduled event a cash-flow item represents."""
    PAYMENT = "payment"
    RETENTION_RELEASE = "retention_release"
    OCCURRENCE = "occurrence"


@dataclass(frozen=True)
class CashFlowItem:
    """
    A single dated movement of cash projected from a scheduled event.

    Milestones with retention produce a PAYMENT item net of retention (with
    ``retention_held`` recording what was withheld) and a later
    RETENTION_RELEASE item. Overhead lines produce one OCCURRENCE per period.
    """
    id: str  # Synthetic: {kind}_{source_id}_{component}_{date}
    source_kind: EventKind
    source_id: str
    direction: Direction
    amount: Decimal
    date: date
    component: ItemComponent
    project_id: Optional[str] = None
    description: str = ""
    retention_held: Decimal = ZERO


@dataclass(frozen=True)
class ForecastPeriod:
    """One calendar bucket of the forecast."""
    key: str  # "YYYY-MM" or "YYYY-Www"
    start_date: date
    end_date: date
    income: Decimal
    outgo: Decimal
    net: Decimal
    balance: Decimal
    is_historical: bool
    actual_income: Optional[Decimal] = None
    actual_outgo: Optional[Decimal] = None
    retention_held: Decimal = ZERO
    retention_released: Decimal = ZERO
    items: Tuple[CashFlowItem, ...] = field(default_factory=tuple)

    @property
    def actual_net(self) -> Optional[Decimal]:
        if self.actual_income is None and self.actual_outgo is None:
            return None
        return (self.actual_income or ZERO) - (self.actual_outgo or ZERO)


@dataclass(frozen=True)
class ForecastSummary:
    """Totals across a list of forecast periods."""
    total_income: Decimal
    total_outgo: Decimal
    net_cashflow: Decimal
    total_actual_income: Decimal
    total_actual_outgo: Decimal
    total_actual_net: Decimal
    historical_periods_count: int
    future_periods_count: int
    lowest_balance: Decimal
    lowest_balance_date: Optional[date]
    negative_balance_periods: int
