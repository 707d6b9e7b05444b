"""
Read-only snapshot types consumed by the forecast and reconciliation engines.

The repository copies ORM rows into these frozen dataclasses once per
request, so the engines work on an immutable snapshot and never hold live
object-graph references across calls.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from cashflow.core.money import ZERO


# =============================================================================
# ENUMS
# =============================================================================

class EventKind(str, Enum):
    """Kinds of schedulable financial events."""
    MILESTONE = "milestone"
    SUPPLIER_CLAIM = "supplier_claim"
    MATERIAL_ORDER = "material_order"
    OVERHEAD = "overhead"


class Direction(str, Enum):
    """Cash direction. Amounts are stored unsigned; direction carries the sign."""
    INCOME = "income"
    OUTGO = "outgo"


class EventStatus(str, Enum):
    PENDING = "pending"
    INVOICED = "invoiced"
    PAID = "paid"
    CANCELLED = "cancelled"


class Frequency(str, Enum):
    ONCE = "once"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class Basis(str, Enum):
    """Accounting basis of an actual transaction."""
    CASH = "cash"
    ACCRUAL = "accrual"


class Granularity(str, Enum):
    MONTH = "month"
    WEEK = "week"


class ShiftEntityType(str, Enum):
    """Entities a scenario shift can target. Overhead lines are never shifted."""
    MILESTONE = "milestone"
    SUPPLIER_CLAIM = "supplier_claim"
    MATERIAL_ORDER = "material_order"


class MatchStatus(str, Enum):
    MATCHED = "matched"
    DISPUTED = "disputed"
    RESOLVED = "resolved"


# Statuses still open on the forecast side of reconciliation
OPEN_STATUSES = frozenset({EventStatus.PENDING.value, EventStatus.INVOICED.value})


# =============================================================================
# SNAPSHOTS
# =============================================================================

@dataclass(frozen=True)
class OrganizationSnapshot:
    id: str
    name: str
    starting_balance: Decimal = ZERO


@dataclass(frozen=True)
class ProjectSnapshot:
    id: str
    organization_id: str
    name: str


@dataclass(frozen=True)
class ScenarioSnapshot:
    id: str
    organization_id: str
    name: str
    is_base: bool = False


@dataclass(frozen=True)
class ScheduledEvent:
    """
    A schedulable cash source: milestone, supplier claim, material order or
    overhead line.

    ``amount`` is always non-negative; ``direction`` carries the sign. For
    overhead lines ``expected_date`` is the line's start date and
    ``frequency``/``inflation_rate``/``escalation_rate`` drive projection.
    """
    id: str
    kind: EventKind
    organization_id: str
    amount: Decimal
    expected_date: date
    direction: Direction
    status: str = EventStatus.PENDING.value
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    name: str = ""

    # Milestone retention terms
    retention_percentage: Decimal = ZERO
    retention_amount: Optional[Decimal] = None
    retention_release_days: Optional[int] = None
    retention_release_date: Optional[date] = None

    # Overhead projection terms
    frequency: Frequency = Frequency.ONCE
    inflation_rate: Optional[Decimal] = None
    escalation_rate: Optional[Decimal] = None
    end_date: Optional[date] = None

    @property
    def start_date(self) -> date:
        return self.expected_date

    @property
    def is_income(self) -> bool:
        return self.direction == Direction.INCOME

    @property
    def shift_entity_type(self) -> Optional[ShiftEntityType]:
        if self.kind == EventKind.OVERHEAD:
            return None
        return ShiftEntityType(self.kind.value)


@dataclass(frozen=True)
class ActualEventSnapshot:
    """A recorded transaction from the accounting sync."""
    id: str
    organization_id: str
    direction: Direction
    amount: Decimal
    occurred_at: date
    basis: Basis
    project_id: Optional[str] = None
    external_id: Optional[str] = None
    external_type: Optional[str] = None
    description: Optional[str] = None
