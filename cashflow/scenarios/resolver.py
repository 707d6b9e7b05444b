"""
Scenario Resolver - applies what-if shifts to scheduled events.

A scenario carries at most one shift per (entity type, entity id). Shifts are
held in a mapping rather than a list, so re-saving a shift replaces it and a
shift is never applied twice. The base scenario is the identity.
"""
from dataclasses import dataclass, replace
from datetime import timedelta
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple
import logging

from cashflow.core.money import ZERO, clamp_non_negative
from cashflow.data.types import ScenarioSnapshot, ScheduledEvent, ShiftEntityType
from cashflow.exceptions import ValidationError

logger = logging.getLogger(__name__)

ShiftKey = Tuple[ShiftEntityType, str]


@dataclass(frozen=True)
class Shift:
    """Signed day offset and optional additive amount delta."""
    entity_type: ShiftEntityType
    entity_id: str
    days_shift: int = 0
    amount_shift: Optional[Decimal] = None
    id: Optional[str] = None

    @property
    def key(self) -> ShiftKey:
        return (self.entity_type, self.entity_id)


class ShiftMap(Mapping[ShiftKey, Shift]):
    """Shifts of one scenario keyed by (entity type, entity id)."""

    def __init__(self, shifts: Iterable[Shift] = ()):
        self._shifts: Dict[ShiftKey, Shift] = {}
        for shift in shifts:
            self.upsert(shift)

    def upsert(self, shift: Shift) -> None:
        """Create or replace the shift for the entity."""
        self._shifts[shift.key] = shift

    def remove(self, entity_type: ShiftEntityType, entity_id: str) -> Optional[Shift]:
        return self._shifts.pop((entity_type, entity_id), None)

    def for_event(self, event: ScheduledEvent) -> Optional[Shift]:
        entity_type = event.shift_entity_type
        if entity_type is None:
            return None
        return self._shifts.get((entity_type, event.id))

    def __getitem__(self, key: ShiftKey) -> Shift:
        return self._shifts[key]

    def __iter__(self) -> Iterator[ShiftKey]:
        return iter(self._shifts)

    def __len__(self) -> int:
        return len(self._shifts)


def resolve(scenario: ScenarioSnapshot, event: ScheduledEvent, shifts: ShiftMap) -> ScheduledEvent:
    """
    Return ``event`` adjusted by the scenario's shift for it.

    The adjusted amount is clamped at zero: a shift can remove an event's
    value but cannot turn income into outgo or vice versa.

    Raises:
        ValidationError: the shifted entity belongs to another organization.
    """
    if scenario.is_base:
        return event

    shift = shifts.for_event(event)
    if shift is None:
        return event

    if event.organization_id != scenario.organization_id:
        raise ValidationError(
            f"{event.kind.value} {event.id} does not belong to organization "
            f"{scenario.organization_id} of scenario {scenario.id}"
        )

    amount = event.amount + (shift.amount_shift or ZERO)
    clamped = clamp_non_negative(amount)
    if clamped != amount:
        logger.debug(f"Shift on {event.kind.value} {event.id} clamped amount {amount} to zero")

    offset = timedelta(days=shift.days_shift)
    release_date = event.retention_release_date
    if release_date is not None:
        release_date = release_date + offset

    logger.debug(
        f"Scenario {scenario.id}: {event.kind.value} {event.id} moved {shift.days_shift} days, "
        f"amount {event.amount} -> {clamped}"
    )
    return replace(
        event,
        expected_date=event.expected_date + offset,
        amount=clamped,
        retention_release_date=release_date,
    )


class ScenarioResolver:
    """Binds a scenario to its loaded shifts."""

    def __init__(self, scenario: ScenarioSnapshot, shifts: Optional[ShiftMap] = None):
        self.scenario = scenario
        self.shifts = shifts if shifts is not None else ShiftMap()

    def resolve(self, event: ScheduledEvent) -> ScheduledEvent:
        return resolve(self.scenario, event, self.shifts)

    def resolve_all(self, events: Iterable[ScheduledEvent]) -> List[ScheduledEvent]:
        return [self.resolve(event) for event in events]
