"""Pydantic schemas for scenario editing."""
from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal

from cashflow.core.money import format_amount
from cashflow.data.types import ScenarioSnapshot, ShiftEntityType
from cashflow.scenarios.resolver import Shift


class ScenarioCreate(BaseModel):
    """Schema for creating a scenario."""
    organization_id: str
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class ScenarioResponse(BaseModel):
    """Schema for scenario response."""
    id: str
    organization_id: str
    name: str
    is_base: bool
    shift_count: int = 0


class ShiftUpsert(BaseModel):
    """Create or replace the shift for one entity."""
    entity_type: ShiftEntityType
    entity_id: str
    days_shift: int = 0
    amount_shift: Optional[Decimal] = None


class ShiftResponse(BaseModel):
    id: Optional[str]
    entity_type: ShiftEntityType
    entity_id: str
    days_shift: int
    amount_shift: Optional[str]


class ShiftListResponse(BaseModel):
    scenario_id: str
    shifts: List[ShiftResponse]


def scenario_response(scenario: ScenarioSnapshot, shift_count: int = 0) -> ScenarioResponse:
    return ScenarioResponse(
        id=scenario.id,
        organization_id=scenario.organization_id,
        name=scenario.name,
        is_base=scenario.is_base,
        shift_count=shift_count,
    )


def shift_response(shift: Shift) -> ShiftResponse:
    return ShiftResponse(
        id=shift.id,
        entity_type=shift.entity_type,
        entity_id=shift.entity_id,
        days_shift=shift.days_shift,
        amount_shift=format_amount(shift.amount_shift) if shift.amount_shift is not None else None,
    )
