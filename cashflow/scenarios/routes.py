"""Scenario API routes."""
from fastapi import APIRouter, Depends, Query
from typing import List

from cashflow.data.repository import CashflowRepository, get_repository
from cashflow.scenarios import schemas
from cashflow.scenarios.service import ScenarioService

router = APIRouter()


@router.get("", response_model=List[schemas.ScenarioResponse])
async def list_scenarios(
    organization_id: str = Query(...),
    repository: CashflowRepository = Depends(get_repository),
):
    """Get all scenarios for an organization, base first."""
    scenarios = await ScenarioService(repository).list_scenarios(organization_id)
    return [schemas.scenario_response(s, count) for s, count in scenarios]


@router.post("", response_model=schemas.ScenarioResponse, status_code=201)
async def create_scenario(
    data: schemas.ScenarioCreate,
    repository: CashflowRepository = Depends(get_repository),
):
    """Create a new what-if scenario."""
    scenario = await ScenarioService(repository).create_scenario(
        data.organization_id, data.name, data.description
    )
    return schemas.scenario_response(scenario)


@router.get("/{scenario_id}/shifts", response_model=schemas.ShiftListResponse)
async def get_shifts(
    scenario_id: str,
    repository: CashflowRepository = Depends(get_repository),
):
    """Get the shifts of a scenario."""
    shifts = await ScenarioService(repository).get_shifts(scenario_id)
    return schemas.ShiftListResponse(
        scenario_id=scenario_id,
        shifts=[schemas.shift_response(s) for s in shifts.values()],
    )


@router.put("/{scenario_id}/shifts", response_model=schemas.ShiftResponse)
async def upsert_shift(
    scenario_id: str,
    data: schemas.ShiftUpsert,
    repository: CashflowRepository = Depends(get_repository),
):
    """Create or replace the shift for an entity. Saving twice keeps one shift."""
    shift = await ScenarioService(repository).upsert_shift(
        scenario_id,
        data.entity_type,
        data.entity_id,
        days_shift=data.days_shift,
        amount_shift=data.amount_shift,
    )
    return schemas.shift_response(shift)


@router.delete("/{scenario_id}/shifts/{shift_id}")
async def delete_shift(
    scenario_id: str,
    shift_id: str,
    repository: CashflowRepository = Depends(get_repository),
):
    """Delete a shift."""
    await ScenarioService(repository).delete_shift(scenario_id, shift_id)
    return {"message": "Shift deleted successfully"}
