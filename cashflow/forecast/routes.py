"""Forecast API routes."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from cashflow.data.repository import CashflowRepository, get_repository
from cashflow.data.types import Basis, Granularity
from cashflow.forecast.engine import ForecastEngine
from cashflow.forecast.schemas import ForecastResponse, ForecastSummaryResponse, forecast_response, summary_response

router = APIRouter()


@router.get("", response_model=ForecastResponse)
async def get_forecast(
    organization_id: str = Query(..., description="Organization ID"),
    start_date: date = Query(..., description="First day of the forecast"),
    end_date: date = Query(..., description="Last day of the forecast"),
    scenario_id: Optional[str] = Query(None, description="Scenario to apply (default: base)"),
    basis: Basis = Query(Basis.ACCRUAL),
    granularity: Granularity = Query(Granularity.MONTH),
    project_id: Optional[str] = Query(None),
    include_items: bool = Query(True, description="Include per-period cash-flow items"),
    repository: CashflowRepository = Depends(get_repository),
):
    """
    Get a forecast for an organization, optionally under a what-if scenario.

    Errors are mapped by the application's exception handlers:
    unknown ids give 404, bad ranges or foreign scenarios give 400.
    """
    result = await ForecastEngine(repository).generate_forecast(
        organization_id,
        start_date,
        end_date,
        scenario_id=scenario_id,
        basis=basis,
        granularity=granularity,
        project_id=project_id,
        now=date.today(),
    )
    return forecast_response(result, include_items)


@router.get("/actuals", response_model=ForecastResponse)
async def get_forecast_vs_actuals(
    organization_id: str = Query(...),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    granularity: Granularity = Query(Granularity.MONTH),
    repository: CashflowRepository = Depends(get_repository),
):
    """Base-scenario forecast with actual totals on historical periods."""
    result = await ForecastEngine(repository).calculate_forecast(
        organization_id,
        start_date=start_date,
        end_date=end_date,
        granularity=granularity,
        now=date.today(),
    )
    return forecast_response(result, include_items=False)


@router.get("/summary", response_model=ForecastSummaryResponse)
async def get_forecast_summary(
    organization_id: str = Query(...),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    repository: CashflowRepository = Depends(get_repository),
):
    """Totals for the default base-scenario forecast."""
    result = await ForecastEngine(repository).calculate_forecast(
        organization_id, start_date=start_date, end_date=end_date, now=date.today()
    )
    return summary_response(result.summary)
