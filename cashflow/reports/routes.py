"""Report export routes."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from cashflow.data.repository import CashflowRepository, get_repository
from cashflow.data.types import Basis, Granularity
from cashflow.forecast.engine import ForecastEngine
from cashflow.reconciliation.service import ReconciliationEngine
from cashflow.reports.csv_export import forecast_csv, variance_csv

router = APIRouter()


def _csv_attachment(content: str, prefix: str) -> Response:
    filename = f"{prefix}-{date.today().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/forecast/csv")
async def export_forecast_csv(
    organization_id: str = Query(...),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    scenario_id: Optional[str] = Query(None),
    granularity: Granularity = Query(Granularity.MONTH),
    repository: CashflowRepository = Depends(get_repository),
):
    """Forecast periods as CSV. Defaults to the base-scenario horizon."""
    engine = ForecastEngine(repository)
    today = date.today()
    if start_date and end_date:
        result = await engine.generate_forecast(
            organization_id, start_date, end_date,
            scenario_id=scenario_id, granularity=granularity, now=today,
        )
    else:
        result = await engine.calculate_forecast(
            organization_id, start_date=start_date, end_date=end_date, granularity=granularity, now=today
        )
    return _csv_attachment(forecast_csv(result.periods), "forecast")


@router.get("/variance/csv")
async def export_variance_csv(
    organization_id: str = Query(...),
    project_id: Optional[str] = Query(None),
    basis: Basis = Query(Basis.ACCRUAL),
    repository: CashflowRepository = Depends(get_repository),
):
    """Variance matches as CSV."""
    matches = await ReconciliationEngine(repository).get_variance_matches(
        organization_id, project_id=project_id, basis=basis
    )
    return _csv_attachment(variance_csv(matches), "variance")
