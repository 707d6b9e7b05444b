"""Forecast response schemas."""
from pydantic import BaseModel
from typing import List, Optional

from cashflow.core.money import format_amount
from cashflow.forecast.engine import ForecastResult
from cashflow.forecast.types import CashFlowItem, ForecastPeriod, ForecastSummary


class CashFlowItemResponse(BaseModel):
    """A dated cash movement inside a period."""
    id: str
    source_kind: str
    source_id: str
    component: str
    direction: str
    date: str
    amount: str
    retention_held: str
    project_id: Optional[str]
    description: str


class ForecastPeriodResponse(BaseModel):
    """Forecast for a single month or week."""
    key: str
    start_date: str
    end_date: str
    income: str
    outgo: str
    net: str
    balance: str
    is_historical: bool
    actual_income: Optional[str] = None
    actual_outgo: Optional[str] = None
    actual_net: Optional[str] = None
    retention_held: str
    retention_released: str
    items: List[CashFlowItemResponse] = []


class ForecastSummaryResponse(BaseModel):
    """Totals across the forecast."""
    total_income: str
    total_outgo: str
    net_cashflow: str
    total_actual_income: str
    total_actual_outgo: str
    total_actual_net: str
    historical_periods_count: int
    future_periods_count: int
    lowest_balance: str
    lowest_balance_date: Optional[str]
    negative_balance_periods: int


class ForecastResponse(BaseModel):
    """Complete forecast response."""
    organization_id: str
    scenario_id: str
    scenario_name: str
    basis: str
    granularity: str
    start_date: str
    end_date: str
    opening_balance: str
    periods: List[ForecastPeriodResponse]
    summary: ForecastSummaryResponse


def _optional_amount(value) -> Optional[str]:
    return format_amount(value) if value is not None else None


def item_response(item: CashFlowItem) -> CashFlowItemResponse:
    return CashFlowItemResponse(
        id=item.id,
        source_kind=item.source_kind.value,
        source_id=item.source_id,
        component=item.component.value,
        direction=item.direction.value,
        date=item.date.isoformat(),
        amount=format_amount(item.amount),
        retention_held=format_amount(item.retention_held),
        project_id=item.project_id,
        description=item.description,
    )


def period_response(period: ForecastPeriod, include_items: bool = True) -> ForecastPeriodResponse:
    return ForecastPeriodResponse(
        key=period.key,
        start_date=period.start_date.isoformat(),
        end_date=period.end_date.isoformat(),
        income=format_amount(period.income),
        outgo=format_amount(period.outgo),
        net=format_amount(period.net),
        balance=format_amount(period.balance),
        is_historical=period.is_historical,
        actual_income=_optional_amount(period.actual_income),
        actual_outgo=_optional_amount(period.actual_outgo),
        actual_net=_optional_amount(period.actual_net),
        retention_held=format_amount(period.retention_held),
        retention_released=format_amount(period.retention_released),
        items=[item_response(i) for i in period.items] if include_items else [],
    )


def summary_response(summary: ForecastSummary) -> ForecastSummaryResponse:
    return ForecastSummaryResponse(
        total_income=format_amount(summary.total_income),
        total_outgo=format_amount(summary.total_outgo),
        net_cashflow=format_amount(summary.net_cashflow),
        total_actual_income=format_amount(summary.total_actual_income),
        total_actual_outgo=format_amount(summary.total_actual_outgo),
        total_actual_net=format_amount(summary.total_actual_net),
        historical_periods_count=summary.historical_periods_count,
        future_periods_count=summary.future_periods_count,
        lowest_balance=format_amount(summary.lowest_balance),
        lowest_balance_date=summary.lowest_balance_date.isoformat() if summary.lowest_balance_date else None,
        negative_balance_periods=summary.negative_balance_periods,
    )


def forecast_response(result: ForecastResult, include_items: bool = True) -> ForecastResponse:
    return ForecastResponse(
        organization_id=result.organization_id,
        scenario_id=result.scenario.id,
        scenario_name=result.scenario.name,
        basis=result.basis.value,
        granularity=result.granularity.value,
        start_date=result.start_date.isoformat(),
        end_date=result.end_date.isoformat(),
        opening_balance=format_amount(result.opening_balance),
        periods=[period_response(p, include_items) for p in result.periods],
        summary=summary_response(result.summary),
    )
