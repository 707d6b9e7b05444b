"""
Forecast Engine - composes scenario resolution and period aggregation.

Loads a snapshot through the repository, applies the scenario's shifts, and
aggregates the result into periods with a running balance. Historical periods
carry actual income/outgo for comparison.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional
import logging

from cashflow.config import settings
from cashflow.core.dates import DateRange, add_months, month_end, month_start
from cashflow.core.money import to_decimal
from cashflow.data.repository import CashflowRepository
from cashflow.data.types import Basis, Granularity, ScenarioSnapshot
from cashflow.exceptions import ValidationError
from cashflow.forecast.aggregator import aggregate, attach_actuals, summarize
from cashflow.forecast.types import ForecastPeriod, ForecastSummary
from cashflow.scenarios.resolver import ScenarioResolver, ShiftMap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForecastResult:
    """Periods plus the context they were computed in."""
    organization_id: str
    scenario: ScenarioSnapshot
    basis: Basis
    granularity: Granularity
    start_date: date
    end_date: date
    opening_balance: Decimal
    periods: List[ForecastPeriod]

    @property
    def summary(self) -> ForecastSummary:
        return summarize(self.periods)


def default_window(today: date, months: Optional[int] = None) -> DateRange:
    """Current month through the end of ``months`` months later."""
    months = months or settings.DEFAULT_FORECAST_MONTHS
    start = month_start(today)
    return DateRange(start, month_end(add_months(start, months - 1)))


class ForecastEngine:
    """Stateless between calls; every forecast reads a fresh snapshot."""

    def __init__(self, repository: CashflowRepository, default_release_days: Optional[int] = None):
        self.repository = repository
        if default_release_days is None:
            default_release_days = settings.DEFAULT_RETENTION_RELEASE_DAYS
        self.default_release_days = default_release_days

    async def _load_scenario(self, organization_id: str, scenario_id: Optional[str]) -> ScenarioSnapshot:
        if scenario_id:
            scenario = await self.repository.get_scenario(scenario_id)
            if scenario.organization_id != organization_id:
                raise ValidationError(
                    f"Scenario {scenario_id} does not belong to organization {organization_id}"
                )
            return scenario

        base = await self.repository.get_base_scenario(organization_id)
        if base is None:
            # Organizations without a stored base scenario still forecast
            base = ScenarioSnapshot(id="base", organization_id=organization_id, name="Base", is_base=True)
        return base

    async def generate_forecast(
        self,
        organization_id: str,
        start_date: date,
        end_date: date,
        scenario_id: Optional[str] = None,
        basis: Basis = Basis.ACCRUAL,
        granularity: Granularity = Granularity.MONTH,
        project_id: Optional[str] = None,
        opening_balance: Optional[Decimal] = None,
        now: Optional[date] = None,
    ) -> ForecastResult:
        """
        Produce an ordered list of periods for one organization and scenario.

        Args:
            organization_id: Organization to forecast
            start_date: First day (inclusive)
            end_date: Last day (inclusive)
            scenario_id: Scenario to apply. Defaults to the base scenario.
            basis: Accounting basis of the actuals attached to historical periods
            granularity: Month or ISO week buckets
            project_id: Restrict to a single project
            opening_balance: Balance before the first period. Defaults to the
                organization's starting balance.
            now: Reference date for historical flags. ``None`` treats every
                period as future.

        Raises:
            InvalidRangeError: end_date before start_date
            NotFoundError: unknown organization, scenario or project
            ValidationError: scenario belongs to another organization
            UpstreamUnavailableError: storage failed while loading the snapshot
        """
        window = DateRange(start_date, end_date)
        basis = Basis(basis)
        granularity = Granularity(granularity)

        organization = await self.repository.get_organization(organization_id)
        if project_id:
            await self.repository.get_project(project_id, organization_id)
        scenario = await self._load_scenario(organization_id, scenario_id)

        shifts = ShiftMap() if scenario.is_base else await self.repository.get_shifts(scenario.id)
        events = await self.repository.get_scheduled_events(organization_id, project_id=project_id)
        resolved = ScenarioResolver(scenario, shifts).resolve_all(events)

        if opening_balance is None:
            opening_balance = organization.starting_balance
        opening_balance = to_decimal(opening_balance)

        periods = aggregate(
            resolved,
            window.start,
            window.end,
            granularity=granularity,
            opening_balance=opening_balance,
            now=now,
            default_release_days=self.default_release_days,
        )

        if any(p.is_historical for p in periods):
            actuals = await self.repository.get_actual_events(
                organization_id, basis, window.start, window.end, project_id=project_id
            )
            periods = attach_actuals(periods, actuals)

        logger.info(
            f"Forecast for {organization_id} scenario={scenario.id} {window.start}..{window.end} "
            f"{granularity.value}: {len(events)} events, {len(shifts)} shifts, {len(periods)} periods"
        )

        return ForecastResult(
            organization_id=organization_id,
            scenario=scenario,
            basis=basis,
            granularity=granularity,
            start_date=window.start,
            end_date=window.end,
            opening_balance=opening_balance,
            periods=periods,
        )

    async def calculate_forecast(
        self,
        organization_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        granularity: Granularity = Granularity.MONTH,
        *,
        now: date,
    ) -> ForecastResult:
        """
        Base-scenario, accrual-basis forecast from the organization's balance.

        Without dates it covers the current month through the configured
        default horizon.
        """
        if start_date is None or end_date is None:
            window = default_window(now)
            start_date = start_date or window.start
            end_date = end_date or window.end

        return await self.generate_forecast(
            organization_id,
            start_date,
            end_date,
            basis=Basis.ACCRUAL,
            granularity=granularity,
            now=now,
        )
