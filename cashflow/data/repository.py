"""
Storage collaborator for the engines.

Reads ORM rows and hands back frozen snapshots from ``cashflow.data.types``;
writes scenario shifts and variance matches on behalf of the routes.
Any SQLAlchemy failure surfaces as ``UpstreamUnavailableError`` so callers can
tell "storage is down" apart from bad input.
"""
from datetime import date
from decimal import Decimal
from functools import wraps
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from fastapi import Depends
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cashflow.core.money import to_decimal, quantize_cents
from cashflow.database import get_db
from cashflow.data import models
from cashflow.data.types import (
    ActualEventSnapshot,
    Basis,
    Direction,
    EventKind,
    Frequency,
    OrganizationSnapshot,
    ProjectSnapshot,
    ScenarioSnapshot,
    ScheduledEvent,
    ShiftEntityType,
)
from cashflow.exceptions import NotFoundError, UpstreamUnavailableError, ValidationError
from cashflow.scenarios.resolver import Shift, ShiftMap

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

MatchKey = Tuple[str, str, str]  # (cash_event_type, cash_event_id, actual_event_id)


def storage_call(func_):
    """Translate storage failures into UpstreamUnavailableError."""
    @wraps(func_)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func_(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.warning(f"Storage failure in {func_.__name__}: {e}")
            try:
                await self.db.rollback()
            except SQLAlchemyError as rollback_error:
                logger.warning(f"Rollback after {func_.__name__} failed: {rollback_error}")
            raise UpstreamUnavailableError(f"Storage unavailable: {func_.__name__}") from e
    return wrapper


def _milestone_amount(milestone: models.Milestone, project: models.Project) -> Decimal:
    if milestone.amount is not None:
        return quantize_cents(to_decimal(milestone.amount))
    contract_value = milestone.contract_value if milestone.contract_value is not None else project.contract_value
    return quantize_cents(to_decimal(contract_value) * to_decimal(milestone.percentage) / HUNDRED)


class CashflowRepository:
    """Async read/write access to forecasting source data for one session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # ORGANIZATIONS / PROJECTS
    # =========================================================================

    @storage_call
    async def get_organization(self, organization_id: str) -> OrganizationSnapshot:
        org = await self.db.get(models.Organization, organization_id)
        if org is None:
            raise NotFoundError("organization", organization_id)
        return OrganizationSnapshot(
            id=org.id,
            name=org.name,
            starting_balance=to_decimal(org.starting_balance),
        )

    @storage_call
    async def get_project(self, project_id: str, organization_id: str) -> ProjectSnapshot:
        """Load a project, treating another organization's project as unknown."""
        project = await self.db.get(models.Project, project_id)
        if project is None or project.organization_id != organization_id:
            raise NotFoundError("project", project_id)
        return ProjectSnapshot(id=project.id, organization_id=project.organization_id, name=project.name)

    @storage_call
    async def get_project_names(self, organization_id: str) -> Dict[str, str]:
        result = await self.db.execute(
            select(models.Project.id, models.Project.name)
            .where(models.Project.organization_id == organization_id)
        )
        return {row.id: row.name for row in result.all()}

    # =========================================================================
    # SCHEDULED EVENTS
    # =========================================================================

    @storage_call
    async def get_scheduled_events(
        self,
        organization_id: str,
        project_id: Optional[str] = None,
        include_overhead: bool = True,
    ) -> List[ScheduledEvent]:
        """
        Load every schedulable event for an organization.

        When ``project_id`` is given, only that project's milestones, claims,
        orders and project-linked overhead lines are returned.
        """
        events: List[ScheduledEvent] = []

        query = (
            select(models.Milestone, models.Project)
            .join(models.Project, models.Milestone.project_id == models.Project.id)
            .where(models.Project.organization_id == organization_id)
        )
        if project_id:
            query = query.where(models.Project.id == project_id)
        result = await self.db.execute(query)
        for milestone, project in result.all():
            events.append(ScheduledEvent(
                id=milestone.id,
                kind=EventKind.MILESTONE,
                organization_id=project.organization_id,
                amount=_milestone_amount(milestone, project),
                expected_date=milestone.expected_date,
                direction=Direction.INCOME,
                status=milestone.status,
                project_id=project.id,
                project_name=project.name,
                name=milestone.name,
                retention_percentage=to_decimal(project.retention_percentage),
                retention_amount=(
                    to_decimal(milestone.retention_amount) if milestone.retention_amount is not None else None
                ),
                retention_release_days=project.retention_release_days,
                retention_release_date=milestone.retention_release_date,
            ))

        for model, kind in (
            (models.SupplierClaim, EventKind.SUPPLIER_CLAIM),
            (models.MaterialOrder, EventKind.MATERIAL_ORDER),
        ):
            query = (
                select(model, models.Project)
                .join(models.Project, model.project_id == models.Project.id)
                .where(models.Project.organization_id == organization_id)
            )
            if project_id:
                query = query.where(models.Project.id == project_id)
            result = await self.db.execute(query)
            for row, project in result.all():
                events.append(ScheduledEvent(
                    id=row.id,
                    kind=kind,
                    organization_id=project.organization_id,
                    amount=quantize_cents(to_decimal(row.amount)),
                    expected_date=row.expected_date,
                    direction=Direction.OUTGO,
                    status=row.status,
                    project_id=project.id,
                    project_name=project.name,
                    name=row.supplier_name,
                ))

        if include_overhead:
            query = select(models.ForecastLine).where(models.ForecastLine.organization_id == organization_id)
            if project_id:
                query = query.where(models.ForecastLine.project_id == project_id)
            result = await self.db.execute(query)
            for line in result.scalars().all():
                events.append(ScheduledEvent(
                    id=line.id,
                    kind=EventKind.OVERHEAD,
                    organization_id=line.organization_id,
                    amount=quantize_cents(to_decimal(line.base_amount)),
                    expected_date=line.start_date,
                    direction=Direction(line.type),
                    project_id=line.project_id,
                    name=line.name,
                    frequency=Frequency(line.frequency),
                    inflation_rate=to_decimal(line.inflation_rate) if line.inflation_rate is not None else None,
                    escalation_rate=to_decimal(line.escalation_rate) if line.escalation_rate is not None else None,
                    end_date=line.end_date,
                ))

        # Row order from storage is unspecified
        events.sort(key=lambda e: (e.expected_date, e.kind.value, e.id))
        return events

    @storage_call
    async def get_entity_organization(self, entity_type: ShiftEntityType, entity_id: str) -> Optional[str]:
        """Organization owning a milestone/claim/order, or None if it does not exist."""
        model = {
            ShiftEntityType.MILESTONE: models.Milestone,
            ShiftEntityType.SUPPLIER_CLAIM: models.SupplierClaim,
            ShiftEntityType.MATERIAL_ORDER: models.MaterialOrder,
        }[ShiftEntityType(entity_type)]
        result = await self.db.execute(
            select(models.Project.organization_id)
            .join(model, model.project_id == models.Project.id)
            .where(model.id == entity_id)
        )
        return result.scalar_one_or_none()

    # =========================================================================
    # ACTUALS
    # =========================================================================

    @storage_call
    async def get_actual_events(
        self,
        organization_id: str,
        basis: Basis,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        project_id: Optional[str] = None,
    ) -> List[ActualEventSnapshot]:
        query = select(models.ActualEvent).where(
            models.ActualEvent.organization_id == organization_id,
            models.ActualEvent.basis == Basis(basis).value,
        )
        if start_date is not None:
            query = query.where(models.ActualEvent.occurred_at >= start_date)
        if end_date is not None:
            query = query.where(models.ActualEvent.occurred_at <= end_date)
        if project_id:
            query = query.where(models.ActualEvent.project_id == project_id)

        result = await self.db.execute(query.order_by(models.ActualEvent.occurred_at, models.ActualEvent.id))
        return [
            ActualEventSnapshot(
                id=row.id,
                organization_id=row.organization_id,
                direction=Direction(row.type),
                amount=quantize_cents(to_decimal(row.amount)),
                occurred_at=row.occurred_at,
                basis=Basis(row.basis),
                project_id=row.project_id,
                external_id=row.source_id,
                external_type=row.source_type,
                description=row.description,
            )
            for row in result.scalars().all()
        ]

    # =========================================================================
    # SCENARIOS
    # =========================================================================

    @staticmethod
    def _scenario_snapshot(scenario: models.Scenario) -> ScenarioSnapshot:
        return ScenarioSnapshot(
            id=scenario.id,
            organization_id=scenario.organization_id,
            name=scenario.name,
            is_base=bool(scenario.is_base),
        )

    @storage_call
    async def get_scenario(self, scenario_id: str) -> ScenarioSnapshot:
        scenario = await self.db.get(models.Scenario, scenario_id)
        if scenario is None:
            raise NotFoundError("scenario", scenario_id)
        return self._scenario_snapshot(scenario)

    @storage_call
    async def get_base_scenario(self, organization_id: str) -> Optional[ScenarioSnapshot]:
        result = await self.db.execute(
            select(models.Scenario).where(
                models.Scenario.organization_id == organization_id,
                models.Scenario.is_base.is_(True),
            )
        )
        scenario = result.scalars().first()
        return self._scenario_snapshot(scenario) if scenario else None

    @storage_call
    async def list_scenarios(self, organization_id: str) -> List[Tuple[ScenarioSnapshot, int]]:
        """Scenarios with their shift counts, base first then newest first."""
        shift_count = func.count(models.ScenarioShift.id)
        result = await self.db.execute(
            select(models.Scenario, shift_count)
            .outerjoin(models.ScenarioShift, models.ScenarioShift.scenario_id == models.Scenario.id)
            .where(models.Scenario.organization_id == organization_id)
            .group_by(models.Scenario.id)
            .order_by(models.Scenario.is_base.desc(), models.Scenario.created_at.desc(), models.Scenario.id)
        )
        return [(self._scenario_snapshot(scenario), count) for scenario, count in result.all()]

    @storage_call
    async def create_scenario(self, organization_id: str, name: str, description: Optional[str] = None) -> ScenarioSnapshot:
        existing = await self.db.execute(
            select(models.Scenario.id).where(
                models.Scenario.organization_id == organization_id,
                models.Scenario.name == name,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ValidationError(f"Scenario name already exists: {name}")

        scenario = models.Scenario(
            organization_id=organization_id,
            name=name,
            description=description,
            is_base=False,
        )
        self.db.add(scenario)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError(f"Scenario name already exists: {name}") from e
        await self.db.refresh(scenario)
        return self._scenario_snapshot(scenario)

    @storage_call
    async def get_shifts(self, scenario_id: str) -> ShiftMap:
        result = await self.db.execute(
            select(models.ScenarioShift)
            .where(models.ScenarioShift.scenario_id == scenario_id)
            .order_by(models.ScenarioShift.entity_type, models.ScenarioShift.entity_id)
        )
        return ShiftMap(
            Shift(
                id=row.id,
                entity_type=ShiftEntityType(row.entity_type),
                entity_id=row.entity_id,
                days_shift=row.days_shift or 0,
                amount_shift=to_decimal(row.amount_shift) if row.amount_shift is not None else None,
            )
            for row in result.scalars().all()
        )

    @storage_call
    async def upsert_shift(self, scenario_id: str, shift: Shift) -> Shift:
        """Create the shift, or overwrite the existing one for the same entity."""
        result = await self.db.execute(
            select(models.ScenarioShift).where(
                models.ScenarioShift.scenario_id == scenario_id,
                models.ScenarioShift.entity_type == shift.entity_type.value,
                models.ScenarioShift.entity_id == shift.entity_id,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = models.ScenarioShift(
                scenario_id=scenario_id,
                entity_type=shift.entity_type.value,
                entity_id=shift.entity_id,
            )
            self.db.add(row)
        row.days_shift = shift.days_shift
        row.amount_shift = shift.amount_shift

        await self.db.commit()
        await self.db.refresh(row)
        return Shift(
            id=row.id,
            entity_type=ShiftEntityType(row.entity_type),
            entity_id=row.entity_id,
            days_shift=row.days_shift,
            amount_shift=to_decimal(row.amount_shift) if row.amount_shift is not None else None,
        )

    @storage_call
    async def delete_shift(self, scenario_id: str, shift_id: str) -> None:
        result = await self.db.execute(
            delete(models.ScenarioShift).where(
                models.ScenarioShift.id == shift_id,
                models.ScenarioShift.scenario_id == scenario_id,
            )
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise NotFoundError("scenario_shift", shift_id)
        await self.db.commit()

    # =========================================================================
    # VARIANCE MATCHES
    # =========================================================================

    @storage_call
    async def get_match_statuses(self, organization_id: str, basis: Basis) -> Dict[MatchKey, Tuple[str, str]]:
        """Persisted (id, status) keyed by (cash event type, cash event id, actual id)."""
        result = await self.db.execute(
            select(models.VarianceMatch).where(
                models.VarianceMatch.organization_id == organization_id,
                models.VarianceMatch.basis == Basis(basis).value,
            )
        )
        return {
            (row.cash_event_type, row.cash_event_id, row.actual_event_id): (row.id, row.status)
            for row in result.scalars().all()
        }

    @storage_call
    async def replace_variance_matches(
        self,
        organization_id: str,
        basis: Basis,
        matches: Sequence,
    ) -> Dict[MatchKey, str]:
        """
        Replace the organization's matches for ``basis`` in one transaction.

        Stored rows are re-read (and locked where the backend supports it)
        inside that transaction. A pair that matches again keeps its stored
        id and status, including a status set after the caller computed
        ``matches``. Rows for pairs no longer matched are deleted.

        Returns the stored row id for each match key.
        """
        basis = Basis(basis).value
        result = await self.db.execute(
            select(models.VarianceMatch)
            .where(
                models.VarianceMatch.organization_id == organization_id,
                models.VarianceMatch.basis == basis,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        existing = {
            (row.cash_event_type, row.cash_event_id, row.actual_event_id): row
            for row in result.scalars().all()
        }

        stored: Dict[MatchKey, models.VarianceMatch] = {}
        for match in matches:
            key = (match.cash_event_type.value, match.cash_event_id, match.actual_event_id)
            row = existing.pop(key, None)
            if row is None:
                row = models.VarianceMatch(
                    organization_id=organization_id,
                    basis=basis,
                    cash_event_type=match.cash_event_type.value,
                    cash_event_id=match.cash_event_id,
                    actual_event_id=match.actual_event_id,
                    status=match.status.value,
                )
                self.db.add(row)
            row.project_id = match.project_id
            row.external_transaction_id = match.external_transaction_id
            row.external_transaction_type = match.external_transaction_type
            row.forecast_amount = match.forecast_amount
            row.forecast_date = match.forecast_date
            row.amount_variance = match.amount_variance
            row.timing_variance = match.timing_variance
            row.confidence_score = match.confidence_score
            stored[key] = row

        for row in existing.values():
            await self.db.delete(row)

        await self.db.commit()
        return {key: row.id for key, row in stored.items()}

    @storage_call
    async def update_match_status(self, organization_id: str, match_id: str, status: str) -> None:
        row = await self.db.get(models.VarianceMatch, match_id)
        if row is None or row.organization_id != organization_id:
            raise NotFoundError("variance_match", match_id)
        row.status = status
        await self.db.commit()


async def get_repository(db: AsyncSession = Depends(get_db)) -> CashflowRepository:
    """FastAPI dependency yielding a repository bound to the request session."""
    return CashflowRepository(db)
