"""Scenario editing: create scenarios and upsert/delete their shifts."""
from decimal import Decimal
from typing import List, Optional, Tuple
import logging

from cashflow.data.repository import CashflowRepository
from cashflow.data.types import ScenarioSnapshot, ShiftEntityType
from cashflow.exceptions import NotFoundError, ValidationError
from cashflow.scenarios.resolver import Shift, ShiftMap

logger = logging.getLogger(__name__)


class ScenarioService:
    """Validates scenario edits before handing them to storage."""

    def __init__(self, repository: CashflowRepository):
        self.repository = repository

    async def list_scenarios(self, organization_id: str) -> List[Tuple[ScenarioSnapshot, int]]:
        await self.repository.get_organization(organization_id)
        return await self.repository.list_scenarios(organization_id)

    async def create_scenario(
        self,
        organization_id: str,
        name: str,
        description: Optional[str] = None,
    ) -> ScenarioSnapshot:
        """Create a non-base scenario. Names are unique per organization."""
        name = name.strip()
        if not name:
            raise ValidationError("Scenario name is required")
        await self.repository.get_organization(organization_id)
        scenario = await self.repository.create_scenario(organization_id, name, description)
        logger.info(f"Created scenario {scenario.id} '{name}' for {organization_id}")
        return scenario

    async def _editable_scenario(self, scenario_id: str) -> ScenarioSnapshot:
        scenario = await self.repository.get_scenario(scenario_id)
        if scenario.is_base:
            raise ValidationError("The base scenario cannot be modified")
        return scenario

    async def get_shifts(self, scenario_id: str) -> ShiftMap:
        await self.repository.get_scenario(scenario_id)
        return await self.repository.get_shifts(scenario_id)

    async def upsert_shift(
        self,
        scenario_id: str,
        entity_type: ShiftEntityType,
        entity_id: str,
        days_shift: int = 0,
        amount_shift: Optional[Decimal] = None,
    ) -> Shift:
        """
        Create or replace the scenario's shift for one entity.

        Raises:
            NotFoundError: scenario or entity does not exist
            ValidationError: base scenario, or entity owned by another organization
        """
        scenario = await self._editable_scenario(scenario_id)
        entity_type = ShiftEntityType(entity_type)

        owner = await self.repository.get_entity_organization(entity_type, entity_id)
        if owner is None:
            raise NotFoundError(entity_type.value, entity_id)
        if owner != scenario.organization_id:
            raise ValidationError(
                f"{entity_type.value} {entity_id} does not belong to organization {scenario.organization_id}"
            )

        shift = await self.repository.upsert_shift(
            scenario_id,
            Shift(
                entity_type=entity_type,
                entity_id=entity_id,
                days_shift=days_shift,
                amount_shift=amount_shift,
            ),
        )
        logger.info(
            f"Scenario {scenario_id}: shift on {entity_type.value} {entity_id} set to "
            f"{days_shift} days, amount {amount_shift}"
        )
        return shift

    async def delete_shift(self, scenario_id: str, shift_id: str) -> None:
        await self._editable_scenario(scenario_id)
        await self.repository.delete_shift(scenario_id, shift_id)
        logger.info(f"Scenario {scenario_id}: removed shift {shift_id}")
