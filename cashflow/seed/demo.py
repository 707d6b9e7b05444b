"""
Demo Construction Company seed data.

Creates a small builder with:
- Two active projects ($450K residential, $750K commercial), 5% retention
- Milestones per project totalling 100% of contract value
- Supplier claims and a material order
- Office rent, insurance and weekly payroll overheads
- A base scenario and a "Wet Season Delay" what-if scenario
- A handful of accrual-basis actuals from the accounting sync
"""
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cashflow.data.models import (
    ActualEvent,
    ForecastLine,
    MaterialOrder,
    Milestone,
    Organization,
    Project,
    Scenario,
    ScenarioShift,
    SupplierClaim,
)
from cashflow.exceptions import DataIntegrityError

logger = logging.getLogger(__name__)

DEMO_ORG_ID = "demo-org-1"
DEMO_ORG_NAME = "Demo Construction Company"

HUNDRED = Decimal("100")


def validate_milestone_percentages(milestones: Iterable[dict]) -> None:
    """
    Reject a milestone set whose percentages do not total 100 per project.

    Milestones with an explicit amount and no percentage are ignored.
    """
    totals: Dict[str, Decimal] = defaultdict(Decimal)
    for milestone in milestones:
        if milestone.get("percentage") is not None:
            totals[milestone["project_id"]] += Decimal(str(milestone["percentage"]))

    for project_id, total in totals.items():
        if total != HUNDRED:
            raise DataIntegrityError(
                f"Milestone percentages for project {project_id} total {total}, expected 100"
            )


# =============================================================================
# DEMO DATA
# =============================================================================

PROJECTS = [
    {
        "id": "project-1",
        "name": "Smith Family Home",
        "description": "Custom residential home construction",
        "contract_value": Decimal("450000"),
        "start_date": date(2024, 1, 15),
        "end_date": date(2024, 8, 15),
    },
    {
        "id": "project-2",
        "name": "Office Complex Renovation",
        "description": "Commercial office building renovation",
        "contract_value": Decimal("750000"),
        "start_date": date(2024, 2, 1),
        "end_date": date(2024, 12, 1),
    },
]

MILESTONES = [
    # Smith Family Home
    {"id": "milestone-1", "project_id": "project-1", "name": "Foundation Complete",
     "percentage": Decimal("15"), "expected_date": date(2024, 2, 15), "status": "paid"},
    {"id": "milestone-2", "project_id": "project-1", "name": "Frame Complete",
     "percentage": Decimal("25"), "expected_date": date(2024, 4, 1), "status": "invoiced"},
    {"id": "milestone-3", "project_id": "project-1", "name": "Lock-up",
     "percentage": Decimal("20"), "expected_date": date(2024, 5, 15), "status": "pending"},
    {"id": "milestone-4", "project_id": "project-1", "name": "Practical Completion",
     "percentage": Decimal("40"), "expected_date": date(2024, 8, 15), "status": "pending"},
    # Office Complex Renovation
    {"id": "milestone-5", "project_id": "project-2", "name": "Strip-out",
     "percentage": Decimal("10"), "expected_date": date(2024, 3, 1), "status": "invoiced"},
    {"id": "milestone-6", "project_id": "project-2", "name": "Structural Works",
     "percentage": Decimal("30"), "expected_date": date(2024, 6, 1), "status": "pending"},
    {"id": "milestone-7", "project_id": "project-2", "name": "Services Fit-out",
     "percentage": Decimal("40"), "expected_date": date(2024, 9, 15), "status": "pending"},
    {"id": "milestone-8", "project_id": "project-2", "name": "Handover",
     "percentage": Decimal("20"), "expected_date": date(2024, 12, 1), "status": "pending"},
]

SUPPLIER_CLAIMS = [
    {"id": "claim-1", "project_id": "project-1", "supplier_name": "Concrete Supplies",
     "amount": Decimal("15000"), "expected_date": date(2024, 2, 10), "status": "pending"},
    {"id": "claim-2", "project_id": "project-1", "supplier_name": "Coastal Framing",
     "amount": Decimal("42000"), "expected_date": date(2024, 3, 28), "status": "pending"},
    {"id": "claim-3", "project_id": "project-2", "supplier_name": "Metro Electrical",
     "amount": Decimal("68000"), "expected_date": date(2024, 7, 10), "status": "pending"},
]

MATERIAL_ORDERS = [
    {"id": "order-1", "project_id": "project-1", "supplier_name": "Timber Merchants",
     "amount": Decimal("22000"), "expected_date": date(2024, 3, 20), "status": "pending"},
]

FORECAST_LINES = [
    {"id": "forecast-1", "name": "Office Rent", "vendor_name": "Property Management Co",
     "type": "outgo", "frequency": "monthly", "base_amount": Decimal("3500"),
     "inflation_rate": Decimal("0.03"), "start_date": date(2024, 1, 1)},
    {"id": "forecast-2", "name": "Insurance", "vendor_name": "Insurance Co",
     "type": "outgo", "frequency": "once", "base_amount": Decimal("12000"),
     "inflation_rate": Decimal("0.05"), "start_date": date(2024, 3, 1)},
    {"id": "forecast-3", "name": "Payroll", "vendor_name": "Payroll",
     "type": "outgo", "frequency": "weekly", "base_amount": Decimal("8500"),
     "escalation_rate": Decimal("0.04"), "start_date": date(2024, 1, 1)},
]

ACTUALS = [
    {"id": "actual-1", "project_id": "project-1", "type": "outgo", "amount": Decimal("15000"),
     "occurred_at": date(2024, 2, 12), "source_type": "bill", "source_id": "xero-bill-1",
     "description": "Concrete Supplies INV-2231"},
    {"id": "actual-2", "project_id": "project-2", "type": "income", "amount": Decimal("73500"),
     "occurred_at": date(2024, 3, 6), "source_type": "invoice", "source_id": "xero-invoice-7",
     "description": "Strip-out progress claim"},
    {"id": "actual-3", "project_id": "project-1", "type": "outgo", "amount": Decimal("23100"),
     "occurred_at": date(2024, 3, 25), "source_type": "bill", "source_id": "xero-bill-4",
     "description": "Timber Merchants order 5512"},
    {"id": "actual-4", "project_id": "project-1", "type": "income", "amount": Decimal("110000"),
     "occurred_at": date(2024, 4, 5), "source_type": "invoice", "source_id": "xero-invoice-9",
     "description": "Frame stage claim"},
]

WET_SEASON_SHIFTS = [
    {"entity_type": "milestone", "entity_id": "milestone-3", "days_shift": 30},
    {"entity_type": "milestone", "entity_id": "milestone-6", "days_shift": 21},
    {"entity_type": "supplier_claim", "entity_id": "claim-3", "days_shift": 14,
     "amount_shift": Decimal("4500")},
]


async def seed_demo_data(db: AsyncSession, force: bool = False) -> dict:
    """
    Seed the database with the demo construction company.

    Args:
        db: Database session
        force: If True, delete existing demo data and reseed

    Returns:
        dict with created entity counts

    Raises:
        DataIntegrityError: milestone percentages do not total 100
    """
    validate_milestone_percentages(MILESTONES)

    existing = await db.execute(select(Organization).where(Organization.id == DEMO_ORG_ID))
    existing = existing.scalar_one_or_none()

    if existing and not force:
        logger.info(f"Demo organization {DEMO_ORG_ID} already exists. Use force=True to reseed.")
        return {"status": "exists", "organization_id": DEMO_ORG_ID}

    if existing and force:
        logger.info(f"Deleting existing demo organization {DEMO_ORG_ID}...")
        await db.delete(existing)
        await db.flush()

    db.add(Organization(
        id=DEMO_ORG_ID,
        name=DEMO_ORG_NAME,
        starting_balance=Decimal("250000.00"),
    ))
    await db.flush()

    contract_values = {}
    for data in PROJECTS:
        db.add(Project(
            organization_id=DEMO_ORG_ID,
            retention_percentage=Decimal("5.0"),
            retention_release_days=84,
            status="active",
            **data,
        ))
        contract_values[data["id"]] = data["contract_value"]
    await db.flush()

    for data in MILESTONES:
        db.add(Milestone(contract_value=contract_values[data["project_id"]], **data))
    for data in SUPPLIER_CLAIMS:
        db.add(SupplierClaim(**data))
    for data in MATERIAL_ORDERS:
        db.add(MaterialOrder(**data))
    for data in FORECAST_LINES:
        db.add(ForecastLine(organization_id=DEMO_ORG_ID, is_overhead=True, **data))
    for data in ACTUALS:
        db.add(ActualEvent(organization_id=DEMO_ORG_ID, basis="accrual", **data))

    db.add(Scenario(
        id="scenario-base",
        organization_id=DEMO_ORG_ID,
        name="Base Forecast",
        description="Base scenario with current project timelines",
        is_base=True,
    ))
    db.add(Scenario(
        id="scenario-wet-season",
        organization_id=DEMO_ORG_ID,
        name="Wet Season Delay",
        description="Rain delays push lock-up and structural works back",
        is_base=False,
    ))
    await db.flush()

    shifts: List[ScenarioShift] = [
        ScenarioShift(scenario_id="scenario-wet-season", **data) for data in WET_SEASON_SHIFTS
    ]
    db.add_all(shifts)
    await db.commit()

    counts = {
        "projects": len(PROJECTS),
        "milestones": len(MILESTONES),
        "supplier_claims": len(SUPPLIER_CLAIMS),
        "material_orders": len(MATERIAL_ORDERS),
        "forecast_lines": len(FORECAST_LINES),
        "actual_events": len(ACTUALS),
        "scenarios": 2,
        "scenario_shifts": len(shifts),
    }
    logger.info(f"Seeded demo organization {DEMO_ORG_ID}: {counts}")
    return {"status": "created", "organization_id": DEMO_ORG_ID, "counts": counts}


async def clear_demo_data(db: AsyncSession) -> dict:
    """Remove the demo organization (cascades to related data)."""
    result = await db.execute(select(Organization).where(Organization.id == DEMO_ORG_ID))
    organization = result.scalar_one_or_none()

    if organization:
        await db.delete(organization)
        await db.commit()
        return {"status": "deleted", "organization_id": DEMO_ORG_ID}

    return {"status": "not_found", "organization_id": DEMO_ORG_ID}
