"""Seed data routes for demo/development."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cashflow.database import get_db
from cashflow.seed.demo import clear_demo_data, seed_demo_data

router = APIRouter()


@router.post("/demo")
async def seed_demo(
    force: bool = Query(False, description="Force reseed if the demo organization exists"),
    db: AsyncSession = Depends(get_db),
):
    """
    Seed the database with the demo construction company.

    Creates two projects with milestones, supplier claims, a material order,
    overhead lines, actuals, and the base and "Wet Season Delay" scenarios.
    Milestone percentages are checked before anything is written.
    """
    return await seed_demo_data(db, force=force)


@router.delete("/demo")
async def clear_demo(db: AsyncSession = Depends(get_db)):
    """Delete the demo organization and everything under it."""
    return await clear_demo_data(db)
