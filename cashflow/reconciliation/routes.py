"""Reconciliation API routes."""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query

from cashflow.data.repository import CashflowRepository, get_repository
from cashflow.data.types import Basis, MatchStatus
from cashflow.reconciliation import schemas
from cashflow.reconciliation.service import ReconciliationEngine

router = APIRouter()


@router.post("", response_model=schemas.ReconcileResponse)
async def run_reconciliation(
    data: schemas.ReconcileRequest,
    repository: CashflowRepository = Depends(get_repository),
):
    """Match open scheduled events against actuals and store the matches."""
    result = await ReconciliationEngine(repository).reconcile(data.organization_id, data.basis)
    return schemas.ReconcileResponse(result=schemas.result_response(result))


@router.get("/matches", response_model=schemas.VarianceMatchList)
async def get_variance_matches(
    organization_id: str = Query(...),
    project_id: Optional[str] = Query(None),
    basis: Basis = Query(Basis.ACCRUAL),
    min_confidence: Optional[Decimal] = Query(None, ge=0, le=1),
    status: Optional[MatchStatus] = Query(None),
    repository: CashflowRepository = Depends(get_repository),
):
    """Get variance matches, recomputed from current data."""
    matches = await ReconciliationEngine(repository).get_variance_matches(
        organization_id,
        project_id=project_id,
        basis=basis,
        min_confidence=min_confidence,
        status=status,
    )
    return schemas.VarianceMatchList(matches=[schemas.match_response(m) for m in matches])


@router.patch("/matches/{match_id}")
async def update_match_status(
    match_id: str,
    data: schemas.MatchStatusUpdate,
    repository: CashflowRepository = Depends(get_repository),
):
    """Mark a stored match as matched, disputed or resolved."""
    await ReconciliationEngine(repository).update_match_status(data.organization_id, match_id, data.status)
    return {"id": match_id, "status": data.status.value}
