"""Pydantic schemas for variance reconciliation."""
from typing import List, Optional
from pydantic import BaseModel, Field

from cashflow.core.money import format_amount
from cashflow.data.types import Basis, MatchStatus
from cashflow.reconciliation.matcher import VarianceMatchResult
from cashflow.reconciliation.service import ReconciliationResult


class ReconcileRequest(BaseModel):
    organization_id: str
    basis: Basis = Basis.ACCRUAL


class ReconciliationResultResponse(BaseModel):
    """Counts and averages from a reconciliation run."""
    matched_count: int
    unmatched_forecast_count: int
    unmatched_actual_count: int
    high_confidence_matches: int = Field(..., description="Confidence >= 0.8")
    medium_confidence_matches: int = Field(..., description="Confidence in [0.6, 0.8)")
    low_confidence_matches: int
    average_amount_variance: str
    average_timing_variance: str


class ReconcileResponse(BaseModel):
    success: bool = True
    result: ReconciliationResultResponse
    message: str = "Reconciliation completed successfully"


class VarianceMatchResponse(BaseModel):
    id: Optional[str]
    cash_event_type: str
    cash_event_id: str
    actual_event_id: str
    project_id: Optional[str]
    project_name: Optional[str]
    forecast_amount: str
    forecast_date: str
    actual_amount: str
    actual_date: str
    amount_variance: str
    timing_variance: int
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    status: MatchStatus
    external_transaction_id: Optional[str]
    external_transaction_type: Optional[str]


class VarianceMatchList(BaseModel):
    matches: List[VarianceMatchResponse] = Field(default_factory=list)


class MatchStatusUpdate(BaseModel):
    organization_id: str
    status: MatchStatus


def result_response(result: ReconciliationResult) -> ReconciliationResultResponse:
    return ReconciliationResultResponse(
        matched_count=result.matched_count,
        unmatched_forecast_count=result.unmatched_forecast_count,
        unmatched_actual_count=result.unmatched_actual_count,
        high_confidence_matches=result.high_confidence_matches,
        medium_confidence_matches=result.medium_confidence_matches,
        low_confidence_matches=result.low_confidence_matches,
        average_amount_variance=format_amount(result.average_amount_variance),
        average_timing_variance=str(result.average_timing_variance),
    )


def match_response(match: VarianceMatchResult) -> VarianceMatchResponse:
    return VarianceMatchResponse(
        id=match.id,
        cash_event_type=match.cash_event_type.value,
        cash_event_id=match.cash_event_id,
        actual_event_id=match.actual_event_id,
        project_id=match.project_id,
        project_name=match.project_name,
        forecast_amount=format_amount(match.forecast_amount),
        forecast_date=match.forecast_date.isoformat(),
        actual_amount=format_amount(match.actual_amount),
        actual_date=match.actual_date.isoformat(),
        amount_variance=format_amount(match.amount_variance),
        timing_variance=match.timing_variance,
        confidence_score=float(match.confidence_score),
        status=match.status,
        external_transaction_id=match.external_transaction_id,
        external_transaction_type=match.external_transaction_type,
    )
