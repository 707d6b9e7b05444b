"""Reconciliation service: runs the matcher against stored data and persists results."""
from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
import logging

from cashflow.core.money import ZERO, quantize_cents, to_decimal
from cashflow.data.repository import CashflowRepository
from cashflow.data.types import Basis, MatchStatus
from cashflow.reconciliation.matcher import MatchingConfig, VarianceMatcher, VarianceMatchResult

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = Decimal("0.8")
MEDIUM_CONFIDENCE = Decimal("0.6")


@dataclass(frozen=True)
class ReconciliationResult:
    matched_count: int
    unmatched_forecast_count: int
    unmatched_actual_count: int
    high_confidence_matches: int
    medium_confidence_matches: int
    low_confidence_matches: int
    average_amount_variance: Decimal
    average_timing_variance: Decimal


def summarize_matches(
    matches: List[VarianceMatchResult],
    unmatched_forecast_count: int,
    unmatched_actual_count: int,
) -> ReconciliationResult:
    count = len(matches)
    if count:
        avg_amount = quantize_cents(sum((m.amount_variance for m in matches), ZERO) / count)
        avg_timing = (Decimal(sum(m.timing_variance for m in matches)) / count).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
    else:
        avg_amount = avg_timing = ZERO

    return ReconciliationResult(
        matched_count=count,
        unmatched_forecast_count=unmatched_forecast_count,
        unmatched_actual_count=unmatched_actual_count,
        high_confidence_matches=sum(1 for m in matches if m.confidence_score >= HIGH_CONFIDENCE),
        medium_confidence_matches=sum(
            1 for m in matches if MEDIUM_CONFIDENCE <= m.confidence_score < HIGH_CONFIDENCE
        ),
        low_confidence_matches=sum(1 for m in matches if m.confidence_score < MEDIUM_CONFIDENCE),
        average_amount_variance=avg_amount,
        average_timing_variance=avg_timing,
    )


class ReconciliationEngine:
    """Reconciles scheduled events against actual transactions for one organization."""

    def __init__(self, repository: CashflowRepository, config: Optional[MatchingConfig] = None):
        self.repository = repository
        self.matcher = VarianceMatcher(config)

    async def _compute(self, organization_id: str, basis: Basis):
        """Match over the whole organization; project views filter the result."""
        await self.repository.get_organization(organization_id)

        events = await self.repository.get_scheduled_events(organization_id, include_overhead=False)
        actuals = await self.repository.get_actual_events(organization_id, basis)
        outcome = self.matcher.match(events, actuals)

        # Keep user-set statuses for pairs that were matched before
        persisted = await self.repository.get_match_statuses(organization_id, basis)
        matches = []
        for match in outcome.matches:
            existing = persisted.get(match.key)
            if existing:
                match_id, status = existing
                match = replace(match, id=match_id, status=MatchStatus(status))
            matches.append(match)
        outcome.matches = matches
        return outcome

    async def reconcile(self, organization_id: str, basis: Basis = Basis.ACCRUAL) -> ReconciliationResult:
        """
        Match the organization's open scheduled events against its actuals
        and replace the stored matches for ``basis``.

        Stored statuses are re-read inside the replacing transaction, so a
        status set while matching ran is kept for pairs that match again.

        Raises:
            NotFoundError: unknown organization
            UpstreamUnavailableError: storage failed
        """
        basis = Basis(basis)
        outcome = await self._compute(organization_id, basis)
        await self.repository.replace_variance_matches(organization_id, basis, outcome.matches)

        result = summarize_matches(
            outcome.matches,
            len(outcome.unmatched_forecasts),
            len(outcome.unmatched_actuals),
        )
        logger.info(
            f"Reconciled {organization_id} ({basis.value}): {result.matched_count} matched, "
            f"{result.unmatched_forecast_count} forecasts and {result.unmatched_actual_count} actuals unmatched"
        )
        return result

    async def get_variance_matches(
        self,
        organization_id: str,
        project_id: Optional[str] = None,
        basis: Basis = Basis.ACCRUAL,
        min_confidence: Optional[Decimal] = None,
        status: Optional[MatchStatus] = None,
    ) -> List[VarianceMatchResult]:
        """
        Recompute matches without persisting them.

        Stored statuses are overlaid so disputed/resolved pairs keep their
        status. Matching always runs organization-wide, exactly as
        ``reconcile`` does; ``project_id`` only filters the returned matches.
        Results are in assignment order.
        """
        if project_id:
            await self.repository.get_project(project_id, organization_id)

        outcome = await self._compute(organization_id, Basis(basis))
        matches = outcome.matches
        if project_id:
            matches = [m for m in matches if m.project_id == project_id]
        if min_confidence is not None:
            threshold = to_decimal(min_confidence)
            matches = [m for m in matches if m.confidence_score >= threshold]
        if status is not None:
            matches = [m for m in matches if m.status == MatchStatus(status)]
        return matches

    async def update_match_status(self, organization_id: str, match_id: str, status: MatchStatus) -> None:
        await self.repository.update_match_status(organization_id, match_id, MatchStatus(status).value)
        logger.info(f"Variance match {match_id} marked {MatchStatus(status).value}")
