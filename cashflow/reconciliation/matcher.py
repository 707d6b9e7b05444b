"""
Variance Matcher - pairs scheduled events with actual transactions.

Scoring:
    confidence = amount_weight * amount_score + timing_weight * timing_score

    amount_score = max(0, 1 - |actual - expected| / expected)
                   (expected == 0: 1 if actual == 0 else 0)
    timing_score = max(0, 1 - |actual_date - expected_date| / window_days)

Assignment is greedy and one-to-one. Forecast events are visited in
(expected date, kind, id) order; each takes the best remaining candidate and
that actual leaves the pool. Ties go to the smaller timing gap, then the
smaller amount gap, then the lower actual id.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence, Tuple
import logging

from cashflow.config import settings
from cashflow.core.dates import days_between
from cashflow.core.money import ONE, ZERO, to_decimal
from cashflow.data.types import (
    OPEN_STATUSES,
    ActualEventSnapshot,
    Direction,
    EventKind,
    MatchStatus,
    ScheduledEvent,
)
from cashflow.exceptions import ValidationError

logger = logging.getLogger(__name__)

SCORE_PLACES = Decimal("0.0001")


@dataclass(frozen=True)
class MatchingConfig:
    """Tunable matching parameters. Weights must be non-negative and sum to 1."""
    amount_weight: Decimal = Decimal("0.6")
    timing_weight: Decimal = Decimal("0.4")
    window_days: int = 30
    min_confidence: Decimal = Decimal("0.3")
    require_same_project: bool = False

    def __post_init__(self):
        object.__setattr__(self, "amount_weight", to_decimal(self.amount_weight))
        object.__setattr__(self, "timing_weight", to_decimal(self.timing_weight))
        object.__setattr__(self, "min_confidence", to_decimal(self.min_confidence))

        if self.amount_weight < ZERO or self.timing_weight < ZERO:
            raise ValidationError("Match weights must be non-negative")
        if self.amount_weight + self.timing_weight != ONE:
            raise ValidationError(
                f"Match weights must sum to 1, got {self.amount_weight} + {self.timing_weight}"
            )
        if self.window_days <= 0:
            raise ValidationError("Match window must be at least one day")
        if not ZERO <= self.min_confidence <= ONE:
            raise ValidationError("Minimum confidence must be between 0 and 1")

    @classmethod
    def from_settings(cls) -> "MatchingConfig":
        return cls(
            amount_weight=settings.MATCH_AMOUNT_WEIGHT,
            timing_weight=settings.MATCH_TIMING_WEIGHT,
            window_days=settings.MATCH_WINDOW_DAYS,
            min_confidence=settings.MATCH_MIN_CONFIDENCE,
            require_same_project=settings.MATCH_REQUIRE_SAME_PROJECT,
        )


@dataclass(frozen=True)
class VarianceMatchResult:
    """One recorded pairing of a scheduled event with an actual transaction."""
    cash_event_type: EventKind
    cash_event_id: str
    actual_event_id: str
    project_id: Optional[str]
    forecast_amount: Decimal
    forecast_date: date
    actual_amount: Decimal
    actual_date: date
    amount_variance: Decimal  # actual - forecast
    timing_variance: int  # days, actual - forecast
    confidence_score: Decimal
    status: MatchStatus = MatchStatus.MATCHED
    external_transaction_id: Optional[str] = None
    external_transaction_type: Optional[str] = None
    project_name: Optional[str] = None
    id: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.cash_event_type.value, self.cash_event_id, self.actual_event_id)


@dataclass
class MatchOutcome:
    """Matches plus what was left over on each side."""
    matches: List[VarianceMatchResult] = field(default_factory=list)
    unmatched_forecasts: List[ScheduledEvent] = field(default_factory=list)
    unmatched_actuals: List[ActualEventSnapshot] = field(default_factory=list)


def amount_score(expected: Decimal, actual: Decimal) -> Decimal:
    if expected == ZERO:
        return ONE if actual == ZERO else ZERO
    return max(ZERO, ONE - abs(actual - expected) / expected)


def timing_score(days: int, window_days: int) -> Decimal:
    return max(ZERO, ONE - Decimal(abs(days)) / Decimal(window_days))


def is_forecast_side(event: ScheduledEvent) -> bool:
    """Open milestones, supplier claims and material orders."""
    return event.kind != EventKind.OVERHEAD and event.status in OPEN_STATUSES


class VarianceMatcher:
    """Deterministic greedy matcher over an immutable snapshot."""

    def __init__(self, config: Optional[MatchingConfig] = None):
        self.config = config or MatchingConfig.from_settings()

    def raw_score(self, event: ScheduledEvent, actual: ActualEventSnapshot) -> Decimal:
        """Unrounded confidence in [0, 1]; the threshold is applied to this."""
        timing = days_between(event.expected_date, actual.occurred_at)
        raw = (
            self.config.amount_weight * amount_score(event.amount, actual.amount)
            + self.config.timing_weight * timing_score(timing, self.config.window_days)
        )
        return min(ONE, max(ZERO, raw))

    def score(self, event: ScheduledEvent, actual: ActualEventSnapshot) -> Decimal:
        """Confidence in [0, 1], quantized to four places."""
        return self.raw_score(event, actual).quantize(SCORE_PLACES, rounding=ROUND_HALF_UP)

    def is_candidate(self, event: ScheduledEvent, actual: ActualEventSnapshot) -> bool:
        if actual.direction != event.direction:
            return False
        if abs(days_between(event.expected_date, actual.occurred_at)) > self.config.window_days:
            return False
        if self.config.require_same_project and event.project_id and actual.project_id != event.project_id:
            return False
        return True

    def _best_candidate(
        self,
        event: ScheduledEvent,
        pool: Sequence[ActualEventSnapshot],
    ) -> Optional[Tuple[ActualEventSnapshot, Decimal, Decimal]]:
        best = None
        best_rank = None
        for actual in pool:
            if not self.is_candidate(event, actual):
                continue
            raw = self.raw_score(event, actual)
            confidence = raw.quantize(SCORE_PLACES, rounding=ROUND_HALF_UP)
            rank = (
                -confidence,
                abs(days_between(event.expected_date, actual.occurred_at)),
                abs(actual.amount - event.amount),
                actual.id,
            )
            if best_rank is None or rank < best_rank:
                best, best_rank = (actual, confidence, raw), rank
        return best

    def match(
        self,
        events: Iterable[ScheduledEvent],
        actuals: Iterable[ActualEventSnapshot],
    ) -> MatchOutcome:
        """
        Greedily pair forecast-side events with actual transactions.

        Events that are not open milestones, claims or orders are ignored.
        A pairing is recorded only when its confidence exceeds the configured
        minimum; otherwise the event is reported unmatched.
        """
        forecasts = sorted(
            (e for e in events if is_forecast_side(e)),
            key=lambda e: (e.expected_date, e.kind.value, e.id),
        )
        pool = sorted(actuals, key=lambda a: (a.occurred_at, a.id))
        outcome = MatchOutcome()

        for event in forecasts:
            best = self._best_candidate(event, pool)
            if best is None or best[2] <= self.config.min_confidence:
                outcome.unmatched_forecasts.append(event)
                continue

            actual, confidence, _ = best
            pool.remove(actual)
            outcome.matches.append(VarianceMatchResult(
                cash_event_type=event.kind,
                cash_event_id=event.id,
                actual_event_id=actual.id,
                project_id=event.project_id,
                project_name=event.project_name,
                forecast_amount=event.amount,
                forecast_date=event.expected_date,
                actual_amount=actual.amount,
                actual_date=actual.occurred_at,
                amount_variance=actual.amount - event.amount,
                timing_variance=days_between(event.expected_date, actual.occurred_at),
                confidence_score=confidence,
                external_transaction_id=actual.external_id,
                external_transaction_type=actual.external_type,
            ))

        outcome.unmatched_actuals = pool
        logger.debug(
            f"Matched {len(outcome.matches)} of {len(forecasts)} forecast events; "
            f"{len(pool)} actuals unmatched"
        )
        return outcome
