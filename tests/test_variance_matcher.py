"""
Tests for the Variance Matcher.

Tests cover scoring, the confidence threshold, greedy one-to-one
assignment, tie-breaks and configuration validation.
"""

import pytest
from datetime import date
from decimal import Decimal

from cashflow.data.types import Direction, EventKind, MatchStatus
from cashflow.exceptions import ValidationError
from cashflow.reconciliation.matcher import (
    MatchingConfig,
    VarianceMatcher,
    amount_score,
    timing_score,
)
from tests.factories import actual, milestone, overhead, supplier_claim


@pytest.fixture
def matcher():
    return VarianceMatcher(MatchingConfig())


# =============================================================================
# Scoring
# =============================================================================

class TestScoring:

    def test_amount_score(self):
        assert amount_score(Decimal("100000"), Decimal("98000")) == Decimal("0.98")
        assert amount_score(Decimal("100"), Decimal("300")) == Decimal("0")

    def test_amount_score_zero_expected(self):
        """Test the zero-expected branch instead of a division error."""
        assert amount_score(Decimal("0"), Decimal("0")) == Decimal("1")
        assert amount_score(Decimal("0"), Decimal("5")) == Decimal("0")

    def test_timing_score(self):
        assert timing_score(3, 30) == Decimal("0.9")
        assert timing_score(-3, 30) == Decimal("0.9")
        assert timing_score(45, 30) == Decimal("0")

    def test_worked_example(self, matcher):
        """Test 100,000 expected 2024-03-01 against 98,000 on 2024-03-04."""
        event = milestone(amount="100000", expected_date=date(2024, 3, 1))
        payment = actual(amount="98000", occurred_at=date(2024, 3, 4))

        assert matcher.score(event, payment) == Decimal("0.9480")

    def test_exact_match_scores_one(self, matcher):
        event = milestone(amount="100000", expected_date=date(2024, 3, 1))
        payment = actual(amount="100000", occurred_at=date(2024, 3, 1))

        assert matcher.score(event, payment) == Decimal("1.0000")

    def test_custom_weights(self):
        matcher = VarianceMatcher(MatchingConfig(amount_weight="0.5", timing_weight="0.5"))
        event = milestone(amount="100000", expected_date=date(2024, 3, 1))
        payment = actual(amount="98000", occurred_at=date(2024, 3, 4))

        assert matcher.score(event, payment) == Decimal("0.9400")


# =============================================================================
# Matching
# =============================================================================

class TestMatch:

    def test_worked_example_is_matched(self, matcher):
        event = milestone(amount="100000", expected_date=date(2024, 3, 1))
        payment = actual(amount="98000", occurred_at=date(2024, 3, 4))

        outcome = matcher.match([event], [payment])

        (match,) = outcome.matches
        assert match.cash_event_type == EventKind.MILESTONE
        assert match.cash_event_id == "ms-1"
        assert match.actual_event_id == "act-1"
        assert match.amount_variance == Decimal("-2000")
        assert match.timing_variance == 3
        assert match.confidence_score == Decimal("0.9480")
        assert match.status == MatchStatus.MATCHED
        assert match.external_transaction_id == "xero-act-1"
        assert outcome.unmatched_forecasts == []
        assert outcome.unmatched_actuals == []

    def test_no_candidates_is_not_an_error(self, matcher):
        outcome = matcher.match([milestone()], [])

        assert outcome.matches == []
        assert [e.id for e in outcome.unmatched_forecasts] == ["ms-1"]

    def test_outside_window_not_a_candidate(self, matcher):
        event = milestone(expected_date=date(2024, 3, 1))
        payment = actual(amount="100000", occurred_at=date(2024, 4, 5))

        outcome = matcher.match([event], [payment])

        assert outcome.matches == []
        assert len(outcome.unmatched_actuals) == 1

    def test_below_threshold_left_unmatched(self, matcher):
        """Test that weak candidates are reported unmatched, not force-matched."""
        event = milestone(amount="100000", expected_date=date(2024, 3, 1))
        # Amount score 0, timing score 0.4 -> 0.16
        payment = actual(amount="250000", occurred_at=date(2024, 3, 19))

        outcome = matcher.match([event], [payment])

        assert outcome.matches == []
        assert len(outcome.unmatched_forecasts) == 1

    def test_threshold_is_strict(self):
        matcher = VarianceMatcher(MatchingConfig(min_confidence="0.4"))
        event = milestone(amount="100", expected_date=date(2024, 3, 1))
        # Amount score 0, timing score 1 -> exactly 0.4
        payment = actual(amount="500", occurred_at=date(2024, 3, 1))

        assert matcher.match([event], [payment]).matches == []

    def test_threshold_uses_unrounded_score(self):
        matcher = VarianceMatcher(MatchingConfig(min_confidence="0.5"))
        event = milestone(amount="100000", expected_date=date(2024, 3, 1))
        # Amount score 0.8334, timing score 0 -> 0.50004, reported as 0.5000
        payment = actual(amount="83340", occurred_at=date(2024, 3, 31))

        assert matcher.raw_score(event, payment) == Decimal("0.50004")
        (match,) = matcher.match([event], [payment]).matches
        assert match.confidence_score == Decimal("0.5000")

    def test_direction_must_agree(self, matcher):
        claim = supplier_claim(amount="15000", expected_date=date(2024, 2, 10))
        receipt = actual(amount="15000", occurred_at=date(2024, 2, 10), direction=Direction.INCOME)

        assert matcher.match([claim], [receipt]).matches == []

    def test_paid_milestones_and_overheads_ignored(self, matcher):
        events = [
            milestone(id="paid", status="paid"),
            overhead(),
        ]
        outcome = matcher.match(events, [actual()])

        assert outcome.matches == []
        assert outcome.unmatched_forecasts == []

    def test_invoiced_milestone_is_forecast_side(self, matcher):
        event = milestone(status="invoiced", expected_date=date(2024, 3, 1))
        outcome = matcher.match([event], [actual()])
        assert len(outcome.matches) == 1

    def test_one_to_one_assignment(self, matcher):
        """Test that an actual is removed from the pool once assigned."""
        events = [
            milestone(id="ms-a", amount="50000", expected_date=date(2024, 3, 1)),
            milestone(id="ms-b", amount="50000", expected_date=date(2024, 3, 2)),
        ]
        payments = [actual(id="act-1", amount="50000", occurred_at=date(2024, 3, 1))]

        outcome = matcher.match(events, payments)

        assert [(m.cash_event_id, m.actual_event_id) for m in outcome.matches] == [("ms-a", "act-1")]
        assert [e.id for e in outcome.unmatched_forecasts] == ["ms-b"]

    def test_earlier_forecast_chooses_first(self, matcher):
        """Test greedy order by expected date regardless of input order."""
        events = [
            milestone(id="ms-late", amount="50000", expected_date=date(2024, 3, 10)),
            milestone(id="ms-early", amount="50000", expected_date=date(2024, 3, 1)),
        ]
        payments = [
            actual(id="act-1", amount="50000", occurred_at=date(2024, 3, 5)),
            actual(id="act-2", amount="50000", occurred_at=date(2024, 3, 12)),
        ]

        pairs = {m.cash_event_id: m.actual_event_id for m in matcher.match(events, payments).matches}

        assert pairs == {"ms-early": "act-1", "ms-late": "act-2"}

    def test_same_project_optional(self):
        event = milestone(project_id="proj-1")
        payment = actual(project_id="proj-2")

        assert len(VarianceMatcher(MatchingConfig()).match([event], [payment]).matches) == 1
        strict = VarianceMatcher(MatchingConfig(require_same_project=True))
        assert strict.match([event], [payment]).matches == []

    def test_deterministic(self, matcher):
        events = [
            milestone(id=f"ms-{i}", amount=str(10000 * i), expected_date=date(2024, 3, i))
            for i in range(1, 8)
        ]
        payments = [
            actual(id=f"act-{i}", amount=str(10000 * i + 250), occurred_at=date(2024, 3, i + 2))
            for i in range(1, 8)
        ]

        first = matcher.match(events, payments).matches
        second = matcher.match(list(reversed(events)), list(reversed(payments))).matches

        assert first == second

    def test_confidence_bounds(self, matcher):
        events = [milestone(id=f"ms-{i}", amount=str(i * 1000)) for i in range(0, 5)]
        payments = [actual(id=f"act-{i}", amount=str(i * 900)) for i in range(0, 5)]

        for match in matcher.match(events, payments).matches:
            assert Decimal("0") <= match.confidence_score <= Decimal("1")


class TestTieBreaks:

    def test_timing_breaks_equal_scores(self, matcher):
        """Test equal confidence resolved by the smaller timing gap."""
        event = milestone(amount="100000", expected_date=date(2024, 3, 10))
        # 0.6 * 0.93 + 0.4 * 0.9 = 0.918 and 0.6 * 0.99667 + 0.4 * 0.8 = 0.918002
        nearer = actual(id="act-z", amount="93000", occurred_at=date(2024, 3, 13))
        further = actual(id="act-a", amount="99667", occurred_at=date(2024, 3, 4))

        assert matcher.score(event, nearer) == Decimal("0.9180")
        assert matcher.score(event, further) == Decimal("0.9180")

        outcome = matcher.match([event], [further, nearer])
        assert outcome.matches[0].actual_event_id == "act-z"

    def test_actual_id_breaks_full_ties(self, matcher):
        event = milestone(amount="100000", expected_date=date(2024, 3, 10))
        before = actual(id="act-b", amount="99000", occurred_at=date(2024, 3, 8))
        after = actual(id="act-a", amount="101000", occurred_at=date(2024, 3, 12))

        assert matcher.score(event, before) == matcher.score(event, after)

        outcome = matcher.match([event], [before, after])
        assert outcome.matches[0].actual_event_id == "act-a"


# =============================================================================
# Configuration
# =============================================================================

class TestMatchingConfig:

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            MatchingConfig(amount_weight="0.7", timing_weight="0.4")

    def test_weights_must_be_non_negative(self):
        with pytest.raises(ValidationError):
            MatchingConfig(amount_weight="1.2", timing_weight="-0.2")

    def test_window_must_be_positive(self):
        with pytest.raises(ValidationError):
            MatchingConfig(window_days=0)

    def test_from_settings_defaults(self):
        config = MatchingConfig.from_settings()
        assert config.amount_weight == Decimal("0.6")
        assert config.timing_weight == Decimal("0.4")
        assert config.window_days == 30
        assert config.min_confidence == Decimal("0.3")
