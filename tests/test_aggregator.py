"""
Tests for cash-flow item expansion and the Period Aggregator.

Tests cover bucketing, running balance, overhead projection with
inflation/escalation, retention splitting and historical flags.
"""

import pytest
from datetime import date
from decimal import Decimal

from cashflow.data.types import Direction, Frequency, Granularity, ShiftEntityType
from cashflow.exceptions import InvalidRangeError
from cashflow.forecast.aggregator import aggregate, attach_actuals, build_periods, summarize
from cashflow.forecast.events import expand_event, occurrence_dates, retention_for
from cashflow.forecast.types import ItemComponent
from cashflow.core.dates import DateRange
from cashflow.scenarios.resolver import ScenarioResolver, Shift, ShiftMap
from tests.factories import actual, milestone, overhead, supplier_claim


def by_key(periods):
    return {p.key: p for p in periods}


# =============================================================================
# Event expansion
# =============================================================================

class TestOccurrenceDates:

    def test_monthly_from_month_end_does_not_drift(self):
        dates = list(occurrence_dates(date(2024, 1, 31), Frequency.MONTHLY, date(2024, 4, 30)))
        assert dates == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]

    def test_weekly_steps_seven_days(self):
        dates = list(occurrence_dates(date(2024, 1, 1), Frequency.WEEKLY, date(2024, 1, 22)))
        assert dates == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15), date(2024, 1, 22)]

    def test_quarterly(self):
        dates = list(occurrence_dates(date(2024, 1, 15), Frequency.QUARTERLY, date(2024, 12, 31)))
        assert dates == [date(2024, 1, 15), date(2024, 4, 15), date(2024, 7, 15), date(2024, 10, 15)]

    def test_once(self):
        assert list(occurrence_dates(date(2024, 3, 1), Frequency.ONCE, date(2024, 12, 31))) == [date(2024, 3, 1)]
        assert list(occurrence_dates(date(2025, 3, 1), Frequency.ONCE, date(2024, 12, 31))) == []

    def test_line_end_date_stops_projection(self):
        dates = list(occurrence_dates(
            date(2024, 1, 1), Frequency.MONTHLY, date(2024, 12, 31), end=date(2024, 3, 15)
        ))
        assert dates == [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1)]


class TestRetention:

    def test_percentage_retention(self):
        event = milestone(amount="100000", retention_percentage=Decimal("5"))
        assert retention_for(event) == Decimal("5000.00")

    def test_explicit_amount_wins_and_is_clamped(self):
        event = milestone(amount="1000", retention_percentage=Decimal("5"), retention_amount=Decimal("2500"))
        assert retention_for(event) == Decimal("1000")

    def test_non_milestones_hold_nothing(self):
        assert retention_for(supplier_claim()) == Decimal("0")

    def test_milestone_split_into_payment_and_release(self):
        """Test that only cash that moves is projected, with the hold recorded."""
        event = milestone(
            amount="100000",
            expected_date=date(2024, 1, 10),
            retention_percentage=Decimal("5"),
            retention_release_days=84,
        )

        items = expand_event(event, date(2024, 12, 31))

        payment, release = items
        assert payment.component == ItemComponent.PAYMENT
        assert payment.amount == Decimal("95000.00")
        assert payment.retention_held == Decimal("5000.00")
        assert payment.date == date(2024, 1, 10)
        assert release.component == ItemComponent.RETENTION_RELEASE
        assert release.amount == Decimal("5000.00")
        assert release.date == date(2024, 4, 3)

    def test_explicit_release_date(self):
        event = milestone(
            amount="100000",
            retention_percentage=Decimal("5"),
            retention_release_date=date(2024, 9, 1),
        )
        items = expand_event(event, date(2024, 12, 31))
        assert items[1].date == date(2024, 9, 1)

    def test_default_release_days_used_when_project_has_none(self):
        event = milestone(amount="100000", expected_date=date(2024, 1, 1), retention_percentage=Decimal("5"))
        items = expand_event(event, date(2024, 12, 31), default_release_days=30)
        assert items[1].date == date(2024, 1, 31)


# =============================================================================
# Aggregation
# =============================================================================

class TestAggregate:

    def test_shifted_milestone_lands_in_march(self, what_if_scenario):
        """Test a $67,500 milestone due 2024-02-15 moved by +30 days."""
        event = milestone(amount="67500", expected_date=date(2024, 2, 15))
        resolver = ScenarioResolver(
            what_if_scenario,
            ShiftMap([Shift(ShiftEntityType.MILESTONE, "ms-1", days_shift=30)]),
        )

        periods = by_key(aggregate(resolver.resolve_all([event]), date(2024, 1, 1), date(2024, 3, 31)))

        assert periods["2024-02"].income == Decimal("0")
        assert periods["2024-03"].income == Decimal("67500")
        assert periods["2024-03"].items[0].date == date(2024, 3, 16)

    def test_unshifted_milestone_stays_in_february(self, base_scenario):
        event = milestone(amount="67500", expected_date=date(2024, 2, 15))
        resolver = ScenarioResolver(
            base_scenario,
            ShiftMap([Shift(ShiftEntityType.MILESTONE, "ms-1", days_shift=30)]),
        )

        periods = by_key(aggregate(resolver.resolve_all([event]), date(2024, 1, 1), date(2024, 3, 31)))

        assert periods["2024-02"].income == Decimal("67500")
        assert periods["2024-03"].income == Decimal("0")

    def test_overhead_inflation_compounds_per_month(self):
        """Test 3500/month at 3% monthly: March is 3500 x 1.03^2."""
        line = overhead(amount="3500", inflation_rate=Decimal("0.03"))

        periods = by_key(aggregate([line], date(2024, 1, 1), date(2024, 3, 31)))

        assert periods["2024-01"].outgo == Decimal("3500.00")
        assert periods["2024-02"].outgo == Decimal("3605.00")
        assert periods["2024-03"].outgo == Decimal("3713.15")

    def test_escalation_used_when_no_inflation(self):
        line = overhead(amount="8500", frequency=Frequency.WEEKLY, escalation_rate=Decimal("0.04"))

        periods = by_key(aggregate([line], date(2024, 1, 1), date(2024, 2, 29)))

        # Jan 1, 8, 15, 22, 29 at base; Feb 5, 12, 19, 26 one month in
        assert periods["2024-01"].outgo == Decimal("42500.00")
        assert periods["2024-02"].outgo == Decimal("35360.00")

    def test_income_overhead_line(self):
        line = overhead(amount="1200", direction=Direction.INCOME, name="Equipment Hire")

        periods = aggregate([line], date(2024, 1, 1), date(2024, 2, 29))

        assert [p.income for p in periods] == [Decimal("1200.00"), Decimal("1200.00")]
        assert all(p.outgo == Decimal("0") for p in periods)

    def test_total_invariant(self):
        """Test that period totals equal event totals inside the range."""
        events = [
            milestone(id="ms-1", amount="67500", expected_date=date(2024, 2, 15)),
            milestone(id="ms-2", amount="112500", expected_date=date(2024, 4, 1)),
            milestone(id="ms-out", amount="999", expected_date=date(2024, 7, 1)),
            supplier_claim(id="claim-1", amount="15000", expected_date=date(2024, 2, 10)),
            supplier_claim(id="claim-2", amount="42000", expected_date=date(2024, 3, 28)),
        ]

        periods = aggregate(events, date(2024, 1, 1), date(2024, 4, 30))

        total_net = sum((p.income - p.outgo for p in periods), Decimal("0"))
        assert total_net == Decimal("67500") + Decimal("112500") - Decimal("15000") - Decimal("42000")

    def test_balance_continuity(self):
        events = [
            milestone(amount="67500", expected_date=date(2024, 2, 15)),
            supplier_claim(amount="15000", expected_date=date(2024, 1, 10)),
            overhead(amount="3500", inflation_rate=Decimal("0.03")),
        ]

        periods = aggregate(events, date(2024, 1, 1), date(2024, 6, 30), opening_balance=Decimal("250000"))

        assert periods[0].balance == Decimal("250000") + periods[0].net
        for previous, current in zip(periods, periods[1:]):
            assert current.balance == previous.balance + current.net
            assert current.net == current.income - current.outgo

    def test_buckets_cover_partial_boundary_periods(self):
        events = [
            supplier_claim(id="before", expected_date=date(2024, 1, 5)),
            supplier_claim(id="inside", expected_date=date(2024, 1, 20)),
        ]

        periods = aggregate(events, date(2024, 1, 15), date(2024, 3, 10))

        assert [p.key for p in periods] == ["2024-01", "2024-02", "2024-03"]
        assert periods[0].start_date == date(2024, 1, 1)
        # Only the in-range claim counts even though its bucket starts earlier
        assert periods[0].outgo == Decimal("15000")

    def test_weekly_granularity(self):
        events = [supplier_claim(expected_date=date(2024, 1, 10))]

        periods = aggregate(events, date(2024, 1, 1), date(2024, 1, 21), granularity=Granularity.WEEK)

        assert [p.key for p in periods] == ["2024-W01", "2024-W02", "2024-W03"]
        assert periods[1].start_date == date(2024, 1, 8)
        assert periods[1].outgo == Decimal("15000")

    def test_build_periods_contiguous(self):
        buckets = build_periods(DateRange(date(2024, 1, 3), date(2024, 2, 14)), Granularity.WEEK)
        for (_, end), (start, _) in zip(buckets, buckets[1:]):
            assert (start - end).days == 1

    def test_retention_reported_per_period(self):
        event = milestone(
            amount="100000",
            expected_date=date(2024, 1, 10),
            retention_percentage=Decimal("5"),
            retention_release_days=84,
        )

        periods = by_key(aggregate([event], date(2024, 1, 1), date(2024, 4, 30)))

        assert periods["2024-01"].income == Decimal("95000.00")
        assert periods["2024-01"].retention_held == Decimal("5000.00")
        assert periods["2024-04"].income == Decimal("5000.00")
        assert periods["2024-04"].retention_released == Decimal("5000.00")
        assert sum((p.income for p in periods.values()), Decimal("0")) == Decimal("100000.00")

    def test_historical_flags(self):
        periods = aggregate([], date(2024, 1, 1), date(2024, 3, 31), now=date(2024, 2, 15))

        assert [p.is_historical for p in periods] == [True, False, False]

    def test_no_now_means_all_future(self):
        periods = aggregate([], date(2024, 1, 1), date(2024, 3, 31))
        assert not any(p.is_historical for p in periods)

    def test_empty_events_still_produce_periods(self):
        periods = aggregate([], date(2024, 1, 1), date(2024, 3, 31), opening_balance=Decimal("1000"))

        assert len(periods) == 3
        assert all(p.balance == Decimal("1000") for p in periods)

    def test_inverted_range_raises(self):
        with pytest.raises(InvalidRangeError):
            aggregate([], date(2024, 3, 31), date(2024, 1, 1))

    def test_input_order_does_not_matter(self):
        events = [
            supplier_claim(id="c-2", expected_date=date(2024, 1, 20)),
            supplier_claim(id="c-1", expected_date=date(2024, 1, 20)),
            milestone(expected_date=date(2024, 1, 5)),
        ]

        first = aggregate(events, date(2024, 1, 1), date(2024, 1, 31))
        second = aggregate(list(reversed(events)), date(2024, 1, 1), date(2024, 1, 31))

        assert first == second
        assert [i.source_id for i in first[0].items] == ["ms-1", "c-1", "c-2"]


# =============================================================================
# Actuals and summary
# =============================================================================

class TestActualsAndSummary:

    def test_actuals_attached_to_historical_periods_only(self):
        periods = aggregate([], date(2024, 1, 1), date(2024, 3, 31), now=date(2024, 2, 15))
        actuals = [
            actual(id="a-1", amount="50000", occurred_at=date(2024, 1, 12)),
            actual(id="a-2", amount="8000", occurred_at=date(2024, 1, 20), direction=Direction.OUTGO),
            actual(id="a-3", amount="7000", occurred_at=date(2024, 2, 2)),
        ]

        january, february, march = attach_actuals(periods, actuals)

        assert january.actual_income == Decimal("50000")
        assert january.actual_outgo == Decimal("8000")
        assert january.actual_net == Decimal("42000")
        assert february.actual_income is None
        assert march.actual_net is None

    def test_historical_period_without_actuals_gets_zeros(self):
        periods = aggregate([], date(2024, 1, 1), date(2024, 1, 31), now=date(2024, 6, 1))

        (january,) = attach_actuals(periods, [])

        assert january.actual_income == Decimal("0")
        assert january.actual_outgo == Decimal("0")

    def test_summary(self):
        events = [
            supplier_claim(amount="40000", expected_date=date(2024, 1, 10)),
            milestone(amount="67500", expected_date=date(2024, 3, 15)),
        ]
        periods = aggregate(
            events, date(2024, 1, 1), date(2024, 3, 31),
            opening_balance=Decimal("25000"), now=date(2024, 2, 10),
        )
        periods = attach_actuals(periods, [actual(amount="1000", occurred_at=date(2024, 1, 3))])

        summary = summarize(periods)

        assert summary.total_income == Decimal("67500")
        assert summary.total_outgo == Decimal("40000")
        assert summary.net_cashflow == Decimal("27500")
        assert summary.total_actual_income == Decimal("1000")
        assert summary.total_actual_net == Decimal("1000")
        assert summary.historical_periods_count == 1
        assert summary.future_periods_count == 2
        assert summary.lowest_balance == Decimal("-15000")
        assert summary.lowest_balance_date == date(2024, 1, 1)
        assert summary.negative_balance_periods == 2

    def test_summary_of_no_periods(self):
        summary = summarize([])
        assert summary.lowest_balance == Decimal("0")
        assert summary.lowest_balance_date is None
