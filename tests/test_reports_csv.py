"""Tests for CSV report rendering."""

from datetime import date
from decimal import Decimal

from cashflow.data.types import EventKind, MatchStatus
from cashflow.forecast.types import ForecastPeriod
from cashflow.reconciliation.matcher import VarianceMatchResult
from cashflow.reports.csv_export import FORECAST_HEADERS, VARIANCE_HEADERS, forecast_csv, variance_csv


def make_match(**overrides):
    values = dict(
        cash_event_type=EventKind.MILESTONE,
        cash_event_id="milestone-2",
        actual_event_id="actual-4",
        project_id="project-1",
        project_name="Smith Family Home",
        forecast_amount=Decimal("112500.00"),
        forecast_date=date(2024, 4, 1),
        actual_amount=Decimal("110000.00"),
        actual_date=date(2024, 4, 5),
        amount_variance=Decimal("-2500.00"),
        timing_variance=4,
        confidence_score=Decimal("0.9333"),
        status=MatchStatus.MATCHED,
        external_transaction_id="xero-invoice-9",
        external_transaction_type="invoice",
    )
    values.update(overrides)
    return VarianceMatchResult(**values)


class TestForecastCsv:

    def test_header_and_rows(self):
        period = ForecastPeriod(
            key="2024-03",
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
            income=Decimal("67500"),
            outgo=Decimal("3500"),
            net=Decimal("64000"),
            balance=Decimal("314000"),
            is_historical=False,
        )

        lines = forecast_csv([period]).splitlines()

        assert lines[0] == ",".join(FORECAST_HEADERS)
        assert lines[1] == "2024-03,67500.00,3500.00,64000.00,314000.00"

    def test_empty_forecast_has_header_only(self):
        assert forecast_csv([]) == "Month,Income,Outgo,Net,Balance\n"


class TestVarianceCsv:

    def test_row_format(self):
        lines = variance_csv([make_match()]).splitlines()

        assert lines[0] == ",".join(VARIANCE_HEADERS)
        assert lines[1] == (
            "Smith Family Home,milestone,milestone-2,112500.00,2024-04-01,-2500.00,4,93.3,"
            "matched,xero-invoice-9,invoice"
        )

    def test_missing_project_and_reference(self):
        row = variance_csv([
            make_match(project_name=None, external_transaction_id=None, external_transaction_type=None)
        ]).splitlines()[1]

        assert row.startswith("No Project,")
        assert row.endswith(",matched,,")

    def test_names_with_commas_are_quoted(self):
        row = variance_csv([make_match(project_name="Smith, Jones & Co")]).splitlines()[1]
        assert row.startswith('"Smith, Jones & Co",')
