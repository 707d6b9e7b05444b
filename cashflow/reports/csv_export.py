"""CSV renderings of forecasts and variance matches."""
from decimal import Decimal
from typing import Iterable
import csv
import io

from cashflow.core.money import format_amount
from cashflow.forecast.types import ForecastPeriod
from cashflow.reconciliation.matcher import VarianceMatchResult

FORECAST_HEADERS = ["Month", "Income", "Outgo", "Net", "Balance"]

VARIANCE_HEADERS = [
    "Project",
    "ItemType",
    "ItemID",
    "ForecastAmount",
    "ForecastDate",
    "AmountVariance",
    "TimingVarianceDays",
    "ConfidenceScore(%)",
    "Status",
    "ExternalTxnID",
    "ExternalTxnType",
]


def _confidence_percent(score: Decimal) -> str:
    return f"{score * 100:.1f}"


def forecast_csv(periods: Iterable[ForecastPeriod]) -> str:
    """One row per period keyed by ``YYYY-MM`` (or ISO week)."""
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(FORECAST_HEADERS)
    for period in periods:
        writer.writerow([
            period.key,
            format_amount(period.income),
            format_amount(period.outgo),
            format_amount(period.net),
            format_amount(period.balance),
        ])
    return buffer.getvalue()


def variance_csv(matches: Iterable[VarianceMatchResult]) -> str:
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(VARIANCE_HEADERS)
    for match in matches:
        writer.writerow([
            match.project_name or "No Project",
            match.cash_event_type.value,
            match.cash_event_id,
            format_amount(match.forecast_amount),
            match.forecast_date.isoformat(),
            format_amount(match.amount_variance),
            match.timing_variance,
            _confidence_percent(match.confidence_score),
            match.status.value,
            match.external_transaction_id or "",
            match.external_transaction_type or "",
        ])
    return buffer.getvalue()
