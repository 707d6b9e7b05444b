"""
Error taxonomy for the forecast and reconciliation engines.

- ValidationError: bad input (inverted range, foreign-organization entity,
  scenario/organization mismatch). Reported to the caller, never retried.
- NotFoundError: unknown organization, scenario, project or match.
- UpstreamUnavailableError: the storage collaborator failed. Callers may retry.
- DataIntegrityError: source data rejected before the engine runs
  (e.g. milestone percentages not totalling 100).
"""
from typing import Optional


class CashflowError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CashflowError):
    """Input rejected by the engine."""


class InvalidRangeError(ValidationError):
    """End date falls before start date."""

    def __init__(self, start_date, end_date):
        super().__init__(f"End date {end_date} is before start date {start_date}")
        self.start_date = start_date
        self.end_date = end_date


class NotFoundError(CashflowError):
    """A referenced record does not exist."""

    def __init__(self, entity: str, entity_id: Optional[str]):
        super().__init__(f"{entity.replace('_', ' ').capitalize()} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class UpstreamUnavailableError(CashflowError):
    """The storage collaborator could not be reached or failed mid-read."""


class DataIntegrityError(CashflowError):
    """Source records fail an upstream integrity check."""
