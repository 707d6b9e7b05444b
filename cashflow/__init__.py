"""Construction cashflow forecasting and reconciliation backend."""
