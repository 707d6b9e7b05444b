"""Forecast vs actual variance matching."""
