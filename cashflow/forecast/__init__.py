"""Forecast projection: event expansion, period aggregation and the engine."""
