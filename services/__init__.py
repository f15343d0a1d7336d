"""Visa rules engine, feasibility and application lifecycle services."""
