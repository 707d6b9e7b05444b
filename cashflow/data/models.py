"""Persistence models for organizations, projects and their cash sources.

These rows are owned by the storage/sync collaborators. The engines only ever
see the frozen snapshots built from them in ``cashflow.data.repository``.
"""
import secrets

from sqlalchemy import (
    Column, String, DateTime, Date, Numeric, Boolean, Integer, Text, ForeignKey, UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from cashflow.database import Base


def generate_id(prefix: str) -> str:
    """Generate a unique ID with a prefix."""
    return f"{prefix}_{secrets.token_hex(6)}"


class Organization(Base):
    """A construction business. Holds the opening cash balance for forecasts."""

    __tablename__ = "organizations"

    id = Column(String, primary_key=True, default=lambda: generate_id("org"))
    name = Column(String, nullable=False)
    starting_balance = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    currency = Column(String, nullable=False, default="AUD")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    projects = relationship("Project", back_populates="organization", cascade="all, delete-orphan")
    forecast_lines = relationship("ForecastLine", back_populates="organization", cascade="all, delete-orphan")
    scenarios = relationship("Scenario", back_populates="organization", cascade="all, delete-orphan")
    actual_events = relationship("ActualEvent", back_populates="organization", cascade="all, delete-orphan")
    variance_matches = relationship("VarianceMatch", back_populates="organization", cascade="all, delete-orphan")


class Project(Base):
    """A construction contract. Retention terms apply to all of its milestones."""

    __tablename__ = "projects"

    id = Column(String, primary_key=True, default=lambda: generate_id("proj"))
    organization_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    contract_value = Column(Numeric(precision=15, scale=2), nullable=True)
    status = Column(String, nullable=False, default="active")
    # Options: "planning", "active", "completed", "on_hold"

    retention_percentage = Column(Numeric(precision=5, scale=2), nullable=False, default=0)
    retention_release_days = Column(Integer, nullable=False, default=84)

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    organization = relationship("Organization", back_populates="projects")
    milestones = relationship("Milestone", back_populates="project", cascade="all, delete-orphan")
    supplier_claims = relationship("SupplierClaim", back_populates="project", cascade="all, delete-orphan")
    material_orders = relationship("MaterialOrder", back_populates="project", cascade="all, delete-orphan")


class Milestone(Base):
    """A progress-claim milestone (income)."""

    __tablename__ = "milestones"

    id = Column(String, primary_key=True, default=lambda: generate_id("ms"))
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text)

    # Either an explicit amount, or contract_value x percentage / 100
    amount = Column(Numeric(precision=15, scale=2), nullable=True)
    contract_value = Column(Numeric(precision=15, scale=2), nullable=True)
    percentage = Column(Numeric(precision=5, scale=2), nullable=True)

    expected_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="pending")
    # Options: "pending", "invoiced", "paid", "cancelled"

    # Overrides for the project's retention terms
    retention_amount = Column(Numeric(precision=15, scale=2), nullable=True)
    retention_release_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    project = relationship("Project", back_populates="milestones")


class SupplierClaim(Base):
    """A subcontractor/supplier progress claim (outgo)."""

    __tablename__ = "supplier_claims"

    id = Column(String, primary_key=True, default=lambda: generate_id("claim"))
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    supplier_name = Column(String, nullable=False)
    description = Column(Text)
    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    expected_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    project = relationship("Project", back_populates="supplier_claims")


class MaterialOrder(Base):
    """A materials purchase order (outgo)."""

    __tablename__ = "material_orders"

    id = Column(String, primary_key=True, default=lambda: generate_id("order"))
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    supplier_name = Column(String, nullable=False)
    description = Column(Text)
    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    expected_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    project = relationship("Project", back_populates="material_orders")


class ForecastLine(Base):
    """Recurring or one-off overhead (rent, payroll, insurance...)."""

    __tablename__ = "forecast_lines"

    id = Column(String, primary_key=True, default=lambda: generate_id("line"))
    organization_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(String, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    name = Column(String, nullable=False)
    vendor_name = Column(String)

    type = Column(String, nullable=False)  # "income" | "outgo"
    frequency = Column(String, nullable=False, default="monthly")
    # Options: "once", "weekly", "monthly", "quarterly"

    base_amount = Column(Numeric(precision=15, scale=2), nullable=False)
    inflation_rate = Column(Numeric(precision=8, scale=5), nullable=True)
    escalation_rate = Column(Numeric(precision=8, scale=5), nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)  # Null = ongoing
    is_overhead = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    organization = relationship("Organization", back_populates="forecast_lines")


class Scenario(Base):
    """A named what-if. Exactly one base scenario per organization."""

    __tablename__ = "scenarios"
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_scenarios_org_name"),
    )

    id = Column(String, primary_key=True, default=lambda: generate_id("scenario"))
    organization_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    is_base = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    organization = relationship("Organization", back_populates="scenarios")
    shifts = relationship("ScenarioShift", back_populates="scenario", cascade="all, delete-orphan")


class ScenarioShift(Base):
    """Date/amount offset for one scheduled entity inside a scenario."""

    __tablename__ = "scenario_shifts"
    __table_args__ = (
        UniqueConstraint("scenario_id", "entity_type", "entity_id", name="uq_scenario_shifts_entity"),
    )

    id = Column(String, primary_key=True, default=lambda: generate_id("shift"))
    scenario_id = Column(String, ForeignKey("scenarios.id", ondelete="CASCADE"), nullable=False, index=True)
    entity_type = Column(String, nullable=False)  # "milestone" | "supplier_claim" | "material_order"
    entity_id = Column(String, nullable=False)
    days_shift = Column(Integer, nullable=False, default=0)
    amount_shift = Column(Numeric(precision=15, scale=2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    scenario = relationship("Scenario", back_populates="shifts")


class ActualEvent(Base):
    """A transaction materialized by the accounting sync."""

    __tablename__ = "actual_events"
    __table_args__ = (
        Index("ix_actual_events_org_basis_date", "organization_id", "basis", "occurred_at"),
    )

    id = Column(String, primary_key=True, default=lambda: generate_id("actual"))
    organization_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(String, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    type = Column(String, nullable=False)  # "income" | "outgo"
    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    occurred_at = Column(Date, nullable=False)
    basis = Column(String, nullable=False, default="accrual")  # "cash" | "accrual"

    # External accounting reference, e.g. ("ACCREC", "INV-0042")
    source_type = Column(String, nullable=True)
    source_id = Column(String, nullable=True)
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    organization = relationship("Organization", back_populates="actual_events")


class VarianceMatch(Base):
    """Persisted pairing of a scheduled event with an actual transaction."""

    __tablename__ = "variance_matches"

    id = Column(String, primary_key=True, default=lambda: generate_id("match"))
    organization_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(String, nullable=True, index=True)
    basis = Column(String, nullable=False, default="accrual")

    cash_event_type = Column(String, nullable=False)
    cash_event_id = Column(String, nullable=False)
    actual_event_id = Column(String, nullable=False)
    external_transaction_id = Column(String, nullable=True)
    external_transaction_type = Column(String, nullable=True)

    forecast_amount = Column(Numeric(precision=15, scale=2), nullable=False)
    forecast_date = Column(Date, nullable=False)
    amount_variance = Column(Numeric(precision=15, scale=2), nullable=False)
    timing_variance = Column(Integer, nullable=False)
    confidence_score = Column(Numeric(precision=5, scale=4), nullable=False)
    status = Column(String, nullable=False, default="matched")  # "matched" | "disputed" | "resolved"

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    organization = relationship("Organization", back_populates="variance_matches")
