"""create_cashflow_tables

Revision ID: 3f1c2a7d9e10
Revises:
Create Date: 2026-03-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a7d9e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(precision=15, scale=2)


def _created_at() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    op.create_table(
        'organizations',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('starting_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('currency', sa.String(), nullable=False, server_default='AUD'),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'projects',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('contract_value', MONEY, nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('retention_percentage', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('retention_release_days', sa.Integer(), nullable=False, server_default='84'),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_projects_organization_id', 'projects', ['organization_id'])

    op.create_table(
        'milestones',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('project_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('amount', MONEY, nullable=True),
        sa.Column('contract_value', MONEY, nullable=True),
        sa.Column('percentage', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('expected_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('retention_amount', MONEY, nullable=True),
        sa.Column('retention_release_date', sa.Date(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_milestones_project_id', 'milestones', ['project_id'])

    # Supplier claims and material orders share a shape
    for table in ('supplier_claims', 'material_orders'):
        op.create_table(
            table,
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('project_id', sa.String(), nullable=False),
            sa.Column('supplier_name', sa.String(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('amount', MONEY, nullable=False),
            sa.Column('expected_date', sa.Date(), nullable=False),
            sa.Column('status', sa.String(), nullable=False, server_default='pending'),
            _created_at(),
            sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(f'ix_{table}_project_id', table, ['project_id'])

    op.create_table(
        'forecast_lines',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('project_id', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('vendor_name', sa.String(), nullable=True),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('frequency', sa.String(), nullable=False, server_default='monthly'),
        sa.Column('base_amount', MONEY, nullable=False),
        sa.Column('inflation_rate', sa.Numeric(precision=8, scale=5), nullable=True),
        sa.Column('escalation_rate', sa.Numeric(precision=8, scale=5), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_overhead', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_forecast_lines_organization_id', 'forecast_lines', ['organization_id'])

    op.create_table(
        'scenarios',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_base', sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'name', name='uq_scenarios_org_name')
    )
    op.create_index('ix_scenarios_organization_id', 'scenarios', ['organization_id'])

    op.create_table(
        'scenario_shifts',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('scenario_id', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.String(), nullable=False),
        sa.Column('days_shift', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('amount_shift', MONEY, nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['scenario_id'], ['scenarios.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('scenario_id', 'entity_type', 'entity_id', name='uq_scenario_shifts_entity')
    )
    op.create_index('ix_scenario_shifts_scenario_id', 'scenario_shifts', ['scenario_id'])

    op.create_table(
        'actual_events',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('project_id', sa.String(), nullable=True),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('occurred_at', sa.Date(), nullable=False),
        sa.Column('basis', sa.String(), nullable=False, server_default='accrual'),
        sa.Column('source_type', sa.String(), nullable=True),
        sa.Column('source_id', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_actual_events_org_basis_date', 'actual_events', ['organization_id', 'basis', 'occurred_at']
    )

    op.create_table(
        'variance_matches',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('project_id', sa.String(), nullable=True),
        sa.Column('basis', sa.String(), nullable=False, server_default='accrual'),
        sa.Column('cash_event_type', sa.String(), nullable=False),
        sa.Column('cash_event_id', sa.String(), nullable=False),
        sa.Column('actual_event_id', sa.String(), nullable=False),
        sa.Column('external_transaction_id', sa.String(), nullable=True),
        sa.Column('external_transaction_type', sa.String(), nullable=True),
        sa.Column('forecast_amount', MONEY, nullable=False),
        sa.Column('forecast_date', sa.Date(), nullable=False),
        sa.Column('amount_variance', MONEY, nullable=False),
        sa.Column('timing_variance', sa.Integer(), nullable=False),
        sa.Column('confidence_score', sa.Numeric(precision=5, scale=4), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='matched'),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_variance_matches_organization_id', 'variance_matches', ['organization_id'])
    op.create_index('ix_variance_matches_project_id', 'variance_matches', ['project_id'])


def downgrade() -> None:
    op.drop_table('variance_matches')
    op.drop_table('actual_events')
    op.drop_table('scenario_shifts')
    op.drop_table('scenarios')
    op.drop_table('forecast_lines')
    op.drop_table('material_orders')
    op.drop_table('supplier_claims')
    op.drop_table('milestones')
    op.drop_table('projects')
    op.drop_table('organizations')
