"""PIF submission pipeline: initial schema

Creates the three record stages and the audit trail:
- pif_projects_staging / pif_cost_staging: landing area, truncated per load
- pif_projects_inflight / pif_cost_inflight: per-site working set
- pif_projects_approved / pif_cost_approved: permanent archive
- submission_log: one row per finalized submission

Revision ID: 20251105_pif_initial
Revises:
Create Date: 2025-11-05

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20251105_pif_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name):
    """Check if a table exists in the database."""
    from sqlalchemy import inspect
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def key_columns(nullable):
    return [
        sa.Column('request_id', sa.String(16), nullable=nullable),
        sa.Column('subject_id', sa.String(10), nullable=nullable),
        sa.Column('line_number', sa.Integer(), nullable=nullable),
    ]


def project_attribute_columns():
    return [
        sa.Column('status', sa.String(58), nullable=True),
        sa.Column('change_type', sa.String(12), nullable=True),
        sa.Column('accounting_treatment', sa.String(14), nullable=True),
        sa.Column('category', sa.String(26), nullable=True),
        sa.Column('segment', sa.Integer(), nullable=True),
        sa.Column('opco', sa.String(4), nullable=True),
        sa.Column('site', sa.String(4), nullable=True),
        sa.Column('strategic_rank', sa.String(26), nullable=True),
        sa.Column('funding_project', sa.String(10), nullable=True),
        sa.Column('project_name', sa.String(35), nullable=True),
        sa.Column('original_target_date', sa.String(20), nullable=True),
        sa.Column('revised_target_date', sa.String(20), nullable=True),
        sa.Column('moving_isd_year', sa.String(1), nullable=True),
        sa.Column('issue_reference', sa.String(20), nullable=True),
        sa.Column('justification', sa.String(192), nullable=True),
        sa.Column('prior_year_spend_cents', sa.Integer(), nullable=True),
        sa.Column('retain', sa.Boolean(), nullable=True),
        sa.Column('include', sa.Boolean(), nullable=True),
    ]


def cost_attribute_columns():
    return [
        sa.Column('scenario', sa.String(12), nullable=True),
        sa.Column('fiscal_year', sa.Date(), nullable=False),
        sa.Column('requested_cents', sa.Integer(), nullable=True),
        sa.Column('baseline_cents', sa.Integer(), nullable=True),
        sa.Column('variance_cents', sa.Integer(), nullable=True),
    ]


def upgrade() -> None:
    """Create the PIF schema."""

    # =========================================================================
    # 1. STAGING
    # =========================================================================
    if not table_exists('pif_projects_staging'):
        op.create_table(
            'pif_projects_staging',
            sa.Column('id', sa.Integer(), nullable=False),
            *key_columns(nullable=True),
            *project_attribute_columns(),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_pif_projects_staging_id', 'pif_projects_staging', ['id'])
        op.create_index('ix_pif_projects_staging_site', 'pif_projects_staging', ['site'])
        op.create_index('ix_staging_project_key', 'pif_projects_staging',
                        ['request_id', 'subject_id', 'line_number'])

    if not table_exists('pif_cost_staging'):
        op.create_table(
            'pif_cost_staging',
            sa.Column('id', sa.Integer(), nullable=False),
            *key_columns(nullable=True),
            *cost_attribute_columns(),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_pif_cost_staging_id', 'pif_cost_staging', ['id'])
        op.create_index('ix_staging_cost_key', 'pif_cost_staging',
                        ['request_id', 'subject_id', 'line_number'])

    # =========================================================================
    # 2. INFLIGHT
    # =========================================================================
    if not table_exists('pif_projects_inflight'):
        op.create_table(
            'pif_projects_inflight',
            sa.Column('id', sa.Integer(), nullable=False),
            *key_columns(nullable=False),
            *project_attribute_columns(),
            sa.Column('submission_date', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('site', 'request_id', 'subject_id', 'line_number',
                                name='uq_inflight_site_key'),
        )
        op.create_index('ix_pif_projects_inflight_id', 'pif_projects_inflight', ['id'])
        op.create_index('ix_pif_projects_inflight_site', 'pif_projects_inflight', ['site'])

    if not table_exists('pif_cost_inflight'):
        op.create_table(
            'pif_cost_inflight',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('project_row_id', sa.Integer(), nullable=False),
            *key_columns(nullable=False),
            *cost_attribute_columns(),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['project_row_id'], ['pif_projects_inflight.id'], ondelete='CASCADE'),
            sa.UniqueConstraint('project_row_id', 'scenario', 'fiscal_year',
                                name='uq_inflight_cost_cell'),
        )
        op.create_index('ix_pif_cost_inflight_id', 'pif_cost_inflight', ['id'])
        op.create_index('ix_pif_cost_inflight_project_row_id', 'pif_cost_inflight', ['project_row_id'])
        op.create_index('ix_inflight_cost_lookup', 'pif_cost_inflight',
                        ['request_id', 'subject_id', 'line_number', 'scenario', 'fiscal_year'])

    # =========================================================================
    # 3. APPROVED
    # =========================================================================
    if not table_exists('pif_projects_approved'):
        op.create_table(
            'pif_projects_approved',
            sa.Column('id', sa.Integer(), nullable=False),
            *key_columns(nullable=False),
            *project_attribute_columns(),
            sa.Column('submission_date', sa.DateTime(), nullable=False),
            sa.Column('approval_date', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('request_id', 'subject_id', 'line_number', name='uq_approved_key'),
        )
        op.create_index('ix_pif_projects_approved_id', 'pif_projects_approved', ['id'])
        op.create_index('ix_pif_projects_approved_site', 'pif_projects_approved', ['site'])
        op.create_index('ix_pif_projects_approved_approval_date', 'pif_projects_approved', ['approval_date'])

    if not table_exists('pif_cost_approved'):
        op.create_table(
            'pif_cost_approved',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('project_row_id', sa.Integer(), nullable=False),
            *key_columns(nullable=False),
            *cost_attribute_columns(),
            sa.Column('approval_date', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['project_row_id'], ['pif_projects_approved.id'], ondelete='CASCADE'),
            sa.UniqueConstraint('project_row_id', 'scenario', 'fiscal_year',
                                name='uq_approved_cost_cell'),
        )
        op.create_index('ix_pif_cost_approved_id', 'pif_cost_approved', ['id'])
        op.create_index('ix_pif_cost_approved_project_row_id', 'pif_cost_approved', ['project_row_id'])
        op.create_index('ix_approved_cost_lookup', 'pif_cost_approved',
                        ['request_id', 'subject_id', 'line_number', 'scenario', 'fiscal_year'])
        op.create_index('ix_approved_cost_variance', 'pif_cost_approved', ['variance_cents'])

    # =========================================================================
    # 4. SUBMISSION LOG
    # =========================================================================
    if not table_exists('submission_log'):
        op.create_table(
            'submission_log',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('submission_date', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column('submitted_by', sa.String(128), nullable=False),
            sa.Column('site', sa.String(4), nullable=True),
            sa.Column('source_file', sa.String(255), nullable=True),
            sa.Column('record_count', sa.Integer(), nullable=True),
            sa.Column('notes', sa.String(500), nullable=True),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_submission_log_id', 'submission_log', ['id'])


def downgrade() -> None:
    """Drop the PIF schema, cost tables before their project tables."""
    for table in (
        'submission_log',
        'pif_cost_approved',
        'pif_projects_approved',
        'pif_cost_inflight',
        'pif_projects_inflight',
        'pif_cost_staging',
        'pif_projects_staging',
    ):
        if table_exists(table):
            op.drop_table(table)
