"""Baseline migration - identity, organizations, projects and tasks

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates every table of the initial schema. Types are portable so the
same migration runs on PostgreSQL and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(
        name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


def upgrade() -> None:
    """Create identity, organization, project and task tables."""

    # ==========================================================================
    # Identity
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(320), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        _timestamp('created_at'),
    )
    op.create_table(
        'user_candidates',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(320), nullable=False, unique=True),
        sa.Column('secret', sa.String(128), nullable=False),
        sa.Column('status', sa.String(20), server_default=sa.text("'pending'"), nullable=False),
        _timestamp('created_at'),
    )
    op.create_table(
        'sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('valid', sa.Boolean(), server_default=sa.true(), nullable=False),
        _timestamp('created_at'),
        _timestamp('invalidated_at', nullable=True),
    )
    op.create_index('idx_sessions_user', 'sessions', ['user_id'])

    # ==========================================================================
    # Organizations
    # ==========================================================================
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
    )
    op.create_table(
        'organization_members',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        _timestamp('created_at'),
        sa.UniqueConstraint('organization_id', 'user_id', name='uq_org_member'),
    )
    op.create_index('idx_org_members_org_role', 'organization_members', ['organization_id', 'role'])
    op.create_table(
        'invites',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('secret', sa.String(128), nullable=False, unique=True),
        sa.Column('invited_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        _timestamp('created_at'),
    )
    op.create_index('idx_invites_user', 'invites', ['user_id'])
    op.create_index('idx_invites_org_user', 'invites', ['organization_id', 'user_id'])

    # ==========================================================================
    # Projects
    # ==========================================================================
    op.create_table(
        'projects',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _timestamp('created_at'),
    )
    op.create_index('idx_projects_org', 'projects', ['organization_id'])
    op.create_table(
        'project_members',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        _timestamp('created_at'),
        sa.UniqueConstraint('project_id', 'user_id', name='uq_project_member'),
    )

    # ==========================================================================
    # Tasks
    # ==========================================================================
    op.create_table(
        'tasks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assignee_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('priority', sa.String(20), server_default=sa.text("'medium'"), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('difficulty', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), server_default=sa.text("'todo'"), nullable=False),
        _timestamp('started_date', nullable=True),
        sa.Column('exception', sa.Boolean(), server_default=sa.false(), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
    )
    op.create_index('idx_tasks_project_status', 'tasks', ['project_id', 'status'])
    op.create_index('idx_tasks_assignee', 'tasks', ['assignee_id'])
    op.create_table(
        'completed_tasks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('task_id', sa.Uuid(), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('started_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('hours', sa.Integer(), nullable=False),
    )
    op.create_index('idx_completed_tasks_project', 'completed_tasks', ['project_id', 'completed_date'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table('completed_tasks')
    op.drop_table('tasks')
    op.drop_table('project_members')
    op.drop_table('projects')
    op.drop_table('invites')
    op.drop_table('organization_members')
    op.drop_table('organizations')
    op.drop_table('sessions')
    op.drop_table('user_candidates')
    op.drop_table('users')
