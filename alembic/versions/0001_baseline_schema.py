"""baseline_schema

Revision ID: 0001_baseline
Revises: 
Create Date: 2026-10-19 09:00:00.000000

Creates the six application tables. Tables that already exist (databases
created by init_db before migrations were enabled) are left untouched.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    if not table_exists('users'):
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('first_name', sa.String(length=100), nullable=False),
            sa.Column('last_name', sa.String(length=100), nullable=False),
            sa.Column('email', sa.String(length=191), nullable=False),
            sa.Column('password_hash', sa.String(length=255), nullable=False),
            sa.Column('phone_number', sa.String(length=20), nullable=True),
            sa.Column('role', sa.String(length=20), nullable=False),
            sa.Column('cv_skills', sa.Text(), nullable=True),
            sa.Column('cv_experience', sa.Text(), nullable=True),
            sa.Column('cv_education', sa.Text(), nullable=True),
            sa.Column('cv_summary', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    if not table_exists('plans'):
        op.create_table('plans',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
            sa.Column('duration', sa.Integer(), nullable=False),
            sa.Column('features', sa.Text(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_plans_id'), 'plans', ['id'], unique=False)
        op.create_index(op.f('ix_plans_is_active'), 'plans', ['is_active'], unique=False)

    if not table_exists('subscriptions'):
        op.create_table('subscriptions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('plan_id', sa.Integer(), nullable=False),
            sa.Column('start_date', sa.DateTime(), nullable=False),
            sa.Column('end_date', sa.DateTime(), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('stripe_session_id', sa.String(length=255), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['plan_id'], ['plans.id'], ),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('stripe_session_id')
        )
        op.create_index(op.f('ix_subscriptions_id'), 'subscriptions', ['id'], unique=False)
        op.create_index(op.f('ix_subscriptions_user_id'), 'subscriptions', ['user_id'], unique=False)
        op.create_index(op.f('ix_subscriptions_plan_id'), 'subscriptions', ['plan_id'], unique=False)
        op.create_index('idx_subscription_user_status', 'subscriptions', ['user_id', 'status'], unique=False)

    if not table_exists('discussions'):
        op.create_table('discussions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('title', sa.String(length=255), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('last_message_at', sa.DateTime(), nullable=False),
            sa.Column('cv_skills', sa.Text(), nullable=True),
            sa.Column('cv_experience', sa.Text(), nullable=True),
            sa.Column('cv_education', sa.Text(), nullable=True),
            sa.Column('cv_summary', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_discussions_id'), 'discussions', ['id'], unique=False)
        op.create_index(op.f('ix_discussions_user_id'), 'discussions', ['user_id'], unique=False)
        op.create_index(op.f('ix_discussions_status'), 'discussions', ['status'], unique=False)
        op.create_index('idx_discussion_user_last_message', 'discussions', ['user_id', 'last_message_at'], unique=False)

    if not table_exists('messages'):
        op.create_table('messages',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('discussion_id', sa.Integer(), nullable=False),
            sa.Column('role', sa.String(length=10), nullable=False),
            sa.Column('type', sa.String(length=10), nullable=False),
            sa.Column('content', sa.Text(), nullable=False),
            sa.Column('audio_url', sa.String(length=500), nullable=True),
            sa.Column('label', sa.String(length=255), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['discussion_id'], ['discussions.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_messages_id'), 'messages', ['id'], unique=False)
        op.create_index(op.f('ix_messages_discussion_id'), 'messages', ['discussion_id'], unique=False)
        op.create_index('idx_message_discussion_created', 'messages', ['discussion_id', 'created_at'], unique=False)

    if not table_exists('meetings'):
        op.create_table('meetings',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('title', sa.String(length=255), nullable=False),
            sa.Column('date', sa.DateTime(), nullable=False),
            sa.Column('duration', sa.Integer(), nullable=False),
            sa.Column('type', sa.String(length=20), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_meetings_id'), 'meetings', ['id'], unique=False)
        op.create_index(op.f('ix_meetings_user_id'), 'meetings', ['user_id'], unique=False)


def downgrade() -> None:
    for table in ('meetings', 'messages', 'discussions', 'subscriptions', 'plans', 'users'):
        if table_exists(table):
            op.drop_table(table)
