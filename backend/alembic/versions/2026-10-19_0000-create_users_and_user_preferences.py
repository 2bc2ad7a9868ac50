"""create_users_and_user_preferences

Revision ID: 4b1c2d3e5f60
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4b1c2d3e5f60'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the consent schema.

    Creates the following tables:
    1. users - Account identity (provisioned by sign-up)
    2. user_preferences - Four email consent flags, at most one row per user

    The UNIQUE constraint on user_preferences.user_id is the conflict target
    of every preference write (INSERT ... ON CONFLICT (user_id)).
    """

    # ================================
    # Create users table
    # ================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='Auto-incrementing primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
        sa.Column('email', sa.String(length=255), nullable=False, comment="User's email address. Must be unique."),
        sa.Column('username', sa.String(length=100), nullable=False, comment='Public handle'),
        sa.Column('name', sa.String(length=100), nullable=False, comment='Display name'),
        sa.Column('avatar', sa.String(length=500), nullable=True, comment='Avatar image URL'),
        sa.Column('is_active', sa.Boolean(), nullable=False, comment='Disabled accounts cannot use the dashboard'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('username', name=op.f('uq_users_username')),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    # ================================
    # Create user_preferences table
    # ================================
    op.create_table(
        'user_preferences',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='Auto-incrementing primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
        sa.Column('user_id', sa.Integer(), nullable=False, comment='Foreign key to users table'),
        sa.Column('email_notifications', sa.Boolean(), server_default=sa.text('true'), nullable=False, comment='Master switch for all email notifications'),
        sa.Column('weekly_digest', sa.Boolean(), server_default=sa.text('true'), nullable=False, comment='Weekly digest emails'),
        sa.Column('new_skill_alerts', sa.Boolean(), server_default=sa.text('true'), nullable=False, comment='New skill alert emails'),
        sa.Column('pack_alerts', sa.Boolean(), server_default=sa.text('true'), nullable=False, comment='Skill pack alert emails'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_user_preferences_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user_preferences')),
        sa.UniqueConstraint('user_id', name=op.f('uq_user_preferences_user_id')),
    )


def downgrade() -> None:
    """Drop the consent schema."""
    op.drop_table('user_preferences')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
