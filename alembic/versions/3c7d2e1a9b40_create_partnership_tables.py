"""create users, shared settings and partner invites

Revision ID: 3c7d2e1a9b40
Revises: 
Create Date: 2026-09-28 10:12:41.503218

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c7d2e1a9b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns():
	return [
		sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
		sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
		sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
		sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
	]


def upgrade() -> None:
	"""Upgrade schema."""
	op.create_table(
		'users',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('email', sa.String(), nullable=False),
		sa.Column('name', sa.String(), nullable=False),
		sa.Column('hashed_password', sa.String(), nullable=False),
		sa.Column('is_active', sa.Boolean(), nullable=True),
		sa.Column('persona', sa.String(length=16), nullable=True),
		sa.Column('primary_user_id', sa.Integer(), nullable=True),
		sa.Column('onboarding_step', sa.Integer(), nullable=False, server_default='0'),
		sa.Column('onboarding_complete', sa.Boolean(), nullable=False, server_default=sa.false()),
		*_audit_columns(),
		sa.ForeignKeyConstraint(['primary_user_id'], ['users.id']),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
	op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
	# One secondary per primary
	op.create_index(op.f('ix_users_primary_user_id'), 'users', ['primary_user_id'], unique=True)

	op.create_table(
		'shared_settings',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('user_id', sa.Integer(), nullable=False),
		sa.Column('group_id', sa.String(length=64), nullable=True),
		sa.Column('group_name', sa.String(length=255), nullable=True),
		sa.Column('currency_code', sa.String(length=3), nullable=True),
		sa.Column('default_split_ratio', sa.String(length=32), nullable=True),
		sa.Column('currency_synced_at', sa.DateTime(timezone=True), nullable=True),
		sa.Column('emoji', sa.String(length=16), nullable=False, server_default='✅'),
		sa.Column('use_description_as_payee', sa.Boolean(), nullable=False, server_default=sa.true()),
		sa.Column('custom_payee_name', sa.String(length=255), nullable=True),
		*_audit_columns(),
		sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_shared_settings_id'), 'shared_settings', ['id'], unique=False)
	op.create_index(op.f('ix_shared_settings_user_id'), 'shared_settings', ['user_id'], unique=True)
	op.create_index(op.f('ix_shared_settings_group_id'), 'shared_settings', ['group_id'], unique=False)
	# Live members of one group never share an emoji
	op.create_index(
		'uq_shared_settings_group_emoji',
		'shared_settings',
		['group_id', 'emoji'],
		unique=True,
		sqlite_where=sa.text('is_deleted = 0'),
		postgresql_where=sa.text('is_deleted = false')
	)

	op.create_table(
		'partner_invites',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('token', sa.String(length=32), nullable=False),
		sa.Column('primary_user_id', sa.Integer(), nullable=False),
		sa.Column('partner_email', sa.String(), nullable=False),
		sa.Column('partner_name', sa.String(), nullable=True),
		sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
		sa.Column('group_id', sa.String(length=64), nullable=True),
		sa.Column('group_name', sa.String(length=255), nullable=True),
		sa.Column('currency_code', sa.String(length=3), nullable=True),
		sa.Column('default_split_ratio', sa.String(length=32), nullable=True),
		sa.Column('primary_emoji', sa.String(length=16), nullable=True),
		sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
		sa.Column('email_sent_at', sa.DateTime(timezone=True), nullable=True),
		sa.Column('email_reminder_count', sa.Integer(), nullable=False, server_default='0'),
		sa.Column('max_reminders', sa.Integer(), nullable=False, server_default='3'),
		sa.Column('accepted_by_user_id', sa.Integer(), nullable=True),
		sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
		*_audit_columns(),
		sa.ForeignKeyConstraint(['primary_user_id'], ['users.id'], ondelete='CASCADE'),
		sa.ForeignKeyConstraint(['accepted_by_user_id'], ['users.id'], ondelete='SET NULL'),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_partner_invites_id'), 'partner_invites', ['id'], unique=False)
	op.create_index(op.f('ix_partner_invites_token'), 'partner_invites', ['token'], unique=True)
	op.create_index(op.f('ix_partner_invites_primary_user_id'), 'partner_invites', ['primary_user_id'], unique=False)
	op.create_index(op.f('ix_partner_invites_status'), 'partner_invites', ['status'], unique=False)
	# At most one pending invite per primary
	op.create_index(
		'uq_partner_invites_pending_primary',
		'partner_invites',
		['primary_user_id'],
		unique=True,
		sqlite_where=sa.text("status = 'pending'"),
		postgresql_where=sa.text("status = 'pending'")
	)


def downgrade() -> None:
	"""Downgrade schema."""
	op.drop_index('uq_partner_invites_pending_primary', table_name='partner_invites')
	op.drop_index(op.f('ix_partner_invites_status'), table_name='partner_invites')
	op.drop_index(op.f('ix_partner_invites_primary_user_id'), table_name='partner_invites')
	op.drop_index(op.f('ix_partner_invites_token'), table_name='partner_invites')
	op.drop_index(op.f('ix_partner_invites_id'), table_name='partner_invites')
	op.drop_table('partner_invites')
	op.drop_index('uq_shared_settings_group_emoji', table_name='shared_settings')
	op.drop_index(op.f('ix_shared_settings_group_id'), table_name='shared_settings')
	op.drop_index(op.f('ix_shared_settings_user_id'), table_name='shared_settings')
	op.drop_index(op.f('ix_shared_settings_id'), table_name='shared_settings')
	op.drop_table('shared_settings')
	op.drop_index(op.f('ix_users_primary_user_id'), table_name='users')
	op.drop_index(op.f('ix_users_email'), table_name='users')
	op.drop_index(op.f('ix_users_id'), table_name='users')
	op.drop_table('users')
