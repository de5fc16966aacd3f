"""Create the transfer core tables.

Profiles, exchange rates, payout and receiving accounts, transfers with their
cardless withdrawals and chats, in-app notifications and the audit trail.

Revision ID: a1c4e7f20b31
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


# revision identifiers, used by Alembic.
revision: str = 'a1c4e7f20b31'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='user'),
        sa.Column('is_blocked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)

    op.create_table(
        'exchange_rates',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('currency_pair', sa.String(), nullable=False),
        sa.Column('provider_rate', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('profit_margin', sa.Numeric(precision=12, scale=8), nullable=False, server_default='0'),
        sa.Column('our_rate', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('updated_by', sa.String(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_exchange_rates_currency_pair', 'exchange_rates', ['currency_pair'], unique=True)

    op.create_table(
        'saved_accounts',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('details', JSONB, nullable=False),
        sa.Column('usdt_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_by', sa.String(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_saved_accounts_user_id', 'saved_accounts', ['user_id'])

    op.create_table(
        'admin_accounts',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('account_type', sa.String(length=32), nullable=False),
        sa.Column('account_details', JSONB, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_admin_accounts_currency', 'admin_accounts', ['currency'])
    # At most one active receiving account per currency
    op.create_index(
        'uq_admin_accounts_active_currency',
        'admin_accounts',
        ['currency'],
        unique=True,
        postgresql_where=sa.text('is_active'),
    )

    op.create_table(
        'transfers',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('kind', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('amount', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('origin_currency', sa.String(), nullable=False),
        sa.Column('destination_currency', sa.String(), nullable=False),
        sa.Column('exchange_rate', sa.Numeric(precision=24, scale=12), nullable=False),
        sa.Column('destination_amount', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('destination_type', sa.String(length=32), nullable=True),
        sa.Column('destination_details', JSONB, nullable=True),
        sa.Column('saved_account_id', sa.String(), sa.ForeignKey('saved_accounts.id'), nullable=True),
        sa.Column('deposit_confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_transfers_user_id', 'transfers', ['user_id'])
    op.create_index('ix_transfers_status', 'transfers', ['status'])
    op.create_index('ix_transfers_destination_currency', 'transfers', ['destination_currency'])

    op.create_table(
        'cardless_withdrawals',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('transfer_id', sa.String(), sa.ForeignKey('transfers.id'), nullable=False),
        sa.Column('code', sa.String(length=8), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='active'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_by', sa.String(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transfer_id', name='uq_cardless_withdrawals_transfer_id')
    )

    op.create_table(
        'transfer_chats',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('transfer_id', sa.String(), sa.ForeignKey('transfers.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transfer_id', name='uq_transfer_chats_transfer_id')
    )

    op.create_table(
        'chat_messages',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('chat_id', sa.String(), sa.ForeignKey('transfer_chats.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_system', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_chat_messages_chat_id', 'chat_messages', ['chat_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('transfer_id', sa.String(), sa.ForeignKey('transfers.id'), nullable=True),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(), nullable=False),
        # What changed
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.String(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('field_name', sa.String(), nullable=True),
        # Values
        sa.Column('old_value', JSONB, nullable=True),
        sa.Column('new_value', JSONB, nullable=True),
        # Who/what
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('source', sa.String(), nullable=False, server_default='api'),
        # Context
        sa.Column('extra_data', JSONB, nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])
    op.create_index('ix_audit_log_entity', 'audit_logs', ['entity_type', 'entity_id'])
    op.create_index('ix_audit_log_user_time', 'audit_logs', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('notifications')
    op.drop_table('chat_messages')
    op.drop_table('transfer_chats')
    op.drop_table('cardless_withdrawals')
    op.drop_table('transfers')
    op.drop_index('uq_admin_accounts_active_currency', table_name='admin_accounts')
    op.drop_table('admin_accounts')
    op.drop_table('saved_accounts')
    op.drop_table('exchange_rates')
    op.drop_table('profiles')
