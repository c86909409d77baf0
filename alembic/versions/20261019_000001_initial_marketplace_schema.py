"""Initial marketplace schema.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, products, orders, ledger and exchange rate tables."""

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(64), nullable=False),
        sa.Column('invite_code', sa.String(80), nullable=False),
        sa.Column('inviter_id', sa.Integer(), nullable=True),
        sa.Column('inviter_assignment', sa.String(32), nullable=True, comment='direct_invite (BIC), default_assigned (NIC) or root'),
        sa.Column('wallet_balance', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('sales_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sales_total', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('purchases_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('purchases_total', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('earnings_total', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('earnings_from_sales', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('earnings_from_referrals', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('referrals_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_root', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['inviter_id'], ['users.id'], ondelete='RESTRICT'),
        sa.CheckConstraint('inviter_id IS NULL OR inviter_id <> id', name='check_user_not_own_inviter'),
        sa.CheckConstraint('wallet_balance >= 0', name='check_user_balance_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_invite_code', 'users', ['invite_code'], unique=True)
    op.create_index('ix_users_inviter_id', 'users', ['inviter_id'])

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('price_local', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('currency_code', sa.String(8), nullable=False, server_default='THB'),
        sa.Column('fin_fee_percent', sa.DECIMAL(5, 2), nullable=False),
        sa.Column('amount_fee', sa.DECIMAL(18, 8), nullable=False, comment='price_local * fin_fee_percent / 100, stamped on write'),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id'], ondelete='RESTRICT'),
        sa.CheckConstraint('price_local > 0', name='check_product_price_positive'),
        sa.CheckConstraint('fin_fee_percent >= 0 AND fin_fee_percent <= 100', name='check_product_fee_percent_range'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_seller_id', 'products', ['seller_id'])
    op.create_index('ix_products_status', 'products', ['status'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_number', sa.String(40), nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(24), nullable=False, server_default='pending'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('currency_code', sa.String(8), nullable=False),
        sa.Column('subtotal', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('shipping_fee', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('fin_fee_percent', sa.DECIMAL(5, 2), nullable=False),
        sa.Column('community_fee', sa.DECIMAL(18, 8), nullable=False, comment='Fee pool: subtotal * fin_fee_percent / 100'),
        sa.Column('conversion_rate', sa.DECIMAL(24, 12), nullable=False, comment='Price of 1 WLD in currency_code'),
        sa.Column('rate_locked_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('rate_source', sa.String(16), nullable=False),
        sa.Column('total_wld', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('tracking_number', sa.String(100), nullable=True),
        sa.Column('shipping_provider', sa.String(100), nullable=True),
        sa.Column('is_reviewed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('cancel_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('shipped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refunded_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['buyer_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='RESTRICT'),
        sa.CheckConstraint('buyer_id <> seller_id', name='check_order_not_self_purchase'),
        sa.CheckConstraint('subtotal > 0', name='check_order_subtotal_positive'),
        sa.CheckConstraint('shipping_fee >= 0', name='check_order_shipping_non_negative'),
        sa.CheckConstraint('conversion_rate > 0', name='check_order_rate_positive'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number'),
    )
    op.create_index('ix_orders_buyer_id', 'orders', ['buyer_id'])
    op.create_index('ix_orders_seller_id', 'orders', ['seller_id'])
    op.create_index('ix_orders_product_id', 'orders', ['product_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])

    op.create_table(
        'order_transitions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('from_status', sa.String(24), nullable=False),
        sa.Column('to_status', sa.String(24), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('order_id', 'from_status', 'to_status', name='uq_order_transition_edge'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_transitions_order_id', 'order_transitions', ['order_id'])

    op.create_table(
        'referrals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referred_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('commission_rate', sa.DECIMAL(6, 4), nullable=False),
        sa.Column('total_earnings', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['referred_id'], ['users.id'], ondelete='RESTRICT'),
        sa.UniqueConstraint('referrer_id', 'referred_id', name='uq_referral_pair'),
        sa.CheckConstraint('level >= 1', name='check_referral_level_positive'),
        sa.CheckConstraint('referrer_id <> referred_id', name='check_referral_not_self'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])
    op.create_index('ix_referrals_referred_id', 'referrals', ['referred_id'])

    op.create_table(
        'earnings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('earning_type', sa.String(16), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 8), nullable=False, comment='Amount in the order currency'),
        sa.Column('currency_code', sa.String(8), nullable=False),
        sa.Column('amount_wld', sa.DECIMAL(18, 8), nullable=False, comment="amount converted with the order's stamped rate"),
        sa.Column('source_order_id', sa.Integer(), nullable=False),
        sa.Column('referral_id', sa.Integer(), nullable=True),
        sa.Column('referral_level', sa.Integer(), nullable=True),
        sa.Column('commission_rate', sa.DECIMAL(6, 4), nullable=True),
        sa.Column('paid', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('tx_hash', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['source_order_id'], ['orders.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['referral_id'], ['referrals.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('source_order_id', 'user_id', name='uq_earning_order_beneficiary'),
        sa.CheckConstraint('amount >= 0', name='check_earning_amount_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_earnings_user_id', 'earnings', ['user_id'])
    op.create_index('ix_earnings_earning_type', 'earnings', ['earning_type'])
    op.create_index('ix_earnings_source_order_id', 'earnings', ['source_order_id'])

    op.create_table(
        'exchange_rates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('currency_code', sa.String(8), nullable=False),
        sa.Column('rate', sa.DECIMAL(24, 12), nullable=False),
        sa.Column('source', sa.String(32), nullable=False, server_default='coingecko'),
        sa.Column('fetched_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_exchange_rates_currency_fetched', 'exchange_rates', ['currency_code', 'fetched_at'])

    op.create_table(
        'rate_locks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('scope_key', sa.String(128), nullable=False),
        sa.Column('currency_code', sa.String(8), nullable=False),
        sa.Column('rate', sa.DECIMAL(24, 12), nullable=False),
        sa.Column('locked_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('released_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_rate_locks_scope_currency', 'rate_locks', ['scope_key', 'currency_code'])
    # At most one active lock per scope and currency
    op.create_index(
        'uq_rate_locks_active_scope_currency',
        'rate_locks',
        ['scope_key', 'currency_code'],
        unique=True,
        postgresql_where=sa.text('released_at IS NULL'),
    )


def downgrade() -> None:
    """Drop the marketplace schema."""

    op.drop_index('uq_rate_locks_active_scope_currency', 'rate_locks')
    op.drop_index('idx_rate_locks_scope_currency', 'rate_locks')
    op.drop_table('rate_locks')

    op.drop_index('idx_exchange_rates_currency_fetched', 'exchange_rates')
    op.drop_table('exchange_rates')

    op.drop_index('ix_earnings_source_order_id', 'earnings')
    op.drop_index('ix_earnings_earning_type', 'earnings')
    op.drop_index('ix_earnings_user_id', 'earnings')
    op.drop_table('earnings')

    op.drop_index('ix_referrals_referred_id', 'referrals')
    op.drop_index('ix_referrals_referrer_id', 'referrals')
    op.drop_table('referrals')

    op.drop_index('ix_order_transitions_order_id', 'order_transitions')
    op.drop_table('order_transitions')

    op.drop_index('ix_orders_status', 'orders')
    op.drop_index('ix_orders_product_id', 'orders')
    op.drop_index('ix_orders_seller_id', 'orders')
    op.drop_index('ix_orders_buyer_id', 'orders')
    op.drop_table('orders')

    op.drop_index('ix_products_status', 'products')
    op.drop_index('ix_products_seller_id', 'products')
    op.drop_table('products')

    op.drop_index('ix_users_inviter_id', 'users')
    op.drop_index('ix_users_invite_code', 'users')
    op.drop_index('ix_users_username', 'users')
    op.drop_table('users')
