"""initial exchange rate engine schema

Revision ID: 3b7e2c41a9d0
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3b7e2c41a9d0'
down_revision = None
branch_labels = None
depends_on = None

ACCOUNT_TYPES = (
    'CHEQUING', 'SAVINGS', 'CASH', 'INVESTMENT', 'ASSET', 'OTHER',
    'CREDIT_CARD', 'LOAN', 'MORTGAGE', 'LINE_OF_CREDIT',
)
ACCOUNT_SUB_TYPES = ('INVESTMENT_CASH', 'INVESTMENT_BROKERAGE')
INVESTMENT_ACTIONS = (
    'BUY', 'SELL', 'REINVEST', 'TRANSFER_IN', 'TRANSFER_OUT', 'DIVIDEND', 'SPLIT',
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'currencies',
        sa.Column('code', sa.String(length=3), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('symbol', sa.String(length=10), nullable=False),
        sa.Column('decimal_places', sa.SmallInteger(), nullable=False, server_default='2'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['created_by_user_id'], ['users.id'],
            name='fk_currencies_created_by_user_id_users', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('code', name='pk_currencies'),
    )

    op.create_table(
        'user_preferences',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('default_currency', sa.String(length=3), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'], name='fk_user_preferences_user_id_users', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['default_currency'], ['currencies.code'],
            name='fk_user_preferences_default_currency_currencies', ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('user_id', name='pk_user_preferences'),
    )

    op.create_table(
        'exchange_rates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('from_currency', sa.String(length=3), nullable=False),
        sa.Column('to_currency', sa.String(length=3), nullable=False),
        sa.Column('rate_date', sa.Date(), nullable=False),
        sa.Column('rate', sa.Numeric(precision=18, scale=8), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False, server_default='yahoo_finance'),
        *_timestamps(),
        sa.CheckConstraint('rate > 0', name='ck_exchange_rates_positive_rate'),
        sa.ForeignKeyConstraint(
            ['from_currency'], ['currencies.code'],
            name='fk_exchange_rates_from_currency_currencies', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['to_currency'], ['currencies.code'],
            name='fk_exchange_rates_to_currency_currencies', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_exchange_rates'),
        sa.UniqueConstraint(
            'from_currency', 'to_currency', 'rate_date', name='uq_exchange_rates_pair_date',
        ),
    )
    op.create_index('ix_exchange_rates_rate_date', 'exchange_rates', ['rate_date'])
    op.create_index('ix_exchange_rates_pair', 'exchange_rates', ['from_currency', 'to_currency'])

    op.create_table(
        'accounts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('currency_code', sa.String(length=3), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('account_type', sa.Enum(*ACCOUNT_TYPES, name='accounttype'), nullable=False),
        sa.Column('account_sub_type', sa.Enum(*ACCOUNT_SUB_TYPES, name='accountsubtype'), nullable=True),
        sa.Column('current_balance', sa.Numeric(precision=20, scale=4), nullable=False, server_default='0'),
        sa.Column('opening_balance', sa.Numeric(precision=20, scale=4), nullable=False, server_default='0'),
        sa.Column('opened_on', sa.Date(), nullable=True),
        sa.Column('date_acquired', sa.Date(), nullable=True),
        sa.Column('is_closed', sa.Boolean(), nullable=False, server_default='false'),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'], name='fk_accounts_user_id_users', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['currency_code'], ['currencies.code'],
            name='fk_accounts_currency_code_currencies', ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_accounts'),
    )
    op.create_index('ix_accounts_id', 'accounts', ['id'])
    op.create_index('ix_accounts_user_id', 'accounts', ['user_id'])
    op.create_index('ix_accounts_currency_code', 'accounts', ['currency_code'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('account_id', sa.Uuid(), nullable=False),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=20, scale=4), nullable=False),
        sa.Column('currency_code', sa.String(length=3), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['account_id'], ['accounts.id'], name='fk_transactions_account_id_accounts', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['currency_code'], ['currencies.code'],
            name='fk_transactions_currency_code_currencies', ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_transactions'),
    )
    op.create_index('ix_transactions_id', 'transactions', ['id'])
    op.create_index('ix_transactions_account_id', 'transactions', ['account_id'])
    op.create_index('ix_transactions_transaction_date', 'transactions', ['transaction_date'])

    op.create_table(
        'securities',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('currency_code', sa.String(length=3), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('last_price', sa.Numeric(precision=20, scale=6), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'], name='fk_securities_user_id_users', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['currency_code'], ['currencies.code'],
            name='fk_securities_currency_code_currencies', ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_securities'),
    )
    op.create_index('ix_securities_id', 'securities', ['id'])
    op.create_index('ix_securities_user_id', 'securities', ['user_id'])
    op.create_index('ix_securities_symbol', 'securities', ['symbol'])

    op.create_table(
        'holdings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('account_id', sa.Uuid(), nullable=False),
        sa.Column('security_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=20, scale=8), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['account_id'], ['accounts.id'], name='fk_holdings_account_id_accounts', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['security_id'], ['securities.id'], name='fk_holdings_security_id_securities', ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_holdings'),
        sa.UniqueConstraint('account_id', 'security_id', name='uq_holdings_account_security'),
    )
    op.create_index('ix_holdings_id', 'holdings', ['id'])
    op.create_index('ix_holdings_account_id', 'holdings', ['account_id'])
    op.create_index('ix_holdings_security_id', 'holdings', ['security_id'])

    op.create_table(
        'investment_transactions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('account_id', sa.Uuid(), nullable=False),
        sa.Column('security_id', sa.Uuid(), nullable=True),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('action', sa.Enum(*INVESTMENT_ACTIONS, name='investmentaction'), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=20, scale=8), nullable=True),
        sa.Column('price', sa.Numeric(precision=20, scale=6), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['account_id'], ['accounts.id'],
            name='fk_investment_transactions_account_id_accounts', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['security_id'], ['securities.id'],
            name='fk_investment_transactions_security_id_securities', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_investment_transactions'),
    )
    op.create_index('ix_investment_transactions_id', 'investment_transactions', ['id'])
    op.create_index('ix_investment_transactions_account_id', 'investment_transactions', ['account_id'])
    op.create_index('ix_investment_transactions_security_id', 'investment_transactions', ['security_id'])
    op.create_index('ix_investment_transactions_transaction_date', 'investment_transactions', ['transaction_date'])


def downgrade() -> None:
    op.drop_table('investment_transactions')
    op.drop_table('holdings')
    op.drop_table('securities')
    op.drop_table('transactions')
    op.drop_table('accounts')
    op.drop_table('exchange_rates')
    op.drop_table('user_preferences')
    op.drop_table('currencies')
    op.drop_table('users')
    sa.Enum(name='investmentaction').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='accountsubtype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='accounttype').drop(op.get_bind(), checkfirst=True)
