"""Initial schema: users, agents, borrowers, loans, installments, transactions

Revision ID: 3f9c1a7e2b10
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c1a7e2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TRANSACTION_CATEGORIES = (
    'HOME', 'CAR', 'OFFICE', 'EMI', 'INTEREST', 'FARM', 'BHOPAL', 'SAI_BABA',
    'PERSONAL', 'INSTALLMENT', 'INCOME', 'LOAN', 'NEUTRAL', 'OTHER'
)


def upgrade() -> None:
    # ============================================================
    # Users & Agents
    # ============================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.Enum('ADMIN', 'AGENT', name='user_role'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('address', sa.String(length=500), nullable=True),
        sa.Column('id_proof', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table('agents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )
    op.create_index(op.f('ix_agents_id'), 'agents', ['id'], unique=False)

    # ============================================================
    # Borrowers
    # ============================================================
    op.create_table('borrowers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('father_name', sa.String(length=200), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=False),
        sa.Column('pan_id', sa.String(length=10), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_borrowers_id'), 'borrowers', ['id'], unique=False)
    op.create_index(op.f('ix_borrowers_name'), 'borrowers', ['name'], unique=False)
    op.create_index(op.f('ix_borrowers_phone'), 'borrowers', ['phone'], unique=False)
    op.create_index(op.f('ix_borrowers_pan_id'), 'borrowers', ['pan_id'], unique=True)
    op.create_index(op.f('ix_borrowers_agent_id'), 'borrowers', ['agent_id'], unique=False)

    # ============================================================
    # Loans & Installments
    # ============================================================
    op.create_table('loans',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('borrower_id', sa.Integer(), nullable=False),
        sa.Column('principal_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('interest_rate', sa.Numeric(precision=7, scale=2), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('frequency', sa.Enum('MONTHLY', 'WEEKLY', 'DAILY', name='payment_frequency'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('status', sa.Enum('ACTIVE', 'SETTLED', name='loan_status'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['borrower_id'], ['borrowers.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_loans_id'), 'loans', ['id'], unique=False)
    op.create_index(op.f('ix_loans_borrower_id'), 'loans', ['borrower_id'], unique=False)
    op.create_index(op.f('ix_loans_status'), 'loans', ['status'], unique=False)

    op.create_table('installments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('loan_id', sa.Integer(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('principal', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('interest', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('installment_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'PAID', 'OVERDUE', 'SKIPPED', name='installment_status'), nullable=False),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('penalty_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('extra_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('due_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['loan_id'], ['loans.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_installments_id'), 'installments', ['id'], unique=False)
    op.create_index(op.f('ix_installments_loan_id'), 'installments', ['loan_id'], unique=False)
    op.create_index(op.f('ix_installments_due_date'), 'installments', ['due_date'], unique=False)
    op.create_index(op.f('ix_installments_status'), 'installments', ['status'], unique=False)

    # ============================================================
    # Transactions (cash book)
    # ============================================================
    op.create_table('transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('transaction_type', sa.Enum('EXPENSE', 'INCOME', 'CAPITAL', 'INSTALLMENT', 'OTHER', name='transaction_type'), nullable=False),
        sa.Column('category', sa.Enum(*TRANSACTION_CATEGORIES, name='transaction_category'), nullable=False),
        sa.Column('interest', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('penalty_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('extra_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('added_by', sa.String(length=20), nullable=True),
        sa.Column('installment_id', sa.Integer(), nullable=True),
        sa.Column('loan_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['installment_id'], ['installments.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['loan_id'], ['loans.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_transactions_id'), 'transactions', ['id'], unique=False)
    op.create_index(op.f('ix_transactions_transaction_type'), 'transactions', ['transaction_type'], unique=False)
    op.create_index(op.f('ix_transactions_category'), 'transactions', ['category'], unique=False)
    op.create_index(op.f('ix_transactions_installment_id'), 'transactions', ['installment_id'], unique=False)
    op.create_index(op.f('ix_transactions_loan_id'), 'transactions', ['loan_id'], unique=False)
    op.create_index(op.f('ix_transactions_created_at'), 'transactions', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('transactions')
    op.drop_table('installments')
    op.drop_table('loans')
    op.drop_table('borrowers')
    op.drop_table('agents')
    op.drop_table('users')

    for enum_name in (
        'transaction_category', 'transaction_type', 'installment_status',
        'loan_status', 'payment_frequency', 'user_role'
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
