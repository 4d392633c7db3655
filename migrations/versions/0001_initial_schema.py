"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

SPEND_STATUS = ('PENDING_APPROVAL', 'APPROVED', 'REJECTED', 'EXECUTING', 'EXECUTED', 'FAILED')
ALERT_TYPE = (
    'HIGH_SPEND', 'LOW_BALANCE', 'ACCOUNT_FROZEN', 'ACCOUNT_CLOSED',
    'ADMIN_TRANSFER', 'CONTRACT_PAUSED', 'EXECUTION_FAILED',
)
ALERT_SEVERITY = ('INFO', 'WARNING', 'CRITICAL')
FUNDING_DIRECTION = ('INBOUND', 'OUTBOUND')

ENUM_NAMES = ('spend_status', 'alert_type', 'alert_severity', 'funding_direction')


def upgrade():
    op.create_table(
        'spend_accounts',
        sa.Column('account_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('owner_address', sa.String(length=42), nullable=False),
        sa.Column('approver_address', sa.String(length=42), nullable=False),
        sa.Column('label', sa.String(length=64), nullable=False),
        sa.Column('budget_per_period', sa.String(length=78), nullable=False),
        sa.Column('period_duration', sa.Integer(), nullable=False),
        sa.Column('per_tx_limit', sa.String(length=78), nullable=False),
        sa.Column('daily_limit', sa.String(length=78), nullable=False),
        sa.Column('approval_threshold', sa.String(length=78), nullable=False),
        sa.Column('period_spent', sa.String(length=78), nullable=False),
        sa.Column('period_reserved', sa.String(length=78), nullable=False),
        sa.Column('daily_spent', sa.String(length=78), nullable=False),
        sa.Column('daily_reserved', sa.String(length=78), nullable=False),
        sa.Column('period_start', sa.DateTime(), nullable=True),
        sa.Column('daily_reset_at', sa.DateTime(), nullable=True),
        sa.Column('frozen', sa.Boolean(), nullable=False),
        sa.Column('closed', sa.Boolean(), nullable=False),
        sa.Column('allowed_chains', sa.Text(), nullable=False),
        sa.Column('auto_topup_min_balance', sa.String(length=78), nullable=True),
        sa.Column('auto_topup_target_balance', sa.String(length=78), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('account_id')
    )
    op.create_index('ix_spend_accounts_owner_address', 'spend_accounts', ['owner_address'], unique=False)
    op.create_index('ix_spend_accounts_approver_address', 'spend_accounts', ['approver_address'], unique=False)

    op.create_table(
        'spend_requests',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('request_id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('requester_address', sa.String(length=42), nullable=False),
        sa.Column('amount', sa.String(length=78), nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('destination_address', sa.String(length=42), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('status', sa.Enum(*SPEND_STATUS, name='spend_status'), nullable=False),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('executed_at', sa.DateTime(), nullable=True),
        sa.Column('gateway_tx_id', sa.String(length=128), nullable=True),
        sa.Column('mint_tx_hash', sa.String(length=66), nullable=True),
        sa.Column('treasury_tx_hash', sa.String(length=66), nullable=True),
        sa.Column('transfer_id', sa.String(length=128), nullable=True),
        sa.Column('failure_reason', sa.String(), nullable=True),
        sa.Column('tx_hash', sa.String(length=66), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('request_id', name='uq_spend_requests_request_id')
    )
    op.create_index('ix_spend_requests_account_status', 'spend_requests', ['account_id', 'status'], unique=False)
    op.create_index('ix_spend_requests_status_created', 'spend_requests', ['status', 'created_at'], unique=False)

    op.create_table(
        'alerts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.Enum(*ALERT_TYPE, name='alert_type'), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=True),
        sa.Column('message', sa.String(), nullable=False),
        sa.Column('severity', sa.Enum(*ALERT_SEVERITY, name='alert_severity'), nullable=False),
        sa.Column('acknowledged', sa.Boolean(), nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_alerts_type_created', 'alerts', ['type', 'created_at'], unique=False)
    op.create_index('ix_alerts_severity_acknowledged', 'alerts', ['severity', 'acknowledged'], unique=False)

    op.create_table(
        'funding_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('direction', sa.Enum(*FUNDING_DIRECTION, name='funding_direction'), nullable=False),
        sa.Column('amount', sa.String(length=78), nullable=False),
        sa.Column('gateway_tx_id', sa.String(length=128), nullable=False),
        sa.Column('tx_hash', sa.String(length=66), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade():
    op.drop_table('funding_events')

    op.drop_index('ix_alerts_severity_acknowledged', table_name='alerts')
    op.drop_index('ix_alerts_type_created', table_name='alerts')
    op.drop_table('alerts')

    op.drop_index('ix_spend_requests_status_created', table_name='spend_requests')
    op.drop_index('ix_spend_requests_account_status', table_name='spend_requests')
    op.drop_table('spend_requests')

    op.drop_index('ix_spend_accounts_approver_address', table_name='spend_accounts')
    op.drop_index('ix_spend_accounts_owner_address', table_name='spend_accounts')
    op.drop_table('spend_accounts')

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name in ENUM_NAMES:
            sa.Enum(name=name).drop(bind, checkfirst=True)
