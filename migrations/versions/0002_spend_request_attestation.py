"""store gateway attestation on spend requests

Revision ID: 0002_spend_request_attestation
Revises: 0001_initial_schema
Create Date: 2026-10-17 14:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002_spend_request_attestation'
down_revision = '0001_initial_schema'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('spend_requests') as batch_op:
        batch_op.add_column(sa.Column('attestation', sa.Text(), nullable=True))
        batch_op.add_column(sa.Column('attestation_signature', sa.String(length=132), nullable=True))


def downgrade():
    with op.batch_alter_table('spend_requests') as batch_op:
        batch_op.drop_column('attestation_signature')
        batch_op.drop_column('attestation')
