"""bind gateway orders to their intent, count OTP attempts

Revision ID: 20261019_intent
Revises: 20261019_initial
Create Date: 2026-10-19 16:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_intent'
down_revision = '20261019_initial'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.add_column(sa.Column("gateway_kind", sa.String(10), nullable=True))
        batch_op.add_column(sa.Column("gateway_amount", sa.BigInteger(), nullable=True))

    with op.batch_alter_table("otp_code", schema=None) as batch_op:
        batch_op.add_column(sa.Column("purpose", sa.String(20), nullable=False, server_default="register"))
        batch_op.add_column(sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"))


def downgrade():
    with op.batch_alter_table("otp_code", schema=None) as batch_op:
        batch_op.drop_column("attempts")
        batch_op.drop_column("purpose")

    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.drop_column("gateway_amount")
        batch_op.drop_column("gateway_kind")
