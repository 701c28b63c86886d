"""Add users.must_change_password for admin-onboarded owners

Revision ID: 20261019_must_change_password
Revises: 20261019_initial
Create Date: 2026-10-19

Owners created by platform admins receive a temporary password and must
replace it on first login.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_must_change_password"
down_revision = "20261019_initial"
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.add_column(
            sa.Column("must_change_password", sa.Boolean(), nullable=False, server_default=sa.text("0"))
        )


def downgrade():
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.drop_column("must_change_password")
