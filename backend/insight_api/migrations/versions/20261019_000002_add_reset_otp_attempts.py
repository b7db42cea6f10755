"""count failed password reset attempts

Revision ID: 20261019_000002
Revises: 20261019_000001
Create Date: 2026-10-19 15:30:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_000002"
down_revision = "20261019_000001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "users",
        sa.Column("resetOtpAttempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )


def downgrade() -> None:
    op.drop_column("users", "resetOtpAttempts")
