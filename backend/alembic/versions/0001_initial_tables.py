"""Create challenges and pending_reports tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "challenges",
        sa.Column("nonce", sa.String(64), primary_key=True),
        sa.Column("work_factor", sa.Integer, nullable=False),
        sa.Column("issued_at", sa.DateTime, nullable=False),
        sa.Column("expires_at", sa.DateTime, nullable=False),
        sa.Column("consumed", sa.Boolean, default=False, nullable=False),
    )
    op.create_index("ix_challenges_expires_at", "challenges", ["expires_at"])

    op.create_table(
        "pending_reports",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("data", sa.Text, nullable=False),
        sa.Column(
            "challenge_nonce",
            sa.String(64),
            sa.ForeignKey("challenges.nonce"),
            unique=True,
            nullable=False,
        ),
        sa.Column("committed_at", sa.DateTime, nullable=False),
    )


def downgrade() -> None:
    op.drop_table("pending_reports")

    op.drop_index("ix_challenges_expires_at", table_name="challenges")
    op.drop_table("challenges")
