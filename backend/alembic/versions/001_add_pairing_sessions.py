"""add pairing sessions

Revision ID: 001_add_pairing_sessions
Revises:
Create Date: 2026-10-18
"""

import sqlalchemy as sa

from alembic import op

revision = "001_add_pairing_sessions"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "pairing_sessions",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("pairing_token", sa.String(64), nullable=False),
        sa.Column("device_token", sa.String(64), nullable=True),
        sa.Column("push_subscription", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_pairing_sessions_pairing_token", "pairing_sessions", ["pairing_token"], unique=True)
    op.create_index("ix_pairing_sessions_device_token", "pairing_sessions", ["device_token"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_pairing_sessions_device_token", "pairing_sessions")
    op.drop_index("ix_pairing_sessions_pairing_token", "pairing_sessions")
    op.drop_table("pairing_sessions")
