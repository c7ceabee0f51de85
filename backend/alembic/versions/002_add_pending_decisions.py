"""add pending decisions

Revision ID: 002_add_pending_decisions
Revises: 001_add_pairing_sessions
Create Date: 2026-10-18
"""

import sqlalchemy as sa

from alembic import op

revision = "002_add_pending_decisions"
down_revision = "001_add_pairing_sessions"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "pending_decisions",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("device_token", sa.String(64), nullable=False),
        sa.Column("tool_use_id", sa.String(255), nullable=False),
        sa.Column("claude_session_id", sa.String(255), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("decision", sa.String(16), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("decided_at", sa.DateTime(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_pending_decisions_device_token", "pending_decisions", ["device_token"])


def downgrade() -> None:
    op.drop_index("ix_pending_decisions_device_token", "pending_decisions")
    op.drop_table("pending_decisions")
