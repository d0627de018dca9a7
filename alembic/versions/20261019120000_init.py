"""init

Revision ID: 20261019120000
Revises:
Create Date: 2026-10-19T12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "20261019120000"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "messages",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("user_name", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_messages_sent_at", "messages", ["sent_at"])
    op.create_index("ix_messages_fetched_at", "messages", ["fetched_at"])


def downgrade() -> None:
    op.drop_index("ix_messages_fetched_at", table_name="messages")
    op.drop_index("ix_messages_sent_at", table_name="messages")
    op.drop_table("messages")
