"""Stream events table — messages persisted by the stream consumer.

Revision ID: 001_stream_events
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_stream_events"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "stream_events",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("source", sa.String(64), nullable=False),
        sa.Column("kind", sa.String(64), nullable=True),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_stream_events_received_at", "stream_events", ["received_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_stream_events_received_at", table_name="stream_events")
    op.drop_table("stream_events")
