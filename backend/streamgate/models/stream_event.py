"""StreamEvent ORM — one message received from the upstream stream.

Invariants:
    - payload stores the decoded message as-is
    - kind is copied from the message "type" field when present
    - received_at is timezone-aware UTC
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from streamgate.db.base import Base


class StreamEvent(Base):
    __tablename__ = "stream_events"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    source: Mapped[str] = mapped_column(String(64), nullable=False)
    kind: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "source": self.source,
            "kind": self.kind,
            "payload": self.payload,
            "receivedAt": self.received_at.isoformat(),
        }
