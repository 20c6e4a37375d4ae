"""Ledger event model: the ordered, hash-chained notification stream.

One row per committed mutation (two for an amendment).  Rows are only ever
appended; ``sequence`` gives the total order consumers replay in.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from generation_ledger.core.database import Base


class EventType(str, enum.Enum):
    SNAPSHOT_STORED = "SNAPSHOT_STORED"
    SETTLEMENT_STORED = "SETTLEMENT_STORED"
    SETTLEMENT_AMENDED = "SETTLEMENT_AMENDED"
    ROLE_GRANTED = "ROLE_GRANTED"
    ROLE_REVOKED = "ROLE_REVOKED"
    PAUSED = "PAUSED"
    UNPAUSED = "UNPAUSED"


class LedgerEvent(Base):
    __tablename__ = "ledger_events"

    sequence: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_type: Mapped[EventType] = mapped_column(
        Enum(EventType, name="ledger_event_type"), nullable=False, index=True
    )
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)

    previous_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    event_hash: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)

    emitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<LedgerEvent #{self.sequence} {self.event_type.value} hash={self.event_hash[:12]}...>"
