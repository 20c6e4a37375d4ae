"""Daily snapshot model: write-once evidentiary record.

A row is inserted once per (station, date) and never updated or deleted.
Snapshots are audit evidence only; settlement decisions never read them.
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from generation_ledger.core.database import Base
from generation_ledger.models.payloads import (
    PERIOD_MAX_LENGTH,
    PRINCIPAL_MAX_LENGTH,
    STATION_ID_MAX_LENGTH,
)


class SnapshotRecord(Base):
    __tablename__ = "snapshot_records"

    station_id: Mapped[str] = mapped_column(String(STATION_ID_MAX_LENGTH), primary_key=True)
    date: Mapped[str] = mapped_column(String(PERIOD_MAX_LENGTH), primary_key=True)

    # value x10
    total_generation_kwh_x10: Mapped[int] = mapped_column(BigInteger, nullable=False)
    grid_delivered_kwh_x10: Mapped[int] = mapped_column(BigInteger, nullable=False)
    self_consumed_kwh_x10: Mapped[int] = mapped_column(BigInteger, nullable=False)

    sample_count: Mapped[int] = mapped_column(Integer, nullable=False)
    evidence_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    # Attestation
    digest: Mapped[str] = mapped_column(String(64), nullable=False)
    signer: Mapped[str] = mapped_column(String(42), nullable=False, index=True)

    submitted_by: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), nullable=False)
    stored_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return (
            f"<Snapshot {self.station_id} @ {self.date} "
            f"signer={self.signer} digest={self.digest[:12]}...>"
        )
