"""Monthly settlement models: append-only revisions plus the effective pointer.

Revisions for a (station, period) are numbered 1, 2, 3, ... with no gaps.  A
revision is never overwritten; an amendment appends the next one and moves
the pointer.  The pointer row is the only mutable state for a key.
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from generation_ledger.core.database import Base
from generation_ledger.models.payloads import (
    PERIOD_MAX_LENGTH,
    PRINCIPAL_MAX_LENGTH,
    STATION_ID_MAX_LENGTH,
)


class SettlementRecord(Base):
    __tablename__ = "settlement_records"

    station_id: Mapped[str] = mapped_column(String(STATION_ID_MAX_LENGTH), primary_key=True)
    period: Mapped[str] = mapped_column(String(PERIOD_MAX_LENGTH), primary_key=True)
    revision: Mapped[int] = mapped_column(BigInteger, primary_key=True)

    grid_delivered_kwh_x10: Mapped[int] = mapped_column(BigInteger, nullable=False)
    self_consumed_kwh_x10: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tariff_bp: Mapped[int] = mapped_column(BigInteger, nullable=False)  # value x10000

    aggregated_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    audit_doc_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    receipt_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    submitted_by: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), nullable=False)
    committed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return (
            f"<Settlement {self.station_id} {self.period} rev={self.revision} "
            f"grid={self.grid_delivered_kwh_x10} tariff={self.tariff_bp}bp>"
        )


class EffectiveRevision(Base):
    __tablename__ = "effective_revisions"

    station_id: Mapped[str] = mapped_column(String(STATION_ID_MAX_LENGTH), primary_key=True)
    period: Mapped[str] = mapped_column(String(PERIOD_MAX_LENGTH), primary_key=True)
    revision: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
