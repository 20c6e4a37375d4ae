"""Settlement ledger: append-only monthly settlement revisions.

Each (station, period) key moves through a small state machine:

    Unset ──store_initial──▶ Revision(1) ──amend──▶ Revision(2) ──amend──▶ ...

- ``store_initial`` is only valid from Unset (else AlreadyInitialized).
- ``amend`` is only valid from Revision(n) with n below the revision bound
  (else NotInitialized / RevisionOverflow).  It appends n+1, moves the
  effective pointer, then emits SETTLEMENT_AMENDED followed by
  SETTLEMENT_STORED.
- Earlier revisions are never touched and stay readable by number.

"Unset" is decided by the pointer alone.  Zero energy or a zero tariff is
ordinary data and never means "missing".
"""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from generation_ledger.core.errors import (
    AlreadyInitialized,
    NotFound,
    NotInitialized,
    RevisionNotFound,
    RevisionOverflow,
)
from generation_ledger.models.access import Role
from generation_ledger.models.event import EventType
from generation_ledger.models.payloads import INT64_MAX, SettlementFields
from generation_ledger.models.settlement import EffectiveRevision, SettlementRecord
from generation_ledger.services.access_gate import require_role
from generation_ledger.services.event_emitter import emit
from generation_ledger.services.pause_switch import require_active

logger = logging.getLogger(__name__)


def current_revision(session: Session, station_id: str, period: str) -> int:
    """Return the effective revision for a key, 0 if nothing has been filed."""
    pointer = session.get(EffectiveRevision, (station_id, period))
    return pointer.revision if pointer is not None else 0


def store_initial(
    session: Session,
    caller: str,
    station_id: str,
    period: str,
    fields: SettlementFields,
) -> SettlementRecord:
    """File revision 1 for a (station, period).

    Raises:
        Unauthorized, SystemPaused, AlreadyInitialized.
    """
    require_role(session, caller, Role.SETTLEMENT_SUBMITTER)
    require_active(session)

    existing = current_revision(session, station_id, period)
    if existing != 0:
        raise AlreadyInitialized(
            f"Settlement for {station_id} {period} already filed (revision {existing})"
        )

    record = _append_revision(session, caller, station_id, period, 1, fields)
    session.add(EffectiveRevision(station_id=station_id, period=period, revision=1))
    session.flush()

    emit(session, EventType.SETTLEMENT_STORED, _record_payload(record))

    logger.info(
        "Stored settlement %s %s rev=1 (grid=%d, tariff=%dbp)",
        station_id,
        period,
        record.grid_delivered_kwh_x10,
        record.tariff_bp,
    )
    return record


def amend(
    session: Session,
    caller: str,
    station_id: str,
    period: str,
    reason: str,
    fields: SettlementFields,
    max_revision: int,
) -> SettlementRecord:
    """Append the next revision for an already-filed (station, period).

    Raises:
        Unauthorized, SystemPaused, NotInitialized, RevisionOverflow.
    """
    require_role(session, caller, Role.SETTLEMENT_SUBMITTER)
    require_active(session)

    pointer = session.get(EffectiveRevision, (station_id, period))
    if pointer is None or pointer.revision == 0:
        raise NotInitialized(f"No settlement filed for {station_id} {period}")

    old_revision = pointer.revision
    if old_revision >= max_revision:
        raise RevisionOverflow(
            f"Settlement for {station_id} {period} is at the maximum revision {max_revision}"
        )
    new_revision = old_revision + 1

    record = _append_revision(session, caller, station_id, period, new_revision, fields)
    pointer.revision = new_revision
    session.flush()

    emit(
        session,
        EventType.SETTLEMENT_AMENDED,
        {
            "station_id": station_id,
            "period": period,
            "old_revision": old_revision,
            "new_revision": new_revision,
            "reason": reason,
            "submitted_by": caller,
        },
    )
    emit(session, EventType.SETTLEMENT_STORED, _record_payload(record))

    logger.info(
        "Amended settlement %s %s rev=%d→%d: %s",
        station_id,
        period,
        old_revision,
        new_revision,
        reason,
    )
    return record


def get_effective(session: Session, station_id: str, period: str) -> SettlementRecord:
    revision = current_revision(session, station_id, period)
    if revision == 0:
        raise NotFound(f"No settlement filed for {station_id} {period}")
    return session.get(SettlementRecord, (station_id, period, revision))


def get_by_revision(
    session: Session, station_id: str, period: str, revision: int
) -> SettlementRecord:
    record = None
    if 0 < revision <= INT64_MAX:
        record = session.get(SettlementRecord, (station_id, period, revision))
    if record is None:
        raise RevisionNotFound(f"No revision {revision} for {station_id} {period}")
    return record


def list_revisions(session: Session, station_id: str, period: str) -> list[SettlementRecord]:
    stmt = (
        select(SettlementRecord)
        .where(SettlementRecord.station_id == station_id, SettlementRecord.period == period)
        .order_by(SettlementRecord.revision)
    )
    return list(session.execute(stmt).scalars())


def _append_revision(
    session: Session,
    caller: str,
    station_id: str,
    period: str,
    revision: int,
    fields: SettlementFields,
) -> SettlementRecord:
    record = SettlementRecord(
        station_id=station_id,
        period=period,
        revision=revision,
        grid_delivered_kwh_x10=fields.grid_delivered_kwh_x10,
        self_consumed_kwh_x10=fields.self_consumed_kwh_x10,
        tariff_bp=fields.tariff_bp,
        aggregated_hash=fields.aggregated_hash,
        audit_doc_hash=fields.audit_doc_hash,
        receipt_hash=fields.receipt_hash,
        submitted_by=caller,
        committed_at=datetime.now(timezone.utc),
    )
    session.add(record)
    return record


def _record_payload(record: SettlementRecord) -> dict[str, Any]:
    return {
        "station_id": record.station_id,
        "period": record.period,
        "revision": record.revision,
        "grid_delivered_kwh_x10": record.grid_delivered_kwh_x10,
        "self_consumed_kwh_x10": record.self_consumed_kwh_x10,
        "tariff_bp": record.tariff_bp,
        "aggregated_hash": record.aggregated_hash,
        "audit_doc_hash": record.audit_doc_hash,
        "receipt_hash": record.receipt_hash,
        "committed_at": record.committed_at.isoformat(),
        "submitted_by": record.submitted_by,
    }
