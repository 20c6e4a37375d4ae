"""Snapshot ledger: write-once store of signed daily evidence.

A submission is accepted only if:
1. The caller holds SNAPSHOT_SUBMITTER and the ledger is not paused.
2. The signature recovers to a signer over the domain-separated digest.
3. The payload carries exactly the expected number of samples (96).
4. Nothing is stored yet for the (station, date) key.

There is no update or delete path: evidence is permanent once accepted.
"""

import logging

from sqlalchemy.orm import Session

from generation_ledger.core import attestation
from generation_ledger.core.attestation import AttestationDomain
from generation_ledger.core.errors import AlreadyExists, InvalidSampleCount, NotFound
from generation_ledger.models.access import Role
from generation_ledger.models.event import EventType
from generation_ledger.models.payloads import SnapshotPayload
from generation_ledger.models.snapshot import SnapshotRecord
from generation_ledger.services.access_gate import require_role
from generation_ledger.services.event_emitter import emit
from generation_ledger.services.pause_switch import require_active

logger = logging.getLogger(__name__)


def put(
    session: Session,
    caller: str,
    payload: SnapshotPayload,
    signature: bytes | str,
    domain: AttestationDomain,
    expected_sample_count: int,
) -> SnapshotRecord:
    """Verify and store a daily snapshot.

    ``signature`` may be the raw envelope or its hex form; hex is decoded only
    after the role and pause checks pass.

    Raises:
        Unauthorized, SystemPaused, InvalidSignature, InvalidSampleCount,
        AlreadyExists.
    """
    require_role(session, caller, Role.SNAPSHOT_SUBMITTER)
    require_active(session)

    if isinstance(signature, str):
        signature = attestation.decode_signature(signature)
    message_digest = attestation.digest(payload, domain)
    signer = attestation.recover(message_digest, signature)

    if payload.sample_count != expected_sample_count:
        raise InvalidSampleCount(payload.sample_count, expected_sample_count)

    if session.get(SnapshotRecord, (payload.station_id, payload.date)) is not None:
        raise AlreadyExists(
            f"Snapshot for {payload.station_id} on {payload.date} already stored"
        )

    record = SnapshotRecord(
        station_id=payload.station_id,
        date=payload.date,
        total_generation_kwh_x10=payload.total_generation_kwh_x10,
        grid_delivered_kwh_x10=payload.grid_delivered_kwh_x10,
        self_consumed_kwh_x10=payload.self_consumed_kwh_x10,
        sample_count=payload.sample_count,
        evidence_hash=payload.evidence_hash,
        digest=message_digest.hex(),
        signer=signer,
        submitted_by=caller,
    )
    session.add(record)
    session.flush()

    emit(
        session,
        EventType.SNAPSHOT_STORED,
        {
            "digest": record.digest,
            **payload.model_dump(),
            "signer": signer,
            "submitted_by": caller,
        },
    )

    logger.info(
        "Stored snapshot %s @ %s (signer=%s, digest=%s...)",
        record.station_id,
        record.date,
        signer,
        record.digest[:12],
    )
    return record


def get(session: Session, station_id: str, date: str) -> SnapshotRecord:
    record = session.get(SnapshotRecord, (station_id, date))
    if record is None:
        raise NotFound(f"No snapshot for {station_id} on {date}")
    return record
