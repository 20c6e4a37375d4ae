"""Event emitter: the append-only notification stream of committed mutations.

Events are written in the same transaction as the mutation they describe, so
a rolled-back call leaves no event behind.  Each event carries the full new
record and its key; a consumer can rebuild the ledger by replaying the stream
(``replay_events``) without ever reading live tables, and can check the
stream for tampering (``verify_chain``).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from generation_ledger.core.hashing import compute_event_hash
from generation_ledger.models.event import EventType, LedgerEvent

logger = logging.getLogger(__name__)


def emit(session: Session, event_type: EventType, payload: dict[str, Any]) -> LedgerEvent:
    """Append one event to the stream, chained to the previous one."""
    previous_hash = _get_latest_hash(session)
    event_hash = compute_event_hash(event_type.value, payload, previous_hash)

    event = LedgerEvent(
        event_type=event_type,
        payload=payload,
        previous_hash=previous_hash,
        event_hash=event_hash,
    )
    session.add(event)
    # Flush per event so sequence numbers follow emission order.
    session.flush()

    logger.debug("Emitted #%d %s", event.sequence, event_type.value)
    return event


def list_events(session: Session, after: int = 0, limit: int = 100) -> list[LedgerEvent]:
    """Return up to ``limit`` events with ``sequence > after``, in stream order."""
    stmt = (
        select(LedgerEvent)
        .where(LedgerEvent.sequence > after)
        .order_by(LedgerEvent.sequence)
        .limit(limit)
    )
    return list(session.execute(stmt).scalars())


def _get_latest_hash(session: Session) -> str | None:
    stmt = select(LedgerEvent.event_hash).order_by(LedgerEvent.sequence.desc()).limit(1)
    return session.execute(stmt).scalar_one_or_none()


def verify_chain(events: Iterable[LedgerEvent]) -> bool:
    """Check that ``events`` (a full stream, in order) form an unbroken hash chain."""
    previous_hash = None
    for event in events:
        if event.previous_hash != previous_hash:
            return False
        expected = compute_event_hash(
            EventType(event.event_type).value, event.payload, previous_hash
        )
        if event.event_hash != expected:
            return False
        previous_hash = event.event_hash
    return True


# ── Replay ────────────────────────────────────────────────────────────────────


@dataclass
class ReplayedLedger:
    """Ledger state rebuilt from the event stream alone."""

    snapshots: dict[tuple[str, str], dict[str, Any]] = field(default_factory=dict)
    settlements: dict[tuple[str, str], dict[int, dict[str, Any]]] = field(default_factory=dict)
    effective: dict[tuple[str, str], int] = field(default_factory=dict)
    amendment_reasons: dict[tuple[str, str], dict[int, str]] = field(default_factory=dict)
    roles: set[tuple[str, str]] = field(default_factory=set)
    paused: bool = False

    def effective_settlement(self, station_id: str, period: str) -> dict[str, Any] | None:
        key = (station_id, period)
        revision = self.effective.get(key, 0)
        if revision == 0:
            return None
        return self.settlements[key][revision]


def replay_events(events: Iterable[LedgerEvent]) -> ReplayedLedger:
    state = ReplayedLedger()

    for event in events:
        payload = event.payload
        if event.event_type == EventType.SNAPSHOT_STORED:
            state.snapshots[(payload["station_id"], payload["date"])] = payload
        elif event.event_type == EventType.SETTLEMENT_STORED:
            key = (payload["station_id"], payload["period"])
            state.settlements.setdefault(key, {})[payload["revision"]] = payload
            state.effective[key] = payload["revision"]
        elif event.event_type == EventType.SETTLEMENT_AMENDED:
            key = (payload["station_id"], payload["period"])
            state.amendment_reasons.setdefault(key, {})[payload["new_revision"]] = payload["reason"]
        elif event.event_type == EventType.ROLE_GRANTED:
            state.roles.add((payload["principal"], payload["role"]))
        elif event.event_type == EventType.ROLE_REVOKED:
            state.roles.discard((payload["principal"], payload["role"]))
        elif event.event_type == EventType.PAUSED:
            state.paused = True
        elif event.event_type == EventType.UNPAUSED:
            state.paused = False

    return state
