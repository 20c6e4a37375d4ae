"""Ledger service: the single long-lived owner of all ledger state.

Every public operation enters through here.  Mutations run under one
re-entrant lock and inside one database transaction: the gate checks, the
record write, the pointer move and the emitted events all commit together,
or the call raises and nothing is written.  Reads take the same lock but
skip the role and pause checks.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator

from sqlalchemy.orm import Session, sessionmaker

from generation_ledger.core.attestation import AttestationDomain
from generation_ledger.core.config import settings
from generation_ledger.core.database import create_session_factory
from generation_ledger.models.access import Role
from generation_ledger.models.event import LedgerEvent
from generation_ledger.models.payloads import SettlementFields, SnapshotPayload
from generation_ledger.models.settlement import SettlementRecord
from generation_ledger.models.snapshot import SnapshotRecord
from generation_ledger.services import (
    access_gate,
    event_emitter,
    pause_switch,
    settlement_ledger,
    snapshot_ledger,
)

logger = logging.getLogger(__name__)


class LedgerService:
    def __init__(
        self,
        session_factory: sessionmaker,
        admin: str,
        snapshot_submitters: Iterable[str] = (),
        settlement_submitters: Iterable[str] = (),
        domain: AttestationDomain | None = None,
        expected_sample_count: int | None = None,
        max_revision: int | None = None,
    ):
        self._session_factory = session_factory
        self._lock = threading.RLock()

        self.domain = domain or AttestationDomain.from_settings()
        self.expected_sample_count = (
            expected_sample_count if expected_sample_count is not None else settings.expected_sample_count
        )
        self.max_revision = max_revision if max_revision is not None else settings.max_revision

        with self._transaction() as session:
            access_gate.bootstrap_roles(session, admin, snapshot_submitters, settlement_submitters)

        logger.info(
            "Ledger ready (admin=%s, domain=%s v%s chain=%d entity=%s)",
            admin,
            self.domain.name,
            self.domain.version,
            self.domain.chain_id,
            self.domain.verifying_entity,
        )

    @classmethod
    def from_settings(cls, session_factory: sessionmaker | None = None) -> "LedgerService":
        return cls(
            session_factory or create_session_factory(),
            admin=settings.admin_principal,
            snapshot_submitters=settings.snapshot_submitters,
            settlement_submitters=settings.settlement_submitters,
        )

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        with self._lock, self._session_factory.begin() as session:
            yield session

    @contextmanager
    def _reader(self) -> Iterator[Session]:
        with self._lock, self._session_factory() as session:
            yield session

    # ── Snapshots ─────────────────────────────────────────────────────────────

    def store_daily_snapshot(
        self, caller: str, payload: SnapshotPayload, signature: bytes | str
    ) -> SnapshotRecord:
        with self._transaction() as session:
            return snapshot_ledger.put(
                session, caller, payload, signature, self.domain, self.expected_sample_count
            )

    def get_daily_snapshot(self, station_id: str, date: str) -> SnapshotRecord:
        with self._reader() as session:
            return snapshot_ledger.get(session, station_id, date)

    # ── Settlements ───────────────────────────────────────────────────────────

    def store_monthly_settlement(
        self, caller: str, period: str, station_id: str, fields: SettlementFields
    ) -> SettlementRecord:
        with self._transaction() as session:
            return settlement_ledger.store_initial(session, caller, station_id, period, fields)

    def amend_monthly_settlement(
        self,
        caller: str,
        period: str,
        station_id: str,
        reason: str,
        fields: SettlementFields,
    ) -> SettlementRecord:
        with self._transaction() as session:
            return settlement_ledger.amend(
                session, caller, station_id, period, reason, fields, self.max_revision
            )

    def get_effective_monthly_settlement(self, period: str, station_id: str) -> SettlementRecord:
        with self._reader() as session:
            return settlement_ledger.get_effective(session, station_id, period)

    def get_monthly_settlement_by_revision(
        self, period: str, station_id: str, revision: int
    ) -> SettlementRecord:
        with self._reader() as session:
            return settlement_ledger.get_by_revision(session, station_id, period, revision)

    def list_monthly_settlement_revisions(
        self, period: str, station_id: str
    ) -> list[SettlementRecord]:
        with self._reader() as session:
            return settlement_ledger.list_revisions(session, station_id, period)

    def effective_revision(self, period: str, station_id: str) -> int:
        with self._reader() as session:
            return settlement_ledger.current_revision(session, station_id, period)

    # ── Pause switch ──────────────────────────────────────────────────────────

    def pause(self, caller: str) -> bool:
        with self._transaction() as session:
            return pause_switch.pause(session, caller)

    def unpause(self, caller: str) -> bool:
        with self._transaction() as session:
            return pause_switch.unpause(session, caller)

    def is_paused(self) -> bool:
        with self._reader() as session:
            return pause_switch.is_paused(session)

    # ── Access gate ───────────────────────────────────────────────────────────

    def grant_role(self, caller: str, principal: str, role: Role) -> bool:
        with self._transaction() as session:
            return access_gate.grant_role(session, caller, principal, role)

    def revoke_role(self, caller: str, principal: str, role: Role) -> bool:
        with self._transaction() as session:
            return access_gate.revoke_role(session, caller, principal, role)

    def renounce_role(self, caller: str, role: Role) -> bool:
        with self._transaction() as session:
            return access_gate.renounce_role(session, caller, role)

    def has_role(self, principal: str, role: Role) -> bool:
        with self._reader() as session:
            return access_gate.has_role(session, principal, role)

    def roles_of(self, principal: str) -> set[Role]:
        with self._reader() as session:
            return access_gate.roles_of(session, principal)

    # ── Events ────────────────────────────────────────────────────────────────

    def events(self, after: int = 0, limit: int = 100) -> list[LedgerEvent]:
        with self._reader() as session:
            return event_emitter.list_events(session, after, limit)
