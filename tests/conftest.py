"""Shared test fixtures for the generation-ledger test suite.

Every ``ledger`` fixture gets its own in-memory SQLite database, so tests never
share state.  Signing keys are generated per test; the ``sign`` helper plays
the role of the data team's signing tool.
"""

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from generation_ledger.core import attestation
from generation_ledger.core.attestation import AttestationDomain
from generation_ledger.core.database import create_session_factory
from generation_ledger.models.payloads import SettlementFields, SnapshotPayload
from generation_ledger.services.ledger import LedgerService

ADMIN = "admin"
DATA_TEAM = "data-team"
FINANCE = "finance"
OUTSIDER = "outsider"

STATION = "STATION-001"
DATE = "2025-01-15"
PERIOD = "2025-01"

EVIDENCE_HASH = "ab" * 32
AGG_HASH = "11" * 32
AUDIT_DOC_HASH = "22" * 32
RECEIPT_HASH = "33" * 32


# ── Factory helpers ───────────────────────────────────────────────────────────


def make_domain(
    name: str = "GenerationLedger",
    version: str = "1",
    chain_id: int = 31337,
    verifying_entity: str = "ledger-test",
) -> AttestationDomain:
    return AttestationDomain(
        name=name, version=version, chain_id=chain_id, verifying_entity=verifying_entity
    )


def make_payload(
    station_id: str = STATION,
    date: str = DATE,
    total_generation_kwh_x10: int = 12345,
    grid_delivered_kwh_x10: int = 10000,
    self_consumed_kwh_x10: int = 2345,
    sample_count: int = 96,
    evidence_hash: str = EVIDENCE_HASH,
) -> SnapshotPayload:
    return SnapshotPayload(
        station_id=station_id,
        date=date,
        total_generation_kwh_x10=total_generation_kwh_x10,
        grid_delivered_kwh_x10=grid_delivered_kwh_x10,
        self_consumed_kwh_x10=self_consumed_kwh_x10,
        sample_count=sample_count,
        evidence_hash=evidence_hash,
    )


def make_fields(
    grid_delivered_kwh_x10: int = 50000,
    self_consumed_kwh_x10: int = 10000,
    tariff_bp: int = 5000,
    aggregated_hash: str = AGG_HASH,
    audit_doc_hash: str = AUDIT_DOC_HASH,
    receipt_hash: str | None = RECEIPT_HASH,
) -> SettlementFields:
    return SettlementFields(
        grid_delivered_kwh_x10=grid_delivered_kwh_x10,
        self_consumed_kwh_x10=self_consumed_kwh_x10,
        tariff_bp=tariff_bp,
        aggregated_hash=aggregated_hash,
        audit_doc_hash=audit_doc_hash,
        receipt_hash=receipt_hash,
    )


def make_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(attestation.CURVE)


def sign(payload: SnapshotPayload, key: ec.EllipticCurvePrivateKey, domain: AttestationDomain) -> bytes:
    return attestation.sign_digest(key, attestation.digest(payload, domain))


def make_ledger(domain: AttestationDomain | None = None, **kwargs) -> LedgerService:
    return LedgerService(
        create_session_factory("sqlite+pysqlite:///:memory:"),
        admin=ADMIN,
        snapshot_submitters=[DATA_TEAM],
        settlement_submitters=[FINANCE],
        domain=domain or make_domain(),
        **kwargs,
    )


# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture
def domain() -> AttestationDomain:
    return make_domain()


@pytest.fixture
def ledger(domain) -> LedgerService:
    """A fresh ledger with admin, a data-team submitter and a finance submitter."""
    return make_ledger(domain)


@pytest.fixture
def signer_key() -> ec.EllipticCurvePrivateKey:
    return make_key()
