"""Tests for the write-once snapshot ledger.

Test categories:
1. Happy path: a signed 96-sample snapshot is stored with its signer.
2. Rejections: role, signature, sample count, duplicate key.
3. Atomicity: a rejected call leaves no record and no event.
"""

import pydantic
import pytest

from generation_ledger.core import attestation
from generation_ledger.core.errors import (
    AlreadyExists,
    InvalidSampleCount,
    InvalidSignature,
    NotFound,
    SystemPaused,
    Unauthorized,
)
from generation_ledger.models.event import EventType
from tests.conftest import (
    ADMIN,
    DATA_TEAM,
    DATE,
    EVIDENCE_HASH,
    FINANCE,
    STATION,
    make_domain,
    make_key,
    make_payload,
    sign,
)


# ═══════════════════════════════════════════════════════════════════════════════
# 1. HAPPY PATH
# ═══════════════════════════════════════════════════════════════════════════════


class TestStoreSnapshot:
    def test_stores_record_with_signer(self, ledger, domain, signer_key):
        payload = make_payload()
        record = ledger.store_daily_snapshot(DATA_TEAM, payload, sign(payload, signer_key, domain))

        assert record.station_id == STATION
        assert record.date == DATE
        assert record.total_generation_kwh_x10 == 12345
        assert record.sample_count == 96
        assert record.evidence_hash == EVIDENCE_HASH
        assert record.signer == attestation.identity_of(signer_key.public_key())
        assert record.submitted_by == DATA_TEAM

    def test_readable_after_store(self, ledger, domain, signer_key):
        payload = make_payload()
        ledger.store_daily_snapshot(DATA_TEAM, payload, sign(payload, signer_key, domain))

        stored = ledger.get_daily_snapshot(STATION, DATE)
        assert stored.grid_delivered_kwh_x10 == 10000
        assert stored.digest == attestation.digest(payload, domain).hex()

    def test_emits_notification_with_all_fields(self, ledger, domain, signer_key):
        payload = make_payload()
        ledger.store_daily_snapshot(DATA_TEAM, payload, sign(payload, signer_key, domain))

        event = ledger.events()[-1]
        assert event.event_type == EventType.SNAPSHOT_STORED
        assert event.payload["digest"] == attestation.digest(payload, domain).hex()
        assert event.payload["signer"] == attestation.identity_of(signer_key.public_key())
        for name, value in payload.model_dump().items():
            assert event.payload[name] == value

    def test_zero_energy_is_valid(self, ledger, domain, signer_key):
        payload = make_payload(
            total_generation_kwh_x10=0, grid_delivered_kwh_x10=0, self_consumed_kwh_x10=0
        )
        record = ledger.store_daily_snapshot(DATA_TEAM, payload, sign(payload, signer_key, domain))
        assert record.total_generation_kwh_x10 == 0

    def test_accepts_hex_signature(self, ledger, domain, signer_key):
        payload = make_payload()
        signature = sign(payload, signer_key, domain)
        record = ledger.store_daily_snapshot(DATA_TEAM, payload, "0x" + signature.hex())
        assert record.signer == attestation.identity_of(signer_key.public_key())

    def test_station_and_date_keys_are_exact_match(self, ledger, domain, signer_key):
        for station, date in [(STATION, DATE), ("station-001", DATE), (STATION, "2025-1-15")]:
            payload = make_payload(station_id=station, date=date)
            ledger.store_daily_snapshot(DATA_TEAM, payload, sign(payload, signer_key, domain))

        assert ledger.get_daily_snapshot("station-001", DATE).station_id == "station-001"


# ═══════════════════════════════════════════════════════════════════════════════
# 2. REJECTIONS
# ═══════════════════════════════════════════════════════════════════════════════


class TestRejections:
    def test_requires_snapshot_submitter(self, ledger, domain, signer_key):
        payload = make_payload()
        with pytest.raises(Unauthorized):
            ledger.store_daily_snapshot(FINANCE, payload, sign(payload, signer_key, domain))

    def test_signature_for_other_payload(self, ledger, domain, signer_key):
        signed = make_payload(grid_delivered_kwh_x10=1)
        submitted = make_payload(grid_delivered_kwh_x10=2)
        with pytest.raises(InvalidSignature):
            ledger.store_daily_snapshot(DATA_TEAM, submitted, sign(signed, signer_key, domain))

    def test_signature_for_other_domain(self, ledger, signer_key):
        payload = make_payload()
        foreign = sign(payload, signer_key, make_domain(verifying_entity="other-instance"))
        with pytest.raises(InvalidSignature):
            ledger.store_daily_snapshot(DATA_TEAM, payload, foreign)

    def test_malformed_signature(self, ledger):
        with pytest.raises(InvalidSignature):
            ledger.store_daily_snapshot(DATA_TEAM, make_payload(), b"\x00" * 10)

    def test_non_hex_signature_from_non_submitter(self, ledger):
        with pytest.raises(Unauthorized):
            ledger.store_daily_snapshot(FINANCE, make_payload(), "zz")

    def test_non_hex_signature_while_paused(self, ledger):
        ledger.pause(ADMIN)
        with pytest.raises(SystemPaused):
            ledger.store_daily_snapshot(DATA_TEAM, make_payload(), "zz")

    def test_non_hex_signature_while_active(self, ledger):
        with pytest.raises(InvalidSignature):
            ledger.store_daily_snapshot(DATA_TEAM, make_payload(), "zz")

    @pytest.mark.parametrize(
        "overrides",
        [{"station_id": "S" * 129}, {"date": "D" * 33}, {"station_id": ""}],
    )
    def test_key_length_bounds(self, overrides):
        with pytest.raises(pydantic.ValidationError):
            make_payload(**overrides)

    @pytest.mark.parametrize("sample_count", [0, 95, 97, 288])
    def test_wrong_sample_count_with_valid_signature(self, ledger, domain, signer_key, sample_count):
        payload = make_payload(sample_count=sample_count)
        with pytest.raises(InvalidSampleCount) as exc_info:
            ledger.store_daily_snapshot(DATA_TEAM, payload, sign(payload, signer_key, domain))
        assert exc_info.value.actual == sample_count
        assert exc_info.value.expected == 96

        with pytest.raises(NotFound):
            ledger.get_daily_snapshot(STATION, DATE)

    def test_signature_checked_before_sample_count(self, ledger):
        with pytest.raises(InvalidSignature):
            ledger.store_daily_snapshot(DATA_TEAM, make_payload(sample_count=1), b"")

    def test_duplicate_key_rejected_regardless_of_content(self, ledger, domain, signer_key):
        first = make_payload()
        ledger.store_daily_snapshot(DATA_TEAM, first, sign(first, signer_key, domain))

        other_key = make_key()
        second = make_payload(grid_delivered_kwh_x10=99999, evidence_hash="ef" * 32)
        with pytest.raises(AlreadyExists):
            ledger.store_daily_snapshot(DATA_TEAM, second, sign(second, other_key, domain))

        stored = ledger.get_daily_snapshot(STATION, DATE)
        assert stored.grid_delivered_kwh_x10 == 10000
        assert stored.evidence_hash == EVIDENCE_HASH
        assert stored.signer == attestation.identity_of(signer_key.public_key())

    def test_identical_resubmission_rejected(self, ledger, domain, signer_key):
        payload = make_payload()
        signature = sign(payload, signer_key, domain)
        ledger.store_daily_snapshot(DATA_TEAM, payload, signature)
        with pytest.raises(AlreadyExists):
            ledger.store_daily_snapshot(DATA_TEAM, payload, signature)

    def test_get_missing(self, ledger):
        with pytest.raises(NotFound):
            ledger.get_daily_snapshot(STATION, DATE)


# ═══════════════════════════════════════════════════════════════════════════════
# 3. ATOMICITY
# ═══════════════════════════════════════════════════════════════════════════════


class TestAtomicity:
    def test_rejected_calls_emit_nothing(self, ledger, domain, signer_key):
        payload = make_payload()
        ledger.store_daily_snapshot(DATA_TEAM, payload, sign(payload, signer_key, domain))
        before = len(ledger.events())

        bad = make_payload(date="2025-01-16", sample_count=10)
        with pytest.raises(InvalidSampleCount):
            ledger.store_daily_snapshot(DATA_TEAM, bad, sign(bad, signer_key, domain))
        with pytest.raises(AlreadyExists):
            ledger.store_daily_snapshot(DATA_TEAM, payload, sign(payload, signer_key, domain))

        assert len(ledger.events()) == before
