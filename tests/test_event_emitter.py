"""Tests for the notification stream: ordering, hash chaining and replay."""

import copy

from generation_ledger.models.access import Role
from generation_ledger.models.event import EventType
from generation_ledger.services.event_emitter import replay_events, verify_chain
from tests.conftest import (
    ADMIN,
    DATA_TEAM,
    DATE,
    FINANCE,
    OUTSIDER,
    PERIOD,
    STATION,
    make_fields,
    make_payload,
    sign,
)


def _populate(ledger, domain, signer_key):
    payload = make_payload()
    ledger.store_daily_snapshot(DATA_TEAM, payload, sign(payload, signer_key, domain))
    ledger.store_monthly_settlement(FINANCE, PERIOD, STATION, make_fields(grid_delivered_kwh_x10=50000))
    ledger.amend_monthly_settlement(
        FINANCE, PERIOD, STATION, "Red invoice correction", make_fields(grid_delivered_kwh_x10=55000)
    )
    ledger.store_monthly_settlement(FINANCE, "2025-02", STATION, make_fields(tariff_bp=0))
    ledger.grant_role(ADMIN, OUTSIDER, Role.SNAPSHOT_SUBMITTER)
    ledger.revoke_role(ADMIN, FINANCE, Role.SETTLEMENT_SUBMITTER)
    ledger.pause(ADMIN)


class TestOrdering:
    def test_sequence_is_gap_free(self, ledger, domain, signer_key):
        _populate(ledger, domain, signer_key)
        sequences = [e.sequence for e in ledger.events()]
        assert sequences == list(range(1, len(sequences) + 1))

    def test_paging(self, ledger, domain, signer_key):
        _populate(ledger, domain, signer_key)
        everything = ledger.events()
        first = ledger.events(after=0, limit=3)
        rest = ledger.events(after=first[-1].sequence, limit=1000)
        assert [e.sequence for e in first + rest] == [e.sequence for e in everything]


class TestHashChain:
    def test_stream_verifies(self, ledger, domain, signer_key):
        _populate(ledger, domain, signer_key)
        assert verify_chain(ledger.events())

    def test_first_event_has_no_previous(self, ledger):
        assert ledger.events()[0].previous_hash is None

    def test_tampered_payload_detected(self, ledger, domain, signer_key):
        _populate(ledger, domain, signer_key)
        events = ledger.events()
        target = next(e for e in events if e.event_type == EventType.SETTLEMENT_STORED)
        target.payload = {**copy.deepcopy(target.payload), "grid_delivered_kwh_x10": 1}
        assert not verify_chain(events)

    def test_dropped_event_detected(self, ledger, domain, signer_key):
        _populate(ledger, domain, signer_key)
        events = ledger.events()
        del events[3]
        assert not verify_chain(events)

    def test_reordered_events_detected(self, ledger, domain, signer_key):
        _populate(ledger, domain, signer_key)
        events = ledger.events()
        events[2], events[3] = events[3], events[2]
        assert not verify_chain(events)


class TestReplay:
    def test_replay_matches_live_state(self, ledger, domain, signer_key):
        _populate(ledger, domain, signer_key)
        state = replay_events(ledger.events())

        snapshot = ledger.get_daily_snapshot(STATION, DATE)
        assert state.snapshots[(STATION, DATE)]["signer"] == snapshot.signer
        assert state.snapshots[(STATION, DATE)]["digest"] == snapshot.digest

        for period in (PERIOD, "2025-02"):
            live = ledger.get_effective_monthly_settlement(period, STATION)
            replayed = state.effective_settlement(STATION, period)
            assert replayed["revision"] == live.revision
            assert replayed["grid_delivered_kwh_x10"] == live.grid_delivered_kwh_x10
            assert replayed["tariff_bp"] == live.tariff_bp

        assert state.settlements[(STATION, PERIOD)][1]["grid_delivered_kwh_x10"] == 50000
        assert state.amendment_reasons[(STATION, PERIOD)] == {2: "Red invoice correction"}

    def test_replay_roles_and_pause(self, ledger, domain, signer_key):
        _populate(ledger, domain, signer_key)
        state = replay_events(ledger.events())

        assert state.paused is True
        assert (OUTSIDER, "SNAPSHOT_SUBMITTER") in state.roles
        assert (FINANCE, "SETTLEMENT_SUBMITTER") not in state.roles
        assert (ADMIN, "ADMIN") in state.roles

    def test_unfiled_key_replays_as_none(self, ledger):
        assert replay_events(ledger.events()).effective_settlement(STATION, PERIOD) is None
