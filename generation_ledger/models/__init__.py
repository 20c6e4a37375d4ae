from generation_ledger.models.access import PauseState, PauseStatus, Role, RoleMembership
from generation_ledger.models.event import EventType, LedgerEvent
from generation_ledger.models.payloads import SettlementFields, SnapshotPayload
from generation_ledger.models.settlement import EffectiveRevision, SettlementRecord
from generation_ledger.models.snapshot import SnapshotRecord

__all__ = [
    "EffectiveRevision",
    "EventType",
    "LedgerEvent",
    "PauseState",
    "PauseStatus",
    "Role",
    "RoleMembership",
    "SettlementFields",
    "SettlementRecord",
    "SnapshotPayload",
    "SnapshotRecord",
]
