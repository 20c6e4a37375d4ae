"""Hashing for the ledger event stream.

An event hash covers the event type, the notification payload and the hash
of the preceding event, serialized together as one canonical JSON document.
Re-hashing a stream from its first event therefore exposes any notification
that was altered, dropped or reordered.
"""

import hashlib
import json
from typing import Any

from generation_ledger.core.config import settings


def canonical_json(data: dict[str, Any]) -> str:
    """Serialize ``data`` deterministically: sorted keys, no whitespace.

    Only JSON-native values are accepted, the same values the event table
    can store.
    """
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def event_document(
    event_type: str, payload: dict[str, Any], previous_hash: str | None
) -> dict[str, Any]:
    return {"event_type": event_type, "payload": payload, "previous_hash": previous_hash}


def compute_event_hash(
    event_type: str, payload: dict[str, Any], previous_hash: str | None = None
) -> str:
    """Hex hash of one event, linked to ``previous_hash`` (None for the first event)."""
    document = canonical_json(event_document(event_type, payload, previous_hash))
    return hashlib.new(settings.event_hash_algorithm, document.encode("utf-8")).hexdigest()
