"""Value types submitted to the ledger.

Energy quantities are fixed-point integers holding value x10 and tariffs are
basis points (value x10000).  The ledger stores and hashes them as opaque
integers and never unscales them.
"""

import re
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

INT64_MAX = 2**63 - 1

# Key widths, shared with the table columns.
STATION_ID_MAX_LENGTH = 128
PERIOD_MAX_LENGTH = 32
PRINCIPAL_MAX_LENGTH = 128

_HASH_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


def _normalize_hash(value: str) -> str:
    if not _HASH_RE.match(value):
        raise ValueError("expected a 32-byte hex digest")
    return value.lower().removeprefix("0x")


ContentHash = Annotated[str, AfterValidator(_normalize_hash)]
ScaledInt = Annotated[int, Field(ge=0, le=INT64_MAX)]


class SnapshotPayload(BaseModel):
    """A daily evidentiary snapshot as signed by the data team."""

    station_id: str = Field(
        ..., min_length=1, max_length=STATION_ID_MAX_LENGTH, examples=["STATION-001"]
    )
    date: str = Field(..., min_length=1, max_length=PERIOD_MAX_LENGTH, examples=["2025-01-15"])
    total_generation_kwh_x10: ScaledInt
    grid_delivered_kwh_x10: ScaledInt
    self_consumed_kwh_x10: ScaledInt
    sample_count: ScaledInt
    evidence_hash: ContentHash

    model_config = {"frozen": True}


class SettlementFields(BaseModel):
    """Business fields of one monthly settlement revision."""

    grid_delivered_kwh_x10: ScaledInt
    self_consumed_kwh_x10: ScaledInt
    tariff_bp: ScaledInt
    aggregated_hash: ContentHash
    audit_doc_hash: ContentHash
    receipt_hash: ContentHash | None = None

    model_config = {"frozen": True}
