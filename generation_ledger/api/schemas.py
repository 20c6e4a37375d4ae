"""Pydantic schemas for the REST API request/response models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from generation_ledger.models.access import Role
from generation_ledger.models.event import EventType
from generation_ledger.models.payloads import (
    PERIOD_MAX_LENGTH,
    PRINCIPAL_MAX_LENGTH,
    STATION_ID_MAX_LENGTH,
    SettlementFields,
    SnapshotPayload,
)


# ── Snapshots ─────────────────────────────────────────────────────────────────


class SnapshotSubmission(BaseModel):
    """Request body for POST /snapshots."""

    payload: SnapshotPayload
    signature: str = Field(
        ...,
        min_length=1,
        description="Hex signature envelope: compressed SECP256K1 public key + DER ECDSA signature",
    )


class SnapshotResponse(BaseModel):
    station_id: str
    date: str
    total_generation_kwh_x10: int
    grid_delivered_kwh_x10: int
    self_consumed_kwh_x10: int
    sample_count: int
    evidence_hash: str
    digest: str
    signer: str
    submitted_by: str
    stored_at: datetime

    model_config = {"from_attributes": True}


# ── Settlements ───────────────────────────────────────────────────────────────


class SettlementCreate(BaseModel):
    """Request body for POST /settlements."""

    period: str = Field(..., min_length=1, max_length=PERIOD_MAX_LENGTH, examples=["2025-01"])
    station_id: str = Field(
        ..., min_length=1, max_length=STATION_ID_MAX_LENGTH, examples=["STATION-001"]
    )
    fields: SettlementFields


class SettlementAmend(BaseModel):
    """Request body for POST /settlements/{station_id}/{period}/amendments."""

    reason: str = Field(..., min_length=1, examples=["Red invoice correction"])
    fields: SettlementFields


class SettlementResponse(BaseModel):
    station_id: str
    period: str
    revision: int
    grid_delivered_kwh_x10: int
    self_consumed_kwh_x10: int
    tariff_bp: int
    aggregated_hash: str
    audit_doc_hash: str
    receipt_hash: str | None
    submitted_by: str
    committed_at: datetime

    model_config = {"from_attributes": True}


class SettlementHistoryResponse(BaseModel):
    station_id: str
    period: str
    effective_revision: int
    revisions: list[SettlementResponse]


# ── Access / pause ────────────────────────────────────────────────────────────


class RoleChange(BaseModel):
    principal: str = Field(..., min_length=1, max_length=PRINCIPAL_MAX_LENGTH)
    role: Role


class RoleRenounce(BaseModel):
    role: Role


class RoleChangeResponse(BaseModel):
    principal: str
    role: Role
    changed: bool


class PrincipalRolesResponse(BaseModel):
    principal: str
    roles: list[Role]


class StatusResponse(BaseModel):
    paused: bool
    changed: bool | None = None


# ── Events ────────────────────────────────────────────────────────────────────


class EventResponse(BaseModel):
    sequence: int
    event_type: EventType
    payload: dict[str, Any]
    previous_hash: str | None
    event_hash: str
    emitted_at: datetime

    model_config = {"from_attributes": True}


class EventPage(BaseModel):
    events: list[EventResponse]
    next_after: int


# ── Attestation ───────────────────────────────────────────────────────────────


class DomainResponse(BaseModel):
    name: str
    version: str
    chain_id: int
    verifying_entity: str
    separator: str


class DigestResponse(BaseModel):
    digest: str


class APIKeyResponse(BaseModel):
    id: str
    principal: str
    key: str
    prefix: str
    created_at: datetime
