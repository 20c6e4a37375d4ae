"""REST API routes for the generation ledger."""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, Path, Query, Response, status

from generation_ledger.api.schemas import (
    APIKeyResponse,
    DigestResponse,
    DomainResponse,
    EventPage,
    EventResponse,
    PrincipalRolesResponse,
    RoleChange,
    RoleChangeResponse,
    RoleRenounce,
    SettlementAmend,
    SettlementCreate,
    SettlementHistoryResponse,
    SettlementResponse,
    SnapshotResponse,
    SnapshotSubmission,
    StatusResponse,
)
from generation_ledger.core import attestation
from generation_ledger.core.auth import register_key, require_principal, revoke_key
from generation_ledger.core.errors import NotFound, Unauthorized
from generation_ledger.models.access import Role
from generation_ledger.models.payloads import (
    PERIOD_MAX_LENGTH,
    PRINCIPAL_MAX_LENGTH,
    STATION_ID_MAX_LENGTH,
    SnapshotPayload,
)
from generation_ledger.services.ledger import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter()

_ERRORS = {
    401: {"description": "Missing or invalid API key"},
    403: {"description": "Caller lacks the required role"},
    503: {"description": "Ledger is paused"},
}


@lru_cache
def get_ledger() -> LedgerService:
    return LedgerService.from_settings()


def _require_admin(caller: str, ledger: LedgerService) -> None:
    if not ledger.has_role(caller, Role.ADMIN):
        raise Unauthorized(caller, Role.ADMIN.value)


# ── Snapshots ─────────────────────────────────────────────────────────────────


@router.post(
    "/snapshots",
    response_model=SnapshotResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **_ERRORS,
        409: {"description": "Snapshot already stored for this station and date"},
        422: {"description": "Invalid signature or sample count"},
    },
    summary="Store a signed daily snapshot",
)
def store_daily_snapshot(
    body: SnapshotSubmission,
    caller: str = Depends(require_principal),
    ledger: LedgerService = Depends(get_ledger),
) -> SnapshotResponse:
    """Verify the data team's signature and store the snapshot.  Write-once per (station, date)."""
    record = ledger.store_daily_snapshot(caller, body.payload, body.signature)
    return SnapshotResponse.model_validate(record)


@router.get(
    "/snapshots/{station_id}/{date}",
    response_model=SnapshotResponse,
    summary="Get a stored daily snapshot",
)
def get_daily_snapshot(
    station_id: str = Path(max_length=STATION_ID_MAX_LENGTH),
    date: str = Path(max_length=PERIOD_MAX_LENGTH),
    ledger: LedgerService = Depends(get_ledger),
) -> SnapshotResponse:
    return SnapshotResponse.model_validate(ledger.get_daily_snapshot(station_id, date))


# ── Settlements ───────────────────────────────────────────────────────────────


@router.post(
    "/settlements",
    response_model=SettlementResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_ERRORS, 409: {"description": "Settlement already filed for this period"}},
    summary="File the initial monthly settlement",
)
def store_monthly_settlement(
    body: SettlementCreate,
    caller: str = Depends(require_principal),
    ledger: LedgerService = Depends(get_ledger),
) -> SettlementResponse:
    record = ledger.store_monthly_settlement(caller, body.period, body.station_id, body.fields)
    return SettlementResponse.model_validate(record)


@router.post(
    "/settlements/{station_id}/{period}/amendments",
    response_model=SettlementResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **_ERRORS,
        409: {"description": "No settlement filed yet, or revision limit reached"},
    },
    summary="Amend a monthly settlement",
    description=(
        "Appends the next revision and makes it effective.  Earlier revisions "
        "remain stored and readable by number."
    ),
)
def amend_monthly_settlement(
    body: SettlementAmend,
    station_id: str = Path(max_length=STATION_ID_MAX_LENGTH),
    period: str = Path(max_length=PERIOD_MAX_LENGTH),
    caller: str = Depends(require_principal),
    ledger: LedgerService = Depends(get_ledger),
) -> SettlementResponse:
    record = ledger.amend_monthly_settlement(caller, period, station_id, body.reason, body.fields)
    return SettlementResponse.model_validate(record)


@router.get(
    "/settlements/{station_id}/{period}",
    response_model=SettlementResponse,
    summary="Get the effective monthly settlement",
)
def get_effective_monthly_settlement(
    station_id: str = Path(max_length=STATION_ID_MAX_LENGTH),
    period: str = Path(max_length=PERIOD_MAX_LENGTH),
    ledger: LedgerService = Depends(get_ledger),
) -> SettlementResponse:
    record = ledger.get_effective_monthly_settlement(period, station_id)
    return SettlementResponse.model_validate(record)


@router.get(
    "/settlements/{station_id}/{period}/revisions",
    response_model=SettlementHistoryResponse,
    summary="List every revision of a monthly settlement",
)
def list_monthly_settlement_revisions(
    station_id: str = Path(max_length=STATION_ID_MAX_LENGTH),
    period: str = Path(max_length=PERIOD_MAX_LENGTH),
    ledger: LedgerService = Depends(get_ledger),
) -> SettlementHistoryResponse:
    revisions = ledger.list_monthly_settlement_revisions(period, station_id)
    return SettlementHistoryResponse(
        station_id=station_id,
        period=period,
        effective_revision=revisions[-1].revision if revisions else 0,
        revisions=[SettlementResponse.model_validate(r) for r in revisions],
    )


@router.get(
    "/settlements/{station_id}/{period}/revisions/{revision}",
    response_model=SettlementResponse,
    summary="Get one revision of a monthly settlement",
)
def get_monthly_settlement_by_revision(
    station_id: str = Path(max_length=STATION_ID_MAX_LENGTH),
    period: str = Path(max_length=PERIOD_MAX_LENGTH),
    revision: int = Path(),
    ledger: LedgerService = Depends(get_ledger),
) -> SettlementResponse:
    record = ledger.get_monthly_settlement_by_revision(period, station_id, revision)
    return SettlementResponse.model_validate(record)


# ── Pause switch ──────────────────────────────────────────────────────────────


@router.get("/status", response_model=StatusResponse, summary="Get the pause state")
def get_status(ledger: LedgerService = Depends(get_ledger)) -> StatusResponse:
    return StatusResponse(paused=ledger.is_paused())


@router.post(
    "/admin/pause",
    response_model=StatusResponse,
    responses=_ERRORS,
    summary="Pause all ledger mutations",
)
def pause(
    caller: str = Depends(require_principal),
    ledger: LedgerService = Depends(get_ledger),
) -> StatusResponse:
    changed = ledger.pause(caller)
    return StatusResponse(paused=True, changed=changed)


@router.post(
    "/admin/unpause",
    response_model=StatusResponse,
    responses=_ERRORS,
    summary="Resume ledger mutations",
)
def unpause(
    caller: str = Depends(require_principal),
    ledger: LedgerService = Depends(get_ledger),
) -> StatusResponse:
    changed = ledger.unpause(caller)
    return StatusResponse(paused=False, changed=changed)


# ── Access gate ───────────────────────────────────────────────────────────────


@router.post("/admin/roles/grant", response_model=RoleChangeResponse, responses=_ERRORS)
def grant_role(
    body: RoleChange,
    caller: str = Depends(require_principal),
    ledger: LedgerService = Depends(get_ledger),
) -> RoleChangeResponse:
    changed = ledger.grant_role(caller, body.principal, body.role)
    return RoleChangeResponse(principal=body.principal, role=body.role, changed=changed)


@router.post("/admin/roles/revoke", response_model=RoleChangeResponse, responses=_ERRORS)
def revoke_role(
    body: RoleChange,
    caller: str = Depends(require_principal),
    ledger: LedgerService = Depends(get_ledger),
) -> RoleChangeResponse:
    changed = ledger.revoke_role(caller, body.principal, body.role)
    return RoleChangeResponse(principal=body.principal, role=body.role, changed=changed)


@router.post("/roles/renounce", response_model=RoleChangeResponse)
def renounce_role(
    body: RoleRenounce,
    caller: str = Depends(require_principal),
    ledger: LedgerService = Depends(get_ledger),
) -> RoleChangeResponse:
    changed = ledger.renounce_role(caller, body.role)
    return RoleChangeResponse(principal=caller, role=body.role, changed=changed)


@router.get("/roles/{principal}", response_model=PrincipalRolesResponse)
def get_roles(
    principal: str = Path(max_length=PRINCIPAL_MAX_LENGTH),
    ledger: LedgerService = Depends(get_ledger),
) -> PrincipalRolesResponse:
    roles = sorted(ledger.roles_of(principal), key=lambda r: r.value)
    return PrincipalRolesResponse(principal=principal, roles=roles)


@router.post(
    "/admin/api_keys",
    response_model=APIKeyResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    summary="Issue an API key for a principal",
    description="The raw key is returned **only once**.  Requires the ADMIN role.",
)
def create_api_key(
    principal: str = Query(..., min_length=1, max_length=PRINCIPAL_MAX_LENGTH),
    caller: str = Depends(require_principal),
    ledger: LedgerService = Depends(get_ledger),
) -> APIKeyResponse:
    _require_admin(caller, ledger)
    api_key, raw_key = register_key(principal)
    logger.info("Issued API key %s for %s (by %s)", api_key.prefix, principal, caller)
    return APIKeyResponse(
        id=api_key.id,
        principal=principal,
        key=raw_key,
        prefix=api_key.prefix,
        created_at=api_key.created_at,
    )


@router.delete(
    "/admin/api_keys/{key_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**_ERRORS, 404: {"description": "Unknown API key"}},
    summary="Revoke an API key",
    description="The key stops authenticating immediately.  Requires the ADMIN role.",
)
def revoke_api_key(
    key_id: str,
    caller: str = Depends(require_principal),
    ledger: LedgerService = Depends(get_ledger),
) -> Response:
    _require_admin(caller, ledger)
    if not revoke_key(key_id):
        raise NotFound(f"API key {key_id} not found")
    logger.info("Revoked API key %s (by %s)", key_id, caller)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Events ────────────────────────────────────────────────────────────────────


@router.get("/events", response_model=EventPage, summary="Read the ordered event stream")
def list_events(
    after: int = Query(default=0, ge=0, description="Return events with sequence > after"),
    limit: int = Query(default=100, gt=0, le=1000),
    ledger: LedgerService = Depends(get_ledger),
) -> EventPage:
    events = ledger.events(after, limit)
    return EventPage(
        events=[EventResponse.model_validate(e) for e in events],
        next_after=events[-1].sequence if events else after,
    )


# ── Attestation ───────────────────────────────────────────────────────────────


@router.get("/attestation/domain", response_model=DomainResponse)
def get_domain(ledger: LedgerService = Depends(get_ledger)) -> DomainResponse:
    domain = ledger.domain
    return DomainResponse(
        name=domain.name,
        version=domain.version,
        chain_id=domain.chain_id,
        verifying_entity=domain.verifying_entity,
        separator=domain.separator().hex(),
    )


@router.post(
    "/attestation/digest",
    response_model=DigestResponse,
    summary="Compute the digest a signer must sign for a snapshot payload",
)
def compute_digest(
    payload: SnapshotPayload,
    ledger: LedgerService = Depends(get_ledger),
) -> DigestResponse:
    return DigestResponse(digest=attestation.digest(payload, ledger.domain).hex())
