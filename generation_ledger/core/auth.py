"""API key authentication mapping bearer tokens to ledger principals.

In-memory store: keys use the format ``gl_sk_<48 hex chars>`` and are kept
only as SHA-256 hashes.  The raw key is returned once, at creation time.
Authentication answers "who is calling"; what that principal may do is
decided by the ledger's access gate.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from generation_ledger.core.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "gl_sk_"

bearer_scheme = HTTPBearer(
    scheme_name="API Key",
    description="Pass your API key as: `Authorization: Bearer gl_sk_...`",
    auto_error=False,
)


@dataclass
class APIKey:
    id: str
    principal: str
    key_hash: str
    prefix: str
    created_at: datetime
    active: bool = True


_keys: dict[str, APIKey] = {}
_hash_index: dict[str, str] = {}


def _hash_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


def register_key(principal: str, raw_key: str | None = None) -> tuple[APIKey, str]:
    """Register a key for ``principal``.  Returns ``(APIKey, raw_key)``.

    A fresh random key is generated unless ``raw_key`` is supplied.
    """
    raw = raw_key or KEY_PREFIX + secrets.token_hex(24)
    key_hash = _hash_key(raw)
    key_id = secrets.token_hex(8)

    api_key = APIKey(
        id=key_id,
        principal=principal,
        key_hash=key_hash,
        prefix=raw[:12] + "...",
        created_at=datetime.now(timezone.utc),
    )
    _keys[key_id] = api_key
    _hash_index[key_hash] = key_id
    return api_key, raw


def validate_key(raw_key: str) -> APIKey | None:
    key_id = _hash_index.get(_hash_key(raw_key))
    if key_id is None:
        return None
    api_key = _keys.get(key_id)
    if api_key is None or not api_key.active:
        return None
    return api_key


def revoke_key(key_id: str) -> bool:
    api_key = _keys.get(key_id)
    if api_key is None:
        return False
    api_key.active = False
    _hash_index.pop(api_key.key_hash, None)
    return True


def clear_keys() -> None:
    _keys.clear()
    _hash_index.clear()


async def require_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
) -> str:
    """Resolve the bearer token to the calling principal."""
    api_key = validate_key(credentials.credentials) if credentials else None
    if api_key is None:
        raise HTTPException(
            status_code=401,
            detail={
                "code": "INVALID_API_KEY",
                "message": "The API key is invalid, revoked, or missing.",
            },
            headers={"WWW-Authenticate": "Bearer"},
        )
    request.state.principal = api_key.principal
    return api_key.principal


def bootstrap() -> None:
    """Load the API keys configured for deployment principals."""
    for principal, raw_key in settings.bootstrap_api_keys.items():
        api_key, _ = register_key(principal, raw_key)
        logger.info("Bootstrap API key loaded for %s (prefix=%s)", principal, api_key.prefix)
