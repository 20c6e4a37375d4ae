"""Access gate: principal/role membership and the authorization predicate.

``has_role`` is a pure yes/no question; ``require_role`` turns a "no" into
``Unauthorized``.  Only Admins grant or revoke, and any principal may drop
one of its own roles.  Granting a held role or revoking an absent one
changes nothing and emits nothing.
"""

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from generation_ledger.core.errors import Unauthorized
from generation_ledger.models.access import Role, RoleMembership
from generation_ledger.models.event import EventType
from generation_ledger.services.event_emitter import emit

logger = logging.getLogger(__name__)


def has_role(session: Session, principal: str, role: Role) -> bool:
    return session.get(RoleMembership, (principal, role)) is not None


def require_role(session: Session, principal: str, role: Role) -> None:
    if not has_role(session, principal, role):
        raise Unauthorized(principal, role.value)


def roles_of(session: Session, principal: str) -> set[Role]:
    stmt = select(RoleMembership.role).where(RoleMembership.principal == principal)
    return set(session.execute(stmt).scalars())


def grant_role(session: Session, sender: str, principal: str, role: Role) -> bool:
    require_role(session, sender, Role.ADMIN)
    return _grant(session, sender, principal, role)


def revoke_role(session: Session, sender: str, principal: str, role: Role) -> bool:
    require_role(session, sender, Role.ADMIN)
    return _revoke(session, sender, principal, role)


def renounce_role(session: Session, principal: str, role: Role) -> bool:
    return _revoke(session, principal, principal, role)


def bootstrap_roles(
    session: Session,
    admin: str,
    snapshot_submitters: Iterable[str] = (),
    settlement_submitters: Iterable[str] = (),
) -> None:
    """Apply the deployment's initial role assignments.

    The admin also receives SETTLEMENT_SUBMITTER so the first settlement can
    be filed before any separate grant.  Re-running against an existing
    database only adds what is missing.
    """
    _grant(session, admin, admin, Role.ADMIN)
    _grant(session, admin, admin, Role.SETTLEMENT_SUBMITTER)
    for principal in snapshot_submitters:
        _grant(session, admin, principal, Role.SNAPSHOT_SUBMITTER)
    for principal in settlement_submitters:
        _grant(session, admin, principal, Role.SETTLEMENT_SUBMITTER)


def _grant(session: Session, sender: str, principal: str, role: Role) -> bool:
    if has_role(session, principal, role):
        return False
    session.add(RoleMembership(principal=principal, role=role))
    emit(session, EventType.ROLE_GRANTED, {"principal": principal, "role": role.value, "sender": sender})
    logger.info("Granted %s to %s (by %s)", role.value, principal, sender)
    return True


def _revoke(session: Session, sender: str, principal: str, role: Role) -> bool:
    membership = session.get(RoleMembership, (principal, role))
    if membership is None:
        return False
    session.delete(membership)
    emit(session, EventType.ROLE_REVOKED, {"principal": principal, "role": role.value, "sender": sender})
    logger.info("Revoked %s from %s (by %s)", role.value, principal, sender)
    return True
