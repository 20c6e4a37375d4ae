"""Pause switch: the global kill switch for every mutating call."""

import logging

from sqlalchemy.orm import Session

from generation_ledger.core.errors import SystemPaused
from generation_ledger.models.access import PauseState, PauseStatus, Role
from generation_ledger.models.event import EventType
from generation_ledger.services.access_gate import require_role
from generation_ledger.services.event_emitter import emit

logger = logging.getLogger(__name__)

_ROW_ID = 1


def is_paused(session: Session) -> bool:
    state = session.get(PauseState, _ROW_ID)
    return state is not None and state.status == PauseStatus.PAUSED


def require_active(session: Session) -> None:
    if is_paused(session):
        raise SystemPaused()


def pause(session: Session, sender: str) -> bool:
    """Pause all mutations.  Returns False if the ledger was already paused."""
    return _set_status(session, sender, PauseStatus.PAUSED)


def unpause(session: Session, sender: str) -> bool:
    """Resume mutations.  Returns False if the ledger was already active."""
    return _set_status(session, sender, PauseStatus.ACTIVE)


def _set_status(session: Session, sender: str, status: PauseStatus) -> bool:
    require_role(session, sender, Role.ADMIN)

    state = session.get(PauseState, _ROW_ID)
    if state is None:
        state = PauseState(id=_ROW_ID, status=PauseStatus.ACTIVE)
        session.add(state)
    if state.status == status:
        return False

    state.status = status
    event_type = EventType.PAUSED if status == PauseStatus.PAUSED else EventType.UNPAUSED
    emit(session, event_type, {"sender": sender})
    logger.warning("Ledger %s by %s", status.value, sender)
    return True
