"""Role membership and the global pause flag."""

import enum

from sqlalchemy import Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from generation_ledger.core.database import Base
from generation_ledger.models.payloads import PRINCIPAL_MAX_LENGTH


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    SNAPSHOT_SUBMITTER = "SNAPSHOT_SUBMITTER"
    SETTLEMENT_SUBMITTER = "SETTLEMENT_SUBMITTER"


class PauseStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


class RoleMembership(Base):
    __tablename__ = "role_memberships"

    principal: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), primary_key=True)
    role: Mapped[Role] = mapped_column(
        Enum(Role, name="ledger_role"), primary_key=True
    )

    def __repr__(self) -> str:
        return f"<RoleMembership {self.principal} {self.role.value}>"


class PauseState(Base):
    __tablename__ = "pause_state"

    # Single-row table
    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    status: Mapped[PauseStatus] = mapped_column(
        Enum(PauseStatus, name="pause_status"), nullable=False, default=PauseStatus.ACTIVE
    )
