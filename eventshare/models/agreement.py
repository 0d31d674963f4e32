"""Sharing agreement model for whole-calendar sharing.

A sharing agreement is a standing owner -> viewer consent record covering
all of the owner's personal events. It is coarser than a projection: the
event's own detail visibility decides how much the viewer sees.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import Field, SQLModel


class Permission(str, Enum):
    READ = "read"
    WRITE = "write"


class AgreementStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REVOKED = "revoked"


class SharingAgreement(SQLModel, table=True):
    """An owner's personal calendar shared with one viewer.

    At most one row exists per (owner, viewer) pair; sharing again after a
    revocation resets that row to "pending" instead of resurrecting it.

    Attributes:
        id: Unique identifier (UUID).
        owner_user_id: User whose personal calendar is shared.
        viewer_user_id: User receiving access. Never the owner.
        permission: "read" or "write". Write is recorded but grants no
            edit rights on event content.
        status: "pending" (invited), "active" (accepted) or "revoked".
        created_by: User who created the share.
        responded_at: When the viewer last accepted or left.
        revoked_at: When the share was revoked.
        version: Incremented on every write, used for optimistic locking.
    """
    __tablename__ = "sharing_agreements"
    __table_args__ = (
        UniqueConstraint("owner_user_id", "viewer_user_id", name="sharing_agreements_unique"),
        CheckConstraint("owner_user_id != viewer_user_id", name="sharing_agreements_no_self_share"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    owner_user_id: UUID = Field(index=True)
    viewer_user_id: UUID = Field(index=True)
    permission: Permission = Field(default=Permission.READ)
    status: AgreementStatus = Field(default=AgreementStatus.PENDING)
    created_by: UUID
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    responded_at: datetime | None = None
    revoked_at: datetime | None = None
    version: int = Field(default=1)
