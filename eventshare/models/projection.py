"""Projection model for event-level visibility grants.

A projection makes one event visible in one target user's calendar at a
chosen level of detail. Events never show up for non-owners without an
accepted projection or an active sharing agreement.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import Index, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from eventshare.models.event import Event


class Scope(str, Enum):
    """Detail tier of a redacted event view, widest first."""

    FULL = "full"
    TITLE = "title"
    DATE_ONLY = "date_only"
    BUSY_BLOCK = "busy_block"


SCOPE_RANK = {
    Scope.BUSY_BLOCK: 0,
    Scope.DATE_ONLY: 0,
    Scope.TITLE: 1,
    Scope.FULL: 2,
}

# Scopes a projection may be created with; busy_block is only ever derived.
PROJECTION_SCOPES = (Scope.DATE_ONLY, Scope.TITLE, Scope.FULL)


class ProjectionStatus(str, Enum):
    SUGGESTED = "suggested"  # Offered by the system, not yet seen by the target
    PENDING = "pending"  # Explicitly offered, awaiting a response
    ACCEPTED = "accepted"
    DECLINED = "declined"
    REVOKED = "revoked"


class Projection(SQLModel, table=True):
    """An explicit, revocable grant of one event to one user.

    At most one row exists per (event, target user, target group). NULL
    target groups never collide in a unique constraint, so personal
    projections get their own partial index.

    Attributes:
        id: Unique identifier (UUID).
        event_id: Foreign key to the projected Event.
        target_user_id: User whose calendar the event is projected into.
        target_group_id: Optional group-scoped calendar of the target.
        scope: "date_only", "title" or "full".
        status: See ProjectionStatus. Only "accepted" makes the event visible.
        created_by: User who created the projection.
        accepted_at: When the target accepted.
        declined_at: When the target declined.
        revoked_at: When the projection was revoked.
        version: Incremented on every write, used for optimistic locking.
        event: Reference to the projected Event.
    """
    __tablename__ = "event_projections"
    __table_args__ = (
        UniqueConstraint("event_id", "target_user_id", "target_group_id"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    event_id: UUID = Field(foreign_key="events.id", index=True)
    target_user_id: UUID = Field(index=True)
    target_group_id: UUID | None = Field(default=None, foreign_key="groups.id")
    scope: Scope = Field(default=Scope.FULL)
    status: ProjectionStatus = Field(default=ProjectionStatus.PENDING)
    created_by: UUID
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    accepted_at: datetime | None = None
    declined_at: datetime | None = None
    revoked_at: datetime | None = None
    version: int = Field(default=1)

    # Relationship
    event: Optional["Event"] = Relationship(back_populates="projections")


Index(
    "uq_event_projections_personal",
    Projection.event_id,
    Projection.target_user_id,
    unique=True,
    sqlite_where=Projection.target_group_id.is_(None),
    postgresql_where=Projection.target_group_id.is_(None),
)
