"""Event model for calendar events owned by a user or a group.

This module defines the Event model, the record every visibility decision
is made about. An event belongs to exactly one owner: a single user
(personal calendar) or a group (shared household/context calendar). Its
payload fields are what the redaction projector strips for viewers who
may only see part of it.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, Column
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from eventshare.models.projection import Projection


class DetailVisibility(str, Enum):
    """How much of an event ad-hoc viewers may see.

    ``BUSY`` is a hard ceiling: a viewer who is not an owner only ever sees
    the time block, whatever their grant says.
    """

    VISIBLE = "visible"
    BUSY = "busy"


class Event(SQLModel, table=True):
    """A calendar event and its ownership.

    Attributes:
        id: Unique identifier (UUID).
        owner_user_id: Owning user for personal events. Mutually exclusive
            with owner_group_id.
        owner_group_id: Owning group for group events.
        detail_visibility: "visible" or "busy", see DetailVisibility.
        title: Event title.
        description: Free-form description.
        location: Where the event takes place.
        event_type: Application-defined category (meeting, travel, ...).
        color: Display color.
        extras: Arbitrary JSON metadata attached by the calendar UI.
        start_at: When the event starts.
        end_at: When the event ends. Never before start_at.
        all_day: True for date-only events.
        created_by: User who created the event (attribution, owner-only).
        source_type: Kind of domain object the event was derived from
            (attribution, owner-only).
        source_entity_id: Id of that domain object (attribution, owner-only).
        version: Incremented on every write, used for optimistic locking.
        projections: Event-level visibility grants for this event.
    """
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint(
            "(owner_user_id IS NOT NULL AND owner_group_id IS NULL) OR "
            "(owner_user_id IS NULL AND owner_group_id IS NOT NULL)",
            name="events_ownership_check",
        ),
        CheckConstraint("end_at >= start_at", name="events_valid_times"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    owner_user_id: UUID | None = Field(default=None, index=True)
    owner_group_id: UUID | None = Field(
        default=None, foreign_key="groups.id", index=True
    )
    detail_visibility: DetailVisibility = Field(default=DetailVisibility.VISIBLE)

    title: str
    description: str | None = None
    location: str | None = None
    event_type: str | None = None
    color: str | None = None
    extras: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    start_at: datetime = Field(index=True)
    end_at: datetime = Field(index=True)
    all_day: bool = Field(default=False)

    created_by: UUID
    source_type: str | None = None
    source_entity_id: UUID | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    version: int = Field(default=1)

    # Relationships
    projections: list["Projection"] = Relationship(back_populates="event")
