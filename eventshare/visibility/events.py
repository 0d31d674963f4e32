"""Event write path: create, update and delete, gated by ownership."""
import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlmodel import Session, select

from eventshare.core.clock import to_utc
from eventshare.core.errors import Forbidden, InvalidEvent, NotFound
from eventshare.models import Event, Projection, Role
from eventshare.schemas import EventCreate, PublicEventView
from eventshare.visibility import membership
from eventshare.visibility.ownership import has_edit_authority, make_owner, owner_of
from eventshare.visibility.redaction import project
from eventshare.visibility.resolver import resolve_for
from eventshare.visibility.versioning import check_expected_version, write_versioned

logger = logging.getLogger(__name__)

# Fields callers may change through update_event. Ownership moves go
# through ownership.set_owner and attribution is fixed at creation.
EDITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "location",
        "event_type",
        "color",
        "extras",
        "start_at",
        "end_at",
        "all_day",
        "detail_visibility",
    }
)
REQUIRED_FIELDS = frozenset(
    {"title", "extras", "start_at", "end_at", "all_day", "detail_visibility"}
)


def _check_times(start_at: datetime, end_at: datetime) -> None:
    if to_utc(end_at) < to_utc(start_at):
        raise InvalidEvent("end_at must be greater than or equal to start_at")


def get_event(session: Session, event_id: UUID) -> Event:
    event = session.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    return event


def _require_edit_authority(session: Session, event: Event, actor_id: UUID) -> None:
    if not has_edit_authority(session, owner_of(event), actor_id):
        raise Forbidden("Not allowed to modify this event")


def create_event(session: Session, actor_id: UUID, data: EventCreate) -> Event:
    """
    Create an event in the actor's personal calendar or in a group.

    Group events need the actor to be an active editor (or higher) of the
    group. The new event is visible to nobody else until a projection is
    accepted or a share is active.
    """
    if data.owner_group_id is not None:
        owner = make_owner(None, data.owner_group_id)
        if not membership.is_group(session, data.owner_group_id):
            raise NotFound("Group not found")
        if not has_edit_authority(session, owner, actor_id):
            raise Forbidden("Only group editors can create group events")
    _check_times(data.start_at, data.end_at)

    event = Event(
        owner_user_id=None if data.owner_group_id else actor_id,
        owner_group_id=data.owner_group_id,
        detail_visibility=data.detail_visibility,
        title=data.title,
        description=data.description,
        location=data.location,
        event_type=data.event_type,
        color=data.color,
        extras=dict(data.extras),
        start_at=to_utc(data.start_at),
        end_at=to_utc(data.end_at),
        all_day=data.all_day,
        created_by=actor_id,
        source_type=data.source_type,
        source_entity_id=data.source_entity_id,
    )
    session.add(event)
    session.commit()
    session.refresh(event)
    logger.info(f"Event {event.id} created by {actor_id}")
    return event


def update_event(
    session: Session,
    event_id: UUID,
    actor_id: UUID,
    changes: dict[str, Any],
    expected_version: int | None = None,
) -> Event:
    """Apply field changes to an event the actor can act for."""
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise InvalidEvent(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
    cleared = {name for name in REQUIRED_FIELDS if name in changes and changes[name] is None}
    if cleared:
        raise InvalidEvent(f"Fields cannot be cleared: {', '.join(sorted(cleared))}")

    event = get_event(session, event_id)
    check_expected_version(event, expected_version)
    _require_edit_authority(session, event, actor_id)

    values = dict(changes)
    for name in ("start_at", "end_at"):
        if values.get(name) is not None:
            values[name] = to_utc(values[name])
    _check_times(values.get("start_at") or event.start_at, values.get("end_at") or event.end_at)

    if not values:
        return event
    write_versioned(session, event, **values)
    logger.info(f"Event {event_id} updated by {actor_id}: {', '.join(sorted(values))}")
    return event


def delete_event(session: Session, event_id: UUID, actor_id: UUID) -> None:
    """Delete an event together with every projection of it.

    Group events can only be deleted by a group admin or owner; editors may
    change them but not remove them.
    """
    event = get_event(session, event_id)
    _require_edit_authority(session, event, actor_id)
    if event.owner_group_id is not None and not membership.role_at_least(
        membership.role_of(session, event.owner_group_id, actor_id), Role.ADMIN
    ):
        raise Forbidden("Only group admins can delete group events")

    grants = session.exec(select(Projection).where(Projection.event_id == event_id)).all()
    for projection in grants:
        session.delete(projection)
    session.flush()
    session.delete(event)
    session.commit()
    logger.info(f"Event {event_id} deleted by {actor_id} ({len(grants)} projections dropped)")


def view_event(session: Session, event_id: UUID, viewer_id: UUID) -> PublicEventView | None:
    """The redacted view of one event, or None when the viewer cannot see it.

    A missing event and an invisible one look the same to the caller.
    """
    event = session.get(Event, event_id)
    if event is None:
        return None
    visibility = resolve_for(session, event, viewer_id)
    if not visibility.visible:
        return None
    return project(event, visibility.scope, visibility.as_owner)
