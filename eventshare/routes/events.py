"""Event routes: visible-event listing and the event write path."""
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlmodel import Session

from eventshare.core.database import get_session
from eventshare.models import Event
from eventshare.routes.deps import get_actor_id
from eventshare.schemas import (
    BulkCount,
    BulkProjectionResult,
    EventCreate,
    EventUpdate,
    MemberProjectionCreate,
    OwnerUpdate,
    ProjectionCreate,
    ProjectionRead,
    PublicEventView,
    VisibilityRead,
)
from eventshare.visibility import events as event_service
from eventshare.visibility import ownership, projections
from eventshare.visibility.listing import list_visible_events
from eventshare.visibility.redaction import project_owner_view
from eventshare.visibility.resolver import resolve_for

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=list[PublicEventView])
async def visible_events(
    start: datetime,
    end: datetime,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """
    List events visible to the actor in a time window.

    Includes the actor's own events, their groups' events, events projected
    to them and calendars shared with them, each redacted to the detail
    level the actor is allowed. Sorted by start time.
    """
    return list_visible_events(session, actor_id, start, end)


@router.post("", response_model=PublicEventView, status_code=201)
async def create_event(
    payload: EventCreate,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Create an event in the actor's personal calendar or one of their groups."""
    event = event_service.create_event(session, actor_id, payload)
    return project_owner_view(event)


@router.get("/{event_id}", response_model=PublicEventView)
async def event_detail(
    event_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """
    Display a single event as the actor is allowed to see it.

    Returns 404 both for missing events and for events the actor cannot
    see, so the endpoint does not reveal which events exist.
    """
    view = event_service.view_event(session, event_id, actor_id)
    if view is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return view


@router.get("/{event_id}/visibility", response_model=VisibilityRead)
async def event_visibility(
    event_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """
    Report whether and at which scope the actor sees this event.

    A missing event is reported as not visible, like any other event the
    actor has no relationship with.
    """
    event = session.get(Event, event_id)
    if not event:
        return VisibilityRead(visible=False)
    visibility = resolve_for(session, event, actor_id)
    if not visibility.visible:
        return VisibilityRead(visible=False)
    return VisibilityRead(visible=True, scope=visibility.scope, as_owner=visibility.as_owner)


@router.patch("/{event_id}", response_model=PublicEventView)
async def update_event(
    event_id: UUID,
    payload: EventUpdate,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Update event fields. Requires edit authority over the event's owner."""
    changes = payload.model_dump(exclude_unset=True, exclude={"expected_version"})
    event = event_service.update_event(
        session, event_id, actor_id, changes, expected_version=payload.expected_version
    )
    return project_owner_view(event)


@router.delete("/{event_id}", status_code=204)
async def delete_event(
    event_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Delete an event and every projection of it."""
    event_service.delete_event(session, event_id, actor_id)
    return Response(status_code=204)


@router.put("/{event_id}/owner", response_model=PublicEventView)
async def set_event_owner(
    event_id: UUID,
    payload: OwnerUpdate,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Move an event to another owner (the actor, or a group they edit)."""
    event = ownership.set_owner(
        session,
        event_id,
        actor_id=actor_id,
        user_id=payload.owner_user_id,
        group_id=payload.owner_group_id,
        expected_version=payload.expected_version,
    )
    return project_owner_view(event)


@router.post("/{event_id}/projections", response_model=ProjectionRead, status_code=201)
async def create_projection(
    event_id: UUID,
    payload: ProjectionCreate,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """
    Offer the event to another user's calendar.

    The target has to accept before the event shows up for them. Offering
    again updates the scope, or re-opens a declined or revoked offer.
    """
    return projections.create_projection(
        session,
        event_id,
        payload.target_user_id,
        payload.scope,
        actor_id,
        target_group_id=payload.target_group_id,
        status=payload.status,
    )


@router.get("/{event_id}/projections", response_model=list[ProjectionRead])
async def event_projections(
    event_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """List every projection of the event, including declined and revoked ones."""
    return projections.list_projections_for_event(session, event_id, actor_id)


@router.post(
    "/{event_id}/projections/members",
    response_model=BulkProjectionResult,
    status_code=201,
)
async def project_to_members(
    event_id: UUID,
    payload: MemberProjectionCreate,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Offer the event to every other active member of one of the actor's groups."""
    created, skipped = projections.project_to_members(
        session, event_id, payload.group_id, actor_id, payload.scope, payload.status
    )
    return BulkProjectionResult(created=created, skipped=skipped)


@router.post("/{event_id}/projections/revoke-all", response_model=BulkCount)
async def revoke_all_projections(
    event_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Revoke every projection of the event at once."""
    return BulkCount(count=projections.revoke_all_projections(session, event_id, actor_id))
