"""Listing of the events a viewer can see in a time window."""
import logging
from datetime import datetime
from uuid import UUID

from sqlmodel import Session, and_, or_, select

from eventshare.core.clock import to_utc
from eventshare.core.errors import InvalidEvent
from eventshare.models import Event
from eventshare.schemas import PublicEventView
from eventshare.visibility.redaction import project
from eventshare.visibility.resolver import ViewerGrants, load_grants, resolve

logger = logging.getLogger(__name__)


def _candidate_condition(grants: ViewerGrants):
    """Events the viewer might see: the resolver makes the final call."""
    return or_(
        Event.owner_user_id == grants.viewer_id,
        Event.owner_group_id.in_(list(grants.active_group_ids)),
        Event.id.in_(list(grants.projection_scopes)),
        Event.owner_user_id.in_(list(grants.agreement_owner_ids)),
    )


def _window_condition(window_start: datetime, window_end: datetime):
    """Events overlapping the half-open window [start, end).

    Zero-length events count when they fall inside the window.
    """
    return and_(
        Event.start_at < window_end,
        or_(
            Event.end_at > window_start,
            and_(Event.start_at == Event.end_at, Event.start_at >= window_start),
        ),
    )


def list_visible_events(
    session: Session,
    viewer_id: UUID,
    window_start: datetime,
    window_end: datetime,
) -> list[PublicEventView]:
    """
    Return the events ``viewer_id`` may see between two instants.

    Candidates are the viewer's own events, their active groups' events,
    events projected to them and the calendars shared with them. Each is
    run through the resolver and redacted to the resulting scope. Results
    are sorted by start time.
    """
    window_start, window_end = to_utc(window_start), to_utc(window_end)
    if window_end < window_start:
        raise InvalidEvent("Window end must not be before window start")

    grants = load_grants(session, viewer_id)
    statement = (
        select(Event)
        .where(_candidate_condition(grants))
        .where(_window_condition(window_start, window_end))
        .order_by(Event.start_at, Event.id)
    )

    views = []
    for event in session.exec(statement).all():
        visibility = resolve(event, grants)
        if visibility.visible:
            views.append(project(event, visibility.scope, visibility.as_owner))

    logger.debug(f"Listed {len(views)} events for {viewer_id} in [{window_start}, {window_end})")
    return views
