"""Projection store: event-level, revocable visibility grants.

A projection puts one event into one user's calendar at a chosen detail
scope. It only counts once the target accepts it, and it stops counting
the moment it is revoked: there is no cache between this table and the
resolver, so the next visibility check reads the revoked status.
"""
import logging
from uuid import UUID

from sqlmodel import Session, select

from eventshare.core.clock import utcnow
from eventshare.core.errors import Forbidden, InvalidGrant, InvalidTransition, NotFound
from eventshare.models import Event, Projection, ProjectionStatus, Scope
from eventshare.models.projection import PROJECTION_SCOPES, SCOPE_RANK
from eventshare.visibility import membership
from eventshare.visibility.ownership import OwnerKind, has_edit_authority, owner_of
from eventshare.visibility.versioning import (
    check_expected_version,
    insert_unique,
    write_many,
    write_versioned,
)

logger = logging.getLogger(__name__)

INITIAL_STATUSES = (ProjectionStatus.SUGGESTED, ProjectionStatus.PENDING)
TARGET_DECISIONS = (ProjectionStatus.ACCEPTED, ProjectionStatus.DECLINED)
CLOSED_STATUSES = (ProjectionStatus.DECLINED, ProjectionStatus.REVOKED)


def get_projection(session: Session, projection_id: UUID) -> Projection:
    projection = session.get(Projection, projection_id)
    if not projection:
        raise NotFound("Projection not found")
    return projection


def _get_event(session: Session, event_id: UUID) -> Event:
    event = session.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    return event


def _find_projection(
    session: Session,
    event_id: UUID,
    target_user_id: UUID,
    target_group_id: UUID | None,
) -> Projection | None:
    statement = (
        select(Projection)
        .where(Projection.event_id == event_id)
        .where(Projection.target_user_id == target_user_id)
        .where(Projection.target_group_id == target_group_id)
    )
    return session.exec(statement).first()


def create_projection(
    session: Session,
    event_id: UUID,
    target_user_id: UUID,
    scope: Scope,
    creator_id: UUID,
    *,
    target_group_id: UUID | None = None,
    status: ProjectionStatus = ProjectionStatus.PENDING,
) -> Projection:
    """
    Offer an event to a target user's calendar.

    The creator must have edit authority over the event's owner. There is
    at most one projection per (event, target user, target group):
    offering again while it is live updates its scope, offering again after
    it was declined or revoked starts a new offer on the same row.

    Raises:
        NotFound: the event or target group does not exist.
        Forbidden: the creator cannot act for the event's owner.
        InvalidGrant: bad scope or status, or the target already owns the event.
    """
    if scope not in PROJECTION_SCOPES:
        raise InvalidGrant(f"Projections cannot use scope {scope.value}")
    if status not in INITIAL_STATUSES:
        raise InvalidGrant(f"Projections cannot be created as {status.value}")

    event = _get_event(session, event_id)
    owner = owner_of(event)
    if not has_edit_authority(session, owner, creator_id):
        raise Forbidden("Only the event owner can project it")
    if owner.kind == OwnerKind.ACTOR and owner.id == target_user_id:
        raise InvalidGrant("Cannot project an event to its own owner")
    if target_group_id is not None and not membership.is_group(session, target_group_id):
        raise NotFound("Target group not found")

    projection = _find_projection(session, event_id, target_user_id, target_group_id)
    if projection is None:
        projection = Projection(
            event_id=event_id,
            target_user_id=target_user_id,
            target_group_id=target_group_id,
            scope=scope,
            status=status,
            created_by=creator_id,
        )
        insert_unique(session, projection)
        logger.info(
            f"Event {event_id} projected to {target_user_id} "
            f"({scope.value}, {status.value}) by {creator_id}"
        )
        return projection

    if projection.status in CLOSED_STATUSES:
        write_versioned(
            session,
            projection,
            scope=scope,
            status=status,
            created_by=creator_id,
            created_at=utcnow(),
            accepted_at=None,
            declined_at=None,
            revoked_at=None,
        )
        logger.info(f"Projection {projection.id} re-offered ({scope.value}) by {creator_id}")
    elif projection.scope != scope:
        write_versioned(session, projection, scope=scope)
        logger.info(f"Projection {projection.id} scope changed to {scope.value}")
    return projection


def respond_to_projection(
    session: Session,
    projection_id: UUID,
    actor_id: UUID,
    decision: ProjectionStatus,
    expected_version: int | None = None,
) -> Projection:
    """Accept or decline a suggested or pending projection, as its target."""
    projection = get_projection(session, projection_id)
    check_expected_version(projection, expected_version)

    if projection.target_user_id != actor_id:
        raise Forbidden("Only the target user can respond to a projection")
    if decision not in TARGET_DECISIONS:
        raise InvalidTransition(f"Targets cannot set a projection to {decision.value}")
    if projection.status not in INITIAL_STATUSES:
        raise InvalidTransition(
            f"Projection is {projection.status.value} and can no longer be answered"
        )

    now = utcnow()
    if decision == ProjectionStatus.ACCEPTED:
        write_versioned(session, projection, status=decision, accepted_at=now)
    else:
        write_versioned(session, projection, status=decision, declined_at=now)
    logger.info(f"Projection {projection_id} {decision.value} by target {actor_id}")
    return projection


def revoke_projection(
    session: Session,
    projection_id: UUID,
    actor_id: UUID,
    expected_version: int | None = None,
) -> Projection:
    """
    Revoke a projection, effective immediately.

    Allowed for the projection's creator and for anyone with edit authority
    over the event's current owner. Revoking twice is a no-op.
    """
    projection = get_projection(session, projection_id)
    check_expected_version(projection, expected_version)

    event = _get_event(session, projection.event_id)
    if projection.created_by != actor_id and not has_edit_authority(
        session, owner_of(event), actor_id
    ):
        raise Forbidden("Only the creator or the event owner can revoke a projection")
    if projection.status == ProjectionStatus.REVOKED:
        return projection

    write_versioned(session, projection, status=ProjectionStatus.REVOKED, revoked_at=utcnow())
    logger.info(f"Projection {projection_id} revoked by {actor_id}")
    return projection


def project_to_members(
    session: Session,
    event_id: UUID,
    group_id: UUID,
    creator_id: UUID,
    scope: Scope = Scope.FULL,
    status: ProjectionStatus = ProjectionStatus.PENDING,
) -> tuple[int, int]:
    """
    Offer an event to every active member of a group at once.

    The creator needs edit authority over the event and must be an active
    member of the group. The creator is never a target. Members who already
    have any projection of the event, whatever its status or target group,
    are skipped rather than re-offered. New rows are personal projections
    (no target group) and are written in one transaction.

    Returns:
        (created, skipped) counts.
    """
    if scope not in PROJECTION_SCOPES:
        raise InvalidGrant(f"Projections cannot use scope {scope.value}")
    if status not in INITIAL_STATUSES:
        raise InvalidGrant(f"Projections cannot be created as {status.value}")

    event = _get_event(session, event_id)
    owner = owner_of(event)
    if not has_edit_authority(session, owner, creator_id):
        raise Forbidden("Only the event owner can project it")
    if not membership.is_group(session, group_id):
        raise NotFound("Group not found")
    if not membership.is_active_member(session, group_id, creator_id):
        raise Forbidden("Only active members can project to their group")

    targets = [
        user_id
        for user_id in membership.active_member_ids(session, group_id)
        if user_id != creator_id
        and not (owner.kind == OwnerKind.ACTOR and owner.id == user_id)
    ]
    already = set(
        session.exec(
            select(Projection.target_user_id).where(Projection.event_id == event_id)
        ).all()
    )
    new_rows = [
        Projection(
            event_id=event_id,
            target_user_id=user_id,
            scope=scope,
            status=status,
            created_by=creator_id,
        )
        for user_id in targets
        if user_id not in already
    ]
    insert_unique(session, *new_rows)

    skipped = len(targets) - len(new_rows)
    logger.info(
        f"Event {event_id} projected to {len(new_rows)} members of group {group_id} "
        f"({scope.value}, {skipped} skipped) by {creator_id}"
    )
    return len(new_rows), skipped


def revoke_all_projections(session: Session, event_id: UUID, actor_id: UUID) -> int:
    """Revoke every live projection of an event. Returns how many changed."""
    event = _get_event(session, event_id)
    if not has_edit_authority(session, owner_of(event), actor_id):
        raise Forbidden("Only the event owner can revoke all its projections")

    count = write_many(
        session,
        Projection,
        Projection.event_id == event_id,
        Projection.status != ProjectionStatus.REVOKED,
        status=ProjectionStatus.REVOKED,
        revoked_at=utcnow(),
    )
    logger.info(f"{count} projections of event {event_id} revoked by {actor_id}")
    return count


def accept_all_pending(session: Session, actor_id: UUID) -> int:
    """Accept every pending projection offered to ``actor_id``.

    Suggested projections are left alone: they have not been explicitly
    offered yet.
    """
    count = write_many(
        session,
        Projection,
        Projection.target_user_id == actor_id,
        Projection.status == ProjectionStatus.PENDING,
        status=ProjectionStatus.ACCEPTED,
        accepted_at=utcnow(),
    )
    logger.info(f"{count} pending projections accepted by {actor_id}")
    return count


def list_projections_for_event(session: Session, event_id: UUID, actor_id: UUID) -> list[Projection]:
    """Projections of an event, visible to whoever can act for its owner."""
    event = _get_event(session, event_id)
    if not has_edit_authority(session, owner_of(event), actor_id):
        raise Forbidden("Only the event owner can list its projections")
    statement = (
        select(Projection)
        .where(Projection.event_id == event_id)
        .order_by(Projection.created_at)
    )
    return list(session.exec(statement).all())


def list_incoming_projections(
    session: Session,
    target_user_id: UUID,
    statuses: tuple[ProjectionStatus, ...] = INITIAL_STATUSES,
) -> list[Projection]:
    """Projections offered to a user, by default the ones awaiting an answer."""
    statement = (
        select(Projection)
        .where(Projection.target_user_id == target_user_id)
        .where(Projection.status.in_(statuses))
        .order_by(Projection.created_at)
    )
    return list(session.exec(statement).all())


def accepted_scopes(session: Session, viewer_id: UUID) -> dict[UUID, Scope]:
    """Widest accepted projection scope per event for ``viewer_id``."""
    statement = (
        select(Projection.event_id, Projection.scope)
        .where(Projection.target_user_id == viewer_id)
        .where(Projection.status == ProjectionStatus.ACCEPTED)
    )
    scopes: dict[UUID, Scope] = {}
    for event_id, scope in session.exec(statement).all():
        current = scopes.get(event_id)
        if current is None or SCOPE_RANK[scope] > SCOPE_RANK[current]:
            scopes[event_id] = scope
    return scopes
