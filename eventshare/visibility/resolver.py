"""Visibility resolver: what a viewer may see of an event.

``resolve`` is a pure function of an event and the viewer's grants. The
rules are checked in a fixed order and the first match wins, so ownership
always dominates sharing:

1. The viewer owns the event                              -> full
2. The event belongs to a group the viewer is active in   -> full
3. The viewer accepted a projection of the event          -> its scope,
   capped to a busy block when the event is marked busy
4. The owner has an active sharing agreement with viewer  -> full, or a
   busy block when the event is marked busy
5. Anything else                                          -> not visible

Not being able to see an event is a normal outcome, returned as
``NOT_VISIBLE`` rather than raised, so listing code can skip it.

The grants are loaded from the database on every call to ``load_grants``;
nothing here is cached, so a revocation shows up on the very next check.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import ClassVar, Union
from uuid import UUID

from sqlmodel import Session

from eventshare.models import DetailVisibility, Event, Scope
from eventshare.visibility import agreements, membership, projections


@dataclass(frozen=True)
class NotVisible:
    visible: ClassVar[bool] = False


@dataclass(frozen=True)
class Visible:
    """The event is visible at ``scope``.

    ``as_owner`` is set when the viewer sees the event as (a member of) its
    owner; only owner views carry attribution fields.
    """

    scope: Scope
    as_owner: bool = False
    visible: ClassVar[bool] = True


Visibility = Union[NotVisible, Visible]

NOT_VISIBLE = NotVisible()


@dataclass(frozen=True)
class ViewerGrants:
    """Everything the resolver needs to know about one viewer.

    Attributes:
        viewer_id: The user asking.
        active_group_ids: Groups the viewer is an active member of.
        projection_scopes: Event id -> widest accepted projection scope.
        agreement_owner_ids: Users with an active share to the viewer.
    """

    viewer_id: UUID
    active_group_ids: frozenset[UUID] = frozenset()
    projection_scopes: Mapping[UUID, Scope] = field(default_factory=dict)
    agreement_owner_ids: frozenset[UUID] = frozenset()


def busy_ceiling(event: Event, scope: Scope) -> Scope:
    """Clamp a non-owner scope to a busy block when the event is busy."""
    if event.detail_visibility == DetailVisibility.BUSY:
        return Scope.BUSY_BLOCK
    return scope


def resolve(event: Event, grants: ViewerGrants) -> Visibility:
    """Decide whether and how ``grants.viewer_id`` sees ``event``."""
    viewer_id = grants.viewer_id

    if event.owner_user_id is not None and event.owner_user_id == viewer_id:
        return Visible(Scope.FULL, as_owner=True)

    if event.owner_group_id is not None and event.owner_group_id in grants.active_group_ids:
        return Visible(Scope.FULL, as_owner=True)

    projected = grants.projection_scopes.get(event.id)
    if projected is not None:
        return Visible(busy_ceiling(event, projected))

    if event.owner_user_id is not None and event.owner_user_id in grants.agreement_owner_ids:
        return Visible(busy_ceiling(event, Scope.FULL))

    return NOT_VISIBLE


def load_grants(session: Session, viewer_id: UUID) -> ViewerGrants:
    """Read the viewer's current memberships, projections and shares."""
    return ViewerGrants(
        viewer_id=viewer_id,
        active_group_ids=frozenset(membership.active_group_ids(session, viewer_id)),
        projection_scopes=projections.accepted_scopes(session, viewer_id),
        agreement_owner_ids=frozenset(agreements.active_owner_ids(session, viewer_id)),
    )


def resolve_for(session: Session, event: Event, viewer_id: UUID) -> Visibility:
    return resolve(event, load_grants(session, viewer_id))
