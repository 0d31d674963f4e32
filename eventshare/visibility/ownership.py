"""Ownership registry: who an event belongs to, and who may act for them."""
import logging
from enum import Enum
from typing import NamedTuple
from uuid import UUID

from sqlmodel import Session

from eventshare.core.errors import Forbidden, InvalidOwnership, NotFound
from eventshare.models import Event, Role
from eventshare.visibility import membership
from eventshare.visibility.versioning import check_expected_version, write_versioned

logger = logging.getLogger(__name__)


class OwnerKind(str, Enum):
    ACTOR = "actor"
    GROUP = "group"


class Owner(NamedTuple):
    kind: OwnerKind
    id: UUID


def make_owner(user_id: UUID | None, group_id: UUID | None) -> Owner:
    """Build an Owner from a (user, group) pair, exactly one of which is set."""
    if user_id is not None and group_id is not None:
        raise InvalidOwnership("An event cannot be owned by both a user and a group")
    if user_id is None and group_id is None:
        raise InvalidOwnership("An event must be owned by a user or a group")
    if user_id is not None:
        return Owner(OwnerKind.ACTOR, user_id)
    return Owner(OwnerKind.GROUP, group_id)


def owner_of(event: Event) -> Owner:
    return make_owner(event.owner_user_id, event.owner_group_id)


def get_owner(session: Session, event_id: UUID) -> Owner:
    event = session.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    return owner_of(event)


def has_edit_authority(session: Session, owner: Owner, actor_id: UUID) -> bool:
    """Check whether ``actor_id`` may act for ``owner``.

    A personal owner only acts for themselves. For a group owner the actor
    must be an active member with at least the editor role.
    """
    if owner.kind == OwnerKind.ACTOR:
        return owner.id == actor_id
    return membership.role_at_least(
        membership.role_of(session, owner.id, actor_id), Role.EDITOR
    )


def set_owner(
    session: Session,
    event_id: UUID,
    *,
    actor_id: UUID,
    user_id: UUID | None = None,
    group_id: UUID | None = None,
    expected_version: int | None = None,
) -> Event:
    """
    Move an event to a new owner.

    Exactly one of ``user_id`` or ``group_id`` must be given. The actor needs
    edit authority over both the current owner and the new one; handing a
    personal event to somebody else's personal calendar is not allowed.
    Existing projections stay attached to the event and keep being gated
    by the resolver against the new owner.
    """
    new_owner = make_owner(user_id, group_id)

    event = session.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    check_expected_version(event, expected_version)

    if not has_edit_authority(session, owner_of(event), actor_id):
        raise Forbidden("Only the event owner can transfer it")
    if new_owner.kind == OwnerKind.GROUP and not membership.is_group(session, new_owner.id):
        raise NotFound("Group not found")
    if not has_edit_authority(session, new_owner, actor_id):
        raise Forbidden("Cannot transfer an event to an owner you cannot act for")

    write_versioned(session, event, owner_user_id=user_id, owner_group_id=group_id)
    logger.info(f"Event {event_id} ownership moved to {new_owner.kind.value} {new_owner.id}")
    return event
