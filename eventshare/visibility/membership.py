"""Membership registry for groups that own events.

Membership rows move through ``pending -> active -> removed`` (or
``pending -> removed`` when an invitation is declined or withdrawn). Only
active members take part in visibility decisions.
"""
import logging
from uuid import UUID

from sqlmodel import Session, select

from eventshare.core.clock import utcnow
from eventshare.core.errors import (
    DuplicateMembership,
    Forbidden,
    InvalidTransition,
    NotFound,
)
from eventshare.models import Group, GroupMembership, MembershipStatus, Role
from eventshare.models.group import role_at_least
from eventshare.visibility.versioning import check_expected_version, insert_unique, write_versioned

logger = logging.getLogger(__name__)

__all__ = [
    "add_member",
    "change_role",
    "create_group",
    "is_active_member",
    "is_group",
    "list_members",
    "role_at_least",
    "role_of",
    "set_status",
]


def _active_membership(session: Session, group_id: UUID, user_id: UUID) -> GroupMembership | None:
    statement = (
        select(GroupMembership)
        .where(GroupMembership.group_id == group_id)
        .where(GroupMembership.user_id == user_id)
        .where(GroupMembership.status == MembershipStatus.ACTIVE)
    )
    return session.exec(statement).first()


def _open_membership(session: Session, group_id: UUID, user_id: UUID) -> GroupMembership | None:
    statement = (
        select(GroupMembership)
        .where(GroupMembership.group_id == group_id)
        .where(GroupMembership.user_id == user_id)
        .where(GroupMembership.status != MembershipStatus.REMOVED)
    )
    return session.exec(statement).first()


def is_group(session: Session, group_id: UUID) -> bool:
    return session.get(Group, group_id) is not None


def is_active_member(session: Session, group_id: UUID, user_id: UUID) -> bool:
    return _active_membership(session, group_id, user_id) is not None


def role_of(session: Session, group_id: UUID, user_id: UUID) -> Role | None:
    """Role of an active member, or None for anyone else."""
    membership = _active_membership(session, group_id, user_id)
    return membership.role if membership else None


def active_group_ids(session: Session, user_id: UUID) -> set[UUID]:
    statement = (
        select(GroupMembership.group_id)
        .where(GroupMembership.user_id == user_id)
        .where(GroupMembership.status == MembershipStatus.ACTIVE)
    )
    return set(session.exec(statement).all())


def active_member_ids(session: Session, group_id: UUID) -> list[UUID]:
    statement = (
        select(GroupMembership.user_id)
        .where(GroupMembership.group_id == group_id)
        .where(GroupMembership.status == MembershipStatus.ACTIVE)
        .order_by(GroupMembership.created_at)
    )
    return list(session.exec(statement).all())


def create_group(session: Session, name: str, created_by: UUID) -> Group:
    """Create a group with its creator as the active owner."""
    group = Group(name=name, created_by=created_by)
    session.add(group)
    session.flush()

    session.add(
        GroupMembership(
            group_id=group.id,
            user_id=created_by,
            role=Role.OWNER,
            status=MembershipStatus.ACTIVE,
            invited_by=created_by,
            responded_at=utcnow(),
        )
    )
    session.commit()
    session.refresh(group)
    logger.info(f"Group {group.id} created by {created_by}")
    return group


def list_members(session: Session, group_id: UUID) -> list[GroupMembership]:
    statement = (
        select(GroupMembership)
        .where(GroupMembership.group_id == group_id)
        .order_by(GroupMembership.created_at)
    )
    return list(session.exec(statement).all())


def add_member(
    session: Session,
    group_id: UUID,
    user_id: UUID,
    role: Role,
    invited_by: UUID,
) -> GroupMembership:
    """
    Invite a user into a group.

    The inviter must be an admin or owner, and only owners may invite
    another owner. Fails with DuplicateMembership while a pending or active
    row exists for the pair; a previously removed member gets a fresh
    pending row so the old one stays in the history.
    """
    if not is_group(session, group_id):
        raise NotFound("Group not found")

    inviter_role = role_of(session, group_id, invited_by)
    if not role_at_least(inviter_role, Role.ADMIN):
        raise Forbidden("Only group admins can invite members")
    if role == Role.OWNER and inviter_role != Role.OWNER:
        raise Forbidden("Only group owners can invite another owner")

    existing = _open_membership(session, group_id, user_id)
    if existing:
        raise DuplicateMembership(
            f"User {user_id} already has a {existing.status.value} membership"
        )

    membership = GroupMembership(
        group_id=group_id,
        user_id=user_id,
        role=role,
        status=MembershipStatus.PENDING,
        invited_by=invited_by,
    )
    insert_unique(session, membership)
    logger.info(f"User {user_id} invited to group {group_id} as {role.value} by {invited_by}")
    return membership


def set_status(
    session: Session,
    membership_id: UUID,
    actor_id: UUID,
    new_status: MembershipStatus,
    expected_version: int | None = None,
) -> GroupMembership:
    """
    Move a membership to a new status.

    Allowed transitions:
    - pending -> active: the invitee accepts.
    - pending -> removed: the invitee declines, or an admin withdraws.
    - active -> removed: the member leaves, or an admin removes them.

    Anything else raises InvalidTransition. An allowed transition requested
    by the wrong user raises Forbidden.
    """
    membership = session.get(GroupMembership, membership_id)
    if not membership:
        raise NotFound("Membership not found")
    check_expected_version(membership, expected_version)

    current = membership.status
    is_self = membership.user_id == actor_id
    is_admin = role_at_least(role_of(session, membership.group_id, actor_id), Role.ADMIN)

    if current == MembershipStatus.PENDING and new_status == MembershipStatus.ACTIVE:
        allowed = is_self
    elif new_status == MembershipStatus.REMOVED and current in (
        MembershipStatus.PENDING,
        MembershipStatus.ACTIVE,
    ):
        allowed = is_self or is_admin
    else:
        raise InvalidTransition(
            f"Cannot move membership from {current.value} to {new_status.value}"
        )

    if not allowed:
        raise Forbidden("Not allowed to change this membership")
    if (
        new_status == MembershipStatus.REMOVED
        and membership.role == Role.OWNER
        and current == MembershipStatus.ACTIVE
        and _active_owner_count(session, membership.group_id) == 1
    ):
        raise InvalidTransition("A group must keep at least one active owner")

    values = {"status": new_status}
    if is_self:
        values["responded_at"] = utcnow()
    write_versioned(session, membership, **values)
    logger.info(
        f"Membership {membership_id} in group {membership.group_id}: "
        f"{current.value} -> {new_status.value} by {actor_id}"
    )
    return membership


def change_role(
    session: Session,
    membership_id: UUID,
    actor_id: UUID,
    role: Role,
    expected_version: int | None = None,
) -> GroupMembership:
    """Change an active member's role. Requires admin; owner roles need an owner."""
    membership = session.get(GroupMembership, membership_id)
    if not membership:
        raise NotFound("Membership not found")
    check_expected_version(membership, expected_version)

    if membership.status != MembershipStatus.ACTIVE:
        raise InvalidTransition("Only active members can change role")

    actor_role = role_of(session, membership.group_id, actor_id)
    if not role_at_least(actor_role, Role.ADMIN):
        raise Forbidden("Only group admins can change roles")
    if Role.OWNER in (role, membership.role) and actor_role != Role.OWNER:
        raise Forbidden("Only group owners can grant or change the owner role")
    if (
        membership.role == Role.OWNER
        and role != Role.OWNER
        and _active_owner_count(session, membership.group_id) == 1
    ):
        raise InvalidTransition("A group must keep at least one active owner")

    previous = membership.role
    write_versioned(session, membership, role=role)
    logger.info(
        f"Membership {membership_id} role {previous.value} -> {role.value} by {actor_id}"
    )
    return membership


def _active_owner_count(session: Session, group_id: UUID) -> int:
    statement = (
        select(GroupMembership.id)
        .where(GroupMembership.group_id == group_id)
        .where(GroupMembership.role == Role.OWNER)
        .where(GroupMembership.status == MembershipStatus.ACTIVE)
    )
    return len(session.exec(statement).all())
