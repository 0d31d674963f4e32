"""Group and membership models.

A group is the "household" or shared context that can own events. Its
members see every event the group owns in full, but only while their
membership is active.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Index
from sqlmodel import Field, SQLModel


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    MEMBER = "member"
    VIEWER = "viewer"


ROLE_HIERARCHY = {
    Role.VIEWER: 1,
    Role.MEMBER: 2,
    Role.EDITOR: 3,
    Role.ADMIN: 4,
    Role.OWNER: 5,
}


def role_at_least(role: Role | None, required: Role) -> bool:
    """Check whether ``role`` ranks at or above ``required``."""
    if role is None:
        return False
    return ROLE_HIERARCHY[role] >= ROLE_HIERARCHY[required]


class MembershipStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REMOVED = "removed"


class Group(SQLModel, table=True):
    """A shared calendar context (household, trip, project space)."""
    __tablename__ = "groups"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str
    created_by: UUID
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class GroupMembership(SQLModel, table=True):
    """A user's membership in a group.

    Rows are never deleted: leaving or being removed is a status change so
    the invitation history stays auditable. A removed member who is invited
    again gets a fresh row, so uniqueness of (group, user) only covers
    pending and active rows.

    Attributes:
        id: Unique identifier (UUID).
        group_id: Foreign key to the Group.
        user_id: The member.
        role: Member's role, ordered owner > admin > editor > member > viewer.
        status: "pending" (invited), "active" or "removed".
        invited_by: User who sent the invitation.
        responded_at: When the invitee accepted or declined.
        version: Incremented on every write, used for optimistic locking.
    """
    __tablename__ = "group_memberships"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    group_id: UUID = Field(foreign_key="groups.id", index=True)
    user_id: UUID = Field(index=True)
    role: Role = Field(default=Role.MEMBER)
    status: MembershipStatus = Field(default=MembershipStatus.PENDING)
    invited_by: UUID | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    responded_at: datetime | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    version: int = Field(default=1)


Index(
    "uq_group_memberships_open",
    GroupMembership.group_id,
    GroupMembership.user_id,
    unique=True,
    sqlite_where=GroupMembership.status != MembershipStatus.REMOVED,
    postgresql_where=GroupMembership.status != MembershipStatus.REMOVED,
)
