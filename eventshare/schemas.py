"""Request and response models for the HTTP API."""
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from eventshare.core.clock import to_utc
from eventshare.models import (
    AgreementStatus,
    DetailVisibility,
    MembershipStatus,
    Permission,
    ProjectionStatus,
    Role,
    Scope,
)


class PublicEventView(BaseModel):
    """An event as returned to a caller, after redaction.

    ``scope`` records the detail tier the view was produced at. Attribution
    fields (created_by, source_type, source_entity_id) are only ever set on
    views produced for the event's owner.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID
    owner_user_id: UUID | None = None
    owner_group_id: UUID | None = None
    scope: Scope
    detail_visibility: DetailVisibility
    title: str
    description: str | None = None
    location: str | None = None
    event_type: str | None = None
    color: str | None = None
    extras: dict[str, Any] | None = None
    start_at: datetime
    end_at: datetime
    all_day: bool = False
    created_by: UUID | None = None
    source_type: str | None = None
    source_entity_id: UUID | None = None


class VisibilityRead(BaseModel):
    visible: bool
    scope: Scope | None = None
    as_owner: bool = False


class EventCreate(BaseModel):
    owner_group_id: UUID | None = None
    title: str
    description: str | None = None
    location: str | None = None
    event_type: str | None = None
    color: str | None = None
    extras: dict[str, Any] = {}
    start_at: datetime
    end_at: datetime
    all_day: bool = False
    detail_visibility: DetailVisibility = DetailVisibility.VISIBLE
    source_type: str | None = None
    source_entity_id: UUID | None = None

    @field_validator("end_at")
    @classmethod
    def check_ends_after_start(cls, end_at: datetime, info: ValidationInfo) -> datetime:
        start_at: datetime | None = info.data.get("start_at")
        if start_at and to_utc(end_at) < to_utc(start_at):
            raise ValueError("end_at must be greater than or equal to start_at")
        return end_at


class EventUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    location: str | None = None
    event_type: str | None = None
    color: str | None = None
    extras: dict[str, Any] | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    all_day: bool | None = None
    detail_visibility: DetailVisibility | None = None
    expected_version: int | None = None


class OwnerUpdate(BaseModel):
    owner_user_id: UUID | None = None
    owner_group_id: UUID | None = None
    expected_version: int | None = None


class ShareCreate(BaseModel):
    viewer_user_id: UUID
    permission: Permission = Permission.READ


class ShareResponse(BaseModel):
    status: AgreementStatus
    expected_version: int | None = None


class ShareRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_user_id: UUID
    viewer_user_id: UUID
    permission: Permission
    status: AgreementStatus
    created_at: datetime
    responded_at: datetime | None = None
    revoked_at: datetime | None = None
    version: int


class ProjectionCreate(BaseModel):
    target_user_id: UUID
    target_group_id: UUID | None = None
    scope: Scope = Scope.FULL
    status: ProjectionStatus = ProjectionStatus.PENDING


class MemberProjectionCreate(BaseModel):
    group_id: UUID
    scope: Scope = Scope.FULL
    status: ProjectionStatus = ProjectionStatus.PENDING


class BulkProjectionResult(BaseModel):
    created: int
    skipped: int


class BulkCount(BaseModel):
    count: int


class ProjectionResponse(BaseModel):
    decision: ProjectionStatus
    expected_version: int | None = None


class ProjectionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    event_id: UUID
    target_user_id: UUID
    target_group_id: UUID | None = None
    scope: Scope
    status: ProjectionStatus
    created_by: UUID
    created_at: datetime
    accepted_at: datetime | None = None
    declined_at: datetime | None = None
    revoked_at: datetime | None = None
    version: int


class GroupCreate(BaseModel):
    name: str


class GroupRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    created_by: UUID
    created_at: datetime


class MemberCreate(BaseModel):
    user_id: UUID
    role: Role = Role.MEMBER


class MembershipStatusUpdate(BaseModel):
    status: MembershipStatus
    expected_version: int | None = None


class MembershipRoleUpdate(BaseModel):
    role: Role
    expected_version: int | None = None


class MembershipRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    group_id: UUID
    user_id: UUID
    role: Role
    status: MembershipStatus
    invited_by: UUID | None = None
    created_at: datetime
    responded_at: datetime | None = None
    version: int
