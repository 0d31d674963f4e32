"""Group routes: groups that own events and their memberships."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from eventshare.core.database import get_session
from eventshare.routes.deps import get_actor_id
from eventshare.schemas import (
    GroupCreate,
    GroupRead,
    MemberCreate,
    MembershipRead,
    MembershipRoleUpdate,
    MembershipStatusUpdate,
)
from eventshare.visibility import membership

router = APIRouter(tags=["groups"])


@router.post("/groups", response_model=GroupRead, status_code=201)
async def create_group(
    payload: GroupCreate,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Create a group. The actor becomes its active owner."""
    return membership.create_group(session, payload.name, actor_id)


@router.get("/groups/{group_id}/members", response_model=list[MembershipRead])
async def group_members(
    group_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """List every membership row of a group. Only active members may look."""
    if not membership.is_active_member(session, group_id, actor_id):
        raise HTTPException(status_code=404, detail="Group not found")
    return membership.list_members(session, group_id)


@router.post("/groups/{group_id}/members", response_model=MembershipRead, status_code=201)
async def invite_member(
    group_id: UUID,
    payload: MemberCreate,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Invite a user into the group. Requires the admin role."""
    return membership.add_member(session, group_id, payload.user_id, payload.role, actor_id)


@router.post("/memberships/{membership_id}/status", response_model=MembershipRead)
async def set_membership_status(
    membership_id: UUID,
    payload: MembershipStatusUpdate,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """
    Accept, decline, leave or remove a membership.

    The invitee accepts ("active") or declines ("removed") a pending
    invitation; a member leaves, or an admin removes them, with "removed".
    """
    return membership.set_status(
        session, membership_id, actor_id, payload.status, payload.expected_version
    )


@router.post("/memberships/{membership_id}/role", response_model=MembershipRead)
async def set_membership_role(
    membership_id: UUID,
    payload: MembershipRoleUpdate,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Change an active member's role. Requires the admin role."""
    return membership.change_role(
        session, membership_id, actor_id, payload.role, payload.expected_version
    )
