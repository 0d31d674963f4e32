"""Sharing routes: whole-calendar shares between two users."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlmodel import Session

from eventshare.core.database import get_session
from eventshare.routes.deps import get_actor_id
from eventshare.schemas import ShareCreate, ShareRead, ShareResponse
from eventshare.visibility import agreements

router = APIRouter(prefix="/shares", tags=["shares"])


@router.get("", response_model=list[ShareRead])
async def list_shares(
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """List shares the actor owns or receives, whatever their status."""
    return agreements.list_agreements(session, actor_id)


@router.post("", response_model=ShareRead, status_code=201)
async def share_calendar(
    payload: ShareCreate,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """
    Share the actor's personal calendar with another user.

    The share starts as pending until the viewer accepts it. Sharing again
    with the same viewer updates the permission; after a revocation it
    sends a fresh invitation.
    """
    return agreements.upsert_agreement(
        session, actor_id, payload.viewer_user_id, payload.permission
    )


@router.post("/{share_id}/respond", response_model=ShareRead)
async def respond_to_share(
    share_id: UUID,
    payload: ShareResponse,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Accept ("active") or leave ("revoked") a share, as its viewer."""
    return agreements.respond_to_agreement(
        session, share_id, actor_id, payload.status, payload.expected_version
    )


@router.post("/{share_id}/revoke", response_model=ShareRead)
async def revoke_share(
    share_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Revoke a share as its owner. Takes effect on the next visibility check."""
    return agreements.revoke_as_owner(session, share_id, actor_id)
