"""Projection routes: answering and revoking event-level grants."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlmodel import Session

from eventshare.core.database import get_session
from eventshare.routes.deps import get_actor_id
from eventshare.schemas import BulkCount, ProjectionRead, ProjectionResponse
from eventshare.visibility import projections

router = APIRouter(prefix="/projections", tags=["projections"])


@router.get("/incoming", response_model=list[ProjectionRead])
async def incoming_projections(
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Projections offered to the actor that still await an answer."""
    return projections.list_incoming_projections(session, actor_id)


@router.post("/incoming/accept-all", response_model=BulkCount)
async def accept_all_pending(
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Accept every pending projection offered to the actor."""
    return BulkCount(count=projections.accept_all_pending(session, actor_id))


@router.post("/{projection_id}/respond", response_model=ProjectionRead)
async def respond_to_projection(
    projection_id: UUID,
    payload: ProjectionResponse,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Accept or decline a projection, as its target."""
    return projections.respond_to_projection(
        session, projection_id, actor_id, payload.decision, payload.expected_version
    )


@router.post("/{projection_id}/revoke", response_model=ProjectionRead)
async def revoke_projection(
    projection_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    session: Session = Depends(get_session),
):
    """Revoke a projection. The event disappears for the target immediately."""
    return projections.revoke_projection(session, projection_id, actor_id)
