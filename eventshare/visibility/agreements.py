"""Sharing agreement store: whole-calendar sharing between two users.

Status transitions are asymmetric. The viewer may accept a pending share
or leave a pending/active one; the owner may revoke at any time. Revoked
is final for the row, sharing again starts a new pending grant.
"""
import logging
from uuid import UUID

from sqlmodel import Session, or_, select

from eventshare.core.clock import utcnow
from eventshare.core.errors import Forbidden, InvalidGrant, NotFound
from eventshare.models import AgreementStatus, Permission, SharingAgreement
from eventshare.visibility.versioning import check_expected_version, insert_unique, write_versioned

logger = logging.getLogger(__name__)

VIEWER_RESPONSES = (AgreementStatus.ACTIVE, AgreementStatus.REVOKED)
RESPONDABLE = (AgreementStatus.PENDING, AgreementStatus.ACTIVE)


def get_agreement(session: Session, agreement_id: UUID) -> SharingAgreement:
    agreement = session.get(SharingAgreement, agreement_id)
    if not agreement:
        raise NotFound("Sharing agreement not found")
    return agreement


def find_agreement(session: Session, owner_id: UUID, viewer_id: UUID) -> SharingAgreement | None:
    statement = (
        select(SharingAgreement)
        .where(SharingAgreement.owner_user_id == owner_id)
        .where(SharingAgreement.viewer_user_id == viewer_id)
    )
    return session.exec(statement).first()


def list_agreements(session: Session, user_id: UUID) -> list[SharingAgreement]:
    """All agreements where ``user_id`` is the owner or the viewer."""
    statement = (
        select(SharingAgreement)
        .where(
            or_(
                SharingAgreement.owner_user_id == user_id,
                SharingAgreement.viewer_user_id == user_id,
            )
        )
        .order_by(SharingAgreement.created_at)
    )
    return list(session.exec(statement).all())


def active_owner_ids(session: Session, viewer_id: UUID) -> set[UUID]:
    """Owners who currently share their personal calendar with ``viewer_id``."""
    statement = (
        select(SharingAgreement.owner_user_id)
        .where(SharingAgreement.viewer_user_id == viewer_id)
        .where(SharingAgreement.status == AgreementStatus.ACTIVE)
    )
    return set(session.exec(statement).all())


def upsert_agreement(
    session: Session,
    owner_id: UUID,
    viewer_id: UUID,
    permission: Permission = Permission.READ,
) -> SharingAgreement:
    """
    Share ``owner_id``'s personal calendar with ``viewer_id``.

    Idempotent per (owner, viewer): calling again updates the permission of
    the existing row. If that row was revoked it becomes a fresh pending
    invitation; the viewer has to accept again.
    """
    if owner_id == viewer_id:
        raise InvalidGrant("Cannot share a calendar with yourself")

    agreement = find_agreement(session, owner_id, viewer_id)
    if agreement is None:
        agreement = SharingAgreement(
            owner_user_id=owner_id,
            viewer_user_id=viewer_id,
            permission=permission,
            created_by=owner_id,
        )
        insert_unique(session, agreement)
        logger.info(f"Calendar of {owner_id} shared with {viewer_id} ({permission.value})")
        return agreement

    if agreement.status == AgreementStatus.REVOKED:
        write_versioned(
            session,
            agreement,
            permission=permission,
            status=AgreementStatus.PENDING,
            created_at=utcnow(),
            responded_at=None,
            revoked_at=None,
        )
        logger.info(f"Calendar of {owner_id} re-shared with {viewer_id} ({permission.value})")
    elif agreement.permission != permission:
        write_versioned(session, agreement, permission=permission)
        logger.info(f"Share {agreement.id} permission changed to {permission.value}")
    return agreement


def respond_to_agreement(
    session: Session,
    agreement_id: UUID,
    actor_id: UUID,
    new_status: AgreementStatus,
    expected_version: int | None = None,
) -> SharingAgreement:
    """Accept (``active``) or leave (``revoked``) a share, as its viewer."""
    agreement = get_agreement(session, agreement_id)
    check_expected_version(agreement, expected_version)

    if agreement.viewer_user_id != actor_id:
        raise Forbidden("Only the viewer can respond to a share")
    if new_status not in VIEWER_RESPONSES:
        raise Forbidden(f"Viewers cannot set a share to {new_status.value}")
    if agreement.status not in RESPONDABLE:
        raise Forbidden(f"Share is {agreement.status.value} and can no longer be changed")

    values = {"status": new_status, "responded_at": utcnow()}
    if new_status == AgreementStatus.REVOKED:
        values["revoked_at"] = values["responded_at"]
    write_versioned(session, agreement, **values)
    logger.info(f"Share {agreement_id} set to {new_status.value} by viewer {actor_id}")
    return agreement


def revoke_as_owner(
    session: Session,
    agreement_id: UUID,
    actor_id: UUID,
    expected_version: int | None = None,
) -> SharingAgreement:
    """Revoke a share as its owner. Always succeeds for the owner."""
    agreement = get_agreement(session, agreement_id)
    check_expected_version(agreement, expected_version)

    if agreement.owner_user_id != actor_id:
        raise Forbidden("Only the owner can revoke a share")
    if agreement.status == AgreementStatus.REVOKED:
        return agreement

    write_versioned(session, agreement, status=AgreementStatus.REVOKED, revoked_at=utcnow())
    logger.info(f"Share {agreement_id} revoked by owner {actor_id}")
    return agreement
