"""Per-row optimistic serialization for grant, membership and event writes.

Every mutable row carries a ``version`` column. A write only lands if the
row still has the version the caller read; otherwise a concurrent writer
got there first and the caller receives :class:`Conflict` and must re-read.
Conflicting status transitions are never merged, so a revoked grant can
not be resurrected by an accept that raced with the revoke.
"""
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel

from eventshare.core.clock import utcnow
from eventshare.core.errors import Conflict

logger = logging.getLogger(__name__)


def check_expected_version(row: SQLModel, expected_version: int | None) -> None:
    """Raise Conflict if the caller's view of ``row`` is out of date."""
    if expected_version is not None and row.version != expected_version:
        raise Conflict(
            f"{type(row).__name__} {row.id} is at version {row.version}, "
            f"expected {expected_version}"
        )


def write_versioned(session: Session, row: SQLModel, **values) -> None:
    """Apply ``values`` to ``row`` if nobody has written it since it was read.

    Issues ``UPDATE ... WHERE id = :id AND version = :version`` and bumps the
    version. When no row matches, the session is rolled back and Conflict is
    raised. On success the change is committed and ``row`` refreshed.
    """
    model = type(row)
    row_id, version = row.id, row.version
    values.setdefault("updated_at", utcnow())

    result = session.connection().execute(
        update(model)
        .where(model.id == row_id, model.version == version)
        .values(version=version + 1, **values)
    )
    if result.rowcount != 1:
        session.rollback()
        logger.warning(
            f"Concurrent write on {model.__name__} {row_id} (read version {version})"
        )
        raise Conflict(
            f"{model.__name__} {row_id} was modified concurrently, re-read and retry"
        )

    session.commit()
    session.refresh(row)


def insert_unique(session: Session, *rows: SQLModel) -> None:
    """Insert rows that a unique index guards, in one transaction.

    The caller has already checked that no matching row exists. If another
    writer inserted one in between, the database rejects the insert, nothing
    is written and the caller gets Conflict instead of a raw IntegrityError.
    """
    if not rows:
        return
    name = type(rows[0]).__name__
    session.add_all(rows)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.warning(f"Concurrent insert of {name} rejected by a unique index")
        raise Conflict(f"A matching {name} was created concurrently, re-read and retry") from None
    for row in rows:
        session.refresh(row)


def write_many(session: Session, model: type[SQLModel], *criteria, **values) -> int:
    """Apply ``values`` to every row of ``model`` matching ``criteria``.

    Each matched row gets its version bumped so that a single-row write
    based on an older read still fails with Conflict. Commits and returns
    the number of rows changed.
    """
    values.setdefault("updated_at", utcnow())
    result = session.connection().execute(
        update(model).where(*criteria).values(version=model.version + 1, **values)
    )
    session.commit()
    return result.rowcount
