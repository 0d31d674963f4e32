"""Shared route dependencies."""
from uuid import UUID

from fastapi import Header


def get_actor_id(x_actor_id: UUID = Header(...)) -> UUID:
    """
    The user on whose behalf the request is made.

    Identity is established upstream; this service only consumes the
    already-authenticated user id from the ``X-Actor-Id`` header.
    """
    return x_actor_id
