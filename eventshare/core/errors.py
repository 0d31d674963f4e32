"""Error taxonomy for ownership, sharing and projection mutations.

Every error a mutation can raise derives from :class:`VisibilityError` and
carries the HTTP status the API layer answers with. A viewer being unable
to see an event is *not* an error: the resolver returns a value for that.
"""


class VisibilityError(Exception):
    """Base class for all mutation errors raised by the engine."""

    status_code: int = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidOwnership(VisibilityError):
    """An event claims both an actor and a group owner, or neither."""


class InvalidEvent(VisibilityError):
    """Event fields are inconsistent (e.g. it ends before it starts)."""


class InvalidGrant(VisibilityError):
    """A grant makes no sense, such as sharing a calendar with oneself."""


class DuplicateMembership(VisibilityError):
    """A pending or active membership already exists for the pair."""

    status_code = 409


class InvalidTransition(VisibilityError):
    """The requested status change is not allowed from the current status."""

    status_code = 409


class Forbidden(VisibilityError):
    """The acting user lacks authority for the requested mutation."""

    status_code = 403


class Conflict(VisibilityError):
    """The row changed underneath the caller; re-read and retry."""

    status_code = 409


class NotFound(VisibilityError):
    status_code = 404
