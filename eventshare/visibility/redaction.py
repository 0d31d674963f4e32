"""Redaction projector: shape an event record for a given detail scope.

Scope tiers, widest first:

- ``full``: every payload field passes through.
- ``title``: time, all-day flag, location and title. Description, type
  and metadata are dropped and the color is replaced.
- ``date_only`` / ``busy_block``: time and all-day flag only. The title is
  replaced with a fixed sentinel ("Busy") and everything else is dropped.

Attribution (who created the event, which domain object it came from) is
only kept on owner views, whatever the scope.

The busy ceiling is enforced here again, independently of the resolver:
a non-owner view of a busy event is always a busy block, even if the
caller asks for ``full``.
"""
from eventshare.core.config import settings
from eventshare.models import DetailVisibility, Event, Scope
from eventshare.schemas import PublicEventView


def effective_scope(record: Event | PublicEventView, scope: Scope, as_owner: bool) -> Scope:
    if not as_owner and record.detail_visibility == DetailVisibility.BUSY:
        return Scope.BUSY_BLOCK
    return scope


def project(
    record: Event | PublicEventView,
    scope: Scope,
    as_owner: bool = False,
) -> PublicEventView:
    """Produce the view of ``record`` at ``scope``.

    ``record`` may be a stored Event or an already projected view; projecting
    a view again at the same scope returns an equal view.
    """
    scope = effective_scope(record, scope, as_owner)

    fields = {
        "id": record.id,
        "owner_user_id": record.owner_user_id,
        "owner_group_id": record.owner_group_id,
        "scope": scope,
        "detail_visibility": record.detail_visibility,
        "start_at": record.start_at,
        "end_at": record.end_at,
        "all_day": record.all_day,
    }

    if scope == Scope.FULL:
        fields.update(
            title=record.title,
            description=record.description,
            location=record.location,
            event_type=record.event_type,
            color=record.color,
            extras=dict(record.extras or {}),
        )
    elif scope == Scope.TITLE:
        fields.update(
            title=record.title,
            location=record.location,
            color=settings.redacted_color,
        )
    else:
        fields.update(title=settings.redacted_title, color=settings.redacted_color)

    if as_owner:
        fields.update(
            created_by=record.created_by,
            source_type=record.source_type,
            source_entity_id=record.source_entity_id,
        )

    return PublicEventView(**fields)


def project_owner_view(event: Event) -> PublicEventView:
    return project(event, Scope.FULL, as_owner=True)
