#!/usr/bin/env python3
"""
Explain what one user can see of one event.

Walks the resolver's rules in order against the configured database and
prints which rule matched, then the redacted record the user would get.

Usage:
    python scripts/explain_visibility.py <event_id> <viewer_id>
"""
import sys
from pathlib import Path
from uuid import UUID

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session

from eventshare.core.database import engine
from eventshare.models import Event
from eventshare.visibility.ownership import owner_of
from eventshare.visibility.redaction import project
from eventshare.visibility.resolver import load_grants, resolve


def main(event_id: UUID, viewer_id: UUID):
    """Print the grants, the decision and the redacted view."""
    with Session(engine) as session:
        event = session.get(Event, event_id)
        if not event:
            print(f"Event {event_id} not found.")
            sys.exit(1)

        owner = owner_of(event)
        grants = load_grants(session, viewer_id)

        print(f"Event:   {event.title} ({event.start_at} - {event.end_at})")
        print(f"Owner:   {owner.kind.value} {owner.id}")
        print(f"Detail:  {event.detail_visibility.value}")
        print(f"Viewer:  {viewer_id}")
        print()
        print(f"  Owner of the event:          {event.owner_user_id == viewer_id}")
        print(f"  Active member of its group:  {event.owner_group_id in grants.active_group_ids}")
        projected = grants.projection_scopes.get(event.id)
        print(f"  Accepted projection scope:   {projected.value if projected else '(none)'}")
        print(f"  Active share from the owner: {event.owner_user_id in grants.agreement_owner_ids}")
        print()

        visibility = resolve(event, grants)
        if not visibility.visible:
            print("Decision: not visible")
            return

        print(f"Decision: visible at {visibility.scope.value}"
              f"{' (owner view)' if visibility.as_owner else ''}")
        print()
        view = project(event, visibility.scope, visibility.as_owner)
        print(view.model_dump_json(indent=2))


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)
    main(UUID(sys.argv[1]), UUID(sys.argv[2]))
