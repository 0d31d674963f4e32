"""Tests for API routes."""

from uuid import UUID, uuid4

from fastapi.testclient import TestClient
from sqlmodel import Session

from eventshare.models import Event, Projection, ProjectionStatus, Role, Scope, SharingAgreement

DAY = {"start": "2026-03-02T00:00:00", "end": "2026-03-03T00:00:00"}


def as_user(user_id: UUID) -> dict[str, str]:
    return {"X-Actor-Id": str(user_id)}


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check(self, client: TestClient):
        """Test the health endpoint returns OK."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"


class TestEventsRoutes:
    """Tests for event-related routes."""

    def test_actor_header_required(self, client: TestClient):
        """Test that requests without an actor are rejected."""
        response = client.get("/events", params=DAY)
        assert response.status_code == 422

    def test_create_event(self, client: TestClient, owner_id):
        """Test creating a personal event returns the owner view."""
        response = client.post(
            "/events",
            headers=as_user(owner_id),
            json={
                "title": "Dentist",
                "start_at": "2026-03-02T14:00:00Z",
                "end_at": "2026-03-02T15:00:00Z",
                "detail_visibility": "busy",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Dentist"
        assert data["scope"] == "full"
        assert data["owner_user_id"] == str(owner_id)
        assert data["created_by"] == str(owner_id)

    def test_create_event_bad_times(self, client: TestClient, owner_id):
        """Test that an event ending before it starts is rejected."""
        response = client.post(
            "/events",
            headers=as_user(owner_id),
            json={
                "title": "Backwards",
                "start_at": "2026-03-02T15:00:00Z",
                "end_at": "2026-03-02T14:00:00Z",
            },
        )
        assert response.status_code == 422

    def test_create_event_mixed_offsets(self, client: TestClient, owner_id):
        """Test a naive start and an offset end are compared in UTC."""
        response = client.post(
            "/events",
            headers=as_user(owner_id),
            json={
                "title": "Call with Berlin",
                "start_at": "2026-03-02T14:00:00",
                "end_at": "2026-03-02T17:00:00+02:00",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["start_at"].startswith("2026-03-02T14:00:00")
        assert data["end_at"].startswith("2026-03-02T15:00:00")

    def test_create_event_mixed_offsets_reversed(self, client: TestClient, owner_id):
        """Test an offset end that falls before a naive start is a validation error."""
        response = client.post(
            "/events",
            headers=as_user(owner_id),
            json={
                "title": "Call with Berlin",
                "start_at": "2026-03-02T14:00:00",
                "end_at": "2026-03-02T15:00:00+02:00",
            },
        )
        assert response.status_code == 422

    def test_list_visible_events(self, client: TestClient, busy_event: Event, active_share, viewer_id):
        """Test a shared busy event is listed as a redacted time block."""
        response = client.get("/events", params=DAY, headers=as_user(viewer_id))
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["id"] == str(busy_event.id)
        assert data[0]["title"] == "Busy"
        assert data[0]["scope"] == "busy_block"
        assert data[0]["description"] is None
        assert data[0]["start_at"].startswith("2026-03-02T14:00:00")
        assert data[0]["end_at"].startswith("2026-03-02T15:00:00")

    def test_inverted_window(self, client: TestClient, owner_id):
        """Test that a window ending before it starts is a bad request."""
        response = client.get(
            "/events",
            params={"start": DAY["end"], "end": DAY["start"]},
            headers=as_user(owner_id),
        )
        assert response.status_code == 400

    def test_event_detail(self, client: TestClient, visible_event: Event, owner_id):
        """Test the owner sees every field."""
        response = client.get(f"/events/{visible_event.id}", headers=as_user(owner_id))
        assert response.status_code == 200
        assert response.json()["description"] == visible_event.description

    def test_event_detail_not_visible(self, client: TestClient, visible_event: Event, stranger_id):
        """Test an invisible event looks exactly like a missing one."""
        hidden = client.get(f"/events/{visible_event.id}", headers=as_user(stranger_id))
        missing = client.get(f"/events/{uuid4()}", headers=as_user(stranger_id))

        assert hidden.status_code == missing.status_code == 404
        assert hidden.json() == missing.json()

    def test_event_visibility(self, client: TestClient, visible_event: Event, make_projection, viewer_id):
        """Test the visibility endpoint reports the resolved scope."""
        make_projection(visible_event, scope=Scope.DATE_ONLY)
        response = client.get(f"/events/{visible_event.id}/visibility", headers=as_user(viewer_id))
        assert response.json() == {"visible": True, "scope": "date_only", "as_owner": False}

    def test_event_visibility_hidden(self, client: TestClient, visible_event: Event, stranger_id):
        """Test a stranger is told the event is not visible."""
        response = client.get(f"/events/{visible_event.id}/visibility", headers=as_user(stranger_id))
        assert response.status_code == 200
        assert response.json()["visible"] is False

    def test_update_event(self, client: TestClient, visible_event: Event, owner_id):
        """Test patching a field bumps the version."""
        response = client.patch(
            f"/events/{visible_event.id}",
            headers=as_user(owner_id),
            json={"title": "Orthodontist", "expected_version": 1},
        )
        assert response.status_code == 200
        assert response.json()["title"] == "Orthodontist"

    def test_update_event_conflict(self, client: TestClient, visible_event: Event, owner_id):
        """Test a stale version is reported as a conflict."""
        response = client.patch(
            f"/events/{visible_event.id}",
            headers=as_user(owner_id),
            json={"title": "Orthodontist", "expected_version": 3},
        )
        assert response.status_code == 409

    def test_update_event_forbidden(self, client: TestClient, visible_event: Event, viewer_id):
        """Test only the owner may edit."""
        response = client.patch(
            f"/events/{visible_event.id}", headers=as_user(viewer_id), json={"title": "Mine"}
        )
        assert response.status_code == 403

    def test_delete_event(
        self, client: TestClient, visible_event: Event, make_projection, session: Session, owner_id
    ):
        """Test deleting an event removes it and its projections."""
        projection = make_projection(visible_event)
        event_id, projection_id = visible_event.id, projection.id

        response = client.delete(f"/events/{event_id}", headers=as_user(owner_id))
        assert response.status_code == 204

        session.expire_all()
        assert session.get(Event, event_id) is None
        assert session.get(Projection, projection_id) is None

    def test_group_editor_cannot_delete(
        self, client: TestClient, make_event, group, add_active_member, viewer_id
    ):
        """Test deleting a group event needs a group admin."""
        add_active_member(viewer_id, Role.EDITOR)
        event = make_event(owner_group_id=group.id)

        response = client.delete(f"/events/{event.id}", headers=as_user(viewer_id))
        assert response.status_code == 403

    def test_move_event_to_group(self, client: TestClient, visible_event: Event, group, owner_id):
        """Test transferring a personal event into a group the actor owns."""
        response = client.put(
            f"/events/{visible_event.id}/owner",
            headers=as_user(owner_id),
            json={"owner_group_id": str(group.id)},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["owner_group_id"] == str(group.id)
        assert data["owner_user_id"] is None

    def test_move_event_needs_exactly_one_owner(self, client: TestClient, visible_event: Event, owner_id):
        """Test an owner update naming nobody is rejected."""
        response = client.put(
            f"/events/{visible_event.id}/owner", headers=as_user(owner_id), json={}
        )
        assert response.status_code == 400


class TestProjectionRoutes:
    """Tests for the projection offer, answer and revoke flow."""

    def test_full_flow(self, client: TestClient, visible_event: Event, owner_id, viewer_id):
        """Test offer, accept and revoke, checking what the target sees at each step."""
        offer = client.post(
            f"/events/{visible_event.id}/projections",
            headers=as_user(owner_id),
            json={"target_user_id": str(viewer_id), "scope": "title"},
        )
        assert offer.status_code == 201
        projection_id = offer.json()["id"]
        assert offer.json()["status"] == "pending"

        incoming = client.get("/projections/incoming", headers=as_user(viewer_id))
        assert [p["id"] for p in incoming.json()] == [projection_id]
        assert client.get("/events", params=DAY, headers=as_user(viewer_id)).json() == []

        accepted = client.post(
            f"/projections/{projection_id}/respond",
            headers=as_user(viewer_id),
            json={"decision": "accepted"},
        )
        assert accepted.status_code == 200
        listed = client.get("/events", params=DAY, headers=as_user(viewer_id)).json()
        assert [e["title"] for e in listed] == ["Dentist"]
        assert listed[0]["description"] is None

        revoked = client.post(f"/projections/{projection_id}/revoke", headers=as_user(owner_id))
        assert revoked.json()["status"] == "revoked"
        assert client.get("/events", params=DAY, headers=as_user(viewer_id)).json() == []

    def test_busy_block_scope_rejected(self, client: TestClient, visible_event: Event, owner_id, viewer_id):
        """Test busy_block cannot be used as a projection scope."""
        response = client.post(
            f"/events/{visible_event.id}/projections",
            headers=as_user(owner_id),
            json={"target_user_id": str(viewer_id), "scope": "busy_block"},
        )
        assert response.status_code == 400

    def test_stranger_cannot_project(self, client: TestClient, visible_event: Event, viewer_id, stranger_id):
        """Test projecting someone else's event is forbidden."""
        response = client.post(
            f"/events/{visible_event.id}/projections",
            headers=as_user(stranger_id),
            json={"target_user_id": str(viewer_id)},
        )
        assert response.status_code == 403

    def test_answer_twice(self, client: TestClient, visible_event: Event, make_projection, viewer_id):
        """Test answering an accepted projection is a conflict."""
        projection = make_projection(visible_event, status=ProjectionStatus.ACCEPTED)
        response = client.post(
            f"/projections/{projection.id}/respond",
            headers=as_user(viewer_id),
            json={"decision": "declined"},
        )
        assert response.status_code == 409

    def test_list_event_projections(self, client: TestClient, visible_event: Event, make_projection, owner_id):
        """Test the owner can list every projection of an event."""
        make_projection(visible_event, status=ProjectionStatus.DECLINED)
        response = client.get(f"/events/{visible_event.id}/projections", headers=as_user(owner_id))
        assert response.status_code == 200
        assert [p["status"] for p in response.json()] == ["declined"]

    def test_bulk_offer_accept_and_revoke(
        self, client: TestClient, visible_event: Event, group, add_active_member, owner_id, viewer_id
    ):
        """Test offering to a whole group, accepting everything, then revoking everything."""
        add_active_member(viewer_id)

        offered = client.post(
            f"/events/{visible_event.id}/projections/members",
            headers=as_user(owner_id),
            json={"group_id": str(group.id), "scope": "title"},
        )
        assert offered.status_code == 201
        assert offered.json() == {"created": 1, "skipped": 0}

        again = client.post(
            f"/events/{visible_event.id}/projections/members",
            headers=as_user(owner_id),
            json={"group_id": str(group.id)},
        )
        assert again.json() == {"created": 0, "skipped": 1}

        accepted = client.post("/projections/incoming/accept-all", headers=as_user(viewer_id))
        assert accepted.status_code == 200
        assert accepted.json() == {"count": 1}
        listed = client.get("/events", params=DAY, headers=as_user(viewer_id)).json()
        assert [e["title"] for e in listed] == ["Dentist"]

        revoked = client.post(
            f"/events/{visible_event.id}/projections/revoke-all", headers=as_user(owner_id)
        )
        assert revoked.json() == {"count": 1}
        assert client.get("/events", params=DAY, headers=as_user(viewer_id)).json() == []

    def test_bulk_revoke_forbidden_for_target(
        self, client: TestClient, visible_event: Event, make_projection, viewer_id
    ):
        """Test only the event's owner side can revoke every projection."""
        make_projection(visible_event)
        response = client.post(
            f"/events/{visible_event.id}/projections/revoke-all", headers=as_user(viewer_id)
        )
        assert response.status_code == 403

    def test_bulk_offer_to_unknown_group(self, client: TestClient, visible_event: Event, owner_id):
        """Test offering to a group that does not exist."""
        response = client.post(
            f"/events/{visible_event.id}/projections/members",
            headers=as_user(owner_id),
            json={"group_id": str(uuid4())},
        )
        assert response.status_code == 404

    def test_unknown_projection(self, client: TestClient, viewer_id):
        """Test answering a projection that does not exist."""
        response = client.post(
            f"/projections/{uuid4()}/respond",
            headers=as_user(viewer_id),
            json={"decision": "accepted"},
        )
        assert response.status_code == 404


class TestShareRoutes:
    """Tests for whole-calendar sharing."""

    def test_share_accept_and_revoke(
        self, client: TestClient, visible_event: Event, owner_id, viewer_id
    ):
        """Test the viewer sees the calendar only while the share is active."""
        created = client.post(
            "/shares", headers=as_user(owner_id), json={"viewer_user_id": str(viewer_id)}
        )
        assert created.status_code == 201
        share_id = created.json()["id"]
        assert created.json()["status"] == "pending"

        accepted = client.post(
            f"/shares/{share_id}/respond", headers=as_user(viewer_id), json={"status": "active"}
        )
        assert accepted.json()["status"] == "active"
        listed = client.get("/events", params=DAY, headers=as_user(viewer_id)).json()
        assert [e["scope"] for e in listed] == ["full"]
        assert listed[0]["created_by"] is None

        client.post(f"/shares/{share_id}/revoke", headers=as_user(owner_id))
        assert client.get("/events", params=DAY, headers=as_user(viewer_id)).json() == []

    def test_self_share(self, client: TestClient, owner_id):
        """Test sharing with yourself is a bad request."""
        response = client.post(
            "/shares", headers=as_user(owner_id), json={"viewer_user_id": str(owner_id)}
        )
        assert response.status_code == 400

    def test_owner_cannot_accept(self, client: TestClient, session: Session, owner_id, viewer_id):
        """Test only the viewer may accept a share."""
        share = SharingAgreement(owner_user_id=owner_id, viewer_user_id=viewer_id, created_by=owner_id)
        session.add(share)
        session.commit()

        response = client.post(
            f"/shares/{share.id}/respond", headers=as_user(owner_id), json={"status": "active"}
        )
        assert response.status_code == 403

    def test_list_shares(self, client: TestClient, active_share, owner_id, viewer_id, stranger_id):
        """Test both sides of a share see it, and nobody else does."""
        for user in (owner_id, viewer_id):
            response = client.get("/shares", headers=as_user(user))
            assert [s["id"] for s in response.json()] == [str(active_share.id)]
        assert client.get("/shares", headers=as_user(stranger_id)).json() == []


class TestGroupRoutes:
    """Tests for groups and memberships."""

    def test_invite_accept_and_see_group_events(
        self, client: TestClient, make_event, group, owner_id, viewer_id
    ):
        """Test a member sees group events only after accepting."""
        make_event(owner_group_id=group.id, title="Family dinner")

        invite = client.post(
            f"/groups/{group.id}/members",
            headers=as_user(owner_id),
            json={"user_id": str(viewer_id), "role": "member"},
        )
        assert invite.status_code == 201
        assert invite.json()["status"] == "pending"
        assert client.get("/events", params=DAY, headers=as_user(viewer_id)).json() == []

        accepted = client.post(
            f"/memberships/{invite.json()['id']}/status",
            headers=as_user(viewer_id),
            json={"status": "active"},
        )
        assert accepted.json()["status"] == "active"
        listed = client.get("/events", params=DAY, headers=as_user(viewer_id)).json()
        assert [e["title"] for e in listed] == ["Family dinner"]

    def test_create_group(self, client: TestClient, owner_id):
        """Test creating a group makes the actor its owner."""
        response = client.post("/groups", headers=as_user(owner_id), json={"name": "Household"})
        assert response.status_code == 201
        group_id = response.json()["id"]

        members = client.get(f"/groups/{group_id}/members", headers=as_user(owner_id)).json()
        assert [(m["user_id"], m["role"]) for m in members] == [(str(owner_id), "owner")]

    def test_members_hidden_from_outsiders(self, client: TestClient, group, stranger_id):
        """Test outsiders cannot enumerate a group."""
        response = client.get(f"/groups/{group.id}/members", headers=as_user(stranger_id))
        assert response.status_code == 404

    def test_duplicate_invite(self, client: TestClient, group, add_active_member, owner_id, viewer_id):
        """Test inviting an active member again is a conflict."""
        add_active_member(viewer_id)
        response = client.post(
            f"/groups/{group.id}/members",
            headers=as_user(owner_id),
            json={"user_id": str(viewer_id)},
        )
        assert response.status_code == 409

    def test_change_role(self, client: TestClient, add_active_member, owner_id, viewer_id):
        """Test an owner promoting a member to editor."""
        row = add_active_member(viewer_id)
        response = client.post(
            f"/memberships/{row.id}/role", headers=as_user(owner_id), json={"role": "editor"}
        )
        assert response.status_code == 200
        assert response.json()["role"] == "editor"

    def test_invalid_membership_transition(self, client: TestClient, add_active_member, viewer_id):
        """Test moving an active membership back to pending is a conflict."""
        row = add_active_member(viewer_id)
        response = client.post(
            f"/memberships/{row.id}/status", headers=as_user(viewer_id), json={"status": "pending"}
        )
        assert response.status_code == 409
