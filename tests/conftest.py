"""Shared test fixtures."""

from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from eventshare.core.database import configure_engine, get_session
from eventshare.main import app
from eventshare.models import (
    AgreementStatus,
    DetailVisibility,
    Event,
    GroupMembership,
    MembershipStatus,
    Projection,
    ProjectionStatus,
    Role,
    Scope,
    SharingAgreement,
)
from eventshare.visibility import membership

# Stored datetimes are timezone-aware UTC, so fixtures use aware UTC too.
E1_START = datetime(2026, 3, 2, 14, 0, tzinfo=UTC)
E1_END = datetime(2026, 3, 2, 15, 0, tzinfo=UTC)


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = configure_engine(
        create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create a test client with the test database session."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="owner_id")
def owner_id_fixture() -> UUID:
    """U1: owns the personal calendar under test."""
    return uuid4()


@pytest.fixture(name="viewer_id")
def viewer_id_fixture() -> UUID:
    """U2: the user the calendar or event is shared with."""
    return uuid4()


@pytest.fixture(name="stranger_id")
def stranger_id_fixture() -> UUID:
    """A user with no relationship to anything."""
    return uuid4()


@pytest.fixture(name="make_event")
def make_event_fixture(session: Session, owner_id: UUID):
    """Factory for stored events, personal to owner_id unless told otherwise."""

    def _make_event(**overrides) -> Event:
        fields = {
            "owner_user_id": owner_id,
            "created_by": owner_id,
            "title": "Dentist",
            "description": "Root canal, bring insurance card",
            "location": "12 High Street",
            "event_type": "personal",
            "color": "red",
            "extras": {"reminder_minutes": 30},
            "source_type": "habit",
            "source_entity_id": uuid4(),
            "start_at": E1_START,
            "end_at": E1_END,
        }
        fields.update(overrides)
        if "owner_group_id" in overrides and "owner_user_id" not in overrides:
            fields["owner_user_id"] = None
        event = Event(**fields)
        session.add(event)
        session.commit()
        session.refresh(event)
        return event

    return _make_event


@pytest.fixture(name="busy_event")
def busy_event_fixture(make_event) -> Event:
    """E1: owned by U1, marked busy, 14:00-15:00."""
    return make_event(detail_visibility=DetailVisibility.BUSY)


@pytest.fixture(name="visible_event")
def visible_event_fixture(make_event) -> Event:
    """E1 with detail visibility left at "visible"."""
    return make_event(detail_visibility=DetailVisibility.VISIBLE)


@pytest.fixture(name="active_share")
def active_share_fixture(session: Session, owner_id: UUID, viewer_id: UUID) -> SharingAgreement:
    """Agreement U1 -> U2, read permission, already accepted."""
    agreement = SharingAgreement(
        owner_user_id=owner_id,
        viewer_user_id=viewer_id,
        created_by=owner_id,
        status=AgreementStatus.ACTIVE,
    )
    session.add(agreement)
    session.commit()
    session.refresh(agreement)
    return agreement


@pytest.fixture(name="make_projection")
def make_projection_fixture(session: Session, owner_id: UUID, viewer_id: UUID):
    """Factory for stored projections, accepted by viewer_id unless told otherwise."""

    def _make_projection(event: Event, **overrides) -> Projection:
        fields = {
            "event_id": event.id,
            "target_user_id": viewer_id,
            "scope": Scope.FULL,
            "status": ProjectionStatus.ACCEPTED,
            "created_by": owner_id,
        }
        fields.update(overrides)
        projection = Projection(**fields)
        session.add(projection)
        session.commit()
        session.refresh(projection)
        return projection

    return _make_projection


@pytest.fixture(name="group")
def group_fixture(session: Session, owner_id: UUID):
    """A household group created (and owned) by owner_id."""
    return membership.create_group(session, "Household", owner_id)


@pytest.fixture(name="add_active_member")
def add_active_member_fixture(session: Session, group):
    """Insert an already-active membership of the household group."""

    def _add(user_id: UUID, role: Role = Role.MEMBER) -> GroupMembership:
        row = GroupMembership(
            group_id=group.id,
            user_id=user_id,
            role=role,
            status=MembershipStatus.ACTIVE,
        )
        session.add(row)
        session.commit()
        session.refresh(row)
        return row

    return _add
