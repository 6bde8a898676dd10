"""
Shared fixtures: an in-memory SQLite database per test, a TestClient wired
to it and small factories for users, trips and members.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date
from decimal import Decimal
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import app.models  # noqa: F401
from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import app as fastapi_app
from app.models.trip import TripMember, RSVPStatus, PaymentStatus, PaymentMethod
from app.models.user import User
from app.services.trip_service import create_trip

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """TestClient whose requests share the test session."""
    def override_get_db():
        yield db

    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(username: str, name: str = None, venmo_username: str = None, paypal_email: str = None) -> User:
        user = User(
            username=username,
            email=f"{username}@mail.tripsplit.io",
            name=name or username.capitalize(),
            venmo_username=venmo_username,
            paypal_email=paypal_email
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_trip(db):
    def _make_trip(organizer: User, name: str = "Lisbon", down_payment: Decimal = None):
        return create_trip(
            organizer, name, date(2026, 6, 1), date(2026, 6, 7), db,
            requires_down_payment=down_payment is not None,
            down_payment_amount=down_payment
        )
    return _make_trip


@pytest.fixture
def add_member(db):
    """Attach a user directly in a given state, bypassing the RSVP flow."""
    def _add_member(
        trip,
        user: User,
        rsvp_status: RSVPStatus = RSVPStatus.CONFIRMED,
        payment_status: PaymentStatus = PaymentStatus.NONE,
        is_admin: bool = False
    ) -> TripMember:
        member = TripMember(
            user=user,
            is_admin=is_admin,
            rsvp_status=rsvp_status,
            payment_status=payment_status,
            payment_method=PaymentMethod.NONE
        )
        trip.members.append(member)
        db.commit()
        db.refresh(member)
        return member
    return _add_member


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict:
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture
def trio(make_user, make_trip, add_member):
    """Alice organizes a trip with Bob and Carol confirmed."""
    alice = make_user("alice")
    bob = make_user("bob", venmo_username="@bob-v")
    carol = make_user("carol", paypal_email="carol@mail.tripsplit.io")
    trip = make_trip(alice)
    add_member(trip, bob)
    add_member(trip, carol)
    return trip, alice, bob, carol
