"""Pytest configuration and fixtures."""

import os

# Must be set before cafebook.core.config builds its cached settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-0123456789")

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cafebook.core.security import OwnerSession, create_session_token, get_password_hash
from cafebook.db.base import Base
from cafebook.db.session import get_db
from cafebook.main import app
# Import all models to ensure they're registered with Base.metadata
from cafebook.models import *
from cafebook.services.notification_service import (
    DispatchResult,
    NotificationDispatcher,
    get_notification_dispatcher,
)
from cafebook.services.uropay_client import RemoteOrder, RemoteOrderStatus, RemoteStatus, get_payment_gateway

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

OWNER_PASSWORD = "owner-pass-123"


class FakeGateway:
    """Stands in for UroPay. Orders move to COMPLETED via ``complete``."""

    def __init__(self):
        self.orders = {}
        self.updates = []
        self.create_error = None
        self.status_error = None

    async def create_order(self, booking_id, amount, customer_name, customer_email, cafe_name=None):
        if self.create_error is not None:
            raise self.create_error
        order_id = f"UP{len(self.orders) + 1:03d}"
        self.orders[order_id] = {
            "booking_id": booking_id,
            "amount": Decimal(amount),
            "customer_name": customer_name,
            "customer_email": customer_email,
            "status": RemoteOrderStatus.CREATED.value,
        }
        return RemoteOrder(
            uropay_order_id=order_id,
            order_status=RemoteOrderStatus.CREATED.value,
            upi_string=f"upi://pay?pa=cafe@upi&am={amount}",
            qr_code="data:image/png;base64,iVBORw0KGgo=",
            amount_in_rupees=str(amount),
        )

    async def update_order(self, order_id, reference_number, order_status=None):
        self.updates.append((order_id, reference_number, order_status))
        if order_status is not None:
            self.orders[order_id]["status"] = RemoteOrderStatus(order_status).value

    async def get_order_status(self, order_id):
        if self.status_error is not None:
            raise self.status_error
        order = self.orders.get(order_id, {"status": RemoteOrderStatus.PENDING.value})
        return RemoteStatus(uropay_order_id=order_id, order_status=order["status"])

    def complete(self, order_id):
        self.orders[order_id]["status"] = RemoteOrderStatus.COMPLETED.value


class FakeMailProvider:
    """Records sends instead of calling ZeptoMail."""

    configured = True

    def __init__(self):
        self.sent = []
        self.error = None

    async def send(self, to, to_name, subject, html_body):
        self.sent.append({"to": to, "name": to_name, "subject": subject, "html": html_body})
        if self.error:
            return DispatchResult(success=False, error=self.error)
        return DispatchResult(success=True)

    @property
    def subjects(self):
        return [m["subject"] for m in self.sent]


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def fake_mail() -> FakeMailProvider:
    return FakeMailProvider()


@pytest.fixture
def notifier(fake_mail: FakeMailProvider) -> NotificationDispatcher:
    return NotificationDispatcher(fake_mail)


@pytest.fixture(scope="function")
def client(db_session: Session, fake_gateway: FakeGateway, notifier: NotificationDispatcher) -> Generator[TestClient, None, None]:
    """Create a test client with database and provider overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway
    app.dependency_overrides[get_notification_dispatcher] = lambda: notifier
    # Disable rate limiters during tests to avoid flaky failures
    from cafebook.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_profile(db: Session, username: str, role: str, email: str = None) -> Profile:
    profile = Profile(
        username=username,
        email=email,
        name=username.title(),
        password_hash=get_password_hash(OWNER_PASSWORD),
        role=role,
        is_active=True,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def _headers_for(profile: Profile) -> dict:
    session = OwnerSession(user_id=profile.id, username=profile.username, issued_at=datetime.now(timezone.utc))
    return {"Authorization": f"Bearer {create_session_token(session)}"}


@pytest.fixture
def owner(db_session: Session) -> Profile:
    return _make_profile(db_session, "owner", "owner", email="owner@example.com")


@pytest.fixture
def other_owner(db_session: Session) -> Profile:
    return _make_profile(db_session, "rival", "owner")


@pytest.fixture
def admin(db_session: Session) -> Profile:
    return _make_profile(db_session, "admin", "admin")


@pytest.fixture
def guest(db_session: Session) -> Profile:
    return _make_profile(db_session, "player", "guest")


@pytest.fixture
def owner_headers(owner: Profile) -> dict:
    return _headers_for(owner)


@pytest.fixture
def other_owner_headers(other_owner: Profile) -> dict:
    return _headers_for(other_owner)


@pytest.fixture
def admin_headers(admin: Profile) -> dict:
    return _headers_for(admin)


@pytest.fixture
def guest_headers(guest: Profile) -> dict:
    return _headers_for(guest)


PS5_PRICES = {
    (1, 30): Decimal("100"),
    (1, 60): Decimal("150"),
    (2, 30): Decimal("180"),
    (2, 60): Decimal("280"),
    (3, 60): Decimal("450"),
    (4, 60): Decimal("500"),
}


@pytest.fixture
def cafe(db_session: Session, owner: Profile) -> Cafe:
    """Arcade One: 4 PS5 with a partial price grid, 2 pool tables without prices."""
    cafe = Cafe(
        name="Arcade One",
        slug="arcade-one",
        address="12 MG Road",
        city="Bengaluru",
        ps5_count=4,
        pool_count=2,
        owner_id=owner.id,
        is_active=True,
    )
    db_session.add(cafe)
    db_session.flush()
    for (quantity, duration), price in PS5_PRICES.items():
        db_session.add(ConsolePricing(
            cafe_id=cafe.id,
            console_type=ConsoleType.PS5.value,
            quantity=quantity,
            duration_minutes=duration,
            price=price,
        ))
    db_session.commit()
    db_session.refresh(cafe)
    return cafe
