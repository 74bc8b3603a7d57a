import os
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Load environment so TEST_DATABASE_URL can be read from .env
load_dotenv()
# keep the app's own engine off the real database while under test
os.environ.setdefault("DATABASE_URL", "sqlite://")

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.cache import get_cache
from storefront.database import Base, get_db
from storefront.gateways.images import get_image_storage
from storefront.gateways.payments import PaymentSession, get_payment_gateway
from storefront.main import app
from storefront.models.coupon import Coupon
from storefront.models.user import User

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")

if make_url(TEST_DATABASE_URL).get_backend_name() == "sqlite":
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(TEST_DATABASE_URL, pool_pre_ping=True)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakePaymentGateway:
    """Records what would have been sent to Stripe."""

    def __init__(self):
        self.sessions: Dict[str, PaymentSession] = {}
        self.coupons: List[int] = []
        self.line_items: Dict[str, list] = {}

    def create_one_time_coupon(self, discount_percentage: int) -> str:
        self.coupons.append(discount_percentage)
        return f"stripe_coupon_{len(self.coupons)}"

    def create_checkout_session(self, line_items, metadata, discount_coupon_id=None) -> PaymentSession:
        session_id = f"cs_test_{len(self.sessions) + 1}"
        session = PaymentSession(id=session_id, payment_status="unpaid", amount_total=0, metadata=dict(metadata))
        self.sessions[session_id] = session
        self.line_items[session_id] = line_items
        return session

    def retrieve_session(self, session_id: str) -> PaymentSession:
        return self.sessions[session_id]

    def mark_paid(self, session_id: str, amount_total: int) -> None:
        self.sessions[session_id].payment_status = "paid"
        self.sessions[session_id].amount_total = amount_total


class FakeImageStorage:
    def __init__(self):
        self.uploaded: List[str] = []
        self.deleted: List[str] = []
        self.fail_delete = False

    def upload(self, image: str) -> Optional[str]:
        self.uploaded.append(image)
        return f"https://res.cloudinary.com/demo/image/upload/v1/products/img{len(self.uploaded)}.jpg"

    def delete(self, image_url: str) -> None:
        if self.fail_delete:
            raise RuntimeError("cloudinary unavailable")
        self.deleted.append(image_url)


@pytest.fixture(autouse=True)
def setup_database():
    """Fresh schema for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def cache():
    fake = fakeredis.FakeRedis(decode_responses=True)
    fake.flushall()
    return fake


@pytest.fixture
def payments():
    return FakePaymentGateway()


@pytest.fixture
def images():
    return FakeImageStorage()


@pytest.fixture(autouse=True)
def overrides(cache, payments, images):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_payment_gateway] = lambda: payments
    app.dependency_overrides[get_image_storage] = lambda: images
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_client():
    def _make():
        return TestClient(app)
    return _make


@pytest.fixture
def client(make_client):
    return make_client()


def signup(client: TestClient, email: str = "jane@shop.io", password: str = "secret123", name: str = "Jane"):
    response = client.post("/auth/signup", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.text
    return response


def promote_to_admin(email: str) -> None:
    session = TestingSessionLocal()
    try:
        user = session.query(User).filter(User.email == email).first()
        user.role = "admin"
        session.commit()
    finally:
        session.close()


def user_id_for(email: str) -> int:
    session = TestingSessionLocal()
    try:
        return session.query(User).filter(User.email == email).first().id
    finally:
        session.close()


def add_coupon(user_id: int, code: str = "GIFT123ABC", percentage: int = 10, days: int = 30, is_active: bool = True) -> int:
    session = TestingSessionLocal()
    try:
        coupon = Coupon(
            code=code,
            discount_percentage=percentage,
            user_id=user_id,
            is_active=is_active,
            expiration_date=datetime.now(timezone.utc) + timedelta(days=days),
        )
        session.add(coupon)
        session.commit()
        return coupon.id
    finally:
        session.close()


@pytest.fixture
def customer(make_client):
    c = make_client()
    signup(c, email="customer@shop.io", name="Casey")
    return c


@pytest.fixture
def admin(make_client):
    c = make_client()
    signup(c, email="admin@shop.io", name="Ada")
    promote_to_admin("admin@shop.io")
    return c
