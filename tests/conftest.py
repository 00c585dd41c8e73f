"""
Shared fixtures: in-memory database, a recording fake Stripe provider and an
authenticated test client.
"""
import hashlib
import hmac
import json
import time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import socialboost.db.models  # noqa: F401
from socialboost.api.deps import get_billing_provider, get_billing_settings, get_notifier
from socialboost.core.config import BillingSettings
from socialboost.core.errors import ProviderNotFoundError
from socialboost.core.security import create_access_token
from socialboost.db.base import Base
from socialboost.db.models.user import User, UserRole
from socialboost.db.session import get_db
from socialboost.main import app
from socialboost.services.stripe_service import StripeBillingProvider

WEBHOOK_SECRET = "whsec_test_secret"

# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def override_get_db():
    """Override get_db dependency for testing."""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeBillingProvider:
    """
    In-memory stand-in for StripeBillingProvider.

    Every call is recorded in `calls` as (method, argument). Webhook
    verification is delegated to the real provider so signatures are checked
    with Stripe's own scheme.
    """

    def __init__(self, settings: BillingSettings):
        self.verifier = StripeBillingProvider(settings)
        self.calls = []
        self.customers = {}
        self.sessions = {}
        self.completed_sessions = {}
        self.subscriptions = {}
        self.cancel_error = None
        self.customer_error = None
        self._counter = 0
        self._clock = 1_700_000_000

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}_{self._counter}"

    def called(self, method: str):
        return [arg for name, arg in self.calls if name == method]

    def create_customer(self, email, name, metadata):
        self.calls.append(("create_customer", email))
        customer = {"id": self._next_id("cus_test"), "email": email, "name": name, "metadata": metadata}
        self.customers[customer["id"]] = customer
        return customer

    def retrieve_customer(self, customer_id):
        self.calls.append(("retrieve_customer", customer_id))
        if self.customer_error:
            raise self.customer_error
        if customer_id not in self.customers:
            raise ProviderNotFoundError("Stripe object not found while trying to retrieve customer")
        return self.customers[customer_id]

    def create_checkout_session(self, **params):
        self.calls.append(("create_checkout_session", params))
        session = {"id": self._next_id("cs_test"), "payment_status": "unpaid", **params}
        self.sessions[session["id"]] = session
        return session

    def retrieve_checkout_session(self, session_id, expand=None):
        self.calls.append(("retrieve_checkout_session", session_id))
        if session_id in self.completed_sessions:
            return self.completed_sessions[session_id]
        if session_id not in self.sessions:
            raise ProviderNotFoundError("Stripe object not found while trying to retrieve checkout session")
        return self.sessions[session_id]

    def retrieve_subscription(self, subscription_id):
        self.calls.append(("retrieve_subscription", subscription_id))
        if subscription_id not in self.subscriptions:
            raise ProviderNotFoundError("Stripe object not found while trying to retrieve subscription")
        return self.subscriptions[subscription_id]

    def cancel_subscription(self, subscription_id):
        self.calls.append(("cancel_subscription", subscription_id))
        if self.cancel_error:
            raise self.cancel_error
        subscription = self.subscriptions.setdefault(subscription_id, {"id": subscription_id})
        subscription["status"] = "canceled"
        return subscription

    def update_subscription(self, subscription_id, **params):
        self.calls.append(("update_subscription", (subscription_id, params)))
        subscription = self.subscriptions.setdefault(subscription_id, {"id": subscription_id})
        subscription.update(params)
        return subscription

    def construct_verified_event(self, payload, signature):
        return self.verifier.construct_verified_event(payload, signature)

    def complete_session(self, session_id, subscription_id="sub_test_1", period_end=None, invoice_id="in_test_1"):
        """
        Simulate the customer paying for a created session.

        Each completed session gets a later provider creation time than the
        previous one. Returns the checkout.session.completed object as Stripe
        would send it.
        """
        created = self.sessions[session_id]
        self._clock += 60
        self.subscriptions[subscription_id] = {
            "id": subscription_id,
            "status": "active",
            "created": self._clock,
            "current_period_end": period_end,
            "metadata": dict(created["metadata"]),
        }
        completed = {
            "id": session_id,
            "object": "checkout.session",
            "mode": "subscription",
            "payment_status": "paid",
            "status": "complete",
            "customer": created["customer"],
            "subscription": subscription_id,
            "invoice": invoice_id,
            "payment_intent": None,
            "currency": "usd",
            "metadata": dict(created["metadata"]),
        }
        self.completed_sessions[session_id] = completed
        return completed


class FakeNotifier:
    def __init__(self):
        self.sent = []
        self.error = None

    def send(self, to, subject, html_body):
        if self.error:
            raise self.error
        self.sent.append({"to": to, "subject": subject, "html": html_body})


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header for payload."""
    timestamp = timestamp or int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_event(event_type: str, obj: dict, event_id: str = "evt_test_1") -> dict:
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    }


@pytest.fixture(scope="function", autouse=True)
def setup_db():
    """Create and drop tables for each test."""
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session():
    """Provide a database session for tests."""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def billing_settings():
    return BillingSettings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        frontend_url="http://localhost:5173",
    )


@pytest.fixture
def provider(billing_settings):
    return FakeBillingProvider(billing_settings)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def client(provider, notifier, billing_settings):
    """Create test client wired to the in-memory database and fakes."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_billing_provider] = lambda: provider
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_billing_settings] = lambda: billing_settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def test_user(db_session):
    """Create a test user."""
    user = User(first_name="Test", last_name="User", email="test@example.com", role=UserRole.USER)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session):
    user = User(first_name="Ada", last_name="Admin", email="admin@example.com", role=UserRole.ADMIN)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def auth_headers(test_user):
    """Bearer header for the test user."""
    return {"Authorization": f"Bearer {create_access_token({'sub': test_user.email})}"}


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {create_access_token({'sub': admin_user.email})}"}


@pytest.fixture
def post_event(client):
    """Post a signed webhook event; returns the response."""
    def _post(event: dict):
        payload = json.dumps(event)
        return client.post(
            "/api/stripe/webhooks/stripe",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload), "Content-Type": "application/json"},
        )
    return _post


PREFERENCES = {
    "demographics": {"age": ["18-24", "25-34"], "gender": "all", "location": "US"},
    "interests": ["fitness", "travel"],
    "behaviors": ["engaged shoppers"],
    "social_media": {"platform": "instagram", "username": "testbrand"},
}
