import sys
import os
import json
from datetime import datetime, timedelta, timezone

# Make 'app' importable when pytest is run from inside the tests directory
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../../')))
os.environ["DATABASE_URL"] = "sqlite://"
for _name in ("N8N_AUTH_WEBHOOK_URL", "N8N_ORDER_WEBHOOK_URL", "N8N_ENQUIRY_WEBHOOK_URL"):
    os.environ.pop(_name, None)

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import patch

from app.api.deps import get_identity_provider, get_relay
from app.core.config import Settings, get_settings
from app.db.session import get_db
from app.main import app
from app.middleware.rate_limit import limiter
from app.models.base import Base
from app.services.errors import ProviderError
from app.services.identity_provider import RedeemableFragment, UserProvisionResult
from app.services.notification_relay import NotificationRelay

AUTH_HOOK = "https://hooks.example.com/auth"
ORDER_HOOK = "https://hooks.example.com/order"
ENQUIRY_HOOK = "https://hooks.example.com/enquiry"
ADMIN_EMAIL = "sarah@sweetmoments.co.uk"

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)

    def __call__(self):
        return self.now


class FakeIdentityProvider:
    """In-memory stand-in for the Supabase admin API."""

    def __init__(self):
        self.users = set()
        self.minted = []
        self.fail_create = False
        self.fail_mint = False

    async def ensure_user(self, email):
        if self.fail_create:
            raise ProviderError("provider down", 503)
        if email in self.users:
            return UserProvisionResult.ALREADY_EXISTS
        self.users.add(email)
        return UserProvisionResult.CREATED

    async def mint_session(self, email, redirect_to=None):
        if self.fail_mint:
            raise ProviderError("provider down", 503)
        self.minted.append((email, redirect_to))
        return RedeemableFragment(
            token_hash=f"hash-{email}",
            action_link=f"https://auth.example.com/verify?token=hash-{email}&redirect_to={redirect_to}",
        )


class RecordingWebhook:
    def __init__(self, status_code=200):
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return httpx.Response(self.status_code)

    def events(self, event_type=None):
        payloads = [json.loads(r.content) for r in self.requests]
        if event_type:
            payloads = [p for p in payloads if p.get("type") == event_type]
        return payloads


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        supabase_url="https://project.supabase.example",
        supabase_service_role_key="service-key",
        supabase_jwt_secret="jwt-secret-for-tests-0123456789abcdef",
        auth_webhook_url=AUTH_HOOK,
        order_webhook_url=ORDER_HOOK,
        enquiry_webhook_url=ENQUIRY_HOOK,
        webhook_secret="s3cret",
        admin_emails=(ADMIN_EMAIL,),
        site_origin="https://sweetmoments.example",
    )


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def webhook():
    return RecordingWebhook()


@pytest.fixture
def relay(settings, webhook):
    return NotificationRelay(settings, transport=httpx.MockTransport(webhook))


@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
def clock():
    fake = Clock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))
    with patch("app.services.otp_service.utcnow", side_effect=fake):
        yield fake


@pytest.fixture
def client(db_session, settings, identity, relay):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_identity_provider] = lambda: identity
    app.dependency_overrides[get_relay] = lambda: relay
    limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.reset()
