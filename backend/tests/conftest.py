"""
Test configuration and fixtures for the notes auth backend tests.
"""
import os

# Set test environment BEFORE any imports
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URI"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-for-testing-only-0123456789")

from datetime import date, timedelta
from typing import Any, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update

from notes_auth.config import Settings
from notes_auth.main import create_app
from notes_auth.models.user import User
from notes_auth.services.dispatcher import VerificationDispatcher
from notes_auth.services.user_store import UserStore

TEST_JWT_SECRET = "test-jwt-secret-key-for-testing-only-0123456789"


class RecordingEmailTransport:
    """Stands in for SMTP; keeps every message instead of sending it."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, to_email, subject, body, html=True):
        if self.fail:
            raise RuntimeError("SMTP unavailable")
        self.sent.append({"to": to_email, "subject": subject, "body": body, "html": html})


class RecordingSmsTransport:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, to, body):
        if self.fail:
            raise RuntimeError("Twilio unavailable")
        self.sent.append({"to": to, "body": body})
        return "SM_TEST"


class RecordingDispatcher(VerificationDispatcher):
    """Real dispatcher over recording transports, remembering codes and reset links."""

    def __init__(self):
        super().__init__(RecordingEmailTransport(), RecordingSmsTransport())
        self.codes = []
        self.reset_urls = []

    async def send_code(self, channel, code, user):
        message = await super().send_code(channel, code, user)
        self.codes.append(code)
        return message

    async def send_reset_link(self, email, reset_url):
        await super().send_reset_link(email, reset_url)
        self.reset_urls.append(reset_url)

    @property
    def last_code(self):
        return self.codes[-1]

    @property
    def last_reset_token(self):
        return self.reset_urls[-1].rsplit("/", 1)[-1]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        database_uri="sqlite+aiosqlite:///:memory:",
        jwt_secret=TEST_JWT_SECRET,
        rate_limit_enabled=False,
        frontend_url="http://frontend.test",
        cookie_secure=False,
    )


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest_asyncio.fixture
async def app(settings, dispatcher):
    """A fresh app over its own in-memory database."""
    application = create_app(settings, dispatcher=dispatcher)
    # ASGITransport does not send lifespan events
    await application.state.database.create_all()
    yield application
    await application.state.database.dispose()


@pytest_asyncio.fixture
async def async_client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def db_session(app):
    async with app.state.database.sessionmaker() as session:
        yield session


@pytest.fixture
def find_user(app):
    """Look a user up in a short-lived session so the result reflects committed state."""
    async def _find(email=None, phone=None, verified=None):
        async with app.state.database.sessionmaker() as session:
            return await UserStore(session).find_one(email=email, phone=phone, verified=verified, with_password=True)
    return _find


@pytest.fixture
def count_users(app):
    async def _count(email=None, phone=None, verified=None):
        async with app.state.database.sessionmaker() as session:
            return await UserStore(session).count(email=email, phone=phone, verified=verified)
    return _count


@pytest.fixture
def update_user(app):
    """Write columns straight to the users table, e.g. to move an expiry into the past."""
    async def _update(email, **values):
        async with app.state.database.sessionmaker() as session:
            await session.execute(update(User).where(User.email == email).values(**values))
            await session.commit()
    return _update


@pytest.fixture
def registration_data() -> Dict[str, Any]:
    """Sample registration body."""
    return {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "phone": "+15550001111",
        "password": "correct-horse-battery",
        "dateOfBirth": (date.today() - timedelta(days=365 * 25)).isoformat(),
        "verificationMethod": "email",
    }


@pytest_asyncio.fixture
async def verified_user(async_client, dispatcher, registration_data) -> Dict[str, Any]:
    """Register and verify the sample user; returns the registration body."""
    response = await async_client.post("/api/v1/user/register", json=registration_data)
    assert response.status_code == 201
    response = await async_client.post(
        "/api/v1/user/verify-otp",
        json={"email": registration_data["email"], "otp": dispatcher.last_code},
    )
    assert response.status_code == 200
    return registration_data
