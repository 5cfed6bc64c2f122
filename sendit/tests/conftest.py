"""
Centralized Test Configuration.

SQLite file database (one per test run), in-memory Redis, recording mail
transport. The notification dispatcher opens its own sessions, so the
database is a file with NullPool rather than a single shared connection.
"""

import os
import tempfile

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

from sendit.app.main import app
from sendit.app.db.session import get_db, Base
from sendit.app.core.exceptions import NotificationDeliveryError
from sendit.app.core.jwt import issue_token
import sendit.app.core.redis_client as redis_client_module
from sendit.app.models.enums import UserRole
from sendit.app.models.user import User
from sendit.app.services.notification_dispatcher import notification_dispatcher
from sendit.app.services.upload_service import upload_service

TEST_DB_PATH = os.path.join(tempfile.gettempdir(), f"sendit_test_{os.getpid()}.db")
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_PATH}"

engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)


@event.listens_for(engine.sync_engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}
            self.ttls = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


class FakeMailTransport:
    """Records outgoing mail. Set `fail = True` to simulate a relay outage."""

    def __init__(self):
        self.sent = []
        self.fail = False
        self.configured = True

    async def send(self, to_email, to_name, subject, text, html=None):
        if self.fail:
            raise NotificationDeliveryError("SMTP relay unavailable")
        if not self.configured:
            return False
        self.sent.append({"to": to_email, "subject": subject, "text": text})
        return True

    def reset(self):
        self.sent = []
        self.fail = False
        self.configured = True


@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture(scope="session")
def mail_transport():
    return FakeMailTransport()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session, mail_transport):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    original_factory = notification_dispatcher.session_factory
    original_transport = notification_dispatcher.transport

    redis_client_module.redis_client = redis_client_session
    notification_dispatcher.session_factory = TestingSessionLocal
    notification_dispatcher.transport = mail_transport

    async def override_get_db():
        async with TestingSessionLocal() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client
    notification_dispatcher.session_factory = original_factory
    notification_dispatcher.transport = original_transport
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session, mail_transport, tmp_path):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()
    mail_transport.reset()
    upload_service.storage_dir = str(tmp_path / "uploads")

    yield

    # Background notifications must finish before their tables go away
    await notification_dispatcher.join()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
async def settle():
    """Wait for notifications dispatched by the previous request."""
    async def _settle():
        await notification_dispatcher.join()
    return _settle


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_token(user)}"}


async def make_user(db, email, name, role=UserRole.CUSTOMER, **fields) -> User:
    user = User(email=email, name=name, role=role, **fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def admin(db_session):
    return await make_user(db_session, "admin@sendit.co.ke", "Ops Admin", UserRole.ADMIN)


@pytest.fixture
async def sender(db_session):
    return await make_user(db_session, "sender@sendit.co.ke", "Jane Sender", phone="+254700000001")


@pytest.fixture
async def recipient(db_session):
    return await make_user(db_session, "recipient@sendit.co.ke", "John Recipient", phone="+254700000002")


@pytest.fixture
async def courier(db_session):
    return await make_user(db_session, "courier@sendit.co.ke", "Kim Courier", UserRole.COURIER)


@pytest.fixture
async def other_courier(db_session):
    return await make_user(db_session, "courier2@sendit.co.ke", "Ann Courier", UserRole.COURIER)


def parcel_payload(recipient_email="recipient@sendit.co.ke", **overrides) -> dict:
    """Nairobi to Mombasa, 3 kg box."""
    payload = {
        "recipient": {"email": recipient_email, "name": "John Recipient", "phone": "+254700000002"},
        "sender_address": {
            "street": "Moi Avenue 12",
            "city": "Nairobi",
            "county": "Nairobi",
            "latitude": -1.2864,
            "longitude": 36.8172,
        },
        "recipient_address": {
            "street": "Nkrumah Road 4",
            "city": "Mombasa",
            "county": "Mombasa",
            "latitude": -4.0435,
            "longitude": 39.6682,
        },
        "package_type": "STANDARD_BOX",
        "weight": 3,
        "delivery_type": "STANDARD",
        "description": "Books",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_parcel(client, sender):
    """Create a parcel through the API as `sender` and return its JSON."""
    async def _create(as_user=None, **overrides):
        response = await client.post(
            "/v1/parcels",
            json=parcel_payload(**overrides),
            headers=auth_headers(as_user or sender),
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def set_status(client, admin):
    """Admin status change through the API."""
    async def _set(parcel_id, status, expect=200, **fields):
        response = await client.patch(
            f"/v1/admin/parcels/{parcel_id}/status",
            json={"status": status, **fields},
            headers=auth_headers(admin),
        )
        assert response.status_code == expect, response.text
        return response.json()
    return _set


@pytest.fixture
def assign(client, admin):
    """Assign a courier to a parcel through the API."""
    async def _assign(parcel_id, courier_user, expect=201):
        response = await client.post(
            f"/v1/admin/parcels/{parcel_id}/assign",
            json={"courier_id": courier_user.id},
            headers=auth_headers(admin),
        )
        assert response.status_code == expect, response.text
        return response.json()
    return _assign
