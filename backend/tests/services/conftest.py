"""Service test fixtures — in-memory MongoDB, fake media host/mailer, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory database
    - get_db, get_media_host and get_mailer are overridden on the app
    - db_manager patched so the readiness probe sees the test database
    - Tokens are minted with the same settings the app decodes them with

Design Decisions:
    - mongomock behind an awaitable facade (mock_mongo.py): no mongod needed
    - Fakes record calls so tests assert on side effects (uploads, destroys, emails)
"""

from datetime import datetime, timezone

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

import backstage.infrastructure.database as db_module
from backstage.config import get_settings
from backstage.core.domain_types import AdminRole, Collection
from backstage.core.errors import MediaHostError
from backstage.infrastructure.database import get_db
from backstage.infrastructure.mailer import get_mailer
from backstage.infrastructure.media_host import get_media_host
from backstage.infrastructure.security import create_access_token, hash_password
from backstage.main import app
from tests.services.mock_mongo import MockDatabase

ADMIN_PASSWORD = "correct-horse-9"


class FakeMediaHost:
    """Records host calls; answers like Cloudinary."""

    def __init__(self):
        self.uploads = []
        self.destroyed = []
        self.destroy_result = "ok"
        self.fail_destroy = False
        self.usage_report = {
            "storage": {"usage": 2048, "limit": 10240, "used_percent": 20.0},
            "bandwidth": {"usage": 512},
            "resources": 12,
            "last_updated": "2024-06-01",
        }

    async def upload(self, data, folder=None, resource_type="image"):
        self.uploads.append({"size": len(data), "folder": folder, "resource_type": resource_type})
        n = len(self.uploads)
        result = {
            "public_id": f"{folder or 'root'}/file-{n}",
            "resource_type": resource_type,
            "secure_url": f"https://res.cloudinary.test/file-{n}",
            "bytes": len(data),
        }
        if resource_type == "image":
            result.update({"format": "png", "width": 800, "height": 600, "eager": [
                {"secure_url": f"https://res.cloudinary.test/file-{n}-t", "width": 150, "height": 150},
            ]})
        return result

    async def destroy(self, public_id, resource_type="image"):
        if self.fail_destroy:
            raise MediaHostError("destroy", "boom")
        self.destroyed.append(public_id)
        return self.destroy_result

    async def usage(self):
        return self.usage_report


class FakeMailer:
    def __init__(self):
        self.sent = []

    async def send(self, to, subject, html_body, text_body):
        self.sent.append({"to": to, "subject": subject, "html": html_body, "text": text_body})


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def db():
    return MockDatabase()


@pytest.fixture
def media_host():
    return FakeMediaHost()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
async def client(db, media_host, mailer):
    """FastAPI test client with DB, media host and mailer overridden."""
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_host] = lambda: media_host
    app.dependency_overrides[get_mailer] = lambda: mailer

    original_manager = db_module.db_manager
    fake_manager = db_module.DatabaseManager.__new__(db_module.DatabaseManager)
    fake_manager.db = db
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


async def _insert_admin(db, settings, email, role, approved=True):
    now = datetime.now(timezone.utc)
    admin = {
        "_id": ObjectId(),
        "name": email.split("@")[0].title(),
        "email": email,
        "password": hash_password(ADMIN_PASSWORD, settings.bcrypt_rounds),
        "role": role,
        "approved": approved,
        "createdAt": now,
        "updatedAt": now,
    }
    await db[Collection.ADMINS.value].insert_one(admin)
    return admin


def auth_header(admin, settings) -> dict:
    token = create_access_token(str(admin["_id"]), admin["role"], settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin(db, settings):
    return await _insert_admin(db, settings, "editor@example.com", AdminRole.ADMIN.value)


@pytest.fixture
async def super_admin(db, settings):
    return await _insert_admin(db, settings, "owner@example.com", AdminRole.SUPER_ADMIN.value)


@pytest.fixture
async def pending_admin(db, settings):
    return await _insert_admin(
        db, settings, "newbie@example.com", AdminRole.ADMIN.value, approved=False,
    )


@pytest.fixture
def admin_headers(admin, settings):
    return auth_header(admin, settings)


@pytest.fixture
def super_headers(super_admin, settings):
    return auth_header(super_admin, settings)


@pytest.fixture
def make_upload(db):
    """Insert an upload_files record and return its id string."""
    async def _make(name="cover.png", mime="image/png", **extra):
        now = datetime.now(timezone.utc)
        doc = {
            "name": name,
            "mime": mime,
            "type": mime.split("/")[0],
            "size": 12.5,
            "hash": str(ObjectId()),
            "url": f"http://res.cloudinary.test/{name}",
            "provider_metadata": {"public_id": f"site/{name}", "resource_type": "image"},
            "formats": {},
            "related": [],
            "deleted": False,
            "createdAt": now,
            "updatedAt": now,
            **extra,
        }
        result = await db[Collection.UPLOAD_FILES.value].insert_one(doc)
        return str(result.inserted_id)
    return _make


@pytest.fixture
def get_upload(db):
    async def _get(file_id):
        return await db[Collection.UPLOAD_FILES.value].find_one({"_id": ObjectId(file_id)})
    return _get
