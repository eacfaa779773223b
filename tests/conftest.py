import pytest
from httpx import AsyncClient, ASGITransport
import os
from datetime import timedelta
from types import SimpleNamespace

# Set up test environment variables before anything else
os.environ["ENV"] = "testing"
os.environ["SECRET_KEY"] = "test_secret_key_12345"
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("BRANDING_LOGO_PATH", None)

from config import config
config.ENV = "testing"

from main import app
from routes.deps import create_access_token, get_notifications_collection, get_broadcaster
from utils.realtime import NotificationBroadcaster


def _matches(doc, query):
    for key, expected in query.items():
        if isinstance(expected, dict) and "$in" in expected:
            if doc.get(key) not in expected["$in"]:
                return False
        elif doc.get(key) != expected:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction):
        self._docs = sorted(self._docs, key=lambda d: d.get(key), reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        docs = self._docs if length is None else self._docs[:length]
        return [dict(d) for d in docs]


class FakeCollection:
    """The subset of the Motor collection API the notification routes use."""

    def __init__(self):
        self.docs = []

    async def insert_one(self, document):
        self.docs.append(dict(document))
        return SimpleNamespace(inserted_id=document.get("id"))

    def find(self, query=None):
        return FakeCursor([d for d in self.docs if _matches(d, query or {})])

    async def count_documents(self, query):
        return sum(1 for d in self.docs if _matches(d, query))

    async def update_one(self, query, update):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update["$set"])
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def update_many(self, query, update):
        matched = [d for d in self.docs if _matches(d, query)]
        for doc in matched:
            doc.update(update["$set"])
        return SimpleNamespace(matched_count=len(matched), modified_count=len(matched))

    async def delete_one(self, query):
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query):
        before = len(self.docs)
        self.docs = [d for d in self.docs if not _matches(d, query)]
        return SimpleNamespace(deleted_count=before - len(self.docs))


@pytest.fixture(scope="function")
def notifications_store():
    return FakeCollection()

@pytest.fixture(scope="function")
def live_broadcaster():
    return NotificationBroadcaster()

@pytest.fixture(scope="function")
async def async_client(notifications_store, live_broadcaster):
    app.dependency_overrides[get_notifications_collection] = lambda: notifications_store
    app.dependency_overrides[get_broadcaster] = lambda: live_broadcaster
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()

@pytest.fixture(scope="function")
def test_user():
    return {"id": "test_user_id", "name": "Test User", "email": "user@test.com"}

@pytest.fixture(scope="function")
def auth_headers(test_user):
    token = create_access_token(data={"sub": test_user["id"]}, expires_delta=timedelta(minutes=60))
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture(scope="function")
def other_auth_headers():
    token = create_access_token(data={"sub": "other_user_id"}, expires_delta=timedelta(minutes=60))
    return {"Authorization": f"Bearer {token}"}
