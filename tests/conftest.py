import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token
from app.db.dynamo import get_store
from app.main import app
from app.utils.ai_client import get_ai_client
from tests.fakes import USER_ID, InMemoryStore, StubAIClient


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def ai_client():
    return StubAIClient()


@pytest.fixture
def client(store, ai_client):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_ai_client] = lambda: ai_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = create_access_token(data={"sub": USER_ID})
    return {"Authorization": f"Bearer {token}"}
