import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from config import settings
from dataBase import get_db
from main import app
from tests.helpers import register


@pytest.fixture
def mock_db():
    return AsyncMongoMockClient()["bookswap_test"]


@pytest.fixture
def client(mock_db, tmp_path, monkeypatch):
    # Uploaded images go to a per-test directory
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    app.dependency_overrides[get_db] = lambda: mock_db
    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def alice(client):
    return register(client, "alice")


@pytest.fixture
def bob(client):
    return register(client, "bob")


@pytest.fixture
def carol(client):
    return register(client, "carol")
