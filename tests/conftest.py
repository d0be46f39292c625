import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app


@pytest.fixture
def mongo(monkeypatch):
    """In-memory MongoDB patched in for the real connection."""
    mock_db = mongomock.MongoClient()["thoughts_test"]
    monkeypatch.setattr(database, "db", mock_db)
    database.ensure_indexes()
    return mock_db


@pytest.fixture
def client(mongo):
    return TestClient(app)


@pytest.fixture
def make_user(client):
    def _make(username="abe", email=None):
        res = client.post("/api/users", json={"username": username, "email": email or f"{username}@x.com"})
        assert res.status_code == 200, res.text
        return res.json()
    return _make
