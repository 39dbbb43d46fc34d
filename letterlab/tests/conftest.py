"""Shared fixtures: an app wired to a fresh in-memory database per test."""

import os
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from letterlab.database import Database
from letterlab.main import create_app


@pytest.fixture(autouse=True)
def _env(monkeypatch):
    monkeypatch.setenv("ENABLE_EMAIL", "1")
    monkeypatch.setenv("ENABLE_CHAT", "0")
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.init()
    yield db
    db.close()


@pytest.fixture
def session(database):
    s = database.session()
    yield s
    s.close()


@pytest.fixture
def app(database):
    return create_app(database)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def register(client, name="Ada", email="ada@example.com", password="secret123") -> dict:
    resp = client.post("/api/users/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    return resp.json()


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client) -> dict:
    return register(client, name="Alice", email="alice@example.com")


@pytest.fixture
def bob(client) -> dict:
    return register(client, name="Bob", email="bob@example.com")
