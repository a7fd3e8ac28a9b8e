from __future__ import annotations

import pytest

from api import create_app

PASSWORD = "Abc12345!"


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", {"DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}"})
    yield app
    app.extensions["storage"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def session(app):
    """The app's scoped session, inside an app context."""
    with app.app_context():
        yield app.extensions["storage"].get_session()


def register(client, email: str = "a@b.com", password: str = PASSWORD, **profile):
    return client.post("/api/v1/auth/register", json={"email": email, "password": password, **profile})


def login(client, email: str = "a@b.com", password: str = PASSWORD):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_tokens(client):
    """Register a@b.com and return its token pair."""
    resp = register(client)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


@pytest.fixture
def auth_headers(user_tokens):
    return bearer(user_tokens["accessToken"])
