import os
from datetime import timedelta

# timebox.main builds a module-level app from the environment on import
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient

from timebox.config import Settings
from timebox.core.timeutil import utcnow
from timebox.main import create_app
from timebox.models.outlook import OutlookIntegration

TASK = {
    "title": "Write report",
    "startDate": "2024-03-01",
    "dueDate": "2024-03-05",
    "timeRequired": 60,
}


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        SECRET_KEY="test-secret-key",
        SYNC_WORKERS=0,
        OUTLOOK_CLIENT_ID="client-id",
        OUTLOOK_CLIENT_SECRET="client-secret",
        BASE_URL="https://api.timebox.test",
        FRONTEND_URL="https://timebox.test",
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(app, client):
    session = app.state.database.session()
    try:
        yield session
    finally:
        session.close()


def login(client, email, password="correct horse"):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    body = response.json()
    return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]["id"]


@pytest.fixture
def alice(client):
    return login(client, "alice@example.com")


@pytest.fixture
def bob(client):
    return login(client, "bob@example.com")


@pytest.fixture
def auth_headers(alice):
    return alice[0]


@pytest.fixture
def other_headers(bob):
    return bob[0]


@pytest.fixture
def create_task(client, auth_headers):
    def _create(headers=None, **overrides):
        payload = dict(TASK, **overrides)
        response = client.post("/api/tasks", json=payload, headers=headers or auth_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def connect_outlook(db, alice):
    """Store a live integration for alice without going through OAuth."""

    def _connect(**overrides):
        values = dict(
            user_id=alice[1],
            access_token="access-token",
            refresh_token="refresh-token",
            expires_at=utcnow() + timedelta(hours=1),
            calendar_id="calendar-1",
            sync_enabled=True,
        )
        values.update(overrides)
        integration = OutlookIntegration(**values)
        db.add(integration)
        db.commit()
        return integration

    return _connect
