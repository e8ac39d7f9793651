"""Test configuration and fixtures."""

import json

import pytest

from centralization import create_app
from centralization.extensions import db

API_URL = "http://backend.test/api"

ADMIN = {
    "id": 1,
    "username": "admin",
    "full_name": "Администратор Системы",
    "role": "admin",
    "email": "admin@example.com",
    "is_online": True,
    "created_at": "2025-01-10T09:00:00Z",
}

MODERATOR = {
    "id": 2,
    "username": "moder",
    "full_name": "Петрова Елена",
    "role": "moderator",
    "created_at": "2025-02-01T09:00:00Z",
}

PLAIN_USER = {
    "id": 3,
    "username": "ivanov",
    "full_name": "Иванов Иван",
    "role": "user",
    "emails": ["ivanov@example.com"],
    "phones": ["+7 (701) 123-45-67"],
    "created_at": "2025-03-01T09:00:00Z",
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeHttp:
    """Stands in for requests.Session: routes (method, path) to canned responses."""

    def __init__(self, base_url=API_URL):
        self.base_url = base_url
        self.routes = {}
        self.calls = []

    def add(self, method, path, payload=None, status=200):
        self.routes[(method, path)] = (status, payload)

    def fail(self, method, path, exc):
        self.routes[(method, path)] = exc

    def request(self, method, url, **kwargs):
        path = url[len(self.base_url):]
        self.calls.append({"method": method, "path": path, **kwargs})
        route = self.routes.get((method, path))
        if route is None:
            return FakeResponse(404, {"error": "Not found"})
        if isinstance(route, Exception):
            raise route
        status, payload = route
        if callable(payload):
            payload = payload(kwargs)
        return FakeResponse(status, payload)

    def last(self, method=None, path=None):
        for call in reversed(self.calls):
            if (method is None or call["method"] == method) and (path is None or call["path"] == path):
                return call
        return None


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def app(http):
    app = create_app("testing", API_HTTP_SESSION=http)
    # Requests must get their own app context (and `g`), so none stays pushed
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def sign_in(client, user):
    """Put a token and cached user into the test client's session."""
    with client.session_transaction() as sess:
        sess["token"] = f"token-{user['id']}"
        sess["user"] = json.dumps(user)


@pytest.fixture
def admin_client(client):
    sign_in(client, ADMIN)
    return client


@pytest.fixture
def moderator_client(client):
    sign_in(client, MODERATOR)
    return client


@pytest.fixture
def user_client(client):
    sign_in(client, PLAIN_USER)
    return client
