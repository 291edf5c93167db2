import os

import pytest
from fastapi.testclient import TestClient

# keep the module-level app in codefuture.main away from the real database file
os.environ.setdefault("DATABASE_URL", "sqlite://")

from codefuture.config import Settings  # noqa: E402
from codefuture.errors import UpstreamError  # noqa: E402
from codefuture.main import create_app  # noqa: E402

ROADMAP_JSON = '{"title": "Python Basics", "lessons": [{"id": "1", "title": "Variables"}, {"id": "2", "title": "Loops"}]}'


class FakeAI:
    """Stands in for the AI client; records calls and can be told to fail."""

    def __init__(self):
        self.calls = []
        self.fail = False
        self.roadmap = ROADMAP_JSON

    def _record(self, name, *args):
        self.calls.append((name, args))
        if self.fail:
            raise UpstreamError("AI API error: quota exceeded")

    def generate_lesson_plan(self, persona, goals):
        self._record("generate_lesson_plan", persona, goals)
        return self.roadmap

    def generate_full_roadmap(self, role, experience, goal, other):
        self._record("generate_full_roadmap", role, experience, goal, other)
        return self.roadmap

    def chat(self, persona, current_code, message, history):
        self._record("chat", persona, current_code, message, history)
        return f"echo: {message}"

    def execute_code(self, code, language):
        self._record("execute_code", code, language)
        return "hello\n"

    def generate_email_response(self, first_name, message):
        self._record("generate_email_response", first_name, message)
        return f"Thanks {first_name}!"


class FakeMailer:
    def __init__(self):
        self.sent = []

    def send_html(self, to, subject, body):
        self.sent.append((list(to), subject, body))
        return True


@pytest.fixture
def settings(tmp_path):
    return Settings(DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}", JWT_SECRET="test-secret", ADMIN_EMAIL="admin@example.com")


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def fake_mailer():
    return FakeMailer()


@pytest.fixture
def app(settings, fake_ai, fake_mailer):
    return create_app(settings, ai_client=fake_ai, mailer=fake_mailer)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def signup(client):
    """Sign a user up and return (token, user)."""
    def _signup(name="Ada", email="ada@example.com", password="secret123"):
        r = client.post("/api/signup", json={"name": name, "email": email, "password": password})
        assert r.status_code == 200, r.text
        body = r.json()
        return body["token"], body["user"]
    return _signup


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
