import os

# Memory backend and the cheapest bcrypt cost keep the suite fast and hermetic
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from src.taskboard.auth import AuthService  # noqa: E402
from src.taskboard.main import create_app  # noqa: E402
from src.taskboard.repositories import InMemoryRepository  # noqa: E402
from src.taskboard.schemas import LoginForm, SignupForm  # noqa: E402
from src.taskboard.settings import get_settings  # noqa: E402
from src.taskboard.tasks import TaskService  # noqa: E402


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def auth(repo):
    return AuthService(repo, get_settings())


@pytest.fixture
def tasks(repo):
    return TaskService(repo)


@pytest.fixture
def make_user(auth):
    """Sign up a user and return (PublicUser, session token)."""

    def _make(email="ada@example.com", password="s3cret!", name="Ada"):
        user = auth.signup(SignupForm(email=email, password=password, name=name))
        token = auth.login(LoginForm(email=email, password=password))
        return user, token

    return _make


@pytest.fixture
def client(repo):
    return TestClient(create_app(repository=repo))


@pytest.fixture
def logged_in_client(client):
    """A client holding a session cookie for a freshly registered user."""
    res = client.post(
        "/api/v1/auth/signup",
        json={"email": "lin@example.com", "password": "pw-123456", "name": "Lin"},
    )
    assert res.status_code == 201
    res = client.post(
        "/api/v1/auth/login", json={"email": "lin@example.com", "password": "pw-123456"}
    )
    assert res.status_code == 200
    return client
