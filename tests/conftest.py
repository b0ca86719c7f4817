import os
import tempfile

# Settings are read when the app package is imported, so configure first
_db_dir = tempfile.mkdtemp(prefix="expense-tracker-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["LOG_FILE"] = ""
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PASSWORD_HASH_ROUNDS"] = "1"

import pytest
from fastapi.testclient import TestClient

from app.database import Base, SessionLocal, engine
from app.main import app
from app.categories.service import sync_predefined_categories
from app.users import crud as user_crud
from app.users.models import ROLE_ADMIN
from app.security.passwords import hash_password


DEFAULT_PASSWORD = "abc12345"


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        sync_predefined_categories(db)
    finally:
        db.close()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_client():
    """Each client has its own cookie jar, so one client per user."""
    def _make(cookies=None):
        return TestClient(app, cookies=cookies)
    return _make


def register(client, email="a@x.com", password=DEFAULT_PASSWORD, name="Alice"):
    response = client.post(
        "/auth/register",
        json={"email": email, "password": password, "name": name},
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


@pytest.fixture
def alice(make_client):
    client = make_client()
    client.user = register(client, "a@x.com", name="Alice")["user"]
    return client


@pytest.fixture
def bob(make_client):
    client = make_client()
    client.user = register(client, "b@x.com", name="Bob")["user"]
    return client


@pytest.fixture
def admin(make_client, db):
    user_crud.create_user(
        db,
        email="admin@x.com",
        name="Admin",
        hashed_password=hash_password(DEFAULT_PASSWORD),
        role=ROLE_ADMIN,
    )
    client = make_client()
    response = client.post("/auth/login", json={"email": "admin@x.com", "password": DEFAULT_PASSWORD})
    assert response.status_code == 200, response.text
    client.user = response.json()["data"]["user"]
    return client
