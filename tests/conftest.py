"""
Pytest fixtures for the MyMemoryCard API tests.

The application is pointed at an in-memory SQLite database before any
project module is imported; every test gets a fresh schema.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["TWITCH_CLIENT_ID"] = ""
os.environ["TWITCH_CLIENT_SECRET"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

import database
from app import app
from models import Base

GTA_V = {
    "id": 3498,
    "name": "Grand Theft Auto V",
    "background_image": "https://media.rawg.io/media/games/gta5.jpg",
    "released": "2013-09-17",
    "rating": 4.47,
    "platforms": [{"platform": {"id": 4, "name": "PC"}}],
    "genres": [{"id": 4, "name": "Action"}],
}


@pytest.fixture(autouse=True)
def fresh_schema():
    """Recreate every table around each test."""
    Base.metadata.drop_all(bind=database.engine)
    Base.metadata.create_all(bind=database.engine)
    yield
    Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def client():
    # Not used as a context manager: the lifespan would try to reach the database again
    return TestClient(app)


@pytest.fixture
def db():
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def signup(client):
    """Factory creating an account; returns ``(user, auth_headers)``."""

    def _signup(username="alice", email=None, password="secret123"):
        resp = client.post(
            "/auth/signup",
            json={"username": username, "email": email or f"{username}@example.com", "password": password},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _signup


@pytest.fixture
def game(db):
    """A mirrored game row, so content can be created without calling RAWG."""
    from catalog import mirror_game

    return mirror_game(db, GTA_V, cover_url="https://images.igdb.com/igdb/image/upload/t_cover_big/co1.jpg")


@pytest.fixture
def make_admin(db):
    def _make_admin(user_id):
        db.execute(text("UPDATE users SET role = 'admin' WHERE id = :uid"), {"uid": user_id})
        db.commit()

    return _make_admin


@pytest.fixture
def user_row(db):
    """Fetch the stored users row for an id."""

    def _user_row(user_id):
        return db.execute(
            text("SELECT id, exp, level, role FROM users WHERE id = :uid"),
            {"uid": user_id},
        ).fetchone()

    return _user_row
