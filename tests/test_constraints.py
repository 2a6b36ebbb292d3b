"""
Classification of database constraint violations and their HTTP mapping.
"""

from unittest.mock import patch

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from app import app
from database import FOREIGN_KEY_VIOLATION, UNIQUE_VIOLATION, constraint_violation
from validators import raise_for_integrity_error


class _PgError(Exception):
    def __init__(self, pgcode):
        super().__init__(f"pg error {pgcode}")
        self.pgcode = pgcode


def _pg_integrity_error(pgcode):
    return IntegrityError("INSERT INTO likes ...", {}, _PgError(pgcode))


def _sqlite_integrity_error(db, statement, params):
    with pytest.raises(IntegrityError) as info:
        db.execute(text(statement), params)
    db.rollback()
    return info.value


class TestConstraintViolation:
    def test_postgres_codes(self):
        assert constraint_violation(_pg_integrity_error("23505")) == UNIQUE_VIOLATION
        assert constraint_violation(_pg_integrity_error("23503")) == FOREIGN_KEY_VIOLATION
        assert constraint_violation(_pg_integrity_error("23514")) is None
        assert constraint_violation(_pg_integrity_error("23502")) is None

    def test_sqlite_unique(self, db, signup):
        signup("alice")
        exc = _sqlite_integrity_error(
            db,
            "INSERT INTO users (username, email, password_hash) VALUES ('alice', 'x@example.com', 'h')",
            {},
        )
        assert constraint_violation(exc) == UNIQUE_VIOLATION

    def test_sqlite_foreign_keys_are_enforced(self, db, game):
        exc = _sqlite_integrity_error(
            db,
            "INSERT INTO collections (user_id, game_id, status) VALUES (:uid, :gid, 'playing')",
            {"uid": 9999, "gid": game.id},
        )
        assert constraint_violation(exc) == FOREIGN_KEY_VIOLATION

    def test_sqlite_check_is_neither(self, db):
        exc = _sqlite_integrity_error(
            db,
            "INSERT INTO users (username, email, password_hash, exp) VALUES ('neg', 'neg@example.com', 'h', -1)",
            {},
        )
        assert constraint_violation(exc) is None


class TestRaiseForIntegrityError:
    def test_unique_is_conflict(self):
        with pytest.raises(HTTPException) as info:
            raise_for_integrity_error(_pg_integrity_error("23505"), "déjà là")
        assert info.value.status_code == 409
        assert info.value.detail == "déjà là"

    def test_foreign_key_is_not_found(self):
        with pytest.raises(HTTPException) as info:
            raise_for_integrity_error(_pg_integrity_error("23503"), "déjà là", "Utilisateur introuvable")
        assert info.value.status_code == 404
        assert info.value.detail == "Utilisateur introuvable"

    def test_other_violations_propagate(self):
        exc = _pg_integrity_error("23514")
        with pytest.raises(IntegrityError) as info:
            raise_for_integrity_error(exc, "déjà là")
        assert info.value is exc


def test_check_violation_in_handler_is_server_error(signup, game):
    _, headers = signup("alice")
    client = TestClient(app, raise_server_exceptions=False)

    with patch("routes.reviews.check_rating"):
        resp = client.post(
            "/reviews",
            json={"gameId": 3498, "rating": 9, "title": "Trop", "content": "Hors échelle"},
            headers=headers,
        )

    assert resp.status_code == 500
    assert resp.json() == {"error": "Erreur serveur interne."}
