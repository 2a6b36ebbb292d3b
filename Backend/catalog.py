"""
Local mirror of the RAWG catalog.

A game row is created the first time anything references its RAWG id and
enriched with an IGDB cover when one can be found.
"""

import json
import logging

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import igdb
import rawg
from database import UNIQUE_VIOLATION, constraint_violation

logger = logging.getLogger(__name__)

GAME_COLUMNS = "id, rawg_id, name, background_image, cover_url, released, rating, platforms, genres, created_at"


def _decode_list(value):
    if not value:
        return []
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return []


def serialize_game(row) -> dict:
    game = dict(row._mapping)
    game["platforms"] = _decode_list(game.get("platforms"))
    game["genres"] = _decode_list(game.get("genres"))
    return game


def find_game_by_rawg_id(db: Session, rawg_id: int):
    return db.execute(
        text(f"SELECT {GAME_COLUMNS} FROM games WHERE rawg_id = :rid"),
        {"rid": rawg_id},
    ).fetchone()


def mirror_game(db: Session, data: dict, cover_url=None):
    """Insert a local row for a RAWG payload and commit; returns the row."""
    try:
        row = db.execute(
            text(
                "INSERT INTO games (rawg_id, name, background_image, cover_url, released, rating, platforms, genres) "
                "VALUES (:rid, :name, :bg, :cover, :released, :rating, :platforms, :genres) "
                f"RETURNING {GAME_COLUMNS}"
            ),
            {
                "rid": data["id"],
                "name": data.get("name") or f"RAWG #{data['id']}",
                "bg": data.get("background_image"),
                "cover": cover_url,
                "released": data.get("released"),
                "rating": data.get("rating"),
                "platforms": json.dumps(data.get("platforms") or []),
                "genres": json.dumps(data.get("genres") or []),
            },
        ).first()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if constraint_violation(exc) != UNIQUE_VIOLATION:
            raise
        # Another request mirrored the same game first
        row = find_game_by_rawg_id(db, data["id"])

    return row


def find_or_create_game(db: Session, rawg_id: int):
    """
    Local row for ``rawg_id``, mirroring it from RAWG on first use.

    Returns None when the game is unknown locally and RAWG has no record
    (or cannot be reached).
    """
    game = find_game_by_rawg_id(db, rawg_id)
    if game:
        return game

    details = rawg.get_game_details(rawg_id)
    if not details or "id" not in details:
        return None

    cover_url = igdb.client.get_cover_by_game_name(details.get("name", ""))
    game = mirror_game(db, details, cover_url=cover_url)
    logger.info("Game %d (%s) mirrored from RAWG", rawg_id, details.get("name"))
    return game


def ensure_cover(db: Session, game):
    """Fill a missing cover on an existing row; returns the (possibly updated) row."""
    if game.cover_url:
        return game

    cover_url = igdb.client.get_cover_by_game_name(game.name)
    if not cover_url:
        return game

    updated = db.execute(
        text(f"UPDATE games SET cover_url = :cover WHERE id = :gid RETURNING {GAME_COLUMNS}"),
        {"cover": cover_url, "gid": game.id},
    ).first()
    db.commit()
    return updated or game
