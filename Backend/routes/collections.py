"""
Personal game collections (status + optional rating per game).

Endpoints (all bearer):
  POST   /collections                          — Add a game
  GET    /collections                          — Caller's collection
  GET    /collections/user/{user_id}           — Another user's collection
  GET    /collections/game/{rawg_id}/status    — Caller's entry for one game
  PATCH  /collections/{rawg_id}                — Change status and/or rating
  DELETE /collections/{rawg_id}                — Remove a game
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalog import find_game_by_rawg_id, find_or_create_game, serialize_game
from database import get_db
from schemas import CollectionCreate, CollectionUpdate
from security import get_current_user_id
from validators import check_rating, check_status, raise_for_integrity_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/collections", tags=["Collections"])

ENTRY_COLUMNS = "id, user_id, game_id, status, user_rating, created_at"


def _collection_of(db: Session, user_id: int) -> list:
    rows = db.execute(
        text(
            """
            SELECT
                c.id, c.status, c.user_rating, c.created_at,
                g.id AS game_id, g.rawg_id, g.name, g.background_image, g.cover_url,
                g.released, g.rating, g.platforms, g.genres
            FROM collections c
            JOIN games g ON c.game_id = g.id
            WHERE c.user_id = :uid
            ORDER BY c.created_at DESC, c.id DESC
            """
        ),
        {"uid": user_id},
    ).fetchall()
    return [serialize_game(r) for r in rows]


def _entry_for(db: Session, user_id: int, rawg_id: int):
    """(game, entry) for the caller, raising 404 when either is missing."""
    game = find_game_by_rawg_id(db, rawg_id)
    if not game:
        raise HTTPException(status_code=404, detail="Ce jeu n'existe pas dans la base de données")

    entry = db.execute(
        text(f"SELECT {ENTRY_COLUMNS} FROM collections WHERE user_id = :uid AND game_id = :gid"),
        {"uid": user_id, "gid": game.id},
    ).fetchone()
    if not entry:
        raise HTTPException(status_code=404, detail="Ce jeu n'est pas dans votre collection")

    return game, entry


@router.post("", status_code=201)
def add_game_to_collection(
    payload: CollectionCreate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if not payload.rawg_id or not payload.status:
        raise HTTPException(status_code=400, detail="Les champs rawg_id et status sont obligatoires")
    check_status(payload.status)
    check_rating(payload.user_rating)

    game = find_or_create_game(db, payload.rawg_id)
    if not game:
        raise HTTPException(status_code=404, detail="Jeu introuvable")

    try:
        entry = db.execute(
            text(
                "INSERT INTO collections (user_id, game_id, status, user_rating) "
                "VALUES (:uid, :gid, :status, :rating) "
                f"RETURNING {ENTRY_COLUMNS}"
            ),
            {"uid": user_id, "gid": game.id, "status": payload.status, "rating": payload.user_rating},
        ).first()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise_for_integrity_error(exc, "Ce jeu est déjà dans votre collection")
    except Exception as exc:
        db.rollback()
        logger.error("add_game_to_collection failed: %s", exc)
        raise HTTPException(status_code=500, detail="Erreur serveur lors de l'ajout du jeu")

    return {
        "message": "Jeu ajouté à votre collection",
        "collection": dict(entry._mapping),
        "game": serialize_game(game),
    }


@router.get("")
def get_my_collection(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    collection = _collection_of(db, user_id)
    return {"count": len(collection), "collection": collection}


@router.get("/user/{target_user_id}")
def get_user_collection(
    target_user_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    collection = _collection_of(db, target_user_id)
    return {"count": len(collection), "collection": collection}


@router.get("/game/{rawg_id}/status")
def get_game_status(
    rawg_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    row = db.execute(
        text(
            """
            SELECT c.status, c.user_rating
            FROM collections c
            JOIN games g ON c.game_id = g.id
            WHERE c.user_id = :uid AND g.rawg_id = :rid
            """
        ),
        {"uid": user_id, "rid": rawg_id},
    ).fetchone()

    if not row:
        return {"in_collection": False, "status": None, "user_rating": None}
    return {"in_collection": True, "status": row.status, "user_rating": row.user_rating}


@router.patch("/{rawg_id}")
def update_game_in_collection(
    rawg_id: int,
    payload: CollectionUpdate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(
            status_code=400,
            detail="Aucun champ à mettre à jour (status ou user_rating requis)",
        )
    if "status" in updates:
        check_status(updates["status"])
    check_rating(updates.get("user_rating"))

    game, _ = _entry_for(db, user_id, rawg_id)

    assignments = ", ".join(f"{field} = :{field}" for field in updates)
    entry = db.execute(
        text(
            f"UPDATE collections SET {assignments} "
            f"WHERE user_id = :uid AND game_id = :gid RETURNING {ENTRY_COLUMNS}"
        ),
        {**updates, "uid": user_id, "gid": game.id},
    ).first()
    db.commit()

    return {"message": "Jeu mis à jour", "collection": dict(entry._mapping)}


@router.delete("/{rawg_id}")
def remove_game_from_collection(
    rawg_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    game, _ = _entry_for(db, user_id, rawg_id)

    db.execute(
        text("DELETE FROM collections WHERE user_id = :uid AND game_id = :gid"),
        {"uid": user_id, "gid": game.id},
    )
    db.commit()

    return {"message": "Jeu supprimé de votre collection"}
