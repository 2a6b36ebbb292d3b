"""
Memories: narrative posts about a game.

Endpoints:
  POST   /memories                   — Create (bearer, +10 XP)
  GET    /memories                   — Global feed (?sort=recent|popular)
  GET    /memories/game/{rawg_id}    — Memories about one game
  GET    /memories/user/{user_id}    — Memories by one user
  GET    /memories/{id}              — One memory
  PUT    /memories/{id}              — Edit (bearer, author only)
  DELETE /memories/{id}              — Delete (bearer, author only)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accounts import grant_xp
from catalog import find_game_by_rawg_id, find_or_create_game
from content import MEMORY_SELECT, delete_post, serialize_post
from database import get_db
from leveling import XP_REWARDS
from schemas import MemoryCreate, MemoryUpdate
from security import get_current_user_id
from validators import check_pagination, is_blank, raise_for_integrity_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/memories", tags=["Memories"])

MEMORY_COLUMNS = "id, user_id, game_id, title, content, spoiler, created_at"
SORTS = {
    "recent": "m.created_at DESC, m.id DESC",
    "popular": "likes_count DESC, m.created_at DESC, m.id DESC",
}


def _page(memories: list, limit: int, offset: int) -> dict:
    return {"memories": memories, "pagination": {"limit": limit, "offset": offset, "count": len(memories)}}


def _get_owned(db: Session, memory_id: int, user_id: int, action: str):
    memory = db.execute(
        text(f"SELECT {MEMORY_COLUMNS} FROM memories WHERE id = :mid"),
        {"mid": memory_id},
    ).fetchone()
    if not memory:
        raise HTTPException(status_code=404, detail="Souvenir introuvable")
    if memory.user_id != user_id:
        raise HTTPException(status_code=403, detail=f"Vous n'êtes pas autorisé à {action} ce souvenir")
    return memory


def _fetch_one(db: Session, memory_id: int):
    return db.execute(text(MEMORY_SELECT + " WHERE m.id = :mid"), {"mid": memory_id}).fetchone()


@router.post("", status_code=201)
def create_memory(
    payload: MemoryCreate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create the memory, then reward the author; the reward may fail silently."""
    if not payload.gameId or is_blank(payload.content):
        raise HTTPException(status_code=400, detail="gameId et content sont requis")
    if payload.title is not None and is_blank(payload.title):
        raise HTTPException(status_code=400, detail="Le titre ne peut pas être vide")

    game = find_or_create_game(db, payload.gameId)
    if not game:
        raise HTTPException(status_code=404, detail="Jeu introuvable")

    try:
        memory = db.execute(
            text(
                "INSERT INTO memories (user_id, game_id, title, content, spoiler) "
                "VALUES (:uid, :gid, :title, :content, :spoiler) "
                f"RETURNING {MEMORY_COLUMNS}"
            ),
            {
                "uid": user_id,
                "gid": game.id,
                "title": payload.title.strip() if payload.title else None,
                "content": payload.content,
                "spoiler": payload.spoiler,
            },
        ).first()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise_for_integrity_error(exc, "Ce souvenir existe déjà")
    except Exception as exc:
        db.rollback()
        logger.error("create_memory failed: %s", exc)
        raise HTTPException(status_code=500, detail="Erreur serveur lors de la création du souvenir")

    grant_xp(db, user_id, XP_REWARDS["CREATE_MEMORY"])

    created = dict(memory._mapping)
    created["spoiler"] = bool(created["spoiler"])
    created["rawg_id"] = game.rawg_id
    return {"message": "Souvenir créé avec succès", "memory": created}


@router.get("")
def get_memories(sort: str = "recent", limit: int = 20, offset: int = 0, db: Session = Depends(get_db)):
    if sort not in SORTS:
        raise HTTPException(status_code=400, detail='Le paramètre sort doit être "recent" ou "popular"')
    check_pagination(limit, offset)

    rows = db.execute(
        text(MEMORY_SELECT + f" ORDER BY {SORTS[sort]} LIMIT :limit OFFSET :offset"),
        {"limit": limit, "offset": offset},
    ).fetchall()
    return _page([serialize_post(r) for r in rows], limit, offset)


@router.get("/game/{rawg_id}")
def get_game_memories(rawg_id: int, limit: int = 20, offset: int = 0, db: Session = Depends(get_db)):
    check_pagination(limit, offset)

    game = find_game_by_rawg_id(db, rawg_id)
    if not game:
        return _page([], limit, offset)

    rows = db.execute(
        text(MEMORY_SELECT + " WHERE m.game_id = :gid ORDER BY m.created_at DESC, m.id DESC LIMIT :limit OFFSET :offset"),
        {"gid": game.id, "limit": limit, "offset": offset},
    ).fetchall()
    return _page([serialize_post(r) for r in rows], limit, offset)


@router.get("/user/{user_id}")
def get_user_memories(user_id: int, limit: int = 20, offset: int = 0, db: Session = Depends(get_db)):
    check_pagination(limit, offset)

    rows = db.execute(
        text(MEMORY_SELECT + " WHERE m.user_id = :uid ORDER BY m.created_at DESC, m.id DESC LIMIT :limit OFFSET :offset"),
        {"uid": user_id, "limit": limit, "offset": offset},
    ).fetchall()
    return _page([serialize_post(r) for r in rows], limit, offset)


@router.get("/{memory_id}")
def get_memory(memory_id: int, db: Session = Depends(get_db)):
    row = _fetch_one(db, memory_id)
    if not row:
        raise HTTPException(status_code=404, detail="Souvenir introuvable")
    return {"memory": serialize_post(row)}


@router.put("/{memory_id}")
def update_memory(
    memory_id: int,
    payload: MemoryUpdate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="Au moins un champ (title, content ou spoiler) est requis")
    if "content" in updates and is_blank(updates["content"]):
        raise HTTPException(status_code=400, detail="Le contenu ne peut pas être vide")
    if "title" in updates and updates["title"] is not None and is_blank(updates["title"]):
        raise HTTPException(status_code=400, detail="Le titre ne peut pas être vide")
    if "spoiler" in updates and updates["spoiler"] is None:
        updates.pop("spoiler")

    _get_owned(db, memory_id, user_id, "modifier")

    if updates:
        assignments = ", ".join(f"{field} = :{field}" for field in updates)
        db.execute(
            text(f"UPDATE memories SET {assignments} WHERE id = :mid"),
            {**updates, "mid": memory_id},
        )
        db.commit()

    return {"message": "Souvenir modifié avec succès", "memory": serialize_post(_fetch_one(db, memory_id))}


@router.delete("/{memory_id}")
def delete_memory(
    memory_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    _get_owned(db, memory_id, user_id, "supprimer")
    delete_post(db, "memory", memory_id, "id")
    return {"message": "Souvenir supprimé avec succès"}
