"""
User profiles, search and per-user statistics.

Endpoints:
  GET /users/me          — Caller's own profile (bearer)
  PUT /users/me          — Edit username, bio, avatar, banner (bearer)
  GET /users/search?q=   — Find users by username
  GET /users/{id}        — Public profile
  GET /users/{id}/stats  — Collection, content and social counters
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accounts import PROFILE_COLUMNS, find_user_by_id, serialize_user
from database import get_db
from schemas import ProfileUpdate
from security import get_current_user_id
from validators import is_valid_username, raise_for_integrity_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

EDITABLE_FIELDS = ("username", "bio", "avatar_url", "banner_url")


def _escape_like(value: str) -> str:
    """Make %, _ and \\ match themselves in a LIKE pattern."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@router.get("/me")
def get_me(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    user = find_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="Utilisateur non trouvé.")
    return {"user": serialize_user(user)}


@router.put("/me")
def update_me(
    payload: ProfileUpdate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Update only the fields present in the body."""
    updates = payload.model_dump(exclude_unset=True)
    updates = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS}

    if "username" in updates and not is_valid_username(updates["username"]):
        raise HTTPException(
            status_code=400,
            detail="Le pseudo doit contenir entre 3 et 30 caractères "
                   "(lettres, chiffres, underscore, tiret uniquement).",
        )

    if not updates:
        user = find_user_by_id(db, user_id)
    else:
        assignments = ", ".join(f"{field} = :{field}" for field in updates)
        try:
            user = db.execute(
                text(f"UPDATE users SET {assignments} WHERE id = :uid RETURNING {PROFILE_COLUMNS}"),
                {**updates, "uid": user_id},
            ).first()
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise_for_integrity_error(exc, "Ce nom d'utilisateur est déjà utilisé")
        except Exception as exc:
            db.rollback()
            logger.error("update_me failed for user %d: %s", user_id, exc)
            raise HTTPException(status_code=500, detail="Erreur serveur lors de la mise à jour du profil")

    if not user:
        raise HTTPException(status_code=404, detail="Utilisateur non trouvé.")

    return {"message": "Profil mis à jour", "user": serialize_user(user)}


@router.get("/search")
def search_users(q: str = "", limit: int = 10, db: Session = Depends(get_db)):
    """Case-insensitive substring match on usernames."""
    if not q.strip():
        raise HTTPException(status_code=400, detail='Le paramètre de recherche "q" est obligatoire')
    if limit < 1 or limit > 50:
        raise HTTPException(status_code=400, detail="Le paramètre limit doit être entre 1 et 50")

    rows = db.execute(
        text(
            """
            SELECT id, username, avatar_url, level
            FROM users
            WHERE LOWER(username) LIKE :pattern ESCAPE '\\'
            ORDER BY username
            LIMIT :limit
            """
        ),
        {"pattern": f"%{_escape_like(q.strip().lower())}%", "limit": limit},
    ).fetchall()

    users = [dict(r._mapping) for r in rows]
    return {"count": len(users), "users": users}


@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = find_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="Utilisateur non trouvé.")
    return {"user": serialize_user(user, include_email=False)}


@router.get("/{user_id}/stats")
def get_user_stats(user_id: int, db: Session = Depends(get_db)):
    if not find_user_by_id(db, user_id):
        raise HTTPException(status_code=404, detail="Utilisateur non trouvé.")

    row = db.execute(
        text(
            """
            SELECT
                (SELECT COUNT(*) FROM collections WHERE user_id = :uid) AS total_games,
                (SELECT COUNT(*) FROM collections WHERE user_id = :uid AND status = 'playing') AS games_playing,
                (SELECT COUNT(*) FROM collections WHERE user_id = :uid AND status = 'completed') AS games_completed,
                (SELECT COUNT(*) FROM collections WHERE user_id = :uid AND status = 'wishlist') AS games_wishlist,
                (SELECT COUNT(*) FROM collections WHERE user_id = :uid AND status = 'abandoned') AS games_abandoned,
                (SELECT COUNT(*) FROM collections WHERE user_id = :uid AND status = 'not_started') AS games_not_started,
                (SELECT COUNT(*) FROM reviews WHERE user_id = :uid) AS total_reviews,
                (SELECT COUNT(*) FROM memories WHERE user_id = :uid) AS total_memories,
                (
                    (SELECT COUNT(*) FROM likes l JOIN reviews r
                        ON l.target_type = 'review' AND l.target_id = r.id
                     WHERE r.user_id = :uid)
                  + (SELECT COUNT(*) FROM likes l JOIN memories m
                        ON l.target_type = 'memory' AND l.target_id = m.id
                     WHERE m.user_id = :uid)
                ) AS total_likes_received,
                (SELECT COUNT(*) FROM follows WHERE following_id = :uid) AS total_followers,
                (SELECT COUNT(*) FROM follows WHERE follower_id = :uid) AS total_following
            """
        ),
        {"uid": user_id},
    ).fetchone()

    return {"stats": {key: int(value or 0) for key, value in row._mapping.items()}}
