"""
Moderation endpoints. Every route requires a bearer token whose user has
the ``admin`` role.

Endpoints:
  GET    /admin/stats            — Platform-wide counters
  GET    /admin/users            — Paginated user list (?page=&limit=)
  GET    /admin/users/{id}       — User details with content counters
  DELETE /admin/users/{id}       — Delete a user and everything they own
  DELETE /admin/memories/{id}    — Delete any memory
  DELETE /admin/reviews/{id}     — Delete any review
  DELETE /admin/comments/{id}    — Delete any comment
"""

import logging
import math

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.orm import Session

from accounts import delete_user_cascade
from content import delete_post
from database import get_db
from security import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/stats")
def get_stats(_admin: int = Depends(require_admin), db: Session = Depends(get_db)):
    row = db.execute(
        text(
            """
            SELECT
                (SELECT COUNT(*) FROM users)       AS total_users,
                (SELECT COUNT(*) FROM games)       AS total_games,
                (SELECT COUNT(*) FROM memories)    AS total_memories,
                (SELECT COUNT(*) FROM reviews)     AS total_reviews,
                (SELECT COUNT(*) FROM collections) AS total_collections,
                (SELECT COUNT(*) FROM comments)    AS total_comments,
                (SELECT COUNT(*) FROM likes)       AS total_likes
            """
        )
    ).fetchone()

    return {
        "message": "Statistiques récupérées avec succès",
        "data": {key: int(value or 0) for key, value in row._mapping.items()},
    }


@router.get("/users")
def list_users(
    page: int = 1,
    limit: int = 20,
    _admin: int = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if page < 1:
        raise HTTPException(status_code=400, detail="Le paramètre page doit être >= 1")
    if limit < 1 or limit > 100:
        raise HTTPException(status_code=400, detail="Le paramètre limit doit être entre 1 et 100")

    total = int(db.execute(text("SELECT COUNT(*) FROM users")).scalar() or 0)
    rows = db.execute(
        text(
            """
            SELECT id, username, email, role, level, exp, created_at
            FROM users
            ORDER BY created_at DESC, id DESC
            LIMIT :limit OFFSET :offset
            """
        ),
        {"limit": limit, "offset": (page - 1) * limit},
    ).fetchall()

    return {
        "message": "Utilisateurs récupérés avec succès",
        "data": {
            "users": [dict(r._mapping) for r in rows],
            "pagination": {
                "currentPage": page,
                "totalPages": math.ceil(total / limit),
                "totalUsers": total,
                "usersPerPage": limit,
            },
        },
    }


@router.get("/users/{user_id}")
def get_user_details(user_id: int, _admin: int = Depends(require_admin), db: Session = Depends(get_db)):
    user = db.execute(
        text(
            """
            SELECT id, username, email, role, avatar_url, bio, level, exp, created_at
            FROM users WHERE id = :uid
            """
        ),
        {"uid": user_id},
    ).fetchone()
    if not user:
        raise HTTPException(status_code=404, detail="Utilisateur non trouvé")

    stats = db.execute(
        text(
            """
            SELECT
                (SELECT COUNT(*) FROM memories WHERE user_id = :uid)    AS total_memories,
                (SELECT COUNT(*) FROM reviews WHERE user_id = :uid)     AS total_reviews,
                (SELECT COUNT(*) FROM collections WHERE user_id = :uid) AS total_collections,
                (SELECT COUNT(*) FROM comments WHERE user_id = :uid)    AS total_comments,
                (SELECT COUNT(*) FROM likes WHERE user_id = :uid)       AS total_likes
            """
        ),
        {"uid": user_id},
    ).fetchone()

    return {
        "message": "Détails de l'utilisateur récupérés avec succès",
        "data": {
            "user": dict(user._mapping),
            "stats": {key: int(value or 0) for key, value in stats._mapping.items()},
        },
    }


@router.delete("/users/{user_id}")
def delete_user(user_id: int, admin_id: int = Depends(require_admin), db: Session = Depends(get_db)):
    if user_id == admin_id:
        raise HTTPException(status_code=400, detail="Vous ne pouvez pas supprimer votre propre compte admin")

    try:
        deleted = delete_user_cascade(db, user_id)
    except Exception as exc:
        logger.error("Cascade deletion of user %d failed: %s", user_id, exc)
        raise HTTPException(status_code=500, detail="Erreur lors de la suppression de l'utilisateur")

    if not deleted:
        raise HTTPException(status_code=404, detail="Utilisateur non trouvé")

    logger.info("Admin %d deleted user %d", admin_id, user_id)
    return {
        "message": "Utilisateur supprimé avec succès",
        "data": {"deletedUser": dict(deleted._mapping)},
    }


@router.delete("/memories/{memory_id}")
def delete_memory(memory_id: int, admin_id: int = Depends(require_admin), db: Session = Depends(get_db)):
    deleted = delete_post(db, "memory", memory_id, "id, user_id, title")
    if not deleted:
        raise HTTPException(status_code=404, detail="Souvenir non trouvé")

    logger.info("Admin %d deleted memory %d", admin_id, memory_id)
    return {"message": "Souvenir supprimé avec succès", "data": {"deletedMemory": dict(deleted._mapping)}}


@router.delete("/reviews/{review_id}")
def delete_review(review_id: int, admin_id: int = Depends(require_admin), db: Session = Depends(get_db)):
    deleted = delete_post(db, "review", review_id, "id, user_id, title")
    if not deleted:
        raise HTTPException(status_code=404, detail="Review non trouvée")

    logger.info("Admin %d deleted review %d", admin_id, review_id)
    return {"message": "Review supprimée avec succès", "data": {"deletedReview": dict(deleted._mapping)}}


@router.delete("/comments/{comment_id}")
def delete_comment(comment_id: int, admin_id: int = Depends(require_admin), db: Session = Depends(get_db)):
    deleted = db.execute(
        text("DELETE FROM comments WHERE id = :cid RETURNING id, user_id, content"),
        {"cid": comment_id},
    ).first()
    db.commit()

    if not deleted:
        raise HTTPException(status_code=404, detail="Commentaire non trouvé")

    logger.info("Admin %d deleted comment %d", admin_id, comment_id)
    return {"message": "Commentaire supprimé avec succès", "data": {"deletedComment": dict(deleted._mapping)}}
