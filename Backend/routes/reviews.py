"""
Reviews: rated critiques, one per user and game.

Endpoints:
  POST   /reviews                   — Create (bearer, +20 XP)
  GET    /reviews                   — Global feed (?sort=recent|top_rated)
  GET    /reviews/game/{rawg_id}    — Reviews of one game
  GET    /reviews/user/{user_id}    — Reviews by one user
  GET    /reviews/{id}              — One review
  PUT    /reviews/{id}              — Edit (bearer, author only)
  DELETE /reviews/{id}              — Delete (bearer, author only)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accounts import grant_xp
from catalog import find_game_by_rawg_id, find_or_create_game
from content import REVIEW_SELECT, delete_post, serialize_post
from database import get_db
from leveling import XP_REWARDS
from schemas import ReviewCreate, ReviewUpdate
from security import get_current_user_id
from validators import check_pagination, check_rating, is_blank, raise_for_integrity_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])

REVIEW_COLUMNS = "id, user_id, game_id, rating, title, content, spoiler, created_at"
SORTS = {
    "recent": "r.created_at DESC, r.id DESC",
    "top_rated": "r.rating DESC, r.created_at DESC, r.id DESC",
}
SORT_ERROR = 'Le paramètre sort doit être "recent" ou "top_rated"'


def _page(reviews: list, limit: int, offset: int) -> dict:
    return {"reviews": reviews, "pagination": {"limit": limit, "offset": offset, "count": len(reviews)}}


def _get_owned(db: Session, review_id: int, user_id: int, action: str):
    review = db.execute(
        text(f"SELECT {REVIEW_COLUMNS} FROM reviews WHERE id = :rid"),
        {"rid": review_id},
    ).fetchone()
    if not review:
        raise HTTPException(status_code=404, detail="Review introuvable")
    if review.user_id != user_id:
        raise HTTPException(status_code=403, detail=f"Vous n'êtes pas autorisé à {action} cette review")
    return review


def _fetch_one(db: Session, review_id: int):
    return db.execute(text(REVIEW_SELECT + " WHERE r.id = :rid"), {"rid": review_id}).fetchone()


@router.post("", status_code=201)
def create_review(
    payload: ReviewCreate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create the review, then reward the author; the reward may fail silently."""
    if not payload.gameId or payload.rating is None or not payload.title or not payload.content:
        raise HTTPException(status_code=400, detail="gameId, rating, title et content sont requis")
    check_rating(payload.rating)
    if is_blank(payload.title):
        raise HTTPException(status_code=400, detail="Le titre ne peut pas être vide")
    if is_blank(payload.content):
        raise HTTPException(status_code=400, detail="Le contenu ne peut pas être vide")

    game = find_or_create_game(db, payload.gameId)
    if not game:
        raise HTTPException(status_code=404, detail="Jeu introuvable")

    try:
        review = db.execute(
            text(
                "INSERT INTO reviews (user_id, game_id, rating, title, content, spoiler) "
                "VALUES (:uid, :gid, :rating, :title, :content, :spoiler) "
                f"RETURNING {REVIEW_COLUMNS}"
            ),
            {
                "uid": user_id,
                "gid": game.id,
                "rating": payload.rating,
                "title": payload.title.strip(),
                "content": payload.content,
                "spoiler": payload.spoiler,
            },
        ).first()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise_for_integrity_error(exc, "Vous avez déjà publié une review pour ce jeu")
    except Exception as exc:
        db.rollback()
        logger.error("create_review failed: %s", exc)
        raise HTTPException(status_code=500, detail="Erreur serveur lors de la création de la review")

    grant_xp(db, user_id, XP_REWARDS["CREATE_REVIEW"])

    created = dict(review._mapping)
    created["spoiler"] = bool(created["spoiler"])
    created["rawg_id"] = game.rawg_id
    return {"message": "Review créée avec succès", "review": created}


@router.get("")
def get_reviews(sort: str = "recent", limit: int = 20, offset: int = 0, db: Session = Depends(get_db)):
    if sort not in SORTS:
        raise HTTPException(status_code=400, detail=SORT_ERROR)
    check_pagination(limit, offset)

    rows = db.execute(
        text(REVIEW_SELECT + f" ORDER BY {SORTS[sort]} LIMIT :limit OFFSET :offset"),
        {"limit": limit, "offset": offset},
    ).fetchall()
    return _page([serialize_post(r) for r in rows], limit, offset)


@router.get("/game/{rawg_id}")
def get_game_reviews(
    rawg_id: int,
    sort: str = "recent",
    limit: int = 20,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    if sort not in SORTS:
        raise HTTPException(status_code=400, detail=SORT_ERROR)
    check_pagination(limit, offset)

    game = find_game_by_rawg_id(db, rawg_id)
    if not game:
        return _page([], limit, offset)

    rows = db.execute(
        text(REVIEW_SELECT + f" WHERE r.game_id = :gid ORDER BY {SORTS[sort]} LIMIT :limit OFFSET :offset"),
        {"gid": game.id, "limit": limit, "offset": offset},
    ).fetchall()
    return _page([serialize_post(r) for r in rows], limit, offset)


@router.get("/user/{user_id}")
def get_user_reviews(user_id: int, limit: int = 20, offset: int = 0, db: Session = Depends(get_db)):
    check_pagination(limit, offset)

    rows = db.execute(
        text(REVIEW_SELECT + f" WHERE r.user_id = :uid ORDER BY {SORTS['recent']} LIMIT :limit OFFSET :offset"),
        {"uid": user_id, "limit": limit, "offset": offset},
    ).fetchall()
    return _page([serialize_post(r) for r in rows], limit, offset)


@router.get("/{review_id}")
def get_review(review_id: int, db: Session = Depends(get_db)):
    row = _fetch_one(db, review_id)
    if not row:
        raise HTTPException(status_code=404, detail="Review introuvable")
    return {"review": serialize_post(row)}


@router.put("/{review_id}")
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    updates = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        raise HTTPException(
            status_code=400,
            detail="Au moins un champ (rating, title, content ou spoiler) est requis",
        )
    check_rating(updates.get("rating"))
    if "title" in updates and is_blank(updates["title"]):
        raise HTTPException(status_code=400, detail="Le titre ne peut pas être vide")
    if "content" in updates and is_blank(updates["content"]):
        raise HTTPException(status_code=400, detail="Le contenu ne peut pas être vide")

    _get_owned(db, review_id, user_id, "modifier")

    assignments = ", ".join(f"{field} = :{field}" for field in updates)
    db.execute(
        text(f"UPDATE reviews SET {assignments} WHERE id = :rid"),
        {**updates, "rid": review_id},
    )
    db.commit()

    return {"message": "Review modifiée avec succès", "review": serialize_post(_fetch_one(db, review_id))}


@router.delete("/{review_id}")
def delete_review(
    review_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    _get_owned(db, review_id, user_id, "supprimer")
    delete_post(db, "review", review_id, "id")
    return {"message": "Review supprimée avec succès"}
