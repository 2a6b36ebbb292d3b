"""
Likes on reviews and memories.

Endpoints:
  POST   /likes                                   — Like (bearer)
  DELETE /likes                                   — Unlike (bearer)
  POST   /likes/toggle                            — Like or unlike (bearer)
  GET    /likes/{target_type}/{target_id}         — Likes of a target
  GET    /likes/{target_type}/{target_id}/check   — Has the caller liked it (bearer)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from content import target_exists
from database import UNIQUE_VIOLATION, constraint_violation, get_db
from schemas import LikeRequest
from security import get_current_user_id
from validators import check_target_type, raise_for_integrity_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/likes", tags=["Likes"])

LIKE_COLUMNS = "id, user_id, target_type, target_id, created_at"


def _validate(payload: LikeRequest) -> None:
    if not payload.targetType or not payload.targetId:
        raise HTTPException(status_code=400, detail="targetType et targetId sont requis")
    check_target_type(payload.targetType)


def _count(db: Session, target_type: str, target_id: int) -> int:
    count = db.execute(
        text("SELECT COUNT(*) FROM likes WHERE target_type = :tt AND target_id = :tid"),
        {"tt": target_type, "tid": target_id},
    ).scalar()
    return int(count or 0)


def _has_liked(db: Session, user_id: int, target_type: str, target_id: int) -> bool:
    row = db.execute(
        text("SELECT 1 FROM likes WHERE user_id = :uid AND target_type = :tt AND target_id = :tid"),
        {"uid": user_id, "tt": target_type, "tid": target_id},
    ).fetchone()
    return row is not None


def _delete(db: Session, user_id: int, target_type: str, target_id: int):
    row = db.execute(
        text(
            "DELETE FROM likes WHERE user_id = :uid AND target_type = :tt AND target_id = :tid "
            f"RETURNING {LIKE_COLUMNS}"
        ),
        {"uid": user_id, "tt": target_type, "tid": target_id},
    ).first()
    db.commit()
    return row


@router.post("", status_code=201)
def add_like(
    payload: LikeRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    _validate(payload)
    if not target_exists(db, payload.targetType, payload.targetId):
        raise HTTPException(status_code=404, detail="Contenu introuvable")

    try:
        like = db.execute(
            text(
                "INSERT INTO likes (user_id, target_type, target_id) "
                f"VALUES (:uid, :tt, :tid) RETURNING {LIKE_COLUMNS}"
            ),
            {"uid": user_id, "tt": payload.targetType, "tid": payload.targetId},
        ).first()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise_for_integrity_error(exc, "Vous avez déjà liké ce contenu")

    return {"message": "Like ajouté avec succès", "like": dict(like._mapping)}


@router.delete("")
def remove_like(
    payload: LikeRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    _validate(payload)

    deleted = _delete(db, user_id, payload.targetType, payload.targetId)
    if not deleted:
        raise HTTPException(status_code=404, detail="Like non trouvé")

    return {"message": "Like supprimé avec succès", "like": dict(deleted._mapping)}


@router.post("/toggle")
def toggle_like(
    payload: LikeRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    _validate(payload)
    if not target_exists(db, payload.targetType, payload.targetId):
        raise HTTPException(status_code=404, detail="Contenu introuvable")

    if _has_liked(db, user_id, payload.targetType, payload.targetId):
        _delete(db, user_id, payload.targetType, payload.targetId)
        liked = False
    else:
        try:
            db.execute(
                text("INSERT INTO likes (user_id, target_type, target_id) VALUES (:uid, :tt, :tid)"),
                {"uid": user_id, "tt": payload.targetType, "tid": payload.targetId},
            )
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            # A concurrent toggle already inserted it
            if constraint_violation(exc) != UNIQUE_VIOLATION:
                raise_for_integrity_error(exc, "Vous avez déjà liké ce contenu")
        liked = True

    return {"liked": liked, "likesCount": _count(db, payload.targetType, payload.targetId)}


@router.get("/{target_type}/{target_id}")
def get_likes(target_type: str, target_id: int, db: Session = Depends(get_db)):
    check_target_type(target_type)

    rows = db.execute(
        text(
            """
            SELECT l.id, l.user_id, l.target_type, l.target_id, l.created_at,
                   u.username, u.avatar_url
            FROM likes l
            JOIN users u ON l.user_id = u.id
            WHERE l.target_type = :tt AND l.target_id = :tid
            ORDER BY l.created_at DESC, l.id DESC
            """
        ),
        {"tt": target_type, "tid": target_id},
    ).fetchall()

    return {"count": _count(db, target_type, target_id), "likes": [dict(r._mapping) for r in rows]}


@router.get("/{target_type}/{target_id}/check")
def check_like(
    target_type: str,
    target_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    check_target_type(target_type)
    return {"hasLiked": _has_liked(db, user_id, target_type, target_id)}
