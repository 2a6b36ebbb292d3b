"""
Comments on reviews and memories.

Endpoints:
  POST   /comments                              — Comment (bearer)
  GET    /comments/{target_type}/{target_id}    — Comments of a target
  PUT    /comments/{comment_id}                 — Edit (bearer, author only)
  DELETE /comments/{comment_id}                 — Delete (bearer, author only)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from content import target_exists
from database import get_db
from schemas import CommentCreate, CommentUpdate
from security import get_current_user_id
from validators import check_target_type, is_blank, raise_for_integrity_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/comments", tags=["Comments"])

COMMENT_SELECT = """
    SELECT c.id, c.user_id, c.target_type, c.target_id, c.content, c.created_at,
           u.username, u.avatar_url
    FROM comments c
    JOIN users u ON c.user_id = u.id
"""
NOT_FOUND_OR_NOT_AUTHOR = "Commentaire non trouvé ou vous n'êtes pas l'auteur"


def _fetch_one(db: Session, comment_id: int):
    return db.execute(text(COMMENT_SELECT + " WHERE c.id = :cid"), {"cid": comment_id}).fetchone()


@router.post("", status_code=201)
def create_comment(
    payload: CommentCreate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if not payload.targetType or not payload.targetId or payload.content is None:
        raise HTTPException(status_code=400, detail="targetType, targetId et content sont requis")
    check_target_type(payload.targetType)
    if is_blank(payload.content):
        raise HTTPException(status_code=400, detail="Le contenu du commentaire ne peut pas être vide")
    if not target_exists(db, payload.targetType, payload.targetId):
        raise HTTPException(status_code=404, detail="Contenu introuvable")

    try:
        comment_id = db.execute(
            text(
                "INSERT INTO comments (user_id, target_type, target_id, content) "
                "VALUES (:uid, :tt, :tid, :content) RETURNING id"
            ),
            {"uid": user_id, "tt": payload.targetType, "tid": payload.targetId, "content": payload.content.strip()},
        ).scalar()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise_for_integrity_error(exc, "Ce commentaire existe déjà")

    return {"message": "Commentaire créé avec succès", "comment": dict(_fetch_one(db, comment_id)._mapping)}


@router.get("/{target_type}/{target_id}")
def get_comments(target_type: str, target_id: int, db: Session = Depends(get_db)):
    check_target_type(target_type)

    rows = db.execute(
        text(COMMENT_SELECT + " WHERE c.target_type = :tt AND c.target_id = :tid ORDER BY c.created_at DESC, c.id DESC"),
        {"tt": target_type, "tid": target_id},
    ).fetchall()

    comments = [dict(r._mapping) for r in rows]
    return {"count": len(comments), "comments": comments}


@router.put("/{comment_id}")
def update_comment(
    comment_id: int,
    payload: CommentUpdate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if payload.content is None:
        raise HTTPException(status_code=400, detail="Le contenu est requis")
    if is_blank(payload.content):
        raise HTTPException(status_code=400, detail="Le contenu du commentaire ne peut pas être vide")

    updated = db.execute(
        text("UPDATE comments SET content = :content WHERE id = :cid AND user_id = :uid RETURNING id"),
        {"content": payload.content.strip(), "cid": comment_id, "uid": user_id},
    ).first()
    db.commit()

    if not updated:
        raise HTTPException(status_code=404, detail=NOT_FOUND_OR_NOT_AUTHOR)

    return {"message": "Commentaire modifié avec succès", "comment": dict(_fetch_one(db, comment_id)._mapping)}


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    deleted = db.execute(
        text(
            "DELETE FROM comments WHERE id = :cid AND user_id = :uid "
            "RETURNING id, user_id, target_type, target_id, content, created_at"
        ),
        {"cid": comment_id, "uid": user_id},
    ).first()
    db.commit()

    if not deleted:
        raise HTTPException(status_code=404, detail=NOT_FOUND_OR_NOT_AUTHOR)

    return {"message": "Commentaire supprimé avec succès", "comment": dict(deleted._mapping)}
