"""
Follow graph between users. Every endpoint requires a bearer token.

Endpoints:
  POST   /follows/{user_id}             — Follow
  DELETE /follows/{user_id}             — Unfollow
  GET    /follows/{user_id}/followers   — Who follows the user
  GET    /follows/{user_id}/following   — Who the user follows
  GET    /follows/{user_id}/check       — Does the caller follow the user
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from security import get_current_user_id
from validators import raise_for_integrity_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/follows", tags=["Follows"])


def _user_exists(db: Session, user_id: int) -> bool:
    row = db.execute(text("SELECT 1 FROM users WHERE id = :uid"), {"uid": user_id}).fetchone()
    return row is not None


@router.post("/{user_id}", status_code=201)
def follow_user(
    user_id: int,
    follower_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if user_id == follower_id:
        raise HTTPException(status_code=400, detail="Vous ne pouvez pas vous suivre vous-même")
    if not _user_exists(db, user_id):
        raise HTTPException(status_code=404, detail="Utilisateur introuvable")

    try:
        follow = db.execute(
            text(
                "INSERT INTO follows (follower_id, following_id) VALUES (:fid, :uid) "
                "RETURNING id, follower_id, following_id, created_at"
            ),
            {"fid": follower_id, "uid": user_id},
        ).first()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise_for_integrity_error(exc, "Vous suivez déjà cet utilisateur", "Utilisateur introuvable")

    logger.info("User %d now follows user %d", follower_id, user_id)
    return {"message": "Utilisateur suivi avec succès", "follow": dict(follow._mapping)}


@router.delete("/{user_id}")
def unfollow_user(
    user_id: int,
    follower_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    deleted = db.execute(
        text("DELETE FROM follows WHERE follower_id = :fid AND following_id = :uid RETURNING id"),
        {"fid": follower_id, "uid": user_id},
    ).first()
    db.commit()

    if not deleted:
        raise HTTPException(status_code=404, detail="Vous ne suivez pas cet utilisateur")
    return {"message": "Vous ne suivez plus cet utilisateur"}


@router.get("/{user_id}/followers")
def get_followers(
    user_id: int,
    _caller: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    rows = db.execute(
        text(
            """
            SELECT u.id, u.username, u.avatar_url, u.level, f.created_at AS followed_at
            FROM follows f
            JOIN users u ON f.follower_id = u.id
            WHERE f.following_id = :uid
            ORDER BY f.created_at DESC, f.id DESC
            """
        ),
        {"uid": user_id},
    ).fetchall()

    followers = [dict(r._mapping) for r in rows]
    return {"count": len(followers), "followers": followers}


@router.get("/{user_id}/following")
def get_following(
    user_id: int,
    _caller: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    rows = db.execute(
        text(
            """
            SELECT u.id, u.username, u.avatar_url, u.level, f.created_at AS followed_at
            FROM follows f
            JOIN users u ON f.following_id = u.id
            WHERE f.follower_id = :uid
            ORDER BY f.created_at DESC, f.id DESC
            """
        ),
        {"uid": user_id},
    ).fetchall()

    following = [dict(r._mapping) for r in rows]
    return {"count": len(following), "following": following}


@router.get("/{user_id}/check")
def check_follow(
    user_id: int,
    follower_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    row = db.execute(
        text("SELECT 1 FROM follows WHERE follower_id = :fid AND following_id = :uid"),
        {"fid": follower_id, "uid": user_id},
    ).fetchone()
    return {"isFollowing": row is not None}
