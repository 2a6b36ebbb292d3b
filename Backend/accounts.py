"""
User data access: profile lookups, XP grants and the cascading account deletion.
"""

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from leveling import calculate_level, progress_to_next_level, xp_for_level

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "id, username, email, role, avatar_url, banner_url, bio, exp, level, created_at"


def find_user_by_email(db: Session, email: str):
    return db.execute(
        text(f"SELECT {PROFILE_COLUMNS}, password_hash FROM users WHERE email = :email"),
        {"email": email},
    ).fetchone()


def find_user_by_id(db: Session, user_id: int):
    return db.execute(
        text(f"SELECT {PROFILE_COLUMNS} FROM users WHERE id = :uid"),
        {"uid": user_id},
    ).fetchone()


def serialize_user(row, include_email: bool = True) -> dict:
    """Public shape of a user row, with progression details."""
    user = {
        "id": row.id,
        "username": row.username,
        "avatar_url": row.avatar_url,
        "banner_url": row.banner_url,
        "bio": row.bio,
        "role": row.role,
        "exp": row.exp,
        "level": row.level,
        "xp_for_next_level": xp_for_level(row.level),
        "progress": progress_to_next_level(row.exp, row.level),
        "created_at": row.created_at,
    }
    if include_email:
        user["email"] = row.email
    return user


def add_xp_to_user(db: Session, user_id: int, amount: int) -> Optional[dict]:
    """
    Add ``amount`` XP to a user and re-derive their level.

    The level column is only written when it actually changes. Returns the
    new ``{"exp", "level", "leveled_up"}`` or None if the user is gone.
    """
    if amount <= 0:
        raise ValueError(f"XP amount must be positive, got {amount}")

    row = db.execute(
        text("UPDATE users SET exp = exp + :amount WHERE id = :uid RETURNING exp, level"),
        {"amount": amount, "uid": user_id},
    ).first()

    if not row:
        db.rollback()
        return None

    new_level = calculate_level(row.exp)
    leveled_up = new_level != row.level
    if leveled_up:
        db.execute(
            text("UPDATE users SET level = :level WHERE id = :uid"),
            {"level": new_level, "uid": user_id},
        )

    db.commit()

    if leveled_up:
        logger.info("User %d reached level %d (%d XP)", user_id, new_level, row.exp)
    else:
        logger.info("User %d gained %d XP (total=%d)", user_id, amount, row.exp)

    return {"exp": row.exp, "level": new_level, "leveled_up": leveled_up}


def grant_xp(db: Session, user_id: int, amount: int) -> None:
    """Best-effort XP grant: a failure is logged and never reaches the caller."""
    try:
        add_xp_to_user(db, user_id, amount)
    except Exception as exc:
        db.rollback()
        logger.error("XP grant of %d for user %d failed: %s", amount, user_id, exc)


def delete_content_interactions(db: Session, target_type: str, target_ids_sql: str, params: dict) -> None:
    """Delete the likes and comments attached to the targets selected by ``target_ids_sql``."""
    for table in ("likes", "comments"):
        db.execute(
            text(
                f"DELETE FROM {table} "
                f"WHERE target_type = :target_type AND target_id IN ({target_ids_sql})"
            ),
            {"target_type": target_type, **params},
        )


def delete_user_cascade(db: Session, user_id: int):
    """
    Remove a user and every row that references them, all or nothing.

    Runs on the session's single connection inside one transaction:
    interactions on the user's content, the user's reviews, memories,
    collection entries, follow edges (both directions), likes and comments,
    then the user row itself. Any failure rolls the whole sequence back and
    is re-raised. Returns the deleted ``(id, username, email)`` row or None.
    """
    params = {"uid": user_id}
    try:
        # --- Begin atomic transaction --------------------------------
        delete_content_interactions(db, "review", "SELECT id FROM reviews WHERE user_id = :uid", params)
        delete_content_interactions(db, "memory", "SELECT id FROM memories WHERE user_id = :uid", params)

        db.execute(text("DELETE FROM reviews WHERE user_id = :uid"), params)
        db.execute(text("DELETE FROM memories WHERE user_id = :uid"), params)
        db.execute(text("DELETE FROM collections WHERE user_id = :uid"), params)
        db.execute(
            text("DELETE FROM follows WHERE follower_id = :uid OR following_id = :uid"),
            params,
        )
        db.execute(text("DELETE FROM likes WHERE user_id = :uid"), params)
        db.execute(text("DELETE FROM comments WHERE user_id = :uid"), params)

        deleted = db.execute(
            text("DELETE FROM users WHERE id = :uid RETURNING id, username, email"),
            params,
        ).first()

        db.commit()
        # --- End atomic transaction ----------------------------------
    except Exception:
        db.rollback()
        raise

    if deleted:
        logger.info("User %d (%s) deleted with all their content", deleted.id, deleted.username)
    return deleted
