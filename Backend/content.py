"""
Queries shared by memories, reviews and the interactions attached to them.
"""

from sqlalchemy import text
from sqlalchemy.orm import Session

from accounts import delete_content_interactions

TARGET_TABLES = {"memory": "memories", "review": "reviews"}

MEMORY_SELECT = """
    SELECT
        m.id, m.user_id, m.game_id, m.title, m.content, m.spoiler, m.created_at,
        u.username, u.avatar_url,
        g.rawg_id, g.name AS game_name, g.background_image AS game_image,
        (SELECT COUNT(*) FROM likes WHERE target_type = 'memory' AND target_id = m.id) AS likes_count,
        (SELECT COUNT(*) FROM comments WHERE target_type = 'memory' AND target_id = m.id) AS comments_count
    FROM memories m
    JOIN users u ON m.user_id = u.id
    JOIN games g ON m.game_id = g.id
"""

REVIEW_SELECT = """
    SELECT
        r.id, r.user_id, r.game_id, r.rating, r.title, r.content, r.spoiler, r.created_at,
        u.username, u.avatar_url,
        g.rawg_id, g.name AS game_name, COALESCE(g.cover_url, g.background_image) AS game_image,
        g.released,
        (SELECT COUNT(*) FROM likes WHERE target_type = 'review' AND target_id = r.id) AS likes_count,
        (SELECT COUNT(*) FROM comments WHERE target_type = 'review' AND target_id = r.id) AS comments_count
    FROM reviews r
    JOIN users u ON r.user_id = u.id
    JOIN games g ON r.game_id = g.id
"""


def serialize_post(row) -> dict:
    """Row of MEMORY_SELECT / REVIEW_SELECT to JSON-ready dict."""
    post = dict(row._mapping)
    post["spoiler"] = bool(post.get("spoiler"))
    post["likes_count"] = int(post.get("likes_count") or 0)
    post["comments_count"] = int(post.get("comments_count") or 0)
    return post


def target_exists(db: Session, target_type: str, target_id: int) -> bool:
    table = TARGET_TABLES[target_type]
    row = db.execute(
        text(f"SELECT 1 FROM {table} WHERE id = :tid"),
        {"tid": target_id},
    ).fetchone()
    return row is not None


def delete_post(db: Session, target_type: str, post_id: int, returning: str):
    """
    Delete a memory or review with the likes and comments attached to it,
    in one transaction. Returns the deleted row or None.
    """
    table = TARGET_TABLES[target_type]
    params = {"pid": post_id}
    try:
        delete_content_interactions(db, target_type, ":pid", params)
        deleted = db.execute(
            text(f"DELETE FROM {table} WHERE id = :pid RETURNING {returning}"),
            params,
        ).first()
        db.commit()
    except Exception:
        db.rollback()
        raise
    return deleted
