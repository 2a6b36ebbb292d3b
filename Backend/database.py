"""
Engine, session factory and the request-scoped session dependency.
"""

import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # One shared connection so an in-memory database survives across sessions
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
    }


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

if settings.database_url.startswith("sqlite"):

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite leaves foreign keys unenforced unless asked, per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables():
    """Create all tables if they don't already exist."""
    from models import Base

    Base.metadata.create_all(bind=engine)
    logger.info("✓ Database tables ensured")


def create_indexes():
    """Create secondary indexes (idempotent, uses IF NOT EXISTS)."""
    indexes = [
        "CREATE INDEX IF NOT EXISTS idx_collections_user    ON collections (user_id)",
        "CREATE INDEX IF NOT EXISTS idx_memories_user       ON memories (user_id)",
        "CREATE INDEX IF NOT EXISTS idx_memories_game       ON memories (game_id)",
        "CREATE INDEX IF NOT EXISTS idx_reviews_game        ON reviews (game_id)",
        "CREATE INDEX IF NOT EXISTS idx_comments_target     ON comments (target_type, target_id)",
        "CREATE INDEX IF NOT EXISTS idx_likes_target        ON likes (target_type, target_id)",
        "CREATE INDEX IF NOT EXISTS idx_follows_following   ON follows (following_id)",
    ]
    with engine.connect() as conn:
        for stmt in indexes:
            conn.execute(text(stmt))
        conn.commit()
    logger.info("✓ Database indexes ensured")


def get_db():
    """Yield a session bound to one pooled connection, always closing it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ── Constraint violations ────────────────────────────────────────

UNIQUE_VIOLATION = "unique"
FOREIGN_KEY_VIOLATION = "foreign_key"

_PG_CODES = {"23505": UNIQUE_VIOLATION, "23503": FOREIGN_KEY_VIOLATION}
_SQLITE_PREFIXES = {
    "UNIQUE constraint failed": UNIQUE_VIOLATION,
    "FOREIGN KEY constraint failed": FOREIGN_KEY_VIOLATION,
}


def constraint_violation(exc: IntegrityError):
    """
    Kind of constraint behind an ``IntegrityError``: ``UNIQUE_VIOLATION``,
    ``FOREIGN_KEY_VIOLATION`` or None for anything else (check, not-null).

    PostgreSQL is read from the SQLSTATE code, SQLite from its message.
    """
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode:
        return _PG_CODES.get(pgcode)

    message = str(exc.orig)
    for prefix, kind in _SQLITE_PREFIXES.items():
        if message.startswith(prefix):
            return kind
    return None
