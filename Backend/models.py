"""
SQLAlchemy ORM models for MyMemoryCard.
Tables: users, games, collections, memories, reviews, comments, likes, follows

The models only declare the schema; queries are issued as raw SQL.
"""

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Float, ForeignKey, Integer,
    String, Text, UniqueConstraint, false, func,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

COLLECTION_STATUSES = ("playing", "completed", "wishlist", "abandoned", "not_started")
TARGET_TYPES = ("review", "memory")


class User(Base):
    """A registered player with profile and progression."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("exp >= 0", name="ck_users_exp"),
        CheckConstraint("level >= 1", name="ck_users_level"),
    )

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String(500), nullable=True)
    banner_url = Column(String(500), nullable=True)
    exp = Column(Integer, nullable=False, server_default="0")
    level = Column(Integer, nullable=False, server_default="1")
    role = Column(String(20), nullable=False, server_default="user")
    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"


class Game(Base):
    """Local mirror of one RAWG catalog record."""

    __tablename__ = "games"

    id = Column(Integer, primary_key=True, index=True)
    rawg_id = Column(Integer, unique=True, nullable=False)
    name = Column(String(500), nullable=False)
    background_image = Column(String(1000), nullable=True)
    cover_url = Column(String(1000), nullable=True)
    released = Column(String(20), nullable=True)
    rating = Column(Float, nullable=True)
    platforms = Column(Text, nullable=True)  # JSON-encoded list
    genres = Column(Text, nullable=True)  # JSON-encoded list
    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<Game(rawg_id={self.rawg_id}, name='{self.name}')>"


class Collection(Base):
    """A user's tracking entry for one game."""

    __tablename__ = "collections"
    __table_args__ = (
        UniqueConstraint("user_id", "game_id", name="uq_collections_user_game"),
        CheckConstraint("user_rating IS NULL OR user_rating BETWEEN 1 AND 5", name="ck_collections_rating"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False)
    status = Column(String(20), nullable=False)
    user_rating = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Memory(Base):
    """A narrative post about a game."""

    __tablename__ = "memories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False)
    title = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    spoiler = Column(Boolean, nullable=False, server_default=false())
    created_at = Column(DateTime, server_default=func.now())


class Review(Base):
    """A rated critique, one per (user, game)."""

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "game_id", name="uq_reviews_user_game"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    spoiler = Column(Boolean, nullable=False, server_default=false())
    created_at = Column(DateTime, server_default=func.now())


class Comment(Base):
    """A comment attached to a review or a memory."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    target_type = Column(String(10), nullable=False)
    target_id = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Like(Base):
    """A like on a review or a memory."""

    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("user_id", "target_type", "target_id", name="uq_likes_user_target"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    target_type = Column(String(10), nullable=False)
    target_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Follow(Base):
    """Directed follow edge between two users."""

    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    follower_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    following_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
