"""
Pydantic schemas for request bodies and the fixed-shape responses.

Request fields are optional on purpose: presence and range checks happen in
the route handlers so each failure gets its own message.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel


# ── Request Schemas ──────────────────────────────────────────────

class SignupRequest(BaseModel):
    """Body of POST /auth/signup."""

    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    """Body of POST /auth/login."""

    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(BaseModel):
    username: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    banner_url: Optional[str] = None


class CollectionCreate(BaseModel):
    """Body of POST /collections."""

    rawg_id: Optional[int] = None
    status: Optional[str] = None
    user_rating: Optional[int] = None


class CollectionUpdate(BaseModel):
    status: Optional[str] = None
    user_rating: Optional[int] = None


class MemoryCreate(BaseModel):
    """Body of POST /memories; ``gameId`` is a RAWG id."""

    gameId: Optional[int] = None
    title: Optional[str] = None
    content: Optional[str] = None
    spoiler: bool = False


class MemoryUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    spoiler: Optional[bool] = None


class ReviewCreate(BaseModel):
    """Body of POST /reviews; ``gameId`` is a RAWG id."""

    gameId: Optional[int] = None
    rating: Optional[int] = None
    title: Optional[str] = None
    content: Optional[str] = None
    spoiler: bool = False


class ReviewUpdate(BaseModel):
    rating: Optional[int] = None
    title: Optional[str] = None
    content: Optional[str] = None
    spoiler: Optional[bool] = None


class LikeRequest(BaseModel):
    """Body of the /likes write routes."""

    targetType: Optional[str] = None
    targetId: Optional[int] = None


class CommentCreate(BaseModel):
    targetType: Optional[str] = None
    targetId: Optional[int] = None
    content: Optional[str] = None


class CommentUpdate(BaseModel):
    content: Optional[str] = None


# ── Response Schemas ─────────────────────────────────────────────

class UserOut(BaseModel):
    """Account fields returned to the account owner."""

    id: int
    username: str
    email: str
    avatar_url: Optional[str] = None
    banner_url: Optional[str] = None
    bio: Optional[str] = None
    role: str = "user"
    exp: int = 0
    level: int = 1
    xp_for_next_level: int = 50
    progress: int = 0
    created_at: Optional[Union[datetime, str]] = None


class AuthResponse(BaseModel):
    """Response after a successful signup or login."""

    message: str
    token: str
    user: UserOut


class MessageResponse(BaseModel):
    message: str
