"""
Input checks shared by the route handlers.
"""

import re
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from database import FOREIGN_KEY_VIOLATION, UNIQUE_VIOLATION, constraint_violation
from models import COLLECTION_STATUSES, TARGET_TYPES

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]{3,30}$")
MIN_PASSWORD_LENGTH = 6


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def is_valid_username(username: str) -> bool:
    return bool(USERNAME_RE.match(username or ""))


def is_valid_password(password: str) -> bool:
    return bool(password) and len(password) >= MIN_PASSWORD_LENGTH


def check_rating(rating: Optional[int], message: str = "La note doit être entre 1 et 5") -> None:
    if rating is not None and not 1 <= rating <= 5:
        raise HTTPException(status_code=400, detail=message)


def check_status(status: str) -> None:
    if status not in COLLECTION_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Le status doit être : {', '.join(COLLECTION_STATUSES)}",
        )


def check_target_type(target_type: str) -> None:
    if target_type not in TARGET_TYPES:
        raise HTTPException(status_code=400, detail='targetType doit être "review" ou "memory"')


def check_pagination(limit: int, offset: int, max_limit: int = 100) -> None:
    if limit < 1 or limit > max_limit:
        raise HTTPException(
            status_code=400,
            detail=f"Le paramètre limit doit être entre 1 et {max_limit}",
        )
    if offset < 0:
        raise HTTPException(status_code=400, detail="Le paramètre offset doit être >= 0")


def is_blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


def raise_for_integrity_error(
    exc: IntegrityError,
    conflict_detail: str,
    missing_detail: str = "Utilisateur non trouvé.",
) -> None:
    """
    Translate a constraint violation the caller already rolled back:
    unique → 409, foreign key → 404, anything else is re-raised.
    """
    kind = constraint_violation(exc)
    if kind == UNIQUE_VIOLATION:
        raise HTTPException(status_code=409, detail=conflict_detail)
    if kind == FOREIGN_KEY_VIOLATION:
        raise HTTPException(status_code=404, detail=missing_detail)
    raise exc
