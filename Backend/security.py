"""
Password hashing, JWT issuing and the bearer-token dependencies.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy import text
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from config import settings
from database import get_db

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


# ── Passwords ────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return generate_password_hash(password, method="pbkdf2:sha256")


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


# ── Tokens ───────────────────────────────────────────────────────

def create_access_token(user_id: int) -> str:
    """Sign a token carrying the user id, valid for the configured number of days."""
    expires = datetime.now(timezone.utc) + timedelta(days=settings.jwt_expires_days)
    return jwt.encode({"userId": user_id, "exp": expires}, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])


# ── Dependencies ─────────────────────────────────────────────────

def get_current_user_id(request: Request) -> int:
    """Resolve the caller from ``Authorization: Bearer <token>``."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="Token manquant. Authentification requise.")

    parts = auth_header.split(" ")
    token = parts[1] if len(parts) > 1 else ""
    if not token:
        raise HTTPException(status_code=401, detail="Format de token invalide.")

    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expiré. Veuillez vous reconnecter.")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Token invalide.")

    user_id = payload.get("userId")
    if not isinstance(user_id, int):
        raise HTTPException(status_code=401, detail="Token invalide.")
    return user_id


def require_admin(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> int:
    """Pass through the caller's id only when their role is ``admin``."""
    row = db.execute(
        text("SELECT role FROM users WHERE id = :uid"),
        {"uid": user_id},
    ).fetchone()

    if not row:
        raise HTTPException(status_code=404, detail="Utilisateur non trouvé.")
    if row.role != "admin":
        logger.warning("Non-admin user %d tried to reach an admin route", user_id)
        raise HTTPException(status_code=403, detail="Accès refusé. Privilèges administrateur requis.")
    return user_id
