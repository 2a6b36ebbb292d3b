"""
Account creation and login.

Endpoints:
  POST /auth/signup  — Create an account, returns a token
  POST /auth/login   — Exchange credentials for a token
  POST /auth/logout  — Acknowledge a logout (tokens are stateless)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accounts import PROFILE_COLUMNS, find_user_by_email, serialize_user
from config import settings
from database import get_db
from limiter import limiter
from schemas import AuthResponse, LoginRequest, MessageResponse, SignupRequest
from security import create_access_token, hash_password, verify_password
from validators import is_valid_email, is_valid_password, is_valid_username, raise_for_integrity_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/signup", response_model=AuthResponse, status_code=201)
@limiter.limit(settings.auth_rate_limit)
def signup(request: Request, payload: SignupRequest, db: Session = Depends(get_db)):
    """Validate the form, create the user and sign them in."""
    if not payload.username or not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Tous les champs sont requis.")

    if not is_valid_username(payload.username):
        raise HTTPException(
            status_code=400,
            detail="Le pseudo doit contenir entre 3 et 30 caractères "
                   "(lettres, chiffres, underscore, tiret uniquement).",
        )

    if not is_valid_email(payload.email):
        raise HTTPException(status_code=400, detail="Format d'email invalide.")

    if not is_valid_password(payload.password):
        raise HTTPException(status_code=400, detail="Le mot de passe doit contenir au moins 6 caractères.")

    if find_user_by_email(db, payload.email):
        raise HTTPException(status_code=409, detail="Cet email est déjà utilisé.")

    try:
        user = db.execute(
            text(
                "INSERT INTO users (username, email, password_hash) "
                "VALUES (:username, :email, :password_hash) "
                f"RETURNING {PROFILE_COLUMNS}"
            ),
            {
                "username": payload.username,
                "email": payload.email,
                "password_hash": hash_password(payload.password),
            },
        ).first()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise_for_integrity_error(exc, "Cet email ou ce nom d'utilisateur est déjà utilisé")
    except Exception as exc:
        db.rollback()
        logger.error("signup failed: %s", exc)
        raise HTTPException(status_code=500, detail="Erreur serveur lors de l'inscription")

    logger.info("New user %d (%s) signed up", user.id, user.username)

    return {
        "message": "Utilisateur créé avec succès",
        "token": create_access_token(user.id),
        "user": serialize_user(user),
    }


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.auth_rate_limit)
def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)):
    """Check the credentials; unknown email and wrong password look the same."""
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Email et mot de passe requis")

    user = find_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Email ou mot de passe incorrect")

    return {
        "message": "Connexion réussie",
        "token": create_access_token(user.id),
        "user": serialize_user(user),
    }


@router.post("/logout", response_model=MessageResponse)
def logout():
    """Tokens are dropped client side; nothing to revoke here."""
    return {"message": "Déconnexion réussie"}
