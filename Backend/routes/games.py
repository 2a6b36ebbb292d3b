"""
Game catalog routes: local listings and RAWG-backed discovery.

Endpoints:
  GET /games              — Local games, best rated first
  GET /games/count        — Number of mirrored games
  GET /games/top          — RAWG best rated, mirrored locally
  GET /games/trending     — RAWG recent releases by popularity, mirrored locally
  GET /games/search?q=    — RAWG search passthrough
  GET /games/{rawg_id}    — One game, mirrored and cover-enriched on demand
"""

import logging
from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.orm import Session

import rawg
from catalog import (
    GAME_COLUMNS, ensure_cover, find_game_by_rawg_id, find_or_create_game,
    mirror_game, serialize_game,
)
from database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["Games"])

TRENDING_WINDOW_DAYS = 90
RAWG_UNAVAILABLE = "Le service RAWG est temporairement indisponible"


def _mirror_listing(db: Session, listing: dict) -> list:
    """Make sure every game of a RAWG listing has a local row; return them in order."""
    games = []
    for item in listing.get("results") or []:
        if "id" not in item:
            continue
        row = find_game_by_rawg_id(db, item["id"]) or mirror_game(db, item)
        if row:
            games.append(serialize_game(row))
    return games


def _check_limit(limit: int) -> None:
    if limit < 1 or limit > 40:
        raise HTTPException(status_code=400, detail="Le paramètre limit doit être entre 1 et 40")


@router.get("")
def get_all_games(page: int = 1, limit: int = 20, db: Session = Depends(get_db)):
    if page < 1 or limit < 1 or limit > 100:
        raise HTTPException(
            status_code=400,
            detail="Paramètres invalides. Page >= 1, Limit entre 1 et 100",
        )

    total = db.execute(text("SELECT COUNT(*) FROM games")).scalar()
    rows = db.execute(
        text(
            f"""
            SELECT {GAME_COLUMNS}
            FROM games
            ORDER BY (rating IS NULL), rating DESC, name
            LIMIT :limit OFFSET :offset
            """
        ),
        {"limit": limit, "offset": (page - 1) * limit},
    ).fetchall()

    games = [serialize_game(r) for r in rows]
    return {
        "games": games,
        "pagination": {"page": page, "limit": limit, "count": len(games), "total": int(total or 0)},
    }


@router.get("/count")
def get_total_games_count(db: Session = Depends(get_db)):
    total = db.execute(text("SELECT COUNT(*) FROM games")).scalar()
    return {"total_games": int(total or 0)}


@router.get("/top")
def get_top_games(limit: int = 10, db: Session = Depends(get_db)):
    _check_limit(limit)
    listing = rawg.list_games(ordering="-rating", page_size=limit)
    if listing is None:
        raise HTTPException(status_code=503, detail=RAWG_UNAVAILABLE)
    games = _mirror_listing(db, listing)
    return {"count": len(games), "games": games}


@router.get("/trending")
def get_trending_games(limit: int = 10, db: Session = Depends(get_db)):
    _check_limit(limit)
    today = date.today()
    window = f"{(today - timedelta(days=TRENDING_WINDOW_DAYS)).isoformat()},{today.isoformat()}"
    listing = rawg.list_games(ordering="-added", page_size=limit, dates=window)
    if listing is None:
        raise HTTPException(status_code=503, detail=RAWG_UNAVAILABLE)
    games = _mirror_listing(db, listing)
    return {"count": len(games), "games": games}


@router.get("/search")
def search_games(q: str = "", page: int = 1, page_size: int = 20):
    if not q.strip():
        raise HTTPException(status_code=400, detail='Le paramètre de recherche "q" est obligatoire')

    results = rawg.search_games(q.strip(), page, page_size)
    if results is None:
        raise HTTPException(status_code=503, detail=RAWG_UNAVAILABLE)

    return {
        "count": results.get("count", 0),
        "next": results.get("next"),
        "previous": results.get("previous"),
        "results": results.get("results", []),
    }


@router.get("/{rawg_id}")
def get_game_details(rawg_id: int, db: Session = Depends(get_db)):
    game = find_or_create_game(db, rawg_id)
    if not game:
        raise HTTPException(status_code=404, detail="Jeu introuvable")

    game = ensure_cover(db, game)
    return {"game": serialize_game(game)}
