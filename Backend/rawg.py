"""
RAWG game catalog client.

Every call returns the decoded JSON payload, or None when the service
cannot be reached or answers with an error status.
"""

import logging
from typing import Optional

import requests

from config import settings

logger = logging.getLogger(__name__)


def _get(path: str, params: Optional[dict] = None) -> Optional[dict]:
    query = {"key": settings.rawg_api_key}
    query.update(params or {})
    try:
        resp = requests.get(
            f"{settings.rawg_base_url}{path}",
            params=query,
            timeout=settings.http_timeout,
        )
        resp.raise_for_status()
        return resp.json()
    except (requests.RequestException, ValueError) as exc:
        logger.error("RAWG request %s failed: %s", path, exc)
        return None


def search_games(query: str, page: int = 1, page_size: int = 20) -> Optional[dict]:
    """Search the catalog; returns ``{count, next, previous, results}``."""
    return _get("/games", {"search": query, "page": page, "page_size": page_size})


def get_game_details(rawg_id: int) -> Optional[dict]:
    """Full record for one game, or None (unknown id or service down)."""
    return _get(f"/games/{rawg_id}")


def list_games(ordering: str, page_size: int = 20, dates: Optional[str] = None) -> Optional[dict]:
    """A catalog listing, e.g. ``ordering="-rating"`` for the best rated games."""
    params = {"ordering": ordering, "page_size": page_size}
    if dates:
        params["dates"] = dates
    return _get("/games", params)
