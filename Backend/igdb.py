"""
IGDB cover-art lookup, authenticated with a Twitch app-access token.

Authentication uses the client credentials flow:

    POST https://id.twitch.tv/oauth2/token
        ?client_id=<TWITCH_CLIENT_ID>
        &client_secret=<TWITCH_CLIENT_SECRET>
        &grant_type=client_credentials

The token is kept on a process-wide ``IGDBClient`` and refreshed by at most
one caller at a time; concurrent callers wait for that refresh and reuse it.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, List, Optional

import requests

from config import settings

logger = logging.getLogger(__name__)

_TOKEN_URL = "https://id.twitch.tv/oauth2/token"
_IGDB_BASE = "https://api.igdb.com/v4"
# Twitch app tokens last about 60 days; keep a day of margin
_TOKEN_TTL = 59 * 24 * 60 * 60


class IGDBAuthError(Exception):
    """Raised when the Twitch OAuth token cannot be obtained."""


class IGDBClient:
    """Cover lookups against IGDB with a memoised access token."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        timeout: float = 10,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout
        self._access_token: Optional[str] = None
        self._token_expiry: float = 0.0
        self._lock = threading.Lock()

    @property
    def configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    def _token_valid(self) -> bool:
        return self._access_token is not None and time.time() < self._token_expiry

    def get_access_token(self) -> str:
        """Return a valid token, fetching a new one only when the cached one expired."""
        if self._token_valid():
            return self._access_token

        with self._lock:
            # Another caller may have refreshed while we waited
            if self._token_valid():
                return self._access_token

            try:
                resp = requests.post(
                    _TOKEN_URL,
                    params={
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "grant_type": "client_credentials",
                    },
                    timeout=self._timeout,
                )
                resp.raise_for_status()
                token = resp.json()["access_token"]
            except (requests.RequestException, KeyError, ValueError) as exc:
                logger.error("Twitch token request failed: %s", exc)
                raise IGDBAuthError("Impossible de récupérer le token d'authentification IGDB") from exc

            self._access_token = token
            self._token_expiry = time.time() + _TOKEN_TTL
            logger.info("Twitch app token refreshed")
            return token

    def _query(self, endpoint: str, body: str, token: str) -> List[Any]:
        resp = requests.post(
            f"{_IGDB_BASE}/{endpoint}",
            data=body,
            headers={
                "Client-ID": self._client_id,
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            timeout=self._timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def get_cover_by_game_name(self, game_name: str) -> Optional[str]:
        """Best-quality cover URL for ``game_name``, or None."""
        if not self.configured:
            return None

        try:
            token = self.get_access_token()
            safe_name = game_name.replace('"', "")
            games = self._query("games", f'search "{safe_name}"; fields name,cover; limit 1;', token)
            if not isinstance(games, list) or not games:
                logger.info("No IGDB game found for %s", game_name)
                return None

            cover_id = games[0].get("cover")
            if not cover_id:
                logger.info("No IGDB cover for %s", game_name)
                return None

            covers = self._query("covers", f"fields url; where id = {int(cover_id)};", token)
            if not isinstance(covers, list) or not covers or not covers[0].get("url"):
                return None
        except (IGDBAuthError, requests.RequestException, ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.error("IGDB cover lookup for %s failed: %s", game_name, exc)
            return None

        cover_url = covers[0]["url"].replace("t_thumb", "t_cover_big")
        if cover_url.startswith("//"):
            cover_url = f"https:{cover_url}"
        logger.info("IGDB cover found for %s: %s", game_name, cover_url)
        return cover_url


client = IGDBClient(
    settings.twitch_client_id,
    settings.twitch_client_secret,
    timeout=settings.http_timeout,
)
