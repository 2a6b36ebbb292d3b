"""
IGDB client: token caching, single-flight refresh and cover lookups.
"""

import threading
import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from igdb import IGDBAuthError, IGDBClient


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


@pytest.fixture
def igdb_client():
    return IGDBClient("client-id", "client-secret", timeout=5)


def test_token_is_cached(igdb_client):
    with patch("igdb.requests.post", return_value=_response({"access_token": "tok-1"})) as post:
        assert igdb_client.get_access_token() == "tok-1"
        assert igdb_client.get_access_token() == "tok-1"
    assert post.call_count == 1


def test_expired_token_is_refreshed(igdb_client):
    with patch("igdb.requests.post", side_effect=[_response({"access_token": "tok-1"}),
                                                  _response({"access_token": "tok-2"})]) as post:
        assert igdb_client.get_access_token() == "tok-1"
        igdb_client._token_expiry = time.time() - 1
        assert igdb_client.get_access_token() == "tok-2"
    assert post.call_count == 2


def test_concurrent_callers_share_one_refresh(igdb_client):
    calls = []

    def slow_post(*args, **kwargs):
        calls.append(1)
        time.sleep(0.05)
        return _response({"access_token": "shared"})

    results = []
    with patch("igdb.requests.post", side_effect=slow_post):
        threads = [threading.Thread(target=lambda: results.append(igdb_client.get_access_token()))
                   for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    assert len(calls) == 1
    assert results == ["shared"] * 8


def test_token_failure_raises(igdb_client):
    with patch("igdb.requests.post", side_effect=requests.ConnectionError("down")):
        with pytest.raises(IGDBAuthError):
            igdb_client.get_access_token()


def test_cover_lookup_upgrades_thumbnail(igdb_client):
    responses = [
        _response({"access_token": "tok"}),
        _response([{"id": 1, "name": "Portal", "cover": 77}]),
        _response([{"id": 77, "url": "//images.igdb.com/igdb/image/upload/t_thumb/co1x.jpg"}]),
    ]
    with patch("igdb.requests.post", side_effect=responses):
        url = igdb_client.get_cover_by_game_name("Portal")
    assert url == "https://images.igdb.com/igdb/image/upload/t_cover_big/co1x.jpg"


def test_cover_lookup_without_match(igdb_client):
    with patch("igdb.requests.post", side_effect=[_response({"access_token": "tok"}), _response([])]):
        assert igdb_client.get_cover_by_game_name("Nothing") is None


def test_cover_lookup_ignores_object_bodies(igdb_client):
    error_body = {"title": "Syntax Error", "status": 400}
    with patch("igdb.requests.post", side_effect=[_response({"access_token": "tok"}), _response(error_body)]):
        assert igdb_client.get_cover_by_game_name("Portal") is None

    responses = [
        _response([{"id": 1, "name": "Portal", "cover": 77}]),
        _response(error_body),
    ]
    with patch("igdb.requests.post", side_effect=responses):
        assert igdb_client.get_cover_by_game_name("Portal") is None


def test_cover_lookup_swallows_errors(igdb_client):
    with patch("igdb.requests.post", side_effect=requests.Timeout("slow")):
        assert igdb_client.get_cover_by_game_name("Portal") is None


def test_unconfigured_client_skips_network():
    unconfigured = IGDBClient("", "")
    with patch("igdb.requests.post") as post:
        assert unconfigured.get_cover_by_game_name("Portal") is None
    post.assert_not_called()
