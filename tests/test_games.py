"""
Game catalog routes, with RAWG and IGDB patched out.
"""

from unittest.mock import MagicMock, patch

import requests

import rawg


def test_search_passthrough(client):
    payload = {"count": 1, "next": None, "previous": None, "results": [{"id": 3498, "name": "GTA V"}]}
    with patch("rawg.search_games", return_value=payload) as search:
        resp = client.get("/games/search?q=gta")
    assert resp.status_code == 200
    assert resp.json()["results"][0]["id"] == 3498
    search.assert_called_once_with("gta", 1, 20)


def test_search_requires_query(client):
    assert client.get("/games/search").status_code == 400


def test_rawg_down_is_503(client):
    with patch("rawg.search_games", return_value=None):
        resp = client.get("/games/search?q=gta")
    assert resp.status_code == 503
    assert "error" in resp.json()

    with patch("rawg.list_games", return_value=None):
        assert client.get("/games/top").status_code == 503
        assert client.get("/games/trending").status_code == 503


def test_top_games_are_mirrored(client):
    listing = {"results": [
        {"id": 1, "name": "Alpha", "rating": 4.9},
        {"id": 2, "name": "Beta", "rating": 4.5},
    ]}
    with patch("rawg.list_games", return_value=listing):
        resp = client.get("/games/top?limit=2")
    assert [g["rawg_id"] for g in resp.json()["games"]] == [1, 2]

    assert client.get("/games/count").json() == {"total_games": 2}
    local = client.get("/games?page=1&limit=10").json()
    assert local["pagination"]["total"] == 2
    assert local["games"][0]["name"] == "Alpha"


def test_trending_uses_recent_window(client):
    with patch("rawg.list_games", return_value={"results": []}) as listing:
        assert client.get("/games/trending").status_code == 200
    kwargs = listing.call_args.kwargs
    assert kwargs["ordering"] == "-added"
    assert "," in kwargs["dates"]


def test_details_mirrors_and_enriches_cover(client):
    details = {"id": 3328, "name": "The Witcher 3", "genres": [{"name": "RPG"}]}
    cover = "https://images.igdb.com/t_cover_big/w3.jpg"
    with patch("rawg.get_game_details", return_value=details), \
            patch("igdb.client.get_cover_by_game_name", return_value=cover):
        resp = client.get("/games/3328")

    game = resp.json()["game"]
    assert game["rawg_id"] == 3328
    assert game["cover_url"] == cover
    assert game["genres"] == [{"name": "RPG"}]


def test_existing_game_gets_missing_cover(client, db):
    from catalog import mirror_game

    mirror_game(db, {"id": 10, "name": "Sans couverture"})
    with patch("rawg.get_game_details") as fetch, \
            patch("igdb.client.get_cover_by_game_name", return_value="https://cover"):
        game = client.get("/games/10").json()["game"]
    fetch.assert_not_called()
    assert game["cover_url"] == "https://cover"


def test_unknown_game_is_404(client):
    with patch("rawg.get_game_details", return_value=None):
        assert client.get("/games/424242").status_code == 404


def test_non_numeric_game_id_is_400(client):
    with patch("rawg.get_game_details") as details:
        resp = client.get("/games/abc")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Données invalides."
    details.assert_not_called()


def test_rawg_client_returns_none_on_http_error():
    failing = MagicMock()
    failing.raise_for_status.side_effect = requests.HTTPError("500")
    with patch("rawg.requests.get", return_value=failing):
        assert rawg.get_game_details(1) is None
    with patch("rawg.requests.get", side_effect=requests.ConnectionError("down")):
        assert rawg.search_games("x") is None
