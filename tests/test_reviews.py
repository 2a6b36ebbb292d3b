"""
Reviews: one per user and game, +20 XP, rating bounds.
"""

from unittest.mock import patch

REVIEW = {"gameId": 3498, "rating": 5, "title": "Chef-d'œuvre", "content": "Un monde immense."}


def test_create_review_grants_twenty_xp(client, signup, game, user_row):
    user, headers = signup("alice")

    resp = client.post("/reviews", json=REVIEW, headers=headers)

    assert resp.status_code == 201
    review = resp.json()["review"]
    assert review["rating"] == 5
    assert review["rawg_id"] == 3498
    assert user_row(user["id"]).exp == 20


def test_second_review_for_same_game_conflicts(client, signup, game, user_row):
    user, headers = signup("alice")
    assert client.post("/reviews", json=REVIEW, headers=headers).status_code == 201

    resp = client.post("/reviews", json={**REVIEW, "rating": 3}, headers=headers)

    assert resp.status_code == 409
    assert resp.json()["error"] == "Vous avez déjà publié une review pour ce jeu"
    # No XP for the rejected attempt
    assert user_row(user["id"]).exp == 20


def test_two_users_can_review_same_game(client, signup, game):
    _, alice = signup("alice")
    _, bob = signup("bob")
    assert client.post("/reviews", json=REVIEW, headers=alice).status_code == 201
    assert client.post("/reviews", json=REVIEW, headers=bob).status_code == 201
    assert client.get("/reviews/game/3498").json()["pagination"]["count"] == 2


def test_rating_out_of_range(client, signup, game):
    _, headers = signup("alice")
    for rating in (0, 6):
        resp = client.post("/reviews", json={**REVIEW, "rating": rating}, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "La note doit être entre 1 et 5"


def test_missing_fields(client, signup, game):
    _, headers = signup("alice")
    resp = client.post("/reviews", json={"gameId": 3498, "rating": 4}, headers=headers)
    assert resp.status_code == 400


def test_review_survives_failed_xp_grant(client, signup, game, user_row):
    user, headers = signup("alice")
    with patch("accounts.add_xp_to_user", side_effect=RuntimeError("boom")):
        resp = client.post("/reviews", json=REVIEW, headers=headers)
    assert resp.status_code == 201
    assert user_row(user["id"]).exp == 0


def test_top_rated_sort(client, signup, game):
    _, alice = signup("alice")
    _, bob = signup("bob")
    client.post("/reviews", json={**REVIEW, "rating": 2}, headers=alice)
    client.post("/reviews", json={**REVIEW, "rating": 5}, headers=bob)

    reviews = client.get("/reviews?sort=top_rated").json()["reviews"]
    assert [r["rating"] for r in reviews] == [5, 2]
    assert reviews[0]["game_image"].endswith("co1.jpg")
    assert client.get("/reviews?sort=worst").status_code == 400


def test_update_and_delete_by_author(client, signup, game):
    alice_user, alice = signup("alice")
    _, bob = signup("bob")
    review_id = client.post("/reviews", json=REVIEW, headers=alice).json()["review"]["id"]

    assert client.put(f"/reviews/{review_id}", json={"rating": 1}, headers=bob).status_code == 403
    assert client.put(f"/reviews/{review_id}", json={"rating": 9}, headers=alice).status_code == 400
    assert client.put(f"/reviews/{review_id}", json={}, headers=alice).status_code == 400

    resp = client.put(f"/reviews/{review_id}", json={"rating": 4, "spoiler": True}, headers=alice)
    assert resp.status_code == 200
    assert resp.json()["review"]["rating"] == 4
    assert resp.json()["review"]["spoiler"] is True

    assert client.get(f"/reviews/user/{alice_user['id']}").json()["pagination"]["count"] == 1
    assert client.delete(f"/reviews/{review_id}", headers=alice).status_code == 200
    assert client.get(f"/reviews/{review_id}").status_code == 404
