"""
Admin authorisation, moderation and the cascading account deletion.
"""

import pytest
from sqlalchemy import text

from accounts import delete_user_cascade

REVIEW = {"gameId": 3498, "rating": 4, "title": "Bien", "content": "Très bien."}


def _count(db, table, where="1 = 1", **params):
    return db.execute(text(f"SELECT COUNT(*) FROM {table} WHERE {where}"), params).scalar()


@pytest.fixture
def populated(client, signup, game, make_admin):
    """An admin, plus bob with content and interactions on both sides."""
    admin_user, admin = signup("admin")
    make_admin(admin_user["id"])
    bob_user, bob = signup("bob")
    carol_user, carol = signup("carol")

    memory_id = client.post("/memories", json={"gameId": 3498, "content": "Souvenir"}, headers=bob).json()["memory"]["id"]
    review_id = client.post("/reviews", json=REVIEW, headers=bob).json()["review"]["id"]
    client.post("/collections", json={"rawg_id": 3498, "status": "playing"}, headers=bob)
    client.post(f"/follows/{carol_user['id']}", headers=bob)
    client.post(f"/follows/{bob_user['id']}", headers=carol)

    # carol interacts with bob's content
    client.post("/likes", json={"targetType": "memory", "targetId": memory_id}, headers=carol)
    client.post("/comments", json={"targetType": "review", "targetId": review_id, "content": "Top"}, headers=carol)

    # bob interacts with carol's content
    carol_memory = client.post("/memories", json={"gameId": 3498, "content": "Le mien"}, headers=carol).json()["memory"]["id"]
    client.post("/likes", json={"targetType": "memory", "targetId": carol_memory}, headers=bob)
    client.post("/comments", json={"targetType": "memory", "targetId": carol_memory, "content": "Pareil"}, headers=bob)

    return {
        "admin": admin, "admin_id": admin_user["id"],
        "bob": bob, "bob_id": bob_user["id"],
        "carol": carol, "carol_id": carol_user["id"],
        "memory_id": memory_id, "review_id": review_id, "carol_memory": carol_memory,
    }


class TestAuthorisation:
    def test_non_admin_is_forbidden(self, client, signup):
        _, headers = signup("alice")
        resp = client.get("/admin/stats", headers=headers)
        assert resp.status_code == 403
        assert resp.json()["error"] == "Accès refusé. Privilèges administrateur requis."

    def test_anonymous_is_unauthorised(self, client):
        assert client.get("/admin/stats").status_code == 401

    def test_role_is_never_settable_through_profile(self, client, signup, user_row):
        user, headers = signup("alice")
        client.put("/users/me", json={"role": "admin"}, headers=headers)
        assert user_row(user["id"]).role == "user"


class TestModeration:
    def test_stats(self, client, populated):
        data = client.get("/admin/stats", headers=populated["admin"]).json()["data"]
        assert data == {
            "total_users": 3,
            "total_games": 1,
            "total_memories": 2,
            "total_reviews": 1,
            "total_collections": 1,
            "total_comments": 2,
            "total_likes": 2,
        }

    def test_user_list_pagination(self, client, populated):
        data = client.get("/admin/users?page=1&limit=2", headers=populated["admin"]).json()["data"]
        assert len(data["users"]) == 2
        assert data["pagination"] == {"currentPage": 1, "totalPages": 2, "totalUsers": 3, "usersPerPage": 2}

    def test_user_details(self, client, populated):
        resp = client.get(f"/admin/users/{populated['bob_id']}", headers=populated["admin"])
        data = resp.json()["data"]
        assert data["user"]["username"] == "bob"
        assert data["stats"]["total_memories"] == 1
        assert data["stats"]["total_reviews"] == 1
        assert client.get("/admin/users/9999", headers=populated["admin"]).status_code == 404

    def test_delete_posts_and_comments(self, client, populated, db):
        admin = populated["admin"]

        assert client.delete(f"/admin/memories/{populated['memory_id']}", headers=admin).status_code == 200
        assert _count(db, "likes", "target_type = 'memory' AND target_id = :tid", tid=populated["memory_id"]) == 0

        assert client.delete(f"/admin/reviews/{populated['review_id']}", headers=admin).status_code == 200
        assert _count(db, "comments", "target_type = 'review'") == 0

        comment_id = db.execute(text("SELECT id FROM comments")).scalar()
        assert client.delete(f"/admin/comments/{comment_id}", headers=admin).status_code == 200

        assert client.delete("/admin/memories/9999", headers=admin).status_code == 404
        assert client.delete("/admin/reviews/9999", headers=admin).status_code == 404
        assert client.delete("/admin/comments/9999", headers=admin).status_code == 404


class TestCascadeDeletion:
    def test_delete_user_removes_everything_they_own(self, client, populated, db):
        bob_id = populated["bob_id"]

        resp = client.delete(f"/admin/users/{bob_id}", headers=populated["admin"])

        assert resp.status_code == 200
        assert resp.json()["data"]["deletedUser"]["username"] == "bob"
        assert _count(db, "users", "id = :uid", uid=bob_id) == 0
        assert _count(db, "memories", "user_id = :uid", uid=bob_id) == 0
        assert _count(db, "reviews", "user_id = :uid", uid=bob_id) == 0
        assert _count(db, "collections", "user_id = :uid", uid=bob_id) == 0
        assert _count(db, "follows", "follower_id = :uid OR following_id = :uid", uid=bob_id) == 0
        assert _count(db, "likes", "user_id = :uid", uid=bob_id) == 0
        assert _count(db, "comments", "user_id = :uid", uid=bob_id) == 0
        # carol's interactions on bob's content went with it
        assert _count(db, "likes") == 0
        assert _count(db, "comments") == 0
        # carol and her memory are untouched
        assert _count(db, "users", "id = :uid", uid=populated["carol_id"]) == 1
        assert _count(db, "memories", "id = :mid", mid=populated["carol_memory"]) == 1

    def test_admin_cannot_delete_self(self, client, populated):
        resp = client.delete(f"/admin/users/{populated['admin_id']}", headers=populated["admin"])
        assert resp.status_code == 400
        assert resp.json()["error"] == "Vous ne pouvez pas supprimer votre propre compte admin"

    def test_unknown_user(self, client, populated):
        assert client.delete("/admin/users/9999", headers=populated["admin"]).status_code == 404

    def test_failure_mid_sequence_rolls_everything_back(self, client, populated, db):
        bob_id = populated["bob_id"]
        db.execute(text(
            "CREATE TRIGGER fail_follow_delete BEFORE DELETE ON follows "
            "BEGIN SELECT RAISE(ABORT, 'injected failure'); END"
        ))
        db.commit()
        before = {
            table: _count(db, table)
            for table in ("users", "memories", "reviews", "collections", "follows", "likes", "comments")
        }

        resp = client.delete(f"/admin/users/{bob_id}", headers=populated["admin"])

        assert resp.status_code == 500
        after = {table: _count(db, table) for table in before}
        assert after == before
        assert _count(db, "users", "id = :uid", uid=bob_id) == 1

    def test_cascade_helper_returns_none_for_unknown_user(self, db):
        assert delete_user_cascade(db, 12345) is None


class TestDeletedAccountToken:
    """A token outliving its account must not leave orphan rows behind."""

    @pytest.fixture
    def bob_deleted(self, client, populated):
        assert client.delete(f"/admin/users/{populated['bob_id']}", headers=populated["admin"]).status_code == 200
        return populated

    def test_foreign_keys_are_enforced(self, db):
        assert db.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_like_is_rejected(self, client, bob_deleted, db):
        target = {"targetType": "memory", "targetId": bob_deleted["carol_memory"]}

        resp = client.post("/likes", json=target, headers=bob_deleted["bob"])

        assert resp.status_code == 404
        assert resp.json()["error"] == "Utilisateur non trouvé."
        assert client.post("/likes/toggle", json=target, headers=bob_deleted["bob"]).status_code == 404
        assert _count(db, "likes", "user_id = :uid", uid=bob_deleted["bob_id"]) == 0

    def test_posts_are_rejected(self, client, bob_deleted, db):
        bob = bob_deleted["bob"]

        assert client.post("/reviews", json=REVIEW, headers=bob).status_code == 404
        assert client.post("/memories", json={"gameId": 3498, "content": "Encore"}, headers=bob).status_code == 404
        assert client.post("/collections", json={"rawg_id": 3498, "status": "playing"}, headers=bob).status_code == 404
        comment = {"targetType": "memory", "targetId": bob_deleted["carol_memory"], "content": "Fantôme"}
        assert client.post("/comments", json=comment, headers=bob).status_code == 404

        for table in ("reviews", "memories", "collections", "comments"):
            assert _count(db, table, "user_id = :uid", uid=bob_deleted["bob_id"]) == 0

    def test_follow_is_rejected(self, client, bob_deleted, db):
        resp = client.post(f"/follows/{bob_deleted['carol_id']}", headers=bob_deleted["bob"])

        assert resp.status_code == 404
        assert resp.json()["error"] == "Utilisateur introuvable"
        assert _count(db, "follows") == 0
