"""
Database seeding script for MyMemoryCard.

Populates a development database with:
  - a handful of demo users (password: "password123")
  - a few games mirrored without calling RAWG
  - collection entries, memories, reviews, likes, comments and follows
  - XP granted for each memory and review, as the API does

Usage:
    python seed_db.py
"""

import random
import time

from sqlalchemy import text

from accounts import add_xp_to_user
from catalog import mirror_game
from database import SessionLocal, create_indexes, create_tables
from leveling import XP_REWARDS
from models import COLLECTION_STATUSES
from security import hash_password

USERS = ["ada", "linus", "grace", "hideo", "shigeru", "yoko"]
GAMES = [
    {"id": 3498, "name": "Grand Theft Auto V", "released": "2013-09-17", "rating": 4.47},
    {"id": 3328, "name": "The Witcher 3: Wild Hunt", "released": "2015-05-18", "rating": 4.65},
    {"id": 4200, "name": "Portal 2", "released": "2011-04-18", "rating": 4.61},
    {"id": 5286, "name": "Tomb Raider (2013)", "released": "2013-03-05", "rating": 4.05},
    {"id": 13536, "name": "Portal", "released": "2007-10-09", "rating": 4.51},
]
MEMORY_LINES = [
    "Première nuit blanche sur ce jeu, impossible de décrocher.",
    "Le moment où la musique démarre dans ce niveau, inoubliable.",
    "Terminé en coop avec mon frère, que de souvenirs.",
]


def seed():
    """Run all seeding steps sequentially."""
    random.seed(42)
    create_tables()
    create_indexes()

    db = SessionLocal()
    try:
        # ── Step 1: Users ────────────────────────────────────────
        print("⏳ Inserting users …")
        start = time.time()
        password_hash = hash_password("password123")
        user_ids = []
        for name in USERS:
            row = db.execute(
                text(
                    "INSERT INTO users (username, email, password_hash) "
                    "VALUES (:username, :email, :password_hash) RETURNING id"
                ),
                {"username": name, "email": f"{name}@example.com", "password_hash": password_hash},
            ).first()
            user_ids.append(row.id)
        db.commit()
        print(f"   ✓ {len(user_ids)} users inserted in {time.time() - start:.1f}s")

        # ── Step 2: Games ────────────────────────────────────────
        print("⏳ Mirroring games …")
        game_ids = [mirror_game(db, data).id for data in GAMES]
        print(f"   ✓ {len(game_ids)} games mirrored")

        # ── Step 3: Collections ──────────────────────────────────
        print("⏳ Filling collections …")
        for user_id in user_ids:
            for game_id in random.sample(game_ids, 3):
                db.execute(
                    text(
                        "INSERT INTO collections (user_id, game_id, status, user_rating) "
                        "VALUES (:uid, :gid, :status, :rating)"
                    ),
                    {
                        "uid": user_id,
                        "gid": game_id,
                        "status": random.choice(COLLECTION_STATUSES),
                        "rating": random.randint(1, 5),
                    },
                )
        db.commit()

        # ── Step 4: Memories and reviews ─────────────────────────
        print("⏳ Writing memories and reviews …")
        memory_ids, review_ids = [], []
        for user_id in user_ids:
            game_id = random.choice(game_ids)
            memory_ids.append(db.execute(
                text(
                    "INSERT INTO memories (user_id, game_id, content) "
                    "VALUES (:uid, :gid, :content) RETURNING id"
                ),
                {"uid": user_id, "gid": game_id, "content": random.choice(MEMORY_LINES)},
            ).scalar())
            review_ids.append(db.execute(
                text(
                    "INSERT INTO reviews (user_id, game_id, rating, title, content) "
                    "VALUES (:uid, :gid, :rating, :title, :content) RETURNING id"
                ),
                {
                    "uid": user_id,
                    "gid": game_id,
                    "rating": random.randint(3, 5),
                    "title": "Un classique",
                    "content": "Toujours aussi bon des années après.",
                },
            ).scalar())
            db.commit()
            add_xp_to_user(db, user_id, XP_REWARDS["CREATE_MEMORY"])
            add_xp_to_user(db, user_id, XP_REWARDS["CREATE_REVIEW"])

        # ── Step 5: Social graph ─────────────────────────────────
        print("⏳ Adding likes, comments and follows …")
        for user_id in user_ids:
            for review_id in random.sample(review_ids, 2):
                db.execute(
                    text(
                        "INSERT INTO likes (user_id, target_type, target_id) "
                        "VALUES (:uid, 'review', :tid) ON CONFLICT DO NOTHING"
                    ),
                    {"uid": user_id, "tid": review_id},
                )
            db.execute(
                text(
                    "INSERT INTO comments (user_id, target_type, target_id, content) "
                    "VALUES (:uid, 'memory', :tid, :content)"
                ),
                {"uid": user_id, "tid": random.choice(memory_ids), "content": "Pareil pour moi !"},
            )
            for other in random.sample([u for u in user_ids if u != user_id], 2):
                db.execute(
                    text(
                        "INSERT INTO follows (follower_id, following_id) "
                        "VALUES (:fid, :uid) ON CONFLICT DO NOTHING"
                    ),
                    {"fid": user_id, "uid": other},
                )
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    print("\n🎉 Database seeding complete!")


if __name__ == "__main__":
    seed()
