"""
Promote an existing account to the admin role.

Usage:
    python create_admin.py <email>
"""

import sys

from sqlalchemy import text

from database import SessionLocal


def promote(email: str) -> bool:
    db = SessionLocal()
    try:
        row = db.execute(
            text("UPDATE users SET role = 'admin' WHERE email = :email RETURNING id, username"),
            {"email": email},
        ).first()
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    if not row:
        print(f"No user with email {email}.")
        return False
    print(f"User {row.id} ({row.username}) is now an admin.")
    return True


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    sys.exit(0 if promote(sys.argv[1]) else 1)
