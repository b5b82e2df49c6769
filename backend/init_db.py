"""
Initialize database and optionally create a first user.

Run this script once to set up the database:
    python init_db.py [username email password]
"""

import sys

from shortlink.config import settings
from shortlink.core.security import get_password_hash
from shortlink.database import Database
from shortlink.models import User


def init_database(url: str = None) -> Database:
    """Create all database tables"""
    print("Creating database tables...")
    database = Database(url or settings.DATABASE_URL, timeout=settings.STORE_TIMEOUT_SECONDS).open()
    print("Database tables created successfully!")
    return database


def create_user(database: Database, username: str, email: str, password: str) -> bool:
    """Create a user unless one with that username already exists"""
    with database.session() as db:
        if db.query(User).filter(User.username == username).first():
            print(f"User '{username}' already exists. Skipping.")
            return False

        db.add(User(
            username=username,
            email=email.lower(),
            hashed_password=get_password_hash(password),
            is_active=True
        ))
        db.commit()

    print(f"User '{username}' created successfully!")
    return True


if __name__ == "__main__":
    print("=" * 50)
    print("Short Links - Database Initialization")
    print("=" * 50)

    database = init_database()
    try:
        if len(sys.argv) == 4:
            create_user(database, *sys.argv[1:4])
    finally:
        database.close()

    print("\nDatabase initialization complete!")
    print("\nYou can now start the server with:")
    print("    uvicorn shortlink.main:app --reload")
