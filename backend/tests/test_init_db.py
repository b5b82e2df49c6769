"""Tests for the database initialization script."""

from init_db import create_user, init_database
from shortlink.models import User


def test_init_and_create_user(tmp_path):
    database = init_database(f"sqlite:///{tmp_path / 'init.db'}")
    try:
        assert create_user(database, "admin", "Admin@Company.org", "change-me-now") is True
        assert create_user(database, "admin", "admin@company.org", "change-me-now") is False

        with database.session() as db:
            [user] = db.query(User).all()
            assert user.email == "admin@company.org"
    finally:
        database.close()
