"""
Unit tests for the SQLite wrapper and models.
"""

import sqlite3
import threading

import pytest

from elephina.storage import Database, ModelError, UserModel, connect, ensure_schema, public_user
from elephina.storage.model import Model


@pytest.fixture
def db():
    database = connect(":memory:")
    ensure_schema(database)
    yield database
    database.close()


@pytest.fixture
def users(db) -> UserModel:
    return UserModel(db)


def new_user(users: UserModel, n: int = 1) -> int:
    return users.create({"username": f"user{n}", "email": f"user{n}@example.com", "password": "hash"})


class TestDatabase:
    """Tests for Database."""

    def test_rows_are_dicts(self, db):
        db.execute("INSERT INTO users (username, email, password) VALUES (?, ?, ?)", ("a", "a@x.io", "h"))
        row = db.fetch_one("SELECT username, email FROM users")
        assert row == {"username": "a", "email": "a@x.io"}
        assert db.fetch_one("SELECT * FROM users WHERE userId = ?", (999,)) is None

    def test_schema_is_idempotent(self, db):
        ensure_schema(db)
        assert db.fetch_all("SELECT * FROM users") == []

    def test_errors_propagate(self, db):
        with pytest.raises(sqlite3.Error):
            db.fetch_all("SELECT * FROM missing_table")

    def test_shared_across_threads(self, db, users):
        errors = []

        def worker(n):
            try:
                new_user(users, n)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(users.all()) == 10

    def test_wraps_connection(self):
        database = connect(":memory:")
        assert isinstance(database, Database)
        assert isinstance(database.connection, sqlite3.Connection)
        database.close()


class TestModel:
    """Tests for Model / UserModel."""

    def test_create_and_find(self, users):
        user_id = new_user(users)
        user = users.find(user_id)

        assert user["userId"] == user_id
        assert user["username"] == "user1"
        assert user["created_at"]

    def test_all_ordered_by_primary_key(self, users):
        ids = [new_user(users, n) for n in range(3)]
        assert [user["userId"] for user in users.all()] == ids

    def test_update(self, users):
        user_id = new_user(users)
        assert users.update(user_id, {"username": "renamed"})
        assert users.find(user_id)["username"] == "renamed"
        assert users.update(999, {"username": "ghost"}) is False

    def test_delete(self, users):
        user_id = new_user(users)
        assert users.delete(user_id)
        assert users.find(user_id) is None
        assert users.delete(user_id) is False

    def test_unknown_column_rejected(self, users):
        with pytest.raises(ModelError, match="is_admin"):
            users.create({"username": "x", "email": "x@x.io", "password": "h", "is_admin": 1})

    def test_empty_write_rejected(self, users):
        with pytest.raises(ModelError):
            users.create({})
        with pytest.raises(ModelError):
            users.update(1, {})

    def test_unique_email(self, users):
        new_user(users)
        with pytest.raises(sqlite3.IntegrityError):
            new_user(users)

    def test_find_by_email(self, users):
        user_id = new_user(users, 5)
        assert users.find_by_email("user5@example.com")["userId"] == user_id
        assert users.find_by_email("nobody@example.com") is None

    def test_query_and_execute(self, users):
        new_user(users, 1)
        new_user(users, 2)
        rows = users.query("SELECT username FROM users WHERE username LIKE ?", ("user%",))
        assert len(rows) == 2
        assert users.execute("DELETE FROM users WHERE username = ?", ("user1",)) == 1

    def test_model_needs_table(self, db):
        class Nameless(Model):
            pass

        with pytest.raises(ModelError):
            Nameless(db)

    def test_public_user(self):
        assert public_user({"userId": 1, "password": "hash"}) == {"userId": 1}
        assert public_user(None) is None
