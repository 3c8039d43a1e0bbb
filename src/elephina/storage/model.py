"""
=============================================================================
ACTIVE-RECORD STYLE MODELS
=============================================================================

A Model is a table accessor: subclasses name the table, the primary key
and the columns callers may write.

    class UserModel(Model):
        table = "users"
        primary_key = "userId"
        fillable = ("username", "email", "password")

    users = UserModel(db)
    user_id = users.create({"username": "ana", "email": "a@x.io", "password": h})
    users.find(user_id)        → {"userId": 1, "username": "ana", ...}
    users.update(user_id, {"username": "anna"})   → True
    users.delete(user_id)      → True

Column names are interpolated into SQL, so every key written through
create()/update() must be listed in fillable; values always go through
placeholders.

=============================================================================
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from .database import Database, Params


class ModelError(ValueError):
    """A model was asked to write nothing, or to write an unknown column."""


class Model:
    table: str = ""
    primary_key: str = "id"
    fillable: Tuple[str, ...] = ()

    def __init__(self, db: Database):
        if not self.table:
            raise ModelError(f"{type(self).__name__} does not name a table")
        self.db = db

    def _columns(self, data: Mapping[str, Any], action: str) -> List[str]:
        if not data:
            raise ModelError(f"No data provided for {action}.")
        unknown = sorted(set(data) - set(self.fillable))
        if unknown:
            raise ModelError(f"Unknown columns for {self.table}: {', '.join(unknown)}")
        return list(data)

    def all(self) -> List[Dict[str, Any]]:
        return self.db.fetch_all(f"SELECT * FROM {self.table} ORDER BY {self.primary_key}")

    def find(self, record_id: Any) -> Optional[Dict[str, Any]]:
        return self.db.fetch_one(
            f"SELECT * FROM {self.table} WHERE {self.primary_key} = ?", (record_id,)
        )

    def create(self, data: Mapping[str, Any]) -> int:
        """Insert a row and return its primary key."""
        columns = self._columns(data, "creation")
        placeholders = ", ".join("?" for _ in columns)
        cur = self.db.execute(
            f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({placeholders})",
            [data[c] for c in columns],
        )
        return int(cur.lastrowid)

    def update(self, record_id: Any, data: Mapping[str, Any]) -> bool:
        """True when a row was updated."""
        columns = self._columns(data, "update")
        assignments = ", ".join(f"{c} = ?" for c in columns)
        cur = self.db.execute(
            f"UPDATE {self.table} SET {assignments} WHERE {self.primary_key} = ?",
            [data[c] for c in columns] + [record_id],
        )
        return cur.rowcount > 0

    def delete(self, record_id: Any) -> bool:
        cur = self.db.execute(
            f"DELETE FROM {self.table} WHERE {self.primary_key} = ?", (record_id,)
        )
        return cur.rowcount > 0

    def query(self, sql: str, params: Optional[Params] = None) -> List[Dict[str, Any]]:
        """Run a SELECT and return every row as a dict."""
        return self.db.fetch_all(sql, params)

    def execute(self, sql: str, params: Optional[Params] = None) -> int:
        """Run a write statement and return the affected row count."""
        return self.db.execute(sql, params).rowcount
