"""The users table."""

from typing import Any, Dict, Optional

from .model import Model


class UserModel(Model):
    table = "users"
    primary_key = "userId"
    fillable = ("username", "email", "password")

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.db.fetch_one(f"SELECT * FROM {self.table} WHERE email = ?", (email,))


def public_user(user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """A user row without its password hash."""
    if user is None:
        return None
    return {key: value for key, value in user.items() if key != "password"}
