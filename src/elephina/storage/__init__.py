"""SQLite persistence: connection, schema and table models."""

from .database import Database, connect, ensure_schema
from .model import Model, ModelError
from .users import UserModel, public_user

__all__ = [
    "Database",
    "connect",
    "ensure_schema",
    "Model",
    "ModelError",
    "UserModel",
    "public_user",
]
