"""Controllers for the bundled API: home, users and authentication."""

from .auth import AuthController
from .base import Controller, database_errors
from .home import HomeController
from .users import UserController

__all__ = [
    "Controller",
    "database_errors",
    "HomeController",
    "UserController",
    "AuthController",
]
