"""
=============================================================================
USER RESOURCE
=============================================================================

    GET    /users        get_all    [AuthMiddleware]
    GET    /users/:id    get_one    [AuthMiddleware]
    POST   /users        add_new
    PUT    /users/:id    update     [AuthMiddleware]
    DELETE /users/:id    destroy    [AuthMiddleware]

Password hashes never leave this module.

=============================================================================
"""

from typing import Any, Dict, Optional
import logging
import sqlite3

from ..http.request import RequestContext
from ..http.response import ResponseBuilder
from ..http.status_codes import HTTPStatus
from ..security.passwords import hash_password
from ..storage.users import UserModel, public_user
from .base import Controller, database_errors


logger = logging.getLogger(__name__)

CREATE_RULES = {
    "username": "required|alphanumeric|min:3|max:50",
    "email": "required|email|max:255",
    "password": "required|min:6",
}

# Only the fields a request actually sends are checked on update.
UPDATE_RULES = {
    "username": "alphanumeric|min:3|max:50",
    "email": "email|max:255",
    "password": "min:6",
}

EMAIL_TAKEN = "This email address is already in use."
USER_NOT_FOUND = "User not found."


def create_user(users: UserModel, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Insert a validated user and return it without the password.

    Returns None when the email is already taken.
    """
    if users.find_by_email(data["email"]):
        return None
    try:
        user_id = users.create({
            "username": data["username"],
            "email": data["email"],
            "password": hash_password(str(data["password"])),
        })
    except sqlite3.IntegrityError:
        # lost a race with a concurrent insert of the same email
        return None
    logger.info(f"Created user {user_id}")
    return public_user(users.find(user_id))


class UserController(Controller):
    def __init__(self, users: UserModel):
        self.users = users

    @database_errors("Error while retrieving users.")
    def get_all(self, ctx: RequestContext, response: ResponseBuilder) -> None:
        users = [public_user(user) for user in self.users.all()]
        response.success(users, "Users retrieved successfully.").send()

    @database_errors("Error while retrieving the user.")
    def get_one(self, ctx: RequestContext, response: ResponseBuilder) -> None:
        user_id = self.record_id(ctx, response)
        if user_id is None:
            return

        user = self.users.find(user_id)
        if user is None:
            response.error(USER_NOT_FOUND, HTTPStatus.NOT_FOUND).send()
            return

        response.success(public_user(user), "User retrieved successfully.").send()

    @database_errors("Error while creating the user.")
    def add_new(self, ctx: RequestContext, response: ResponseBuilder) -> None:
        data = ctx.body
        if not self.validate(data, CREATE_RULES, response):
            return

        user = create_user(self.users, data)
        if user is None:
            response.error(EMAIL_TAKEN, HTTPStatus.CONFLICT).send()
            return

        response.success(user, "User created successfully.", HTTPStatus.CREATED).send()

    @database_errors("Error while updating the user.")
    def update(self, ctx: RequestContext, response: ResponseBuilder) -> None:
        user_id = self.record_id(ctx, response)
        if user_id is None:
            return

        data = {name: ctx.body[name] for name in UserModel.fillable if name in ctx.body}
        if not data:
            response.error("No data provided for update.", HTTPStatus.BAD_REQUEST).send()
            return

        rules = {name: rule for name, rule in UPDATE_RULES.items() if name in data}
        if not self.validate(data, rules, response):
            return

        existing = self.users.find(user_id)
        if existing is None:
            response.error(USER_NOT_FOUND, HTTPStatus.NOT_FOUND).send()
            return

        if "email" in data and data["email"] != existing["email"]:
            if self.users.find_by_email(data["email"]):
                response.error(
                    "This email address is already used by another account.", HTTPStatus.CONFLICT
                ).send()
                return

        if "password" in data:
            data["password"] = hash_password(str(data["password"]))

        if not self.users.update(user_id, data):
            response.error("No changes applied.", HTTPStatus.BAD_REQUEST).send()
            return

        logger.info(f"Updated user {user_id}: {', '.join(sorted(data))}")
        response.success(public_user(self.users.find(user_id)), "User updated successfully.").send()

    @database_errors("Error while deleting the user.")
    def destroy(self, ctx: RequestContext, response: ResponseBuilder) -> None:
        user_id = self.record_id(ctx, response)
        if user_id is None:
            return

        if self.users.find(user_id) is None:
            response.error(USER_NOT_FOUND, HTTPStatus.NOT_FOUND).send()
            return

        if not self.users.delete(user_id):
            response.error("Failed to delete the user.", HTTPStatus.INTERNAL_SERVER_ERROR).send()
            return

        logger.info(f"Deleted user {user_id}")
        response.success([], "User deleted successfully.").send()
