"""
Login, registration and logout.

Tokens are stateless HS256 tokens; logging out is the client dropping its
token, so logout only acknowledges.
"""

import logging

from ..config import AppConfig
from ..http.request import RequestContext
from ..http.response import ResponseBuilder
from ..http.status_codes import HTTPStatus
from ..security.passwords import verify_password
from ..security.tokens import encode_token
from ..storage.users import UserModel, public_user
from .base import Controller, database_errors
from .users import CREATE_RULES, EMAIL_TAKEN, create_user


logger = logging.getLogger(__name__)

LOGIN_RULES = {
    "email": "required|email",
    "password": "required",
}


class AuthController(Controller):
    def __init__(self, users: UserModel, config: AppConfig):
        self.users = users
        self.config = config

    @database_errors("Error while logging in.")
    def login(self, ctx: RequestContext, response: ResponseBuilder) -> None:
        data = ctx.body
        if not self.validate(data, LOGIN_RULES, response):
            return

        user = self.users.find_by_email(data["email"])
        if user is None or not verify_password(str(data["password"]), user["password"]):
            logger.warning(f"Failed login attempt for {data['email']}")
            response.error("Invalid credentials.", HTTPStatus.UNAUTHORIZED).send()
            return

        expires_in = int(self.config.jwt_expiration)
        token = encode_token(
            {"user_id": user["userId"], "email": user["email"]},
            self.config.jwt_secret,
            ttl=expires_in,
        )
        logger.info(f"Successful login for user {user['userId']}")

        response.success(
            {"user": public_user(user), "token": token, "expires_in": expires_in},
            "Login successful.",
        ).send()

    @database_errors("Error while registering.")
    def register(self, ctx: RequestContext, response: ResponseBuilder) -> None:
        data = ctx.body
        if not self.validate(data, CREATE_RULES, response):
            return

        user = create_user(self.users, data)
        if user is None:
            response.error(EMAIL_TAKEN, HTTPStatus.CONFLICT).send()
            return

        response.success(user, "Registration successful.", HTTPStatus.CREATED).send()

    def logout(self, ctx: RequestContext, response: ResponseBuilder) -> None:
        logger.info(f"Logout from {ctx.client_address[0] or 'unknown client'}")
        response.success([], "Logout successful.").send()
