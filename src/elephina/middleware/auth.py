"""
=============================================================================
BEARER TOKEN AUTHENTICATION
=============================================================================

    Authorization: Bearer eyJhbGciOi...
                   ──┬─── ─────┬─────
                  scheme     token

    ┌──────────────────────────────────────┬──────────────────────────────┐
    │ Request                              │ Outcome                      │
    ├──────────────────────────────────────┼──────────────────────────────┤
    │ no Authorization header              │ 401, chain stops             │
    │ scheme is not "bearer" (any case)    │ 401, chain stops             │
    │ empty token                          │ 401, chain stops             │
    │ validator(token, secret) is False    │ 401, chain stops             │
    │ validator raises                     │ 401, chain stops             │
    │ validator(token, secret) is True     │ response untouched, continue │
    └──────────────────────────────────────┴──────────────────────────────┘

The validator is pluggable; the default verifies HS256 tokens issued by
AuthController.login. Tokens never appear in logs beyond a short preview.

=============================================================================
"""

from typing import Callable
import logging

from ..http.request import RequestContext
from ..http.response import ResponseBuilder
from ..http.status_codes import HTTPStatus
from ..security.tokens import validate_token
from .base import Middleware


logger = logging.getLogger(__name__)

TokenValidator = Callable[[str, str], bool]


def _preview(token: str) -> str:
    return token[:10] + "..."


class AuthMiddleware(Middleware):
    """
    Rejects requests without a valid bearer token.

    Args:
        secret: Signing secret handed to the validator.
        validator: (token, secret) -> bool
    """

    def __init__(self, secret: str, validator: TokenValidator = validate_token):
        self._secret = secret
        self._validator = validator

    def handle(self, ctx: RequestContext, response: ResponseBuilder) -> None:
        header = ctx.get_header("Authorization")

        if not header:
            logger.warning(f"Missing Authorization header for {ctx.method} {ctx.path}")
            response.error("Unauthorized: authentication token missing.", HTTPStatus.UNAUTHORIZED)
            return

        scheme, _, token = header.strip().partition(" ")
        token = token.strip()

        if scheme.lower() != "bearer" or not token:
            logger.warning(f"Invalid Authorization format for {ctx.method} {ctx.path}")
            response.error("Unauthorized: invalid token format.", HTTPStatus.UNAUTHORIZED)
            return

        try:
            valid = self._validator(token, self._secret)
        except Exception as e:
            logger.error(f"Token validation error ({_preview(token)}): {e}")
            response.error("Unauthorized: invalid or expired token.", HTTPStatus.UNAUTHORIZED)
            return

        if not valid:
            logger.warning(f"Invalid or expired token ({_preview(token)}) for {ctx.method} {ctx.path}")
            response.error("Unauthorized: invalid or expired token.", HTTPStatus.UNAUTHORIZED)
            return

        logger.info(f"Authenticated {ctx.method} {ctx.path}")
