"""
=============================================================================
CONTROLLER BASE
=============================================================================

Controllers group related handlers. Routes refer to them as
"Controller@method"; the HandlerRegistry builds a fresh controller per
request and calls the method with (ctx, response).

    class UserController(Controller):
        @database_errors("Error while retrieving users.")
        def get_all(self, ctx, response):
            response.success(self.users.all(), "Users retrieved successfully.").send()

Every action finalizes and sends its own response.

=============================================================================
"""

from functools import wraps
from typing import Any, Callable, Dict, Mapping, Optional
import logging
import sqlite3

from ..http.request import RequestContext
from ..http.response import ResponseBuilder
from ..http.status_codes import HTTPStatus
from ..validation import Validator


logger = logging.getLogger(__name__)

VALIDATION_FAILED = "Validation failed."
INVALID_ID = "User ID must be a valid number."
# largest SQLite INTEGER
MAX_RECORD_ID = 2**63 - 1


def database_errors(message: str) -> Callable:
    """
    Turn sqlite3.Error raised by an action into a 500 with `message`.

    The database error itself is logged, never sent.
    """

    def decorator(action: Callable) -> Callable:
        @wraps(action)
        def wrapper(self, ctx: RequestContext, response: ResponseBuilder) -> None:
            try:
                action(self, ctx, response)
            except sqlite3.Error as e:
                logger.error(f"Database error in {type(self).__name__}.{action.__name__}: {e}")
                if not response.is_finalized:
                    response.error(message, HTTPStatus.INTERNAL_SERVER_ERROR).send()

        return wrapper

    return decorator


class Controller:
    """Shared helpers for controller actions."""

    def validate(
        self,
        data: Mapping[str, Any],
        rules: Dict[str, str],
        response: ResponseBuilder,
    ) -> bool:
        """Validate and, on failure, send 422 with the per-field messages."""
        validator = Validator()
        if validator.validate(data, rules):
            return True
        response.error(VALIDATION_FAILED, HTTPStatus.UNPROCESSABLE_ENTITY, validator.errors()).send()
        return False

    def record_id(self, ctx: RequestContext, response: ResponseBuilder, name: str = "id") -> Optional[int]:
        """The numeric path parameter `name`, or None after sending 400."""
        value = ctx.param(name, "")
        if not (value.isascii() and value.isdigit()) or int(value) > MAX_RECORD_ID:
            response.error(INVALID_ID, HTTPStatus.BAD_REQUEST).send()
            return None
        return int(value)
