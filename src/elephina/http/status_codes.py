"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes an Elephina API actually emits, with their reason phrases.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK            - Success envelope                      │
    │        │ 201 Created       - Success envelope after a POST         │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ 400 Bad Request   - Malformed input (bad id, no data)     │
    │        │ 401 Unauthorized  - Rejected by AuthMiddleware            │
    │        │ 404 Not Found     - No route / no record                  │
    │        │ 405 Method Not Allowed - Path exists under another verb   │
    │        │ 409 Conflict      - Duplicate resource (e-mail in use)    │
    │        │ 413 Payload Too Large - Request exceeds the size limit    │
    │        │ 422 Unprocessable Entity - Field validation failed        │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ 500 Internal Server Error - Configuration or collaborator │
    │        │ 503 Service Unavailable   - Worker pool saturated         │
    │        │ 505 HTTP Version Not Supported                            │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    PAYLOAD_TOO_LARGE = 413
    UNPROCESSABLE_ENTITY = 422

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line:

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      └── phrase
                      └───────── status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        """True for 2xx codes."""
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        """True for 4xx codes."""
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        """True for 5xx codes."""
        return 500 <= self < 600


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.UNAUTHORIZED: "Unauthorized",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.CONFLICT: "Conflict",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.UNPROCESSABLE_ENTITY: "Unprocessable Entity",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


def reason_phrase(status: int) -> str:
    """
    Reason phrase for any integer status.

    Handlers may pass codes outside the enum (e.g. 418); those get a
    generic phrase instead of raising.
    """
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"
