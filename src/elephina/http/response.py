"""
=============================================================================
RESPONSE BUILDER
=============================================================================

Every handler and middleware writes into a ResponseBuilder; the Dispatcher
(or the handler itself) sends it once.

=============================================================================
ENVELOPES
=============================================================================

    success(data, message, status)          error(message, status, validation)

    HTTP/1.1 201 Created                    HTTP/1.1 422 Unprocessable Entity
    Content-Type: application/json          Content-Type: application/json

    {                                       {
      "data": {"userId": 7, ...},             "error": "Validation failed",
      "message": "User created"               "validation": {
    }                                             "email": ["The email ..."]
                                              }
                                            }

"validation" only appears when there is something in it.

=============================================================================
LIFECYCLE
=============================================================================

    ┌────────┐  success()/error()  ┌───────────┐    send()    ┌──────┐
    │  OPEN  │ ──────────────────► │ FINALIZED │ ───────────► │ SENT │
    └────────┘                     └───────────┘              └──────┘
        │                               │                         │
        │ set_status / set_header ok    │ second write            │ any mutation
        │                               ▼                         ▼
        │                     ResponseAlreadyFinalized    ResponseAlreadySent
        │
        │ send() while OPEN → ResponseNotFinalized

A finalized builder is also how middleware says "stop here": the chain
checks is_finalized after each member.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import json

from ..errors import ResponseAlreadyFinalized, ResponseAlreadySent, ResponseNotFinalized
from .status_codes import HTTPStatus, reason_phrase


DEFAULT_SERVER_NAME = "Elephina/1.0"
JSON_CONTENT_TYPE = "application/json"


@dataclass
class HTTPResponse:
    """
    A response ready for the wire.

        HTTPResponse(status=200, headers={...}, body=b'{"data": ...}')
            │
            │ to_bytes()
            ▼
        b"HTTP/1.1 200 OK\\r\\nContent-Type: ...\\r\\n\\r\\n{...}"
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {reason_phrase(int(self.status))}"

    @property
    def json(self) -> Any:
        """The body decoded as JSON (None when empty)."""
        if not self.body:
            return None
        return json.loads(self.body.decode("utf-8"))

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize for socket.sendall().

        Content-Length, Date and Server are added when missing.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Collects status, headers and exactly one JSON payload for a request.

    Usage in a handler:

        def show(ctx, response):
            response.success({"id": ctx.param("id")}, "User retrieved").send()

    Usage in a middleware (short-circuit):

        def handle(self, ctx, response):
            if not ctx.get_header("Authorization"):
                response.error("Authorization header missing", 401)

    Args:
        server_name: Value for the Server header.
        transport: Optional callable receiving the HTTPResponse on send().
        headers: Headers every response from this builder carries; kept by
            blank_copy().
    """

    def __init__(
        self,
        server_name: str = DEFAULT_SERVER_NAME,
        transport: Optional[Callable[[HTTPResponse], Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self._status = int(HTTPStatus.OK)
        self._base_headers = {name: str(value) for name, value in (headers or {}).items()}
        self._headers: Dict[str, str] = {"Content-Type": JSON_CONTENT_TYPE, **self._base_headers}
        self._payload: Optional[Dict[str, Any]] = None
        self._server_name = server_name
        self._transport = transport
        self._sent: Optional[HTTPResponse] = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def status(self) -> int:
        return self._status

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    @property
    def payload(self) -> Optional[Dict[str, Any]]:
        return self._payload

    @property
    def is_finalized(self) -> bool:
        """True once success() or error() has written the payload."""
        return self._payload is not None

    @property
    def is_sent(self) -> bool:
        return self._sent is not None

    @property
    def sent_response(self) -> Optional[HTTPResponse]:
        """The HTTPResponse produced by send(), if it happened."""
        return self._sent

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._sent is not None:
            raise ResponseAlreadySent("Response has already been sent")

    def set_status(self, status: int) -> "ResponseBuilder":
        self._ensure_open()
        self._status = int(status)
        return self

    def set_header(self, name: str, value: str) -> "ResponseBuilder":
        self._ensure_open()
        self._headers[name] = str(value)
        return self

    def _write(self, payload: Dict[str, Any], status: int) -> "ResponseBuilder":
        self._ensure_open()
        if self._payload is not None:
            raise ResponseAlreadyFinalized(
                f"Response payload was already written with status {self._status}"
            )
        self._status = int(status)
        self._payload = payload
        return self

    def success(
        self,
        data: Any = None,
        message: str = "Operation successful",
        status: int = HTTPStatus.OK,
    ) -> "ResponseBuilder":
        """Write the success envelope {"data", "message"}."""
        return self._write({"data": data, "message": message}, status)

    def error(
        self,
        message: str,
        status: int = HTTPStatus.BAD_REQUEST,
        validation: Optional[Dict[str, List[str]]] = None,
    ) -> "ResponseBuilder":
        """Write the error envelope {"error"} (+ "validation" when non-empty)."""
        payload: Dict[str, Any] = {"error": message}
        if validation:
            payload["validation"] = validation
        return self._write(payload, status)

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def build(self) -> HTTPResponse:
        """Serialize the payload into an HTTPResponse without sending it."""
        if self._payload is None:
            raise ResponseNotFinalized("Response has no payload; call success() or error() first")
        body = json.dumps(self._payload, ensure_ascii=False, default=str).encode("utf-8")
        return HTTPResponse(status=self._status, headers=dict(self._headers), body=body)

    def send(self) -> HTTPResponse:
        """
        Build the response, hand it to the transport and mark it sent.

        Raises:
            ResponseNotFinalized: Nothing was written yet.
            ResponseAlreadySent: send() already happened.
        """
        self._ensure_open()
        response = self.build()
        if self._transport is not None:
            self._transport(response)
        self._sent = response
        return response

    def blank_copy(self) -> "ResponseBuilder":
        """A new, empty builder with the same server name, transport and base headers."""
        return ResponseBuilder(
            server_name=self._server_name,
            transport=self._transport,
            headers=self._base_headers,
        )

    def to_bytes(self) -> bytes:
        """The sent (or, failing that, built) response serialized for the socket."""
        response = self._sent if self._sent is not None else self.build()
        return response.to_bytes(self._server_name)

    def __repr__(self) -> str:
        state = "sent" if self.is_sent else "finalized" if self.is_finalized else "open"
        return f"ResponseBuilder(status={self._status}, {state})"


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an HTTP-date (RFC 7231).

    Example: Thu, 01 Jan 2026 12:00:00 GMT
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def error_response(
    message: str,
    status: int = HTTPStatus.BAD_REQUEST,
    headers: Optional[Dict[str, str]] = None,
) -> HTTPResponse:
    """
    A ready-made error envelope outside any dispatch.

    Used by the transport for requests that never become a RequestContext
    (parse failures, overload).
    """
    builder = ResponseBuilder().error(message, status)
    for name, value in (headers or {}).items():
        builder.set_header(name, value)
    return builder.build()
