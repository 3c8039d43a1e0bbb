"""
=============================================================================
REQUEST CONTEXT AND PARSER
=============================================================================

Turns raw HTTP/1.1 bytes into a RequestContext: the read-only view of one
inbound request that every middleware and handler receives.

=============================================================================
FROM BYTES TO CONTEXT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   POST /users?notify=1 HTTP/1.1\r\n         ─┐                      │
    │   Host: api.example.com\r\n                  │  header section      │
    │   Content-Type: application/json\r\n         │                      │
    │   Content-Length: 52\r\n                     │                      │
    │   \r\n                                      ─┘                      │
    │   {"username":"ana","email":"a@x.io",...}   ── body                 │
    │                                                                      │
    │                          │ RequestParser.parse()                    │
    │                          ▼                                          │
    │                                                                      │
    │   RequestContext                                                    │
    │     method       = "POST"                                           │
    │     path         = "/users"            (normalized)                 │
    │     headers      = {"host": ..., "content-type": ..., ...}          │
    │     query_params = {"notify": ["1"]}                                │
    │     body         = {"username": "ana", "email": "a@x.io", ...}      │
    │     path_params  = {}                  (attached after a match)     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BODY NEGOTIATION
=============================================================================

Only POST, PUT and PATCH carry a parsed body:

    Content-Type                          body
    ───────────────────────────────────   ──────────────────────────────
    application/json (object)             the decoded object
    application/json (array, scalar)      {}  (logged)
    application/json (invalid)            {}  (logged)
    application/x-www-form-urlencoded     first value per key
    anything else / missing               {}

The raw bytes stay available as raw_body.

=============================================================================
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterator, List, Optional, Tuple
from urllib.parse import parse_qs, unquote
import json
import logging
import re

from .routing import normalize_path


logger = logging.getLogger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class HTTPParseError(Exception):
    """
    Raised when a raw request cannot be parsed.

    Carries the status the transport should answer with:

        400 Bad Request                 - Malformed request syntax
        405 Method Not Allowed          - Unknown method
        413 Payload Too Large           - Request exceeds size limit
        505 HTTP Version Not Supported  - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# HEADERS
# =============================================================================

class Headers(Mapping):
    """
    Read-only, case-insensitive header mapping.

    Names are stored lower-cased, so lookups in any case agree:

        headers = Headers({"Content-Type": "application/json"})
        headers["content-type"] == headers["CONTENT-TYPE"]
    """

    def __init__(self, items: Optional[Any] = None):
        self._items: Dict[str, str] = {}
        if items:
            pairs = items.items() if hasattr(items, "items") else items
            for name, value in pairs:
                key = str(name).lower()
                if key in self._items:
                    self._items[key] += ", " + str(value)
                else:
                    self._items[key] = str(value)

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._items.get(name.lower(), default)

    def __repr__(self) -> str:
        return f"Headers({self._items!r})"


# =============================================================================
# BODY PARSING
# =============================================================================

def parse_body(method: str, content_type: str, raw: bytes) -> Dict[str, Any]:
    """
    Decode a request body according to method and Content-Type.

    Never raises: an undecodable body is logged and treated as empty.
    """
    if method.upper() not in BODY_METHODS or not raw:
        return {}

    media_type = (content_type or "").split(";")[0].strip().lower()

    if media_type == "application/json":
        try:
            decoded = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Invalid JSON body: {e}")
            return {}
        if not isinstance(decoded, dict):
            logger.warning(f"JSON body is a {type(decoded).__name__}, expected an object")
            return {}
        return decoded

    if media_type == "application/x-www-form-urlencoded":
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning(f"Invalid form body: {e}")
            return {}
        return {key: values[0] for key, values in parse_qs(text, keep_blank_values=True).items()}

    return {}


# =============================================================================
# REQUEST CONTEXT
# =============================================================================

class RequestContext:
    """
    One inbound request, as handlers and middleware see it.

    =========================================================================
    LIFECYCLE
    =========================================================================

        RequestParser ──► RequestContext ──► Dispatcher.resolve()
                               │                    │
                               │◄── attach_path_params(params)   (once)
                               │
                               ├──► middleware.handle(ctx, response)
                               └──► handler(ctx, response)

    Everything except path_params is fixed at construction. Path parameters
    are attached exactly once, after the route matched; attaching again is
    a programming error and raises RuntimeError.

    =========================================================================
    """

    def __init__(
        self,
        method: str,
        path: str,
        headers: Optional[Any] = None,
        body: Optional[Dict[str, Any]] = None,
        query_params: Optional[Dict[str, List[str]]] = None,
        raw_body: bytes = b"",
        version: str = "HTTP/1.1",
        client_address: Tuple[str, int] = ("", 0),
    ):
        self._method = method.upper()
        self._path = normalize_path(path)
        self._headers = headers if isinstance(headers, Headers) else Headers(headers)
        self._raw_body = raw_body
        if body is None:
            body = parse_body(self._method, self._headers.get("content-type", ""), raw_body)
        self._body = dict(body)
        self._query_params = {k: list(v) for k, v in (query_params or {}).items()}
        self._version = version
        self._client_address = client_address
        self._path_params: Dict[str, str] = {}
        self._params_attached = False

    @property
    def method(self) -> str:
        return self._method

    @property
    def path(self) -> str:
        return self._path

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def body(self) -> Dict[str, Any]:
        return self._body

    @property
    def raw_body(self) -> bytes:
        return self._raw_body

    @property
    def query_params(self) -> Dict[str, List[str]]:
        return self._query_params

    @property
    def path_params(self) -> Dict[str, str]:
        return dict(self._path_params)

    @property
    def version(self) -> str:
        return self._version

    @property
    def client_address(self) -> Tuple[str, int]:
        return self._client_address

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters, e.g. "application/json"."""
        ct = self._headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    def attach_path_params(self, params: Dict[str, str]) -> None:
        """
        Record the parameters captured by the matched route.

        Raises:
            RuntimeError: If parameters were already attached.
        """
        if self._params_attached:
            raise RuntimeError("Path parameters are already attached to this request")
        self._path_params = dict(params)
        self._params_attached = True

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Header value by name, any case."""
        return self._headers.get(name, default)

    def param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """A captured path parameter, e.g. ctx.param("id")."""
        return self._path_params.get(name, default)

    def query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        values = self._query_params.get(name, [])
        return values[0] if values else default

    def input(self, name: str, default: Any = None) -> Any:
        """A body field, falling back to the query string."""
        if name in self._body:
            return self._body[name]
        return self.query(name, default)

    def __repr__(self) -> str:
        return f"RequestContext({self._method} {self._path})"


# =============================================================================
# PARSER
# =============================================================================

class RequestParser:
    """
    Parses raw HTTP/1.1 request bytes into a RequestContext.

        1. Check size limit                              → 413
        2. Split header section and body at \\r\\n\\r\\n     → 400 if missing
        3. Parse request line: METHOD SP URI SP VERSION  → 400 / 405 / 505
        4. Parse headers (lower-cased, duplicates joined)
        5. Cut the body to Content-Length                → 400 if short
    """

    VALID_METHODS = {
        "GET",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "HEAD",
        "OPTIONS",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> RequestContext:
        """
        Parse raw request bytes.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length: {headers.get('content-length')}")
        if content_length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {content_length}")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )
        body = body[:content_length]

        return RequestContext(
            method=method,
            path=path,
            headers=headers,
            query_params=query_params,
            raw_body=body,
            version=version,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, Dict[str, List[str]], str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        # origin-form target: a leading "//" is part of the path, not a netloc
        target = uri.split("#", 1)[0]
        raw_path, _, query = target.partition("?")
        path = unquote(raw_path) or "/"
        query_params = parse_qs(query, keep_blank_values=True)

        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..", status_code=400)
        if "?" in path or "#" in path:
            raise HTTPParseError("Invalid path: encoded ? or #", status_code=400)

        return method, path, query_params, version

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            # obs-fold: continuation of the previous header
            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> RequestContext:
    """Parse one request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
