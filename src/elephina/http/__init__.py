"""
=============================================================================
HTTP PROTOCOL TYPES
=============================================================================

The request/response abstraction and the routing primitives everything
else in Elephina is built on.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST (request.py)                                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ RequestParser: raw bytes → RequestContext                           │
    │ RequestContext: method, path, headers, body, query, path params     │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE (response.py)                                              │
    │ ─────────────────────────────────────────────────────────────────── │
    │ ResponseBuilder: success()/error() envelopes, written once, sent    │
    │ once. HTTPResponse: the wire form.                                  │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ ROUTING (routing.py)                                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ normalize_path, RoutePattern (":id" templates), RouteTable          │
    │ (per-method lists, first match wins)                                │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ STATUS CODES (status_codes.py)                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import Headers, HTTPParseError, RequestContext, RequestParser, parse_request
from .response import HTTPResponse, ResponseBuilder, error_response
from .routing import (
    HTTPMethod,
    Route,
    RouteMatch,
    RoutePattern,
    RoutePatternError,
    RouteTable,
    normalize_path,
)
from .status_codes import HTTPStatus

__all__ = [
    # Request
    "Headers",
    "HTTPParseError",
    "RequestContext",
    "RequestParser",
    "parse_request",

    # Response
    "HTTPResponse",
    "ResponseBuilder",
    "error_response",

    # Routing
    "HTTPMethod",
    "Route",
    "RouteMatch",
    "RoutePattern",
    "RoutePatternError",
    "RouteTable",
    "normalize_path",

    # Status codes
    "HTTPStatus",
]
