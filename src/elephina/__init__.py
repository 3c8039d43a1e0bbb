"""
=============================================================================
ELEPHINA - A Small JSON REST API Framework
=============================================================================

Route table, middleware chain and controller dispatch on top of a
plain-socket HTTP/1.1 server, plus a bundled users/auth API on SQLite.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket ──► Connection ──► RequestParser ──► RequestContext        │
    │                                                    │                 │
    │                                                    ▼                 │
    │                                  Dispatcher.resolve(method, path)    │
    │                                     │         │            │         │
    │                                  Matched   405 Allow    404          │
    │                                     │                                │
    │                                     ▼                                │
    │                   middleware chain ("AuthMiddleware", ...)           │
    │                                     │                                │
    │                                     ▼                                │
    │                   handler / "UserController@get_one"                 │
    │                                     │                                │
    │                                     ▼                                │
    │                   ResponseBuilder.send() ──► HTTPResponse ──► socket │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    elephina/
    ├── __main__.py          # CLI entry point (python -m elephina)
    ├── app.py               # App + create_app()
    ├── server.py            # Socket server and worker pool
    ├── dispatcher.py        # Resolution, middleware, handler invocation
    ├── routes.py            # Bundled API route table
    ├── config.py            # AppConfig, .env loading, logging setup
    ├── errors.py            # Exception hierarchy
    ├── validation.py        # Rule-string input validation
    ├── core/                # Client connection
    ├── http/                # Request, response, routing, status codes
    ├── middleware/          # Middleware contract, auth, access log
    ├── security/            # Tokens and password hashing
    ├── storage/             # SQLite wrapper and models
    └── controllers/         # Home, users and auth controllers

=============================================================================
QUICK START
=============================================================================

    from elephina import App, Server

    app = App()

    @app.get("/hello/:name")
    def hello(ctx, response):
        response.success({"hello": ctx.param("name")}).send()

    Server(app).serve_forever()

=============================================================================
"""

__version__ = "1.0.0"
__author__ = "Elephina Contributors"

from .app import App, create_app
from .config import AppConfig, load_env_file, setup_logging
from .dispatcher import DispatchResult, DispatchState, Dispatcher, HandlerRegistry
from .errors import (
    ConfigurationError,
    ElephinaError,
    HandlerNotFound,
    InvalidMiddleware,
    MiddlewareNotFound,
    ResponseAlreadyFinalized,
    ResponseAlreadySent,
    ResponseNotFinalized,
    ResponseStateError,
)
from .http import HTTPResponse, HTTPStatus, RequestContext, ResponseBuilder, RouteTable
from .middleware import Middleware, MiddlewareRegistry
from .server import Server

__all__ = [
    # Application
    "App",
    "create_app",
    "Server",
    "AppConfig",
    "load_env_file",
    "setup_logging",

    # Dispatch
    "Dispatcher",
    "DispatchResult",
    "DispatchState",
    "HandlerRegistry",
    "RouteTable",
    "Middleware",
    "MiddlewareRegistry",

    # HTTP
    "RequestContext",
    "ResponseBuilder",
    "HTTPResponse",
    "HTTPStatus",

    # Errors
    "ElephinaError",
    "ConfigurationError",
    "MiddlewareNotFound",
    "InvalidMiddleware",
    "HandlerNotFound",
    "ResponseStateError",
    "ResponseAlreadyFinalized",
    "ResponseAlreadySent",
    "ResponseNotFinalized",
]
