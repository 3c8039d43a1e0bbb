"""
=============================================================================
APPLICATION
=============================================================================

The composition root: owns the route table, both registries and the
Dispatcher, and turns a RequestContext into a sent HTTPResponse.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  App                                                                │
    │                                                                      │
    │   routes      RouteTable          GET /users/:id → ...             │
    │   middleware  MiddlewareRegistry  "AuthMiddleware" → factory       │
    │   handlers    HandlerRegistry     "UserController" → factory       │
    │   dispatcher  Dispatcher(routes, middleware, handlers)             │
    │   access_log  AccessLogger                                         │
    │                                                                      │
    │   handle(ctx) ──► dispatcher.dispatch(ctx) ──► access log ──► resp  │
    └─────────────────────────────────────────────────────────────────────┘

Everything is registered before serving starts; afterwards the App is
only read and can be shared by every worker thread.

=============================================================================
USAGE
=============================================================================

    app = App()

    @app.get("/ping")
    def ping(ctx, response):
        response.success({"pong": True}).send()

    app.use_middleware("AuthMiddleware", lambda: AuthMiddleware("s3cret"))

    @app.get("/me", middleware=["AuthMiddleware"])
    def me(ctx, response):
        response.success({"ok": True}).send()

Or the bundled API:

    app = create_app(AppConfig.from_env(".env"))

=============================================================================
"""

from typing import Any, Callable, Dict, List, Optional
import logging
import time

from .config import AppConfig
from .controllers import AuthController, HomeController, UserController
from .dispatcher import DispatchResult, Dispatcher, HandlerRegistry
from .http.request import RequestContext
from .http.response import HTTPResponse, ResponseBuilder
from .http.routing import HandlerRef, Route, RouteTable
from .middleware.auth import AuthMiddleware
from .middleware.base import MiddlewareRegistry
from .middleware.logging import AccessLogger
from .routes import register_routes
from .storage import Database, UserModel, connect, ensure_schema


logger = logging.getLogger(__name__)


class App:
    """
    Route registration plus request handling.

    Args:
        config: Application configuration (defaults to AppConfig()).
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or AppConfig()
        self.routes = RouteTable()
        self.middleware = MiddlewareRegistry()
        self.handlers = HandlerRegistry()
        self.dispatcher = Dispatcher(
            self.routes,
            self.middleware,
            self.handlers,
            server_name=self.config.server_name,
        )
        self.access_log = AccessLogger(log_format=self.config.access_log_format)
        self.db: Optional[Database] = None

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def route(
        self,
        method: str,
        path: str,
        handler: HandlerRef,
        middleware: Optional[List[str]] = None,
    ) -> Route:
        """Register a handler (callable or "Controller@method")."""
        return self.routes.register(method, path, handler, middleware)

    def _method_route(self, method: str, path: str, handler, middleware):
        if handler is not None:
            return self.route(method, path, handler, middleware)

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.route(method, path, func, middleware)
            return func

        return decorator

    def get(self, path: str, handler: Optional[HandlerRef] = None, middleware: Optional[List[str]] = None):
        """Register a GET route, directly or as a decorator."""
        return self._method_route("GET", path, handler, middleware)

    def post(self, path: str, handler: Optional[HandlerRef] = None, middleware: Optional[List[str]] = None):
        return self._method_route("POST", path, handler, middleware)

    def put(self, path: str, handler: Optional[HandlerRef] = None, middleware: Optional[List[str]] = None):
        return self._method_route("PUT", path, handler, middleware)

    def delete(self, path: str, handler: Optional[HandlerRef] = None, middleware: Optional[List[str]] = None):
        return self._method_route("DELETE", path, handler, middleware)

    def patch(self, path: str, handler: Optional[HandlerRef] = None, middleware: Optional[List[str]] = None):
        return self._method_route("PATCH", path, handler, middleware)

    def use_middleware(self, name: str, factory: Callable[[], Any]) -> None:
        """Make middleware available to routes under `name`."""
        self.middleware.register(name, factory)

    def controller(self, name: str, factory: Callable[[], Any]) -> None:
        """Make a controller available to "name@method" handler references."""
        self.handlers.register(name, factory)

    # =========================================================================
    # HANDLING
    # =========================================================================

    def dispatch(self, ctx: RequestContext, response: Optional[ResponseBuilder] = None) -> DispatchResult:
        """Dispatch without access logging; tests use this to inspect the final state."""
        return self.dispatcher.dispatch(ctx, response)

    def handle(self, ctx: RequestContext, headers: Optional[Dict[str, str]] = None) -> HTTPResponse:
        """
        Dispatch one request and log it; always returns the sent response.

        Args:
            ctx: The parsed request.
            headers: Extra headers for the response (the transport passes
                "Connection: close"). They are set before dispatch, so they
                survive a handler failure.
        """
        request_id = self.access_log.new_request_id()
        start_time = time.time()

        response = ResponseBuilder(
            self.config.server_name,
            headers={**(headers or {}), **self.access_log.response_headers(request_id)},
        )
        result = self.dispatcher.dispatch(ctx, response)

        duration_ms = (time.time() - start_time) * 1000
        self.access_log.record(ctx, result.response, duration_ms, request_id)
        return result.response


def create_app(config: Optional[AppConfig] = None, db: Optional[Database] = None) -> App:
    """
    Build the bundled API: users, auth and home routes on SQLite.

    Args:
        config: Configuration; AppConfig() when omitted.
        db: An open storage.Database; opened from config.database_path
            when omitted.
    """
    config = config or AppConfig()
    if db is None:
        db = connect(config.database_path)
    ensure_schema(db)

    app = App(config)
    app.db = db

    app.use_middleware("AuthMiddleware", lambda: AuthMiddleware(config.jwt_secret))

    app.controller("HomeController", HomeController)
    app.controller("UserController", lambda: UserController(UserModel(db)))
    app.controller("AuthController", lambda: AuthController(UserModel(db), config))

    register_routes(app)

    for line in app.routes.describe():
        logger.debug(f"Route: {line}")
    return app
