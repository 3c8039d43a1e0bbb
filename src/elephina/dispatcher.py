"""
=============================================================================
DISPATCHER
=============================================================================

Drives one request from a RequestContext to exactly one sent response.

=============================================================================
STATE MACHINE
=============================================================================

    START ──► RESOLVING ──┬──► MATCHED ──┬──► MIDDLEWARE_PASSED ──┬──► HANDLED
                          │              │                        │
                          │              │ middleware finalized   │ handler left the
                          │              ▼                        │ response empty, or
                          │           REJECTED                    │ raised
                          │                                       ▼
                          │              (config error / crash) FAILED
                          │              MATCHED ─────────────► FAILED
                          │
                          └──► UNMATCHED ──► REJECTED   (404 / 405)

Whatever the path, the last step is the same: if the payload is written
but not sent yet, the Dispatcher sends it.

=============================================================================
404 VERSUS 405
=============================================================================

    resolve("DELETE", "/users/42")

        1. normalize "/users/42"
        2. DELETE routes: first match?           → Matched(route, params)
        3. any OTHER method's routes match?      → MethodNotAllowed({"GET", "PUT"})
        4. nothing anywhere                      → NotFound

    A path that exists under another method is 405 with an Allow header,
    never 404.

=============================================================================
ERROR POLICY
=============================================================================

    ┌───────────────────────────────────┬─────────────────────────────────────┐
    │ Situation                         │ Client sees                         │
    ├───────────────────────────────────┼─────────────────────────────────────┤
    │ no route for the path             │ 404 {"error": "Route not found"}    │
    │ path exists for other methods     │ 405 {"error": "Method not allowed"} │
    │ unknown middleware / handler name │ 500 with the descriptive message    │
    │ handler wrote nothing             │ 500 "Handler did not produce a      │
    │                                   │      response"                      │
    │ any other exception               │ 500 "Internal Server Error"         │
    └───────────────────────────────────┴─────────────────────────────────────┘

Exception details and tracebacks go to the log, never to the client.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional, Union
import logging

from .errors import ConfigurationError, HandlerNotFound
from .http.request import RequestContext
from .http.response import DEFAULT_SERVER_NAME, HTTPResponse, ResponseBuilder
from .http.routing import HandlerRef, Route, RouteTable, normalize_path
from .http.status_codes import HTTPStatus
from .middleware.base import MiddlewareChain, MiddlewareRegistry


logger = logging.getLogger(__name__)


class DispatchState(Enum):
    START = "start"
    RESOLVING = "resolving"
    MATCHED = "matched"
    MIDDLEWARE_PASSED = "middleware_passed"
    HANDLED = "handled"
    UNMATCHED = "unmatched"
    REJECTED = "rejected"
    FAILED = "failed"


# =============================================================================
# RESOLUTION RESULTS
# =============================================================================

@dataclass(frozen=True)
class Matched:
    route: Route
    params: Dict[str, str]


@dataclass(frozen=True)
class MethodNotAllowed:
    allowed: FrozenSet[str]

    @property
    def allow_header(self) -> str:
        return ", ".join(sorted(self.allowed))


@dataclass(frozen=True)
class NotFound:
    pass


Resolution = Union[Matched, MethodNotAllowed, NotFound]


@dataclass
class DispatchResult:
    """Final state of a dispatch plus what went out on the wire."""

    state: DispatchState
    response: HTTPResponse
    builder: ResponseBuilder = field(repr=False)
    route: Optional[Route] = None

    @property
    def status(self) -> int:
        return int(self.response.status)


# =============================================================================
# HANDLER REGISTRY
# =============================================================================

class HandlerRegistry:
    """
    Resolves "Controller@method" references.

        handlers = HandlerRegistry()
        handlers.register("UserController", lambda: UserController(users, config))

        handlers.resolve("UserController@get_one")   # bound method
        handlers.resolve(some_function)              # returned unchanged

    A controller is instantiated fresh for every dispatch.
    """

    def __init__(self):
        self._factories: Dict[str, Callable[[], Any]] = {}

    def register(self, name: str, factory: Callable[[], Any]) -> None:
        if not callable(factory):
            raise TypeError(f"Controller factory for {name!r} must be callable")
        self._factories[name] = factory

    def resolve(self, handler: HandlerRef) -> Callable[..., Any]:
        """
        A callable taking (ctx, response).

        Raises:
            HandlerNotFound: Malformed reference, unknown controller or method.
        """
        if callable(handler):
            return handler

        controller_name, sep, method_name = str(handler).partition("@")
        if not sep or not controller_name or not method_name:
            raise HandlerNotFound(str(handler), "Expected 'Controller@method'.")

        factory = self._factories.get(controller_name)
        if factory is None:
            raise HandlerNotFound(str(handler), f"Controller {controller_name} is not registered.")

        controller = factory()
        action = getattr(controller, method_name, None)
        if method_name.startswith("_") or not callable(action):
            raise HandlerNotFound(
                str(handler), f"Method {method_name} not found in controller {controller_name}."
            )
        return action

    def __contains__(self, name: object) -> bool:
        return name in self._factories


# =============================================================================
# DISPATCHER
# =============================================================================

class Dispatcher:
    """
    resolve → attach params → middleware → handler → send.

    The route table and registries are shared read-only across worker
    threads; everything request-scoped lives in the RequestContext and the
    ResponseBuilder handed to dispatch().
    """

    NOT_FOUND_MESSAGE = "Route not found"
    METHOD_NOT_ALLOWED_MESSAGE = "Method not allowed"
    NO_RESPONSE_MESSAGE = "Handler did not produce a response"
    INTERNAL_ERROR_MESSAGE = "Internal Server Error"

    def __init__(
        self,
        routes: RouteTable,
        middleware: Optional[MiddlewareRegistry] = None,
        handlers: Optional[HandlerRegistry] = None,
        server_name: str = DEFAULT_SERVER_NAME,
    ):
        self.routes = routes
        self.middleware = middleware if middleware is not None else MiddlewareRegistry()
        self.handlers = handlers if handlers is not None else HandlerRegistry()
        self.server_name = server_name

    def resolve(self, method: str, path: str) -> Resolution:
        path = normalize_path(path)

        match = self.routes.lookup(method, path)
        if match is not None:
            return Matched(route=match.route, params=match.params)

        requested = str(method).upper()
        allowed = frozenset(
            other.value
            for other in self.routes.methods()
            if other.value != requested
            and any(route.pattern.match(path) is not None for route in self.routes.find_all(other))
        )
        if allowed:
            return MethodNotAllowed(allowed=allowed)
        return NotFound()

    def dispatch(
        self,
        ctx: RequestContext,
        response: Optional[ResponseBuilder] = None,
    ) -> DispatchResult:
        response = response if response is not None else ResponseBuilder(self.server_name)
        route: Optional[Route] = None

        state = DispatchState.RESOLVING
        resolution = self.resolve(ctx.method, ctx.path)

        if isinstance(resolution, NotFound):
            state = DispatchState.UNMATCHED
            logger.debug(f"No route for {ctx.method} {ctx.path}")
            response.error(self.NOT_FOUND_MESSAGE, HTTPStatus.NOT_FOUND)
            state = DispatchState.REJECTED

        elif isinstance(resolution, MethodNotAllowed):
            state = DispatchState.UNMATCHED
            logger.debug(f"{ctx.method} not allowed for {ctx.path} (allow: {resolution.allow_header})")
            response.set_header("Allow", resolution.allow_header)
            response.error(self.METHOD_NOT_ALLOWED_MESSAGE, HTTPStatus.METHOD_NOT_ALLOWED)
            state = DispatchState.REJECTED

        else:
            route = resolution.route
            ctx.attach_path_params(resolution.params)
            state = DispatchState.MATCHED
            state, response = self._run_matched(ctx, response, route)

        if not response.is_sent:
            response.send()

        return DispatchResult(
            state=state,
            response=response.sent_response,
            builder=response,
            route=route,
        )

    def _run_matched(self, ctx: RequestContext, response: ResponseBuilder, route: Route):
        try:
            chain = MiddlewareChain.resolve(route.middleware, self.middleware)

            if not chain.run(ctx, response):
                return DispatchState.REJECTED, response

            handler = self.handlers.resolve(route.handler)
            handler(ctx, response)

            if not response.is_finalized:
                logger.error(f"Handler for {route.describe()} did not produce a response")
                return DispatchState.FAILED, self._fail(
                    response, HTTPStatus.INTERNAL_SERVER_ERROR, self.NO_RESPONSE_MESSAGE
                )
            return DispatchState.HANDLED, response

        except ConfigurationError as e:
            logger.error(f"Configuration error on {route.describe()}: {e}")
            return DispatchState.FAILED, self._fail(response, e.status_code, str(e))

        except Exception:
            logger.exception(f"Unhandled error while dispatching {ctx.method} {ctx.path}")
            return DispatchState.FAILED, self._fail(
                response, HTTPStatus.INTERNAL_SERVER_ERROR, self.INTERNAL_ERROR_MESSAGE
            )

    def _fail(self, response: ResponseBuilder, status: int, message: str) -> ResponseBuilder:
        """
        Answer with an error envelope.

        A response that already went out stays as it is. A payload that was
        written but not sent is discarded in favour of the error.
        """
        if response.is_sent:
            return response
        if response.is_finalized:
            response = response.blank_copy()
        response.error(message, status)
        return response
