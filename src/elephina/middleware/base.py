"""
=============================================================================
MIDDLEWARE CONTRACT, REGISTRY AND CHAIN
=============================================================================

Routes name their middleware; the names are resolved to fresh instances on
every dispatch and run in order before the handler.

    Route: GET /users/:id  middleware=["AuthMiddleware", "Audit"]

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   MiddlewareRegistry                                                │
    │     "AuthMiddleware" → factory ──► AuthMiddleware(secret)           │
    │     "Audit"          → factory ──► AuditMiddleware()                │
    │                                                                      │
    │   MiddlewareChain (built per dispatch)                              │
    │                                                                      │
    │     ctx, response                                                   │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌────────────────┐   response finalized?  ── yes ──► STOP         │
    │   │ AuthMiddleware │ ─────────────────────┐            (handler     │
    │   └────────────────┘                      │ no          never runs) │
    │        ┌──────────────────────────────────┘                         │
    │        ▼                                                             │
    │   ┌────────────────┐   response finalized?  ── yes ──► STOP         │
    │   │     Audit      │ ─────────────────────┐                         │
    │   └────────────────┘                      │ no                      │
    │        ┌──────────────────────────────────┘                         │
    │        ▼                                                             │
    │     handler(ctx, response)                                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There is no next() callback: a middleware that wants the request to go on
simply returns without writing to the response.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple
import logging

from ..errors import InvalidMiddleware, MiddlewareNotFound
from ..http.request import RequestContext
from ..http.response import ResponseBuilder


logger = logging.getLogger(__name__)


class Middleware(ABC):
    """
    Abstract base class for middleware.

        class RequireJson(Middleware):
            def handle(self, ctx, response):
                if ctx.content_type != "application/json":
                    response.error("JSON body required", 415)   # stop
                # returning without writing → continue
    """

    @abstractmethod
    def handle(self, ctx: RequestContext, response: ResponseBuilder) -> None:
        """Inspect the request; finalize the response to stop the chain."""

    @property
    def name(self) -> str:
        """Get the middleware name for logging."""
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """
    Wraps a plain (ctx, response) function as middleware.

        registry.register("Trace", lambda: FunctionMiddleware(trace))
    """

    def __init__(
        self,
        func: Callable[[RequestContext, ResponseBuilder], None],
        name: Optional[str] = None,
    ):
        self._func = func
        self._name = name or func.__name__

    def handle(self, ctx: RequestContext, response: ResponseBuilder) -> None:
        self._func(ctx, response)

    @property
    def name(self) -> str:
        return self._name


# =============================================================================
# REGISTRY
# =============================================================================

MiddlewareFactory = Callable[[], Any]


class MiddlewareRegistry:
    """
    Name → zero-argument factory.

    A factory is usually the middleware class itself, or a lambda closing
    over configuration:

        registry = MiddlewareRegistry()
        registry.register("AuthMiddleware", lambda: AuthMiddleware(config.jwt_secret))

    Populated at start-up, read-only while serving.
    """

    def __init__(self):
        self._factories: Dict[str, MiddlewareFactory] = {}

    def register(self, name: str, factory: MiddlewareFactory) -> None:
        if not callable(factory):
            raise TypeError(f"Middleware factory for {name!r} must be callable")
        self._factories[name] = factory
        logger.debug(f"Registered middleware: {name}")

    def resolve(self, name: str) -> Any:
        """
        A fresh instance for `name`.

        Raises:
            MiddlewareNotFound: Nothing registered under the name.
            InvalidMiddleware: The factory produced an object without handle().
        """
        factory = self._factories.get(name)
        if factory is None:
            raise MiddlewareNotFound(name)

        instance = factory()
        if not callable(getattr(instance, "handle", None)):
            raise InvalidMiddleware(name)
        return instance

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def names(self) -> List[str]:
        return list(self._factories)


# =============================================================================
# CHAIN
# =============================================================================

class MiddlewareChain:
    """
    Ordered (name, instance) pairs for one dispatch.

        chain = MiddlewareChain.resolve(route.middleware, registry)
        if chain.run(ctx, response):
            handler(ctx, response)
    """

    def __init__(self, members: Optional[Iterable[Tuple[str, Any]]] = None):
        self._members: List[Tuple[str, Any]] = list(members or ())
        self.stopped_by: Optional[str] = None

    @classmethod
    def resolve(cls, names: Iterable[str], registry: MiddlewareRegistry) -> "MiddlewareChain":
        """Instantiate every named middleware up front; any failure aborts the chain."""
        return cls((name, registry.resolve(name)) for name in names)

    def run(self, ctx: RequestContext, response: ResponseBuilder) -> bool:
        """
        Run members in order.

        Returns:
            True when every member let the request through, False when one
            finalized the response (its name is kept in stopped_by).
        """
        for name, middleware in self._members:
            middleware.handle(ctx, response)
            if response.is_finalized:
                self.stopped_by = name
                logger.debug(f"{name} short-circuited {ctx.method} {ctx.path} ({response.status})")
                return False
        return True

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[Tuple[str, Any]]:
        return iter(self._members)
