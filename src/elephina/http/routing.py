"""
=============================================================================
ROUTE PATTERNS AND THE ROUTE TABLE
=============================================================================

Compiles declarative URI templates into anchored matchers and keeps them in
a per-method table.

    Template:  /users/:id/posts/:post_id
                 │     │         │
                 ▼     ▼         ▼
    Regex:    ^/users/([^/]+)/posts/([^/]+)$
                      ───────       ───────
                      group 1       group 2
                      → "id"        → "post_id"

    Match "/users/42/posts/7" → {"id": "42", "post_id": "7"}

=============================================================================
ROUTE TABLE LAYOUT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  RouteTable                                                         │
    │                                                                      │
    │   GET    → [ /              , /api , /users , /users/:id ]          │
    │   POST   → [ /users         , /auth/login , ... ]                   │
    │   PUT    → [ /users/:id ]                                           │
    │   DELETE → [ /users/:id ]                                           │
    │                                                                      │
    │   Each list keeps REGISTRATION ORDER. Lookup walks the list and     │
    │   stops at the FIRST pattern that matches - never the most          │
    │   specific one.                                                     │
    └─────────────────────────────────────────────────────────────────────┘

First-match-wins means sibling literal and parametric routes need care:

    GET /users/:id   (registered first)
    GET /users/new   (registered second)

    GET /users/new   → matches /users/:id with {"id": "new"}

Register /users/new BEFORE /users/:id if the literal should win.

=============================================================================
PATH NORMALIZATION
=============================================================================

Templates and incoming paths go through the same normalize_path():

    "/users/"        → "/users"      trailing slash stripped
    "//users///42"   → "/users/42"   duplicate slashes collapsed
    "/users?page=2"  → "/users"      query string dropped
    ""  or  "/"      → "/"           root stays "/"

normalize_path(normalize_path(p)) == normalize_path(p) for every p.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union
import re


# =============================================================================
# HTTP METHODS
# =============================================================================

class HTTPMethod(str, Enum):
    """
    Methods a route can be registered under.

    A str subclass, so HTTPMethod.GET == "GET".
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"

    @classmethod
    def parse(cls, method: Union[str, "HTTPMethod"]) -> "HTTPMethod":
        """
        Coerce a method name (any case) into an HTTPMethod.

        Raises:
            ValueError: If the method is not one routes can be registered under.
        """
        if isinstance(method, cls):
            return method
        try:
            return cls(str(method).strip().upper())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValueError(f"Unsupported HTTP method {method!r}; expected one of {allowed}")


# =============================================================================
# PATH NORMALIZATION
# =============================================================================

_DUPLICATE_SLASHES = re.compile(r"/{2,}")


def normalize_path(path: str) -> str:
    """
    Normalize a request path or route template.

    Steps:
        1. Drop the query string and fragment
        2. Collapse runs of "/" into one
        3. Ensure a leading "/"
        4. Strip the trailing "/" (root stays "/")

    Args:
        path: Raw path, e.g. "//users/42/?x=1"

    Returns:
        Normalized path, e.g. "/users/42"
    """
    path = path.split("?", 1)[0].split("#", 1)[0]
    path = _DUPLICATE_SLASHES.sub("/", path)
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


# =============================================================================
# ROUTE PATTERN
# =============================================================================

class RoutePatternError(ValueError):
    """Raised for templates that cannot be compiled (empty ones)."""


_PLACEHOLDER = re.compile(r"^:([A-Za-z0-9_]+)$")


class RoutePattern:
    """
    A compiled URI template.

    =========================================================================
    COMPILATION
    =========================================================================

        Input:  "/users/:id/posts/:post_id"

        Step 1: Normalize, split by "/"
                ["users", ":id", "posts", ":post_id"]

        Step 2: Process each segment
                "users"     → users          (literal, re.escape'd)
                ":id"       → ([^/]+)        (placeholder, name "id")
                "posts"     → posts          (literal)
                ":post_id"  → ([^/]+)        (placeholder, name "post_id")

        Step 3: Join and anchor
                ^/users/([^/]+)/posts/([^/]+)$

    Placeholders use positional groups and a side list of names, so a name
    like ":2fa" (not a valid Python group name) still compiles.

    =========================================================================
    """

    __slots__ = ("template", "param_names", "_regex")

    def __init__(self, template: str, regex: "re.Pattern[str]", param_names: Tuple[str, ...]):
        self.template = template
        self.param_names = param_names
        self._regex = regex

    @classmethod
    def compile(cls, template: str) -> "RoutePattern":
        """
        Compile a template into a RoutePattern.

        Args:
            template: URI template such as "/users/:id"

        Returns:
            The compiled pattern.

        Raises:
            RoutePatternError: If the template is empty.
        """
        if template is None or not str(template).strip():
            raise RoutePatternError("Route template must not be empty")

        normalized = normalize_path(str(template).strip())
        if normalized == "/":
            return cls(normalized, re.compile(r"^/$"), ())

        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in normalized.split("/")[1:]:
            regex_parts.append("/")
            placeholder = _PLACEHOLDER.match(segment)
            if placeholder:
                param_names.append(placeholder.group(1))
                regex_parts.append("([^/]+)")
            else:
                regex_parts.append(re.escape(segment))

        regex_parts.append("$")
        return cls(normalized, re.compile("".join(regex_parts)), tuple(param_names))

    def match(self, path: str) -> Optional[Dict[str, str]]:
        """
        Match a normalized path against the whole pattern.

        Returns:
            Parameters in declaration order (values stay strings), or None
            when the path does not match from start to end.
        """
        found = self._regex.match(path)
        if found is None:
            return None
        return dict(zip(self.param_names, found.groups()))

    @property
    def regex(self) -> str:
        """The compiled regular expression source (diagnostics)."""
        return self._regex.pattern

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, RoutePattern):
            return NotImplemented
        return self.template == other.template

    def __hash__(self) -> int:
        return hash(self.template)

    def __repr__(self) -> str:
        return f"RoutePattern({self.template!r})"


# =============================================================================
# ROUTES
# =============================================================================

# A handler is either a callable taking (context, response) or a
# "Controller@method" reference resolved when the route is dispatched.
HandlerRef = Union[str, Callable[..., Any]]


@dataclass(frozen=True)
class Route:
    """
    One registered route.

        Route(
            method=HTTPMethod.GET,
            pattern=RoutePattern("/users/:id"),
            template="/users/:id",
            handler="UserController@get_one",
            middleware=("AuthMiddleware",),
        )

    Frozen: routes are built once at start-up and never change.
    """

    method: HTTPMethod
    pattern: RoutePattern
    template: str
    handler: HandlerRef
    middleware: Tuple[str, ...] = field(default_factory=tuple)

    def describe(self) -> str:
        """Readable one-liner for logs, e.g. "GET /users/:id"."""
        return f"{self.method.value} {self.template}"


@dataclass(frozen=True)
class RouteMatch:
    """A route plus the parameters its pattern captured."""

    route: Route
    params: Dict[str, str]


# =============================================================================
# ROUTE TABLE
# =============================================================================

class RouteTable:
    """
    HTTP method → ordered list of routes.

    Owned by the application's composition root and handed to the
    Dispatcher by reference. All registration happens before the first
    request; afterwards the table is only read, so concurrent workers
    share it without locks.

    Usage:
        table = RouteTable()
        table.register("GET", "/users", list_users)
        table.register("GET", "/users/:id", "UserController@get_one", ["AuthMiddleware"])

        match = table.lookup("GET", "/users/42")
        match.params  # {"id": "42"}
    """

    def __init__(self):
        self._routes: Dict[HTTPMethod, List[Route]] = {}

    def register(
        self,
        method: Union[str, HTTPMethod],
        template: str,
        handler: HandlerRef,
        middleware: Optional[Union[List[str], Tuple[str, ...]]] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, PATCH)
            template: URI template, e.g. "/users/:id"
            handler: Callable or "Controller@method" string
            middleware: Middleware names to run before the handler, in order

        Returns:
            The registered Route.

        Raises:
            ValueError: Unknown method, or empty template.
        """
        http_method = HTTPMethod.parse(method)
        pattern = RoutePattern.compile(template)

        route = Route(
            method=http_method,
            pattern=pattern,
            template=pattern.template,
            handler=handler,
            middleware=tuple(middleware or ()),
        )
        self._routes.setdefault(http_method, []).append(route)
        return route

    def find_all(self, method: Union[str, HTTPMethod]) -> Tuple[Route, ...]:
        """
        Routes registered under a method, in registration order.

        Unknown methods simply have no routes.
        """
        try:
            http_method = HTTPMethod.parse(method)
        except ValueError:
            return ()
        return tuple(self._routes.get(http_method, ()))

    def methods(self) -> Tuple[HTTPMethod, ...]:
        """Methods that have at least one route, in first-registration order."""
        return tuple(self._routes)

    def lookup(self, method: Union[str, HTTPMethod], path: str) -> Optional[RouteMatch]:
        """
        First route under `method` whose pattern matches `path`.

        The path is normalized first. Registration order decides; the most
        specific route does NOT win.
        """
        path = normalize_path(path)
        for route in self.find_all(method):
            params = route.pattern.match(path)
            if params is not None:
                return RouteMatch(route=route, params=params)
        return None

    def __iter__(self) -> Iterator[Route]:
        for routes in self._routes.values():
            yield from routes

    def __len__(self) -> int:
        return sum(len(routes) for routes in self._routes.values())

    def describe(self) -> List[str]:
        """
        One line per route, useful at start-up:

            GET      /users/:id          [AuthMiddleware]
        """
        lines = []
        for route in self:
            middleware = f"[{', '.join(route.middleware)}]" if route.middleware else ""
            lines.append(f"{route.method.value:8} {route.template:24} {middleware}".rstrip())
        return lines
