"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Exceptions raised inside the framework. Like HTTPParseError in the request
parser, each one carries the HTTP status it should turn into when it reaches
the Dispatcher.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       EXCEPTION HIERARCHY                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ElephinaError (500)                                               │
    │   └── ConfigurationError (500)     bad route/middleware wiring      │
    │       ├── MiddlewareNotFound       name not in the registry         │
    │       ├── InvalidMiddleware        object without handle()          │
    │       └── HandlerNotFound          "Controller@method" unresolved   │
    │                                                                      │
    │   ResponseStateError (RuntimeError)   ResponseBuilder misuse        │
    │   ├── ResponseAlreadyFinalized     second success()/error()         │
    │   ├── ResponseAlreadySent          mutation after send()            │
    │   └── ResponseNotFinalized         send() without a payload         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Routing misses (404/405) are NOT exceptions: the Dispatcher gets a typed
resolution result back from resolve() and answers from it directly.

=============================================================================
"""


class ElephinaError(Exception):
    """Base class for framework errors that map onto an HTTP status."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================
#
# A route that names a middleware or handler nobody registered is a wiring
# bug, not a bad request. These always surface as 500 and are never retried.
#

class ConfigurationError(ElephinaError):
    """The application was wired with a reference that cannot be resolved."""


class MiddlewareNotFound(ConfigurationError):
    def __init__(self, name: str):
        super().__init__(f"Middleware {name} not found.")
        self.name = name


class InvalidMiddleware(ConfigurationError):
    def __init__(self, name: str):
        super().__init__(f"Middleware {name} must have a handle method.")
        self.name = name


class HandlerNotFound(ConfigurationError):
    def __init__(self, reference: str, reason: str = ""):
        message = f"Handler {reference} not found."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)
        self.reference = reference


# =============================================================================
# RESPONSE STATE ERRORS
# =============================================================================

class ResponseStateError(RuntimeError):
    """A ResponseBuilder was used out of order."""


class ResponseAlreadyFinalized(ResponseStateError):
    """The payload was already written; a response is written once."""


class ResponseAlreadySent(ResponseStateError):
    """The response already went out; nothing may change it now."""


class ResponseNotFinalized(ResponseStateError):
    """send() was called before success() or error()."""
