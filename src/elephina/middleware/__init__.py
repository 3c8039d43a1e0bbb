"""
=============================================================================
MIDDLEWARE
=============================================================================

Named, per-route checks that run before a handler:

    Route middleware=["AuthMiddleware"]
        │
        ▼
    MiddlewareRegistry.resolve("AuthMiddleware") → fresh instance
        │
        ▼
    MiddlewareChain.run(ctx, response)
        ├── response finalized → stop, handler never runs
        └── otherwise          → handler(ctx, response)

Available:

    AuthMiddleware   - Bearer token check (401 on failure)
    AccessLogger     - Not a chain member; wraps every dispatch

=============================================================================
"""

from .auth import AuthMiddleware
from .base import FunctionMiddleware, Middleware, MiddlewareChain, MiddlewareRegistry
from .logging import AccessLogger, RequestLog

__all__ = [
    # Contract
    "Middleware",
    "FunctionMiddleware",
    "MiddlewareRegistry",
    "MiddlewareChain",

    # Built-in
    "AuthMiddleware",
    "AccessLogger",
    "RequestLog",
]
