"""
Core networking: client connections.

    Connection        buffered request reading over one accepted socket
    RequestTooLarge   raised when a client exceeds max_request_size
"""

from .connection import Connection, ConnectionState, RequestTooLarge

__all__ = ["Connection", "ConnectionState", "RequestTooLarge"]
