"""Token and password helpers used by the auth middleware and controllers."""

from .passwords import hash_password, verify_password
from .tokens import TokenError, decode_token, encode_token, validate_token

__all__ = [
    "TokenError",
    "decode_token",
    "encode_token",
    "validate_token",
    "hash_password",
    "verify_password",
]
