"""
=============================================================================
HS256 BEARER TOKENS
=============================================================================

Compact signed tokens for the Authorization header:

    base64url(header) . base64url(payload) . base64url(HMAC-SHA256 signature)

    header   {"alg": "HS256", "typ": "JWT"}
    payload  {"user_id": 7, "email": "ana@example.com", "iat": ..., "exp": ...}

validate_token() is the pure function AuthMiddleware calls. A token is
valid when it has three parts, its signature matches the secret and its
"exp" claim (if any) is not in the past.

=============================================================================
"""

from hashlib import sha256
from typing import Any, Dict, Optional
import base64
import binascii
import hmac
import json
import time


class TokenError(ValueError):
    """A token could not be decoded or verified."""


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64url_decode(data: str) -> bytes:
    pad = "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(data + pad)
    except (binascii.Error, ValueError) as e:
        raise TokenError(f"invalid base64url segment: {e}")


def _sign(signing_input: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode(), signing_input, sha256).digest()


def encode_token(
    payload: Dict[str, Any],
    secret: str,
    ttl: Optional[int] = 3600,
    now: Optional[float] = None,
) -> str:
    """
    Sign a payload.

    "iat" and "exp" are filled in unless the payload already carries them;
    pass ttl=None for a token without expiry.
    """
    header = {"alg": "HS256", "typ": "JWT"}
    issued_at = int(time.time() if now is None else now)
    body = dict(payload)
    body.setdefault("iat", issued_at)
    if ttl is not None:
        body.setdefault("exp", issued_at + int(ttl))

    header_b64 = _b64url(json.dumps(header, separators=(",", ":")).encode())
    payload_b64 = _b64url(json.dumps(body, separators=(",", ":")).encode())
    signing_input = f"{header_b64}.{payload_b64}".encode()
    return f"{header_b64}.{payload_b64}.{_b64url(_sign(signing_input, secret))}"


def decode_token(token: str, secret: str, now: Optional[float] = None) -> Dict[str, Any]:
    """
    Verify a token and return its payload.

    Raises:
        TokenError: Malformed token, bad signature, or expired.
    """
    try:
        header_b64, payload_b64, sig_b64 = token.split(".")
    except ValueError:
        raise TokenError("invalid token format")

    try:
        header = json.loads(_b64url_decode(header_b64))
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise TokenError("invalid token header")
    if not isinstance(header, dict) or header.get("alg") != "HS256":
        raise TokenError("unsupported token algorithm")

    signing_input = f"{header_b64}.{payload_b64}".encode()
    if not hmac.compare_digest(_sign(signing_input, secret), _b64url_decode(sig_b64)):
        raise TokenError("invalid signature")

    try:
        payload = json.loads(_b64url_decode(payload_b64))
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise TokenError("invalid token payload")
    if not isinstance(payload, dict):
        raise TokenError("invalid token payload")

    exp = payload.get("exp")
    if exp is not None:
        try:
            expires_at = float(exp)
        except (TypeError, ValueError):
            raise TokenError("invalid exp claim")
        current = time.time() if now is None else now
        if current >= expires_at:
            raise TokenError("token expired")

    return payload


def validate_token(token: str, secret: str, now: Optional[float] = None) -> bool:
    """True when decode_token() would succeed."""
    try:
        decode_token(token, secret, now=now)
    except TokenError:
        return False
    return True
