"""
Unit tests for token signing and password hashing.
"""

import base64
import json

import pytest

from elephina.security import (
    TokenError,
    decode_token,
    encode_token,
    hash_password,
    validate_token,
    verify_password,
)


SECRET = "unit-secret"
NOW = 1_700_000_000


def b64url_json(obj) -> str:
    return base64.urlsafe_b64encode(json.dumps(obj).encode()).rstrip(b"=").decode()


class TestTokens:
    """Tests for encode_token / decode_token / validate_token."""

    def test_roundtrip_claims(self):
        token = encode_token({"user_id": 7, "email": "a@b.io"}, SECRET, ttl=60, now=NOW)
        payload = decode_token(token, SECRET, now=NOW + 30)

        assert payload["user_id"] == 7
        assert payload["email"] == "a@b.io"
        assert payload["iat"] == NOW
        assert payload["exp"] == NOW + 60

    def test_three_segments_hs256_header(self):
        token = encode_token({"sub": 1}, SECRET, now=NOW)
        header_b64 = token.split(".")[0]
        header = json.loads(base64.urlsafe_b64decode(header_b64 + "=" * (-len(header_b64) % 4)))
        assert token.count(".") == 2
        assert header == {"alg": "HS256", "typ": "JWT"}

    def test_expired(self):
        token = encode_token({"sub": 1}, SECRET, ttl=60, now=NOW)
        with pytest.raises(TokenError, match="expired"):
            decode_token(token, SECRET, now=NOW + 60)
        assert validate_token(token, SECRET, now=NOW + 61) is False
        assert validate_token(token, SECRET, now=NOW + 59) is True

    def test_no_expiry(self):
        token = encode_token({"sub": 1}, SECRET, ttl=None, now=NOW)
        assert "exp" not in decode_token(token, SECRET, now=NOW + 10**9)

    def test_wrong_secret(self):
        token = encode_token({"sub": 1}, SECRET, now=NOW)
        with pytest.raises(TokenError, match="signature"):
            decode_token(token, "other", now=NOW)

    def test_tampered_payload(self):
        token = encode_token({"role": "user"}, SECRET, now=NOW)
        header, _, signature = token.split(".")
        forged = ".".join([header, b64url_json({"role": "admin", "iat": NOW}), signature])
        assert validate_token(forged, SECRET, now=NOW) is False

    def test_other_algorithm_rejected(self):
        token = encode_token({"sub": 1}, SECRET, now=NOW)
        _, payload, signature = token.split(".")
        none_header = b64url_json({"alg": "none", "typ": "JWT"})
        with pytest.raises(TokenError, match="algorithm"):
            decode_token(f"{none_header}.{payload}.{signature}", SECRET, now=NOW)

    @pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d"])
    def test_malformed(self, token):
        assert validate_token(token, SECRET) is False


class TestPasswords:
    """Tests for hash_password / verify_password."""

    def test_verify(self):
        stored = hash_password("correct horse", iterations=1000)
        assert verify_password("correct horse", stored)
        assert not verify_password("wrong horse", stored)

    def test_stored_format(self):
        stored = hash_password("pw", iterations=1000, salt=b"\x00" * 16)
        algorithm, iterations, salt, digest = stored.split("$")
        assert algorithm == "pbkdf2_sha256"
        assert iterations == "1000"
        assert salt == "00" * 16
        assert len(digest) == 64

    def test_salted(self):
        assert hash_password("same", iterations=1000) != hash_password("same", iterations=1000)

    @pytest.mark.parametrize("stored", ["", "plaintext", "md5$1$00$00", "pbkdf2_sha256$x$00$00", None])
    def test_malformed_hash_never_matches(self, stored):
        assert verify_password("anything", stored) is False
