"""Security primitives for password hashing and token signing."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import os
from typing import Any

PBKDF2_ITERATIONS = 100_000
SALT_BYTES = 16
DERIVED_KEY_BYTES = 32

TOKEN_HEADER = {"alg": "HS256", "typ": "JWT"}


def b64url_encode(raw: bytes) -> str:
    """Return URL-safe base64 string without padding."""
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def b64url_decode(value: str) -> bytes:
    """Decode URL-safe base64 string with optional missing padding."""
    padding = "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode((value + padding).encode("ascii"))
    except UnicodeEncodeError as exc:
        raise ValueError("Segment is not base64url text") from exc


def _derive(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        PBKDF2_ITERATIONS,
        dklen=DERIVED_KEY_BYTES,
    )


def hash_password(password: str, *, salt: bytes | None = None) -> str:
    """Hash password with PBKDF2-HMAC-SHA256.

    The stored form is base64 of ``salt || derived_key``. A fresh random salt is
    drawn unless one is supplied, so identical passwords only hash identically
    when the salt is identical.
    """
    if not isinstance(password, str):
        raise TypeError("password must be a string")
    if salt is None:
        salt = os.urandom(SALT_BYTES)
    if len(salt) != SALT_BYTES:
        raise ValueError(f"salt must be {SALT_BYTES} bytes")
    return base64.b64encode(salt + _derive(password, salt)).decode("ascii")


def verify_password(password: str, stored_hash: str) -> bool:
    """Verify password against a stored PBKDF2 hash; malformed hashes never match."""
    try:
        combined = base64.b64decode(stored_hash.encode("ascii"), validate=True)
    except (AttributeError, UnicodeEncodeError, binascii.Error, ValueError):
        return False
    if len(combined) != SALT_BYTES + DERIVED_KEY_BYTES:
        return False

    salt, expected = combined[:SALT_BYTES], combined[SALT_BYTES:]
    try:
        derived = _derive(password, salt)
    except (AttributeError, UnicodeEncodeError):
        return False
    return hmac.compare_digest(derived, expected)


def _json_segment(value: dict[str, Any]) -> str:
    raw = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return b64url_encode(raw.encode("utf-8"))


def sign_segments(header_part: str, payload_part: str, secret_key: str) -> str:
    """Return the encoded HMAC-SHA256 signature of ``header.payload``."""
    signing_input = f"{header_part}.{payload_part}".encode("utf-8")
    digest = hmac.new(secret_key.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return b64url_encode(digest)


def build_signed_token(payload: dict[str, Any], secret_key: str) -> str:
    """Create compact signed token using JWT-like 3-part structure."""
    header_part = _json_segment(TOKEN_HEADER)
    payload_part = _json_segment(payload)
    signature_part = sign_segments(header_part, payload_part, secret_key)
    return f"{header_part}.{payload_part}.{signature_part}"


def decode_signed_token(token: str, secret_key: str) -> dict[str, Any]:
    """Verify signature and decode payload, raising ``ValueError`` on failure.

    Expiry is not checked here; callers validate claims after the signature
    has been established.
    """
    segments = token.split(".")
    if len(segments) != 3 or not all(segments):
        raise ValueError("Malformed token")
    header_part, payload_part, signature_part = segments

    expected_sig = sign_segments(header_part, payload_part, secret_key)
    if not hmac.compare_digest(
        expected_sig.encode("ascii"), signature_part.encode("utf-8")
    ):
        raise ValueError("Invalid token signature")

    payload = json.loads(b64url_decode(payload_part).decode("utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Invalid token payload")
    return payload
