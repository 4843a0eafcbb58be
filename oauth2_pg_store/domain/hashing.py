"""Deterministic one-way hashing of token secrets."""

from __future__ import annotations

import hashlib

from oauth2_pg_store.application.exceptions import HashingError

HASH_HEX_LENGTH = 64


def hash_token(secret: str) -> str:
    """Return the lowercase hex SHA-256 digest of ``secret``.

    No salt is applied: tokens are already high-entropy random values and the
    digest must be reproducible so a token can be looked up by value alone.
    """
    if not isinstance(secret, str):
        raise HashingError(f"token secret must be a string, got {type(secret).__name__}")
    if not secret:
        raise HashingError("token secret must not be empty")
    try:
        encoded = secret.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise HashingError(f"token secret could not be encoded: {exc}") from exc
    return hashlib.sha256(encoded).hexdigest()


def hash_prefix(digest: str, length: int = 8) -> str:
    """Short, log-safe prefix of a stored hash."""
    return digest[:length]


__all__ = ["HASH_HEX_LENGTH", "hash_token", "hash_prefix"]
