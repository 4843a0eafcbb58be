"""Exception hierarchy for token store operations."""

from __future__ import annotations


class TokenStoreError(Exception):
    """Base exception for token persistence failures."""


class StorageError(TokenStoreError):
    """Raised when the underlying database call fails."""


class TokenNotFoundError(TokenStoreError):
    """Raised when a revoke matched no stored token hash."""

    def __init__(self, message: str = "token not found") -> None:
        super().__init__(message)


class InvalidTokenError(TokenStoreError):
    """Raised when a token exists but is expired or revoked."""

    def __init__(self, message: str = "token expired or revoked") -> None:
        super().__init__(message)


class HashingError(TokenStoreError):
    """Raised when a token secret cannot be hashed."""


class UnexpectedStoreError(TokenStoreError):
    """Wraps any unanticipated failure without losing its cause."""


__all__ = [
    "TokenStoreError",
    "StorageError",
    "TokenNotFoundError",
    "InvalidTokenError",
    "HashingError",
    "UnexpectedStoreError",
]
