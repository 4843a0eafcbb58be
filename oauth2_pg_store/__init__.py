"""PostgreSQL-backed persistent storage for OAuth2 tokens.

Token secrets are never stored in plaintext: they are hashed before insertion
and every lookup hashes the presented secret the same way.
"""

from oauth2_pg_store.application.exceptions import (
    HashingError,
    InvalidTokenError,
    StorageError,
    TokenNotFoundError,
    TokenStoreError,
    UnexpectedStoreError,
)
from oauth2_pg_store.domain.entities import StoredToken, TokenResponse
from oauth2_pg_store.domain.hashing import hash_token
from oauth2_pg_store.domain.token_store import TokenStore

__version__ = "0.1.0"

__all__ = [
    "TokenStore",
    "TokenResponse",
    "StoredToken",
    "hash_token",
    "TokenStoreError",
    "StorageError",
    "TokenNotFoundError",
    "InvalidTokenError",
    "HashingError",
    "UnexpectedStoreError",
]
