# oauth2_pg_store/infrastructure/postgres_store.py
"""
PostgreSQL implementation of the token store.

Every operation hashes the supplied secret locally and issues exactly one
parameterised statement through the injected connection pool. Nothing is
cached and nothing is retried: the first failure is translated into a
``TokenStoreError`` subclass and raised to the caller.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Sequence
from uuid import UUID

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from oauth2_pg_store.application.exceptions import (
    StorageError,
    TokenNotFoundError,
    TokenStoreError,
    UnexpectedStoreError,
)
from oauth2_pg_store.config import settings
from oauth2_pg_store.domain.entities import StoredToken, TokenResponse
from oauth2_pg_store.domain.hashing import hash_prefix, hash_token
from oauth2_pg_store.domain.token_store import TokenStore
from oauth2_pg_store.infrastructure import log_utils
from oauth2_pg_store.infrastructure.db_conn import get_database_url

TABLE_NAME = "oauth2_tokens"

_COLUMNS = (
    "id, access_token_hash, refresh_token_hash, client_id, user_id, "
    "scopes, issued_at, expires_at, revoked"
)

INSERT_SQL = f"""
    INSERT INTO {TABLE_NAME} (
        access_token_hash,
        refresh_token_hash,
        client_id,
        user_id,
        scopes,
        issued_at,
        expires_at,
        revoked
    )
    VALUES (%s, %s, %s, %s, %s::text[], NOW(), NOW() + %s::interval, FALSE)
    RETURNING {_COLUMNS}
"""

SELECT_BY_ACCESS_SQL = f"""
    SELECT {_COLUMNS} FROM {TABLE_NAME}
    WHERE access_token_hash = %s
      AND NOT revoked
      AND (expires_at IS NULL OR expires_at > NOW())
"""

SELECT_BY_REFRESH_SQL = f"""
    SELECT {_COLUMNS} FROM {TABLE_NAME}
    WHERE refresh_token_hash = %s
      AND NOT revoked
      AND (expires_at IS NULL OR expires_at > NOW())
"""

# ``revoked`` is deliberately absent from the predicate: a second revoke of
# the same hash still matches and reports success.
REVOKE_BY_ACCESS_SQL = f"UPDATE {TABLE_NAME} SET revoked = TRUE WHERE access_token_hash = %s"
REVOKE_BY_REFRESH_SQL = f"UPDATE {TABLE_NAME} SET revoked = TRUE WHERE refresh_token_hash = %s"

CLEANUP_SQL = f"""
    DELETE FROM {TABLE_NAME}
    WHERE revoked = TRUE
       OR (expires_at IS NOT NULL AND expires_at < NOW())
"""


# --- Connection Pool Management ---
def create_pool(
    conninfo: Optional[str] = None,
    *,
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
    open: bool = True,
) -> ConnectionPool:
    """Build a connection pool for the token store.

    The pool is returned to the caller rather than cached at module level;
    whoever creates it owns it and passes it to :class:`PostgresTokenStore`.
    """
    return ConnectionPool(
        conninfo=conninfo or get_database_url(),
        min_size=min_size if min_size is not None else settings.DB_POOL_MIN_SIZE,
        max_size=max_size if max_size is not None else settings.DB_POOL_MAX_SIZE,
        open=open,
    )


class PostgresTokenStore(TokenStore):
    """Token store backed by the ``oauth2_tokens`` table."""

    def __init__(self, pool: ConnectionPool):
        if pool is None:
            raise ValueError("PostgresTokenStore requires a connection pool")
        self.pool = pool

    @classmethod
    def from_settings(cls) -> "PostgresTokenStore":
        """Convenience constructor using the configured connection string."""
        return cls(create_pool())

    @contextmanager
    def _get_cursor(self) -> Iterator[psycopg.Cursor]:
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                yield cur
            conn.commit()

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except TokenStoreError:
            raise
        except psycopg.Error as exc:
            log_utils.error(f"{operation} failed: {exc}")
            raise StorageError(f"database error during {operation}: {exc}") from exc
        except Exception as exc:
            log_utils.error(f"{operation} failed unexpectedly: {exc!r}")
            raise UnexpectedStoreError(f"unexpected error during {operation}: {exc}") from exc

    def close(self) -> None:
        if self.pool is not None and not self.pool.closed:
            self.pool.close()
            log_utils.info("Database connection pool closed.")

    # ----------------------------------------------
    # --- Writes ---
    # ----------------------------------------------
    def store_token(
        self,
        token: TokenResponse,
        client_id: str,
        user_id: Optional[UUID] = None,
        scopes: Sequence[str] = (),
    ) -> StoredToken:
        if not isinstance(client_id, str) or not client_id:
            raise ValueError("client_id must be a non-empty string")

        access_hash = hash_token(token.access_token)
        refresh_hash = hash_token(token.refresh_token) if token.refresh_token is not None else None
        scope_list = [str(scope) for scope in scopes]

        with self._translate_errors("store_token"):
            with self._get_cursor() as cur:
                cur.execute(
                    INSERT_SQL,
                    (
                        access_hash,
                        refresh_hash,
                        client_id,
                        user_id,
                        scope_list,
                        token.expires_in,
                    ),
                )
                row = cur.fetchone()

        if row is None:
            raise UnexpectedStoreError("insert into oauth2_tokens returned no row")

        stored = StoredToken.from_row(row)
        log_utils.info(
            f"Stored token {hash_prefix(access_hash)} for client '{client_id}' "
            f"(refresh={'yes' if refresh_hash else 'no'}, expires_at={stored.expires_at})."
        )
        return stored

    def revoke_by_access_token(self, access_token: str) -> None:
        self._revoke(REVOKE_BY_ACCESS_SQL, hash_token(access_token), "revoke_by_access_token")

    def revoke_by_refresh_token(self, refresh_token: str) -> None:
        self._revoke(REVOKE_BY_REFRESH_SQL, hash_token(refresh_token), "revoke_by_refresh_token")

    def _revoke(self, statement: str, token_hash: str, operation: str) -> None:
        with self._translate_errors(operation):
            with self._get_cursor() as cur:
                cur.execute(statement, (token_hash,))
                affected = cur.rowcount

        if not affected or affected < 0:
            log_utils.warn(f"{operation}: no token with hash {hash_prefix(token_hash)}.")
            raise TokenNotFoundError()

        log_utils.info(f"{operation}: revoked {affected} row(s) for hash {hash_prefix(token_hash)}.")

    def cleanup(self) -> int:
        with self._translate_errors("cleanup"):
            with self._get_cursor() as cur:
                cur.execute(CLEANUP_SQL)
                removed = cur.rowcount

        removed = max(int(removed or 0), 0)
        log_utils.info(f"Cleanup removed {removed} revoked or expired token(s).")
        return removed

    # ----------------------------------------------
    # --- Reads ---
    # ----------------------------------------------
    def get_by_access_token(self, access_token: str) -> Optional[StoredToken]:
        return self._fetch_live(SELECT_BY_ACCESS_SQL, hash_token(access_token), "get_by_access_token")

    def get_by_refresh_token(self, refresh_token: str) -> Optional[StoredToken]:
        return self._fetch_live(SELECT_BY_REFRESH_SQL, hash_token(refresh_token), "get_by_refresh_token")

    def _fetch_live(self, statement: str, token_hash: str, operation: str) -> Optional[StoredToken]:
        with self._translate_errors(operation):
            with self._get_cursor() as cur:
                cur.execute(statement, (token_hash,))
                row: Optional[Dict[str, Any]] = cur.fetchone()

        if row is None:
            log_utils.debug(f"{operation}: no live token for hash {hash_prefix(token_hash)}.")
            return None
        return StoredToken.from_row(row)


__all__ = ["PostgresTokenStore", "create_pool", "TABLE_NAME"]
