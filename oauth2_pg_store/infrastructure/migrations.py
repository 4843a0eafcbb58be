"""Apply the bundled schema migrations to a PostgreSQL database."""

from __future__ import annotations

from importlib import resources
from typing import List, Tuple

import psycopg
from psycopg_pool import ConnectionPool

from oauth2_pg_store.application.exceptions import StorageError
from oauth2_pg_store.infrastructure import log_utils

MIGRATIONS_PACKAGE = "oauth2_pg_store.migrations"


def load_migrations() -> List[Tuple[str, str]]:
    """Return ``(name, sql)`` pairs for every bundled ``.sql`` file, sorted by name."""
    root = resources.files(MIGRATIONS_PACKAGE)
    scripts = [
        (entry.name, entry.read_text(encoding="utf-8"))
        for entry in root.iterdir()
        if entry.name.endswith(".sql")
    ]
    return sorted(scripts, key=lambda item: item[0])


def apply_migrations(pool: ConnectionPool) -> List[str]:
    """Run all migrations inside one transaction and return the applied names.

    Each script is idempotent (``IF NOT EXISTS``), so re-running is harmless.
    """
    migrations = load_migrations()
    applied: List[str] = []

    with pool.connection() as conn:
        try:
            with conn.cursor() as cur:
                for name, statement in migrations:
                    log_utils.info(f"Applying migration {name}.")
                    cur.execute(statement)
                    applied.append(name)
            conn.commit()
        except psycopg.Error as exc:
            conn.rollback()
            log_utils.error(f"Migration failed after {len(applied)} script(s): {exc}")
            raise StorageError(f"migration failed: {exc}") from exc

    log_utils.info(f"Applied {len(applied)} migration(s).")
    return applied


__all__ = ["apply_migrations", "load_migrations"]
