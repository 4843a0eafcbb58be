import psycopg
import pytest

from oauth2_pg_store.application.exceptions import StorageError
from oauth2_pg_store.infrastructure.migrations import apply_migrations, load_migrations


def test_bundled_schema_is_loaded():
    migrations = load_migrations()

    names = [name for name, _sql in migrations]
    assert names == sorted(names)
    assert "0001_create_oauth2_tokens.sql" in names
    schema = dict(migrations)["0001_create_oauth2_tokens.sql"]
    assert "CREATE TABLE IF NOT EXISTS oauth2_tokens" in schema
    assert "access_token_hash  TEXT NOT NULL UNIQUE" in schema
    assert "idx_oauth2_refresh_hash" in schema


def test_apply_migrations_executes_and_commits(mock_pool):
    pool, conn, cur = mock_pool

    applied = apply_migrations(pool)

    assert applied == [name for name, _sql in load_migrations()]
    assert cur.execute.call_count == len(applied)
    conn.commit.assert_called_once()
    conn.rollback.assert_not_called()


def test_apply_migrations_rolls_back_on_failure(mock_pool):
    pool, conn, cur = mock_pool
    cur.execute.side_effect = psycopg.errors.InsufficientPrivilege("permission denied")

    with pytest.raises(StorageError):
        apply_migrations(pool)

    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()
