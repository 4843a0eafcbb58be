"""Lifecycle behaviour shared by every ``TokenStore`` backend.

The in-memory double always runs. The PostgreSQL store runs when
``OAUTH2_STORE_TEST_DATABASE_URL`` points at a disposable database.
"""
import os
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from oauth2_pg_store.application.exceptions import StorageError, TokenNotFoundError
from oauth2_pg_store.domain.entities import TokenResponse
from oauth2_pg_store.domain.hashing import hash_token
from oauth2_pg_store.domain.token_store import TokenStore
from tests.memory_store import FakeClock, InMemoryTokenStore

TEST_DATABASE_URL = os.getenv("OAUTH2_STORE_TEST_DATABASE_URL")


@dataclass
class Harness:
    store: TokenStore
    now: Callable[[], datetime]
    advance: Callable[[float], None]


def _memory_harness():
    clock = FakeClock()
    yield Harness(store=InMemoryTokenStore(clock=clock), now=clock, advance=clock.advance)


def _postgres_harness():
    from oauth2_pg_store.infrastructure.migrations import apply_migrations
    from oauth2_pg_store.infrastructure.postgres_store import PostgresTokenStore, create_pool

    pool = create_pool(TEST_DATABASE_URL, min_size=1, max_size=2)
    apply_migrations(pool)
    with pool.connection() as conn:
        conn.execute("TRUNCATE oauth2_tokens")
    store = PostgresTokenStore(pool)
    try:
        yield Harness(
            store=store,
            now=lambda: datetime.now(timezone.utc),
            advance=time.sleep,
        )
    finally:
        store.close()


@pytest.fixture(
    params=[
        "memory",
        pytest.param(
            "postgres",
            marks=pytest.mark.skipif(
                not TEST_DATABASE_URL, reason="OAUTH2_STORE_TEST_DATABASE_URL not set"
            ),
        ),
    ]
)
def harness(request):
    factory = _memory_harness if request.param == "memory" else _postgres_harness
    yield from factory()


def _secret() -> str:
    return uuid.uuid4().hex


def test_store_then_lookup_returns_same_metadata(harness):
    user_id = uuid.uuid4()
    access = _secret()
    harness.store.store_token(TokenResponse(access_token=access), "test-app", user_id, ["read", "write"])

    found = harness.store.get_by_access_token(access)

    assert found is not None
    assert found.client_id == "test-app"
    assert found.user_id == user_id
    assert found.scopes == ["read", "write"]
    assert found.revoked is False
    assert found.expires_at is None
    assert found.access_token_hash == hash_token(access)


def test_refresh_lookup_returns_the_paired_record(harness):
    access, refresh = _secret(), _secret()
    harness.store.store_token(
        TokenResponse(access_token=access, refresh_token=refresh, expires_in=3600), "app1", None, []
    )

    by_access = harness.store.get_by_access_token(access)
    by_refresh = harness.store.get_by_refresh_token(refresh)

    assert by_refresh is not None
    assert by_refresh == by_access


def test_revocation_makes_token_unfindable(harness):
    access = _secret()
    harness.store.store_token(TokenResponse(access_token=access, expires_in=3600), "revoke-test", None, [])

    harness.store.revoke_by_access_token(access)

    assert harness.store.get_by_access_token(access) is None


def test_refresh_revocation_makes_access_token_unfindable(harness):
    access, refresh = _secret(), _secret()
    harness.store.store_token(
        TokenResponse(access_token=access, refresh_token=refresh, expires_in=3600), "app1", None, []
    )

    harness.store.revoke_by_refresh_token(refresh)

    assert harness.store.get_by_refresh_token(refresh) is None
    assert harness.store.get_by_access_token(access) is None


def test_second_revoke_still_succeeds(harness):
    access = _secret()
    harness.store.store_token(TokenResponse(access_token=access), "app1", None, [])

    harness.store.revoke_by_access_token(access)
    harness.store.revoke_by_access_token(access)

    assert harness.store.get_by_access_token(access) is None


def test_expiry_makes_token_unfindable(harness):
    access, refresh = _secret(), _secret()
    harness.store.store_token(
        TokenResponse(access_token=access, refresh_token=refresh, expires_in=1), "app1", None, []
    )

    harness.advance(1.5)

    assert harness.store.get_by_access_token(access) is None
    assert harness.store.get_by_refresh_token(refresh) is None


def test_cleanup_removes_exactly_revoked_and_expired(harness):
    keep, expired, revoked = _secret(), _secret(), _secret()
    harness.store.store_token(TokenResponse(access_token=keep), "app1", None, [])
    harness.store.store_token(TokenResponse(access_token=expired, expires_in=1), "app1", None, [])
    harness.store.store_token(TokenResponse(access_token=revoked), "app1", None, [])
    harness.store.revoke_by_access_token(revoked)
    harness.advance(1.5)

    assert harness.store.cleanup() == 2
    assert harness.store.get_by_access_token(keep) is not None
    assert harness.store.cleanup() == 0


def test_revoke_unknown_secret_is_not_found_and_changes_nothing(harness):
    access = _secret()
    harness.store.store_token(TokenResponse(access_token=access), "app1", None, [])

    with pytest.raises(TokenNotFoundError):
        harness.store.revoke_by_access_token(_secret())
    with pytest.raises(TokenNotFoundError):
        harness.store.revoke_by_refresh_token(_secret())

    assert harness.store.get_by_access_token(access) is not None
    assert harness.store.cleanup() == 0


def test_duplicate_access_secret_is_rejected_by_storage(harness):
    access = _secret()
    harness.store.store_token(TokenResponse(access_token=access), "app1", None, [])

    with pytest.raises(StorageError):
        harness.store.store_token(TokenResponse(access_token=access), "app1", None, [])


def test_concrete_scenario(harness):
    harness.store.store_token(
        TokenResponse(access_token="abc", refresh_token="xyz", expires_in=timedelta(hours=2)),
        "app1",
        None,
        ["read", "write"],
    )

    found = harness.store.get_by_access_token("abc")
    assert found.client_id == "app1"
    assert found.scopes == ["read", "write"]
    assert found.revoked is False
    assert abs(found.expires_at - (harness.now() + timedelta(hours=2))) < timedelta(minutes=1)

    harness.store.revoke_by_access_token("abc")

    assert harness.store.get_by_access_token("abc") is None
    assert harness.store.get_by_refresh_token("xyz") is None
