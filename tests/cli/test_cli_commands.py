import pytest
from typer.testing import CliRunner

from oauth2_pg_store.cli import main as cli_main
from oauth2_pg_store.domain.entities import TokenResponse
from tests.memory_store import FailingTokenStore, InMemoryTokenStore

runner = CliRunner()


@pytest.fixture()
def store(monkeypatch) -> InMemoryTokenStore:
    shared = InMemoryTokenStore()
    monkeypatch.setattr(cli_main, "_build_store", lambda: shared)
    return shared


def test_issue_prints_token_and_persists(store):
    result = runner.invoke(cli_main.app, ["issue", "--client-id", "app1", "--scope", "read"])

    assert result.exit_code == 0, result.output
    assert "app1" in result.output
    assert len(store.rows) == 1
    assert store.rows[0].scopes == ["read"]
    assert store.closed


def test_issue_rejects_bad_user_id(store):
    result = runner.invoke(cli_main.app, ["issue", "--user-id", "not-a-uuid"])

    assert result.exit_code == 2
    assert store.rows == []


def test_issue_rejects_out_of_range_expiry(store):
    result = runner.invoke(cli_main.app, ["issue", "--expires-in", str(10**12)])

    assert result.exit_code == 2
    assert "Invalid token request" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert store.rows == []
    assert store.closed


def test_lookup_found(store):
    store.store_token(TokenResponse(access_token="abc", refresh_token="xyz"), "app1", None, ["read"])

    by_access = runner.invoke(cli_main.app, ["lookup", "abc"])
    by_refresh = runner.invoke(cli_main.app, ["lookup", "xyz", "--refresh"])

    assert by_access.exit_code == 0, by_access.output
    assert "app1" in by_access.output
    assert by_refresh.exit_code == 0, by_refresh.output


def test_lookup_missing_exits_1(store):
    result = runner.invoke(cli_main.app, ["lookup", "nope"])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_revoke_then_revoke_unknown(store):
    store.store_token(TokenResponse(access_token="abc"), "app1", None, [])

    ok = runner.invoke(cli_main.app, ["revoke", "abc"])
    missing = runner.invoke(cli_main.app, ["revoke", "other"])

    assert ok.exit_code == 0
    assert "revoked" in ok.output
    assert missing.exit_code == 1
    assert "not found" in missing.output


def test_cleanup_reports_count(store):
    store.store_token(TokenResponse(access_token="abc"), "app1", None, [])
    store.revoke_by_access_token("abc")

    result = runner.invoke(cli_main.app, ["cleanup"])

    assert result.exit_code == 0
    assert "Removed 1 token(s)." in result.output


def test_storage_failure_exits_1(monkeypatch):
    monkeypatch.setattr(cli_main, "_build_store", lambda: FailingTokenStore())

    result = runner.invoke(cli_main.app, ["cleanup"])

    assert result.exit_code == 1
    assert "Cleanup failed" in result.output


def test_migrate_applies_and_closes_pool(monkeypatch, mock_pool):
    pool, _conn, _cur = mock_pool
    monkeypatch.setattr(
        "oauth2_pg_store.infrastructure.postgres_store.create_pool", lambda *a, **k: pool
    )

    result = runner.invoke(cli_main.app, ["migrate"])

    assert result.exit_code == 0, result.output
    assert "0001_create_oauth2_tokens.sql" in result.output
    pool.close.assert_called_once()
