"""
Command-line interface for the OAuth2 Postgres token store.

Provides a single entry point for applying the schema, issuing, inspecting
and revoking tokens, periodic cleanup and running the example HTTP server.
"""
from __future__ import annotations

import uuid
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table
from typer import Argument, Option
from typing_extensions import Annotated

from oauth2_pg_store.application.exceptions import TokenNotFoundError, TokenStoreError
from oauth2_pg_store.application.token_service import DEFAULT_SCOPES, TokenService
from oauth2_pg_store.config import settings
from oauth2_pg_store.domain.token_store import TokenStore
from oauth2_pg_store.infrastructure import log_utils

console = Console()

app = typer.Typer(
    name="oauth2-store",
    help="Manage OAuth2 tokens persisted in PostgreSQL.",
    add_completion=False,
)


def _build_store() -> TokenStore:
    """Lazy import helper so ``--help`` works without a database."""
    from oauth2_pg_store.infrastructure.postgres_store import PostgresTokenStore

    return PostgresTokenStore.from_settings()


def _render_record(record: dict, title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Field")
    table.add_column("Value")
    for key, value in record.items():
        if isinstance(value, list):
            value = ", ".join(value) if value else "-"
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


@app.command()
def migrate() -> None:
    """Create the oauth2_tokens table and its indexes if missing."""
    from oauth2_pg_store.infrastructure.migrations import apply_migrations
    from oauth2_pg_store.infrastructure.postgres_store import create_pool

    pool = create_pool()
    try:
        applied = apply_migrations(pool)
    except TokenStoreError as exc:
        log_utils.error(f"Migration failed: {exc}", tag="MIGRATE")
        typer.echo(f"Migration failed: {exc}")
        raise typer.Exit(code=1)
    finally:
        pool.close()
    typer.echo(f"Applied {len(applied)} migration(s): {', '.join(applied) or 'none'}")


@app.command()
def issue(
    client_id: Annotated[str, Option("--client-id", help="OAuth2 client identifier.")] = "example-client",
    user_id: Annotated[Optional[str], Option("--user-id", help="Resource owner UUID.")] = None,
    scope: Annotated[Optional[List[str]], Option("--scope", help="Granted scope (repeatable).")] = None,
    expires_in: Annotated[Optional[int], Option("--expires-in", help="Lifetime in seconds.")] = None,
    no_refresh: Annotated[bool, Option("--no-refresh", help="Do not issue a refresh token.")] = False,
) -> None:
    """Issue a new token pair and print the secrets once."""
    try:
        owner = uuid.UUID(user_id) if user_id else None
    except ValueError:
        typer.echo(f"Invalid --user-id: {user_id}")
        raise typer.Exit(code=2)

    store = _build_store()
    try:
        issued = TokenService(store).issue(
            client_id=client_id,
            user_id=owner,
            scopes=scope if scope else list(DEFAULT_SCOPES),
            expires_in=expires_in,
            with_refresh=not no_refresh,
        )
    except ValueError as exc:
        typer.echo(f"Invalid token request: {exc}")
        raise typer.Exit(code=2)
    except TokenStoreError as exc:
        log_utils.error(f"Failed to issue token: {exc}", tag="CLI")
        typer.echo(f"Failed to issue token: {exc}")
        raise typer.Exit(code=1)
    finally:
        store.close()

    _render_record(issued, "Issued token")


@app.command()
def lookup(
    token: Annotated[str, Argument(help="Access (or refresh) token secret.")],
    refresh: Annotated[bool, Option("--refresh", help="Treat TOKEN as a refresh token.")] = False,
) -> None:
    """Show metadata for a live token."""
    store = _build_store()
    service = TokenService(store)
    try:
        found = service.introspect_refresh(token) if refresh else service.introspect(token)
    except TokenStoreError as exc:
        log_utils.error(f"Lookup failed: {exc}", tag="CLI")
        typer.echo(f"Lookup failed: {exc}")
        raise typer.Exit(code=1)
    finally:
        store.close()

    if found is None:
        typer.echo("Token not found (unknown, revoked or expired).")
        raise typer.Exit(code=1)
    _render_record(found, "Token")


@app.command()
def revoke(
    token: Annotated[str, Argument(help="Access (or refresh) token secret.")],
    refresh: Annotated[bool, Option("--refresh", help="Treat TOKEN as a refresh token.")] = False,
) -> None:
    """Revoke a token by its secret."""
    store = _build_store()
    hint = "refresh_token" if refresh else "access_token"
    try:
        TokenService(store).revoke(token, hint)
    except TokenNotFoundError:
        typer.echo("Token not found.")
        raise typer.Exit(code=1)
    except TokenStoreError as exc:
        log_utils.error(f"Revoke failed: {exc}", tag="CLI")
        typer.echo(f"Revoke failed: {exc}")
        raise typer.Exit(code=1)
    finally:
        store.close()
    typer.echo("Token revoked.")


@app.command()
def cleanup() -> None:
    """Delete revoked and expired tokens."""
    store = _build_store()
    try:
        removed = TokenService(store).cleanup()
    except TokenStoreError as exc:
        log_utils.error(f"Cleanup failed: {exc}", tag="CLEANUP")
        typer.echo(f"Cleanup failed: {exc}")
        raise typer.Exit(code=1)
    finally:
        store.close()
    typer.echo(f"Removed {removed} token(s).")


@app.command()
def serve(
    host: Annotated[Optional[str], Option(help="Bind address.")] = None,
    port: Annotated[Optional[int], Option(help="Bind port.")] = None,
) -> None:
    """Run the example HTTP server."""
    import uvicorn

    bind_host = host or settings.API_HOST
    bind_port = port or settings.API_PORT
    log_utils.info(f"Server listening on http://{bind_host}:{bind_port}", tag="API")
    uvicorn.run("oauth2_pg_store.api:app", host=bind_host, port=bind_port)


@app.command(help="View the most recent lines from the token store log.")
def logs(
    number: int = Argument(50, help="Number of log lines to show (default: 50)."),
) -> None:
    log_path = settings.log_path
    if not log_path.exists():
        typer.echo(f"Log file not found: {log_path}")
        raise typer.Exit(code=1)

    with log_path.open("r", encoding="utf-8") as f:
        lines = f.readlines()
        for line in lines[-number:]:
            typer.echo(line.rstrip())


if __name__ == "__main__":
    app()
