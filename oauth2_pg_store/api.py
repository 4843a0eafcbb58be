"""FastAPI example server exposing the token store over HTTP."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from pydantic import BaseModel, Field

from oauth2_pg_store.application.exceptions import TokenNotFoundError, TokenStoreError
from oauth2_pg_store.application.token_service import DEFAULT_SCOPES, TokenService
from oauth2_pg_store.config import settings
from oauth2_pg_store.domain.entities import MAX_EXPIRES_IN_SECONDS
from oauth2_pg_store.domain.token_store import TokenStore
from oauth2_pg_store.infrastructure import log_utils

DEFAULT_CLIENT_ID = "example-client"


class IssueTokenRequest(BaseModel):
    client_id: str = Field(DEFAULT_CLIENT_ID, min_length=1)
    user_id: Optional[uuid.UUID] = None
    scopes: List[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    expires_in: Optional[int] = Field(
        None, ge=0, le=MAX_EXPIRES_IN_SECONDS, description="Lifetime in seconds."
    )
    with_refresh: bool = True


class RevokeTokenRequest(BaseModel):
    token: str = Field(..., min_length=1)
    token_type_hint: str = "access_token"


def validate_api_key(request: Request, x_api_key: Optional[str] = Header(None)) -> None:
    """Accept the key from the ``X-API-Key`` header or the ``api_key`` query string.

    No-op when ``API_KEY`` is not configured.
    """
    expected = settings.api_key
    if expected is None:
        return
    key = x_api_key or request.query_params.get("api_key")
    if key != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


def get_token_service(request: Request) -> TokenService:
    service = getattr(request.app.state, "token_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Token store is not available")
    return service


def _storage_failure(exc: Exception, action: str) -> HTTPException:
    log_utils.error(f"{action} failed: {exc}", tag="API")
    return HTTPException(status_code=500, detail=f"Failed to {action}")


def create_app(store: Optional[TokenStore] = None) -> FastAPI:
    """Build the application.

    When ``store`` is omitted a pooled :class:`PostgresTokenStore` is created
    on startup and closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned: Optional[TokenStore] = None
        if getattr(app.state, "token_service", None) is None:
            from oauth2_pg_store.infrastructure.postgres_store import PostgresTokenStore

            owned = PostgresTokenStore.from_settings()
            app.state.token_service = TokenService(owned)
            log_utils.info("Token store connected.", tag="API")
        try:
            yield
        finally:
            if owned is not None:
                owned.close()
                app.state.token_service = None

    app = FastAPI(title="OAuth2 Postgres Token Store", lifespan=lifespan)
    app.state.token_service = TokenService(store) if store is not None else None

    @app.get("/")
    def root_get():
        return {"status": "ok", "message": "oauth2-pg-store API root"}

    @app.post("/tokens", status_code=status.HTTP_201_CREATED, dependencies=[Depends(validate_api_key)])
    def store_token(
        payload: Optional[IssueTokenRequest] = None,
        service: TokenService = Depends(get_token_service),
    ):
        """Issue a token pair, persist its hashes and return the raw secrets."""
        payload = payload or IssueTokenRequest()
        user_id = payload.user_id or uuid.uuid4()

        try:
            issued = service.issue(
                client_id=payload.client_id,
                user_id=user_id,
                scopes=payload.scopes,
                expires_in=payload.expires_in,
                with_refresh=payload.with_refresh,
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc))
        except TokenStoreError as exc:
            raise _storage_failure(exc, "store token")

        return {"message": "Token stored", **issued}

    @app.get("/tokens/refresh/{refresh_token}", dependencies=[Depends(validate_api_key)])
    def get_token_by_refresh(refresh_token: str, service: TokenService = Depends(get_token_service)):
        try:
            found = service.introspect_refresh(refresh_token)
        except TokenStoreError as exc:
            raise _storage_failure(exc, "look up token")
        if found is None:
            raise HTTPException(status_code=404, detail="Token not found")
        return found

    @app.get("/tokens/{access_token}", dependencies=[Depends(validate_api_key)])
    def get_token(access_token: str, service: TokenService = Depends(get_token_service)):
        try:
            found = service.introspect(access_token)
        except TokenStoreError as exc:
            raise _storage_failure(exc, "look up token")
        if found is None:
            raise HTTPException(status_code=404, detail="Token not found")
        return found

    @app.post("/tokens/revoke", dependencies=[Depends(validate_api_key)])
    def revoke_token(payload: RevokeTokenRequest, service: TokenService = Depends(get_token_service)):
        try:
            service.revoke(payload.token, payload.token_type_hint)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc))
        except TokenNotFoundError:
            raise HTTPException(status_code=404, detail="Token not found")
        except TokenStoreError as exc:
            raise _storage_failure(exc, "revoke token")
        return {"status": "revoked"}

    @app.post("/tokens/cleanup", dependencies=[Depends(validate_api_key)])
    def cleanup_tokens(service: TokenService = Depends(get_token_service)):
        try:
            removed = service.cleanup()
        except TokenStoreError as exc:
            raise _storage_failure(exc, "clean up tokens")
        return {"removed": removed}

    return app


app = create_app()
