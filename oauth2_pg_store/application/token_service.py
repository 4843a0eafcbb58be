"""Application service powering the HTTP and CLI surfaces."""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence
from uuid import UUID

from oauth2_pg_store.config import settings
from oauth2_pg_store.domain.entities import ExpiresIn, StoredToken, TokenResponse
from oauth2_pg_store.domain.token_store import TokenStore
from oauth2_pg_store.infrastructure import log_utils

DEFAULT_SCOPES = ("read", "write")
TOKEN_TYPE_HINTS = ("access_token", "refresh_token")


class TokenService:
    """Issue, introspect and revoke tokens through a ``TokenStore``."""

    def __init__(self, store: TokenStore):
        self._store = store

    def issue(
        self,
        client_id: str,
        user_id: Optional[UUID] = None,
        scopes: Optional[Sequence[str]] = None,
        expires_in: ExpiresIn = None,
        with_refresh: bool = True,
    ) -> Dict[str, Any]:
        """Generate a token pair, persist its hashes and return the raw secrets.

        This is the only point at which the caller ever sees the secrets.
        """
        if expires_in is None:
            expires_in = settings.TOKEN_DEFAULT_EXPIRES_IN
        scope_list = list(DEFAULT_SCOPES if scopes is None else scopes)

        response = TokenResponse.issue(expires_in=expires_in, with_refresh=with_refresh)
        stored = self._store.store_token(response, client_id, user_id, scope_list)
        view = stored.to_dict()

        return {
            "access_token": response.access_token,
            "refresh_token": response.refresh_token,
            "token_type": response.token_type,
            "expires_in": response.expires_in_seconds,
            "client_id": view["client_id"],
            "user_id": view["user_id"],
            "scopes": view["scopes"],
            "issued_at": view["issued_at"],
            "expires_at": view["expires_at"],
        }

    def introspect(self, access_token: str) -> Optional[Dict[str, Any]]:
        return _public_view(self._store.get_by_access_token(access_token))

    def introspect_refresh(self, refresh_token: str) -> Optional[Dict[str, Any]]:
        return _public_view(self._store.get_by_refresh_token(refresh_token))

    def revoke(self, token: str, token_type_hint: str = "access_token") -> None:
        if token_type_hint not in TOKEN_TYPE_HINTS:
            raise ValueError(
                f"token_type_hint must be one of {', '.join(TOKEN_TYPE_HINTS)}; got '{token_type_hint}'"
            )
        if token_type_hint == "refresh_token":
            self._store.revoke_by_refresh_token(token)
        else:
            self._store.revoke_by_access_token(token)

    def cleanup(self) -> int:
        removed = self._store.cleanup()
        log_utils.info(f"Token cleanup finished: {removed} row(s) removed.")
        return removed


def _public_view(record: Optional[StoredToken]) -> Optional[Dict[str, Any]]:
    if record is None:
        return None
    return record.to_dict()


__all__ = ["TokenService", "DEFAULT_SCOPES", "TOKEN_TYPE_HINTS"]
